from onchain_shopper.cli.app import app

app()
