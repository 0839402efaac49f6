"""CLI for Onchain Shopper - chat with a shopping assistant that pays on-chain."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

load_dotenv()

app = typer.Typer(
    name="onchain-shopper",
    help="A conversational shopping assistant that pays with crypto.",
    invoke_without_command=True,
    add_completion=False,
)
console = Console()

# Global options, set by the callback
_config_path: Optional[Path] = None
_overrides: dict = {}


def _version_callback(value: bool):
    if value:
        from onchain_shopper import __version__

        console.print(f"onchain-shopper {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    # HTTP client chatter is only useful when something is broken
    for noisy in ("httpx", "httpcore", "openai", "anthropic", "urllib3", "web3"):
        logging.getLogger(noisy).setLevel(logging.INFO if verbose else logging.WARNING)


def _run(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


def _load():
    """Load the configuration or exit with status 1."""
    from pydantic import ValidationError

    from onchain_shopper.config import find_config, load_config

    path = _config_path or find_config()
    try:
        config = load_config(path, overrides=_overrides)
    except (OSError, ValueError, ValidationError) as exc:
        console.print(f"[red]Fatal error:[/red] could not load configuration: {exc}")
        raise typer.Exit(1)
    _drop_foreign_wallet_settings(config)
    return config


def _drop_foreign_wallet_settings(config) -> None:
    """Forget wallet settings written for the other backend.

    Only applies when the backend was chosen on the command line without
    ``--chain`` and the configured chain belongs to the other family.  The
    chain, key and RPC URL then fall back to the chosen backend's defaults.
    """
    from onchain_shopper.wallet.chains import CHAINS

    wallet_overrides = _overrides.get("wallet", {})
    if "backend" not in wallet_overrides or "chain" in wallet_overrides:
        return
    chain = CHAINS.get(config.wallet.chain or "")
    if chain is not None and chain.family != config.wallet.backend:
        config.wallet.chain = None
        config.wallet.private_key = ""
        config.wallet.rpc_url = ""


def _start_chat() -> None:
    from onchain_shopper.core.bootstrap import build_session
    from onchain_shopper.core.session import ChatLoop
    from onchain_shopper.errors import SetupError

    config = _load()
    try:
        session = build_session(config)
    except SetupError as exc:
        console.print(f"[red]Fatal error:[/red] {exc}")
        raise typer.Exit(1)

    console.clear()
    _run(ChatLoop(session, console).run())


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a shopper.yaml configuration file",
        exists=True,
        dir_okay=False,
    ),
    wallet: Optional[str] = typer.Option(
        None,
        "--wallet",
        "-w",
        help="Wallet backend: evm or solana",
        envvar="SHOPPER_WALLET",
    ),
    chain: Optional[str] = typer.Option(
        None,
        "--chain",
        help="Chain to pay on (base, ethereum, polygon, arbitrum, solana, ...)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Chat with the shopping assistant. Type 'exit' to quit."""
    global _config_path, _overrides
    _configure_logging(verbose)
    _config_path = config
    _overrides = {}
    wallet_overrides = {}
    if wallet:
        wallet_overrides["backend"] = wallet.strip().lower()
    if chain:
        wallet_overrides["chain"] = chain.strip().lower()
    if wallet_overrides:
        _overrides["wallet"] = wallet_overrides

    if ctx.invoked_subcommand is None:
        _start_chat()


# ------------------------------------------------------------------
# init
# ------------------------------------------------------------------


@app.command()
def init(
    path: Path = typer.Option(Path("shopper.yaml"), "--path", "-p", help="Where to write the file"),
    backend: str = typer.Option("evm", "--backend", "-b", help="Wallet backend: evm or solana"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a starter configuration file."""
    from onchain_shopper.config import ShopperConfig, WalletConfig, save_config

    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists.[/yellow] Use --force to overwrite it.")
        raise typer.Exit(1)
    if backend not in ("evm", "solana"):
        console.print(f"[red]Unknown backend '{backend}'.[/red] Use evm or solana.")
        raise typer.Exit(1)

    if backend == "solana":
        wallet = WalletConfig(backend="solana", chain="solana",
                              private_key="${SOLANA_PRIVATE_KEY}", rpc_url="${SOLANA_RPC_URL}")
    else:
        wallet = WalletConfig(backend="evm", chain="base",
                              private_key="${WALLET_PRIVATE_KEY}", rpc_url="${RPC_PROVIDER_URL}")
    save_config(ShopperConfig(wallet=wallet), path)

    console.print(Panel(
        f"[bold green]Configuration written to {path}[/bold green]\n\n"
        f"[dim]Secrets are read from the environment (or a .env file):\n"
        f"CROSSMINT_API_KEY, OPENAI_API_KEY and the wallet key.[/dim]",
        title="Onchain Shopper",
    ))


# ------------------------------------------------------------------
# wallet sub-commands
# ------------------------------------------------------------------

wallet_app = typer.Typer(
    name="wallet",
    help="Inspect the shopping wallet.",
    no_args_is_help=True,
)
app.add_typer(wallet_app, name="wallet")


def _open_wallet():
    from onchain_shopper.errors import ShopperError
    from onchain_shopper.wallet import create_wallet

    config = _load()
    try:
        return config, create_wallet(config.wallet)
    except ShopperError as exc:
        console.print(f"[red]Fatal error:[/red] {exc}")
        raise typer.Exit(1)


@wallet_app.command("address")
def wallet_address():
    """Show the wallet address."""
    _, wallet = _open_wallet()
    console.print(Panel(
        f"[cyan]{wallet.address}[/cyan]\n\n[dim]Chain: {wallet.chain.name}[/dim]",
        title="Wallet Address",
    ))


@wallet_app.command("balance")
def wallet_balance():
    """Show native and token balances of the wallet."""
    from onchain_shopper.wallet.base import format_amount
    from onchain_shopper.wallet.chains import get_token

    config, wallet = _open_wallet()

    table = Table(title=f"Wallet Balances ({wallet.chain.name})")
    table.add_column("Asset", style="cyan")
    table.add_column("Balance", justify="right")
    table.add_column("Status", style="dim")

    rows = [(wallet.chain.native_symbol, lambda: wallet.get_native_balance())]
    for symbol in config.wallet.tokens:
        rows.append((symbol.upper(), lambda symbol=symbol: wallet.get_token_balance(get_token(symbol))))

    failed = False
    for label, fetch in rows:
        try:
            table.add_row(label, format_amount(fetch()), "[green]OK[/green]")
        except Exception as exc:
            failed = True
            table.add_row(label, "-", f"[red]{exc}[/red]")
    console.print(table)
    if failed:
        raise typer.Exit(1)
