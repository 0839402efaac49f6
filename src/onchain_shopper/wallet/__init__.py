"""Blockchain wallets for Onchain Shopper.

Two backends implement :class:`~onchain_shopper.wallet.base.WalletClient`:
an EVM wallet (Base, Ethereum, Polygon, Arbitrum) and a Solana wallet.
:func:`create_wallet` picks one from the ``wallet`` configuration section.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from onchain_shopper.errors import SetupError
from onchain_shopper.wallet.base import WalletClient
from onchain_shopper.wallet.chains import get_chain, list_chain_names

if TYPE_CHECKING:
    from onchain_shopper.config import WalletConfig


def create_wallet(wallet_config: WalletConfig) -> WalletClient:
    """Instantiate the wallet backend selected by *wallet_config*.

    Raises :class:`SetupError` if the chain is unknown or belongs to another
    backend.  Backend libraries are imported lazily.
    """
    cfg = wallet_config.resolved()
    try:
        chain = get_chain(cfg.chain)
    except KeyError as exc:
        raise SetupError(str(exc.args[0])) from exc
    if chain.family != cfg.backend:
        raise SetupError(
            f"Chain '{chain.name}' is not a {cfg.backend} chain. "
            f"Choose one of: {list_chain_names(cfg.backend)}"
        )

    if cfg.backend == "solana":
        from onchain_shopper.wallet.solana import SolanaWalletClient

        return SolanaWalletClient(cfg.private_key, chain, rpc_url=cfg.rpc_url or None)

    from onchain_shopper.wallet.evm import EVMWalletClient

    return EVMWalletClient(cfg.private_key, chain, rpc_url=cfg.rpc_url or None)


__all__ = ["WalletClient", "create_wallet"]
