"""Solana wallet backend built on ``solana`` (solana-py) and ``solders``."""

from __future__ import annotations

import logging
from decimal import Decimal

import base58
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.transaction import Transaction, VersionedTransaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)

from onchain_shopper.errors import WalletError
from onchain_shopper.wallet.base import WalletClient, from_base_units, to_base_units
from onchain_shopper.wallet.chains import Chain, Token

logger = logging.getLogger("onchain_shopper.wallet.solana")

_TX_OPTS = TxOpts(preflight_commitment=Confirmed)


def _pubkey(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as exc:
        raise WalletError(f"Invalid Solana address '{value}'") from exc


class SolanaWalletClient(WalletClient):
    """Signs with a base58 secret key and talks to a Solana cluster."""

    def __init__(
        self,
        private_key: str,
        chain: Chain,
        rpc_url: str | None = None,
        client: Client | None = None,
    ) -> None:
        super().__init__(chain)
        try:
            self._keypair = Keypair.from_base58_string(private_key.strip())
        except Exception as exc:
            raise WalletError(f"Invalid Solana private key: {exc}") from exc
        self.client = client or Client(rpc_url or chain.rpc_url)

    @property
    def address(self) -> str:
        return str(self._keypair.pubkey())

    def get_native_balance(self, address: str | None = None) -> Decimal:
        owner = _pubkey(address) if address else self._keypair.pubkey()
        lamports = self.client.get_balance(owner).value
        return from_base_units(lamports, self.chain.native_decimals)

    def get_token_balance(self, token: Token, address: str | None = None) -> Decimal:
        owner = _pubkey(address) if address else self._keypair.pubkey()
        mint = _pubkey(token.address_on(self.chain))
        resp = self.client.get_token_accounts_by_owner_json_parsed(
            owner, TokenAccountOpts(mint=mint)
        )
        total = 0
        for keyed in resp.value:
            info = keyed.account.data.parsed["info"]
            total += int(info["tokenAmount"]["amount"])
        return from_base_units(total, token.decimals)

    def transfer_token(self, token: Token, to: str, amount: Decimal) -> str:
        owner = self._keypair.pubkey()
        recipient = _pubkey(to)
        mint = _pubkey(token.address_on(self.chain))
        source = get_associated_token_address(owner, mint)
        dest = get_associated_token_address(recipient, mint)

        instructions = [
            create_idempotent_associated_token_account(owner, recipient, mint),
            transfer_checked(
                TransferCheckedParams(
                    program_id=TOKEN_PROGRAM_ID,
                    source=source,
                    mint=mint,
                    dest=dest,
                    owner=owner,
                    amount=to_base_units(amount, token.decimals),
                    decimals=token.decimals,
                )
            ),
        ]
        blockhash = self.client.get_latest_blockhash().value.blockhash
        tx = Transaction.new_signed_with_payer(instructions, owner, [self._keypair], blockhash)
        signature = str(self.client.send_transaction(tx, opts=_TX_OPTS).value)
        logger.info(f"Sent {amount} {token.symbol} to {to} on {self.chain.name}: {signature}")
        return signature

    def send_serialized_transaction(self, serialized: str) -> str:
        try:
            tx = VersionedTransaction.from_bytes(base58.b58decode(serialized))
        except Exception as exc:
            raise WalletError(f"Cannot decode checkout transaction: {exc}") from exc

        message = tx.message
        signers = message.account_keys[: message.header.num_required_signatures]
        if self._keypair.pubkey() not in signers:
            raise WalletError("Checkout transaction does not expect a signature from this wallet")

        signatures = list(tx.signatures)
        slot = signers.index(self._keypair.pubkey())
        signatures[slot] = self._keypair.sign_message(to_bytes_versioned(message))
        signed = VersionedTransaction.populate(message, signatures)

        signature = str(self.client.send_raw_transaction(bytes(signed), opts=_TX_OPTS).value)
        logger.info(f"Submitted checkout transaction on {self.chain.name}: {signature}")
        return signature
