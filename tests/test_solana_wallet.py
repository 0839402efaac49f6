"""Tests for the Solana wallet backend, with a mocked RPC client."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import base58
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from onchain_shopper.errors import WalletError
from onchain_shopper.wallet.chains import USDC, get_chain
from onchain_shopper.wallet.solana import SolanaWalletClient


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def wallet(keypair) -> SolanaWalletClient:
    return SolanaWalletClient(str(keypair), get_chain("solana"), client=MagicMock())


def _unsigned_checkout_tx(payer: Keypair) -> str:
    merchant = Keypair().pubkey()
    ix = transfer(TransferParams(from_pubkey=payer.pubkey(), to_pubkey=merchant, lamports=1000))
    message = MessageV0.try_compile(payer.pubkey(), [ix], [], Hash.default())
    tx = VersionedTransaction.populate(message, [Signature.default()])
    return base58.b58encode(bytes(tx)).decode()


class TestSolanaWalletClient:
    def test_address(self, wallet, keypair):
        assert wallet.address == str(keypair.pubkey())

    def test_invalid_key(self):
        with pytest.raises(WalletError):
            SolanaWalletClient("not-base58!", get_chain("solana"), client=MagicMock())

    def test_native_balance_in_sol(self, wallet, keypair):
        wallet.client.get_balance.return_value = SimpleNamespace(value=2_500_000_000)
        assert wallet.get_native_balance() == Decimal("2.5")
        wallet.client.get_balance.assert_called_once_with(keypair.pubkey())

    def test_balance_of_other_address(self, wallet):
        other = Keypair().pubkey()
        wallet.client.get_balance.return_value = SimpleNamespace(value=1)
        wallet.get_native_balance(str(other))
        wallet.client.get_balance.assert_called_once_with(other)

    def test_invalid_address(self, wallet):
        with pytest.raises(WalletError):
            wallet.get_native_balance("nope")

    def test_token_balance_sums_accounts(self, wallet):
        def account(amount: str):
            parsed = {"info": {"tokenAmount": {"amount": amount, "decimals": 6}}}
            return SimpleNamespace(account=SimpleNamespace(data=SimpleNamespace(parsed=parsed)))

        wallet.client.get_token_accounts_by_owner_json_parsed.return_value = SimpleNamespace(
            value=[account("1000000"), account("2500000")]
        )
        assert wallet.get_token_balance(USDC) == Decimal("3.5")

    def test_token_balance_without_accounts(self, wallet):
        wallet.client.get_token_accounts_by_owner_json_parsed.return_value = SimpleNamespace(value=[])
        assert wallet.get_token_balance(USDC) == 0

    def test_transfer_token_signs_and_sends(self, wallet, keypair):
        wallet.client.get_latest_blockhash.return_value = SimpleNamespace(
            value=SimpleNamespace(blockhash=Hash.default())
        )
        sig = Signature.default()
        wallet.client.send_transaction.return_value = SimpleNamespace(value=sig)

        result = wallet.transfer_token(USDC, str(Keypair().pubkey()), Decimal("1.5"))

        assert result == str(sig)
        sent = wallet.client.send_transaction.call_args[0][0]
        assert isinstance(sent, Transaction)
        assert len(sent.message.instructions) == 2
        assert sent.message.account_keys[0] == keypair.pubkey()

    def test_send_serialized_transaction_signs_payer_slot(self, wallet, keypair):
        wallet.client.send_raw_transaction.return_value = SimpleNamespace(value=Signature.default())

        wallet.send_serialized_transaction(_unsigned_checkout_tx(keypair))

        raw = wallet.client.send_raw_transaction.call_args[0][0]
        signed = VersionedTransaction.from_bytes(raw)
        assert signed.signatures[0] != Signature.default()
        assert signed.signatures[0].verify(keypair.pubkey(), to_bytes_versioned(signed.message))

    def test_send_serialized_for_other_payer(self, wallet):
        with pytest.raises(WalletError):
            wallet.send_serialized_transaction(_unsigned_checkout_tx(Keypair()))

    def test_send_serialized_garbage(self, wallet):
        with pytest.raises(WalletError):
            wallet.send_serialized_transaction("0OIl")
