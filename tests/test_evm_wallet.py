"""Tests for the EVM wallet backend, with a mocked Web3 connection."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import rlp
from eth_account import Account
from web3 import Web3

from onchain_shopper.errors import WalletError
from onchain_shopper.wallet.chains import USDC, get_chain
from onchain_shopper.wallet.evm import EVMWalletClient, decode_transaction_request

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ADDRESS = Account.from_key(PRIVATE_KEY).address
MERCHANT = "0x5B38Da6a701c568545dCfcB03FcB875f56beddC4"


def _int(n: int) -> bytes:
    return n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""


def _eip1559(to: str, value: int, data: bytes) -> str:
    fields = [_int(8453), _int(3), _int(10**9), _int(2 * 10**9), _int(90000),
              bytes.fromhex(to[2:]), _int(value), data, []]
    return "0x02" + rlp.encode(fields).hex()


def _legacy(to: str, value: int, data: bytes) -> str:
    fields = [_int(3), _int(10**9), _int(21000), bytes.fromhex(to[2:]), _int(value), data]
    return "0x" + rlp.encode(fields).hex()


def _mock_w3(base_fee: int | None = 100) -> MagicMock:
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.get_block.return_value = {"baseFeePerGas": base_fee} if base_fee is not None else {}
    w3.eth.gas_price = 5 * 10**9
    w3.eth.estimate_gas.return_value = 60000
    w3.eth.send_raw_transaction.return_value = b"\xab" * 32
    return w3


@pytest.fixture
def wallet() -> EVMWalletClient:
    return EVMWalletClient(PRIVATE_KEY, get_chain("base"), w3=_mock_w3())


class TestDecodeTransactionRequest:
    def test_eip1559(self):
        decoded = decode_transaction_request(_eip1559(MERCHANT, 0, bytes.fromhex("a9059cbb")))
        assert decoded == {"to": MERCHANT, "value": 0, "data": "0xa9059cbb"}

    def test_legacy(self):
        decoded = decode_transaction_request(_legacy(MERCHANT, 10**15, b""))
        assert decoded == {"to": MERCHANT, "value": 10**15, "data": "0x"}

    @pytest.mark.parametrize("bad", ["0x", "0x05c0", "0x02c0"])
    def test_malformed(self, bad):
        with pytest.raises(ValueError):
            decode_transaction_request(bad)


class TestEVMWalletClient:
    def test_address(self, wallet):
        assert wallet.address == ADDRESS

    def test_invalid_key(self):
        with pytest.raises(WalletError):
            EVMWalletClient("not-a-key", get_chain("base"), w3=_mock_w3())

    def test_native_balance_in_ether(self, wallet):
        wallet.w3.eth.get_balance.return_value = 1_250_000_000_000_000_000
        assert wallet.get_native_balance() == Decimal("1.25")
        wallet.w3.eth.get_balance.assert_called_once_with(ADDRESS)

    def test_token_balance_uses_decimals(self, wallet):
        contract = wallet.w3.eth.contract.return_value
        contract.functions.balanceOf.return_value.call.return_value = 12_345_678
        assert wallet.get_token_balance(USDC) == Decimal("12.345678")
        _, kwargs = wallet.w3.eth.contract.call_args
        assert kwargs["address"] == USDC.addresses["base"]

    def test_send_transaction_eip1559(self, wallet):
        tx_hash = wallet.send_transaction(MERCHANT, value=5, data="0x")
        assert tx_hash == "0x" + "ab" * 32

        sent_tx = wallet.w3.eth.estimate_gas.call_args[0][0]
        assert sent_tx["nonce"] == 7
        assert sent_tx["chainId"] == 8453
        assert sent_tx["maxFeePerGas"] == 200 + Web3.to_wei(1.5, "gwei")
        assert "gasPrice" not in sent_tx
        wallet.w3.eth.send_raw_transaction.assert_called_once()

    def test_send_transaction_legacy_fallback(self):
        wallet = EVMWalletClient(PRIVATE_KEY, get_chain("base"), w3=_mock_w3(base_fee=None))
        wallet.send_transaction(MERCHANT)
        sent_tx = wallet.w3.eth.estimate_gas.call_args[0][0]
        assert sent_tx["gasPrice"] == 5 * 10**9
        assert "maxFeePerGas" not in sent_tx

    def test_transfer_token_calls_erc20(self, wallet):
        contract = wallet.w3.eth.contract.return_value
        contract.encode_abi.return_value = "0xa9059cbb"
        wallet.transfer_token(USDC, MERCHANT, Decimal("2.5"))

        contract.encode_abi.assert_called_once_with("transfer", args=[MERCHANT, 2_500_000])
        sent_tx = wallet.w3.eth.estimate_gas.call_args[0][0]
        assert sent_tx["to"] == USDC.addresses["base"]
        assert sent_tx["value"] == 0

    def test_send_serialized_transaction(self, wallet):
        wallet.send_serialized_transaction(_eip1559(MERCHANT, 0, bytes.fromhex("deadbeef")))
        sent_tx = wallet.w3.eth.estimate_gas.call_args[0][0]
        assert sent_tx["to"] == MERCHANT
        assert sent_tx["data"] == "0xdeadbeef"
        assert sent_tx["from"] == ADDRESS

    def test_send_serialized_garbage(self, wallet):
        with pytest.raises(WalletError):
            wallet.send_serialized_transaction("0x02c0")
