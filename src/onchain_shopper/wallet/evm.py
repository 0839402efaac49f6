"""EVM wallet backend built on ``web3`` and ``eth-account``."""

from __future__ import annotations

import logging
from decimal import Decimal

import rlp
from rlp.exceptions import DecodingError
from eth_account import Account
from hexbytes import HexBytes
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from onchain_shopper.errors import WalletError
from onchain_shopper.wallet.base import WalletClient, from_base_units, to_base_units
from onchain_shopper.wallet.chains import Chain, Token

logger = logging.getLogger("onchain_shopper.wallet.evm")

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
]

# Position of (to, value, data) inside the RLP payload of an unsigned
# transaction, keyed by EIP-2718 type byte.  ``None`` is a legacy transaction.
_TX_FIELD_OFFSETS: dict[int | None, int] = {
    None: 3,  # [nonce, gasPrice, gas, to, value, data, ...]
    1: 4,  # [chainId, nonce, gasPrice, gas, to, value, data, accessList]
    2: 5,  # [chainId, nonce, maxPriority, maxFee, gas, to, value, data, accessList]
}


def decode_transaction_request(serialized: str) -> dict:
    """Extract ``to``, ``value`` and ``data`` from a serialized transaction.

    Accepts legacy, EIP-2930 and EIP-1559 encodings, signed or unsigned.
    Raises ``ValueError`` for anything else.
    """
    raw = bytes(HexBytes(serialized))
    if not raw:
        raise ValueError("empty transaction")

    tx_type: int | None = None
    payload = raw
    if raw[0] < 0x7F:
        tx_type, payload = raw[0], raw[1:]
    if tx_type not in _TX_FIELD_OFFSETS:
        raise ValueError(f"unsupported transaction type {tx_type}")

    try:
        fields = rlp.decode(payload)
    except DecodingError as exc:
        raise ValueError(f"malformed transaction: {exc}") from exc

    offset = _TX_FIELD_OFFSETS[tx_type]
    if not isinstance(fields, list) or len(fields) < offset + 3:
        raise ValueError("malformed transaction: too few fields")
    to, value, data = fields[offset : offset + 3]
    return {
        "to": Web3.to_checksum_address("0x" + to.hex()) if to else None,
        "value": int.from_bytes(value, "big") if value else 0,
        "data": HexBytes(data).to_0x_hex() if data else "0x",
    }


class EVMWalletClient(WalletClient):
    """Signs with a local private key and talks to one EVM chain over JSON-RPC."""

    def __init__(
        self,
        private_key: str,
        chain: Chain,
        rpc_url: str | None = None,
        w3: Web3 | None = None,
    ) -> None:
        super().__init__(chain)
        try:
            self._account = Account.from_key(private_key)
        except Exception as exc:
            raise WalletError(f"Invalid EVM private key: {exc}") from exc

        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(rpc_url or chain.rpc_url))
            # Base, Polygon and Arbitrum carry extra data in block headers
            if chain.chain_id != 1:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self.w3 = w3

    @property
    def address(self) -> str:
        return self._account.address

    def _erc20(self, token: Token):
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(token.address_on(self.chain)),
            abi=ERC20_ABI,
        )

    def get_native_balance(self, address: str | None = None) -> Decimal:
        owner = Web3.to_checksum_address(address or self.address)
        balance_wei = self.w3.eth.get_balance(owner)
        return from_base_units(balance_wei, self.chain.native_decimals)

    def get_token_balance(self, token: Token, address: str | None = None) -> Decimal:
        owner = Web3.to_checksum_address(address or self.address)
        raw = self._erc20(token).functions.balanceOf(owner).call()
        return from_base_units(raw, token.decimals)

    def transfer_token(self, token: Token, to: str, amount: Decimal) -> str:
        value = to_base_units(amount, token.decimals)
        recipient = Web3.to_checksum_address(to)
        data = self._erc20(token).encode_abi("transfer", args=[recipient, value])
        tx_hash = self.send_transaction(
            to=token.address_on(self.chain), value=0, data=data
        )
        logger.info(f"Sent {amount} {token.symbol} to {recipient} on {self.chain.name}: {tx_hash}")
        return tx_hash

    def send_serialized_transaction(self, serialized: str) -> str:
        try:
            request = decode_transaction_request(serialized)
        except ValueError as exc:
            raise WalletError(f"Cannot decode checkout transaction: {exc}") from exc
        if request["to"] is None:
            raise WalletError("Checkout transaction has no recipient")
        return self.send_transaction(**request)

    def send_transaction(self, to: str, value: int = 0, data: str = "0x") -> str:
        """Build, sign, and send a transaction from this wallet.

        Uses EIP-1559 fee parameters with a legacy gas price fallback.
        Returns the transaction hash as a 0x-prefixed hex string.
        """
        w3 = self.w3
        tx: dict = {
            "from": self.address,
            "to": Web3.to_checksum_address(to),
            "value": value,
            "data": data,
            "nonce": w3.eth.get_transaction_count(self.address),
            "chainId": self.chain.chain_id,
        }

        latest = w3.eth.get_block("latest")
        base_fee = latest.get("baseFeePerGas")
        if base_fee is not None:
            max_priority = Web3.to_wei(1.5, "gwei")
            tx["maxFeePerGas"] = base_fee * 2 + max_priority
            tx["maxPriorityFeePerGas"] = max_priority
        else:
            tx["gasPrice"] = w3.eth.gas_price
        tx["gas"] = w3.eth.estimate_gas(tx)

        signed = self._account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        return HexBytes(tx_hash).to_0x_hex()
