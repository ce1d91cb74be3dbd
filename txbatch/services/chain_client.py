"""web3.py JSON-RPC client for balances, gas, broadcasting and receipts."""

from __future__ import annotations

from typing import Any

import structlog
from web3 import Web3
from web3.exceptions import TimeExhausted

logger = structlog.get_logger(__name__)

ERC20_ABI: list[dict[str, Any]] = [
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "transfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

_NETWORK_NAMES = {
    1: "mainnet",
    10: "optimism",
    56: "bnb",
    137: "matic",
    8453: "base",
    42161: "arbitrum",
    59141: "linea-sepolia",
    59144: "linea",
    11155111: "sepolia",
}


class ChainClient:
    """Thin wrapper over a Web3 HTTP provider. Errors from the node propagate."""

    def __init__(self, rpc_url: str, request_timeout: float = 30.0) -> None:
        self.rpc_url = rpc_url
        self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))

    def block_number(self) -> int:
        return int(self.w3.eth.block_number)

    def chain_id(self) -> int:
        return int(self.w3.eth.chain_id)

    def network_name(self) -> str:
        return _NETWORK_NAMES.get(self.chain_id(), "unknown")

    def gas_price(self) -> int:
        return int(self.w3.eth.gas_price)

    def get_balance(self, address: str) -> int:
        return int(self.w3.eth.get_balance(address))

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return int(self.w3.eth.get_transaction_count(address, block))

    def estimate_gas(self, transaction: dict[str, Any]) -> int:
        return int(self.w3.eth.estimate_gas(transaction))  # type: ignore[arg-type]

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        return Web3.to_hex(self.w3.eth.send_raw_transaction(raw_transaction))

    def wait_for_receipt(self, tx_hash: str, timeout: float = 120.0) -> dict[str, int] | None:
        """Wait for one confirmation; None when the wait times out."""
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,  # type: ignore[arg-type]
                timeout=timeout,
            )
        except TimeExhausted:
            logger.warning("receipt_wait_timed_out", hash=tx_hash, timeout=timeout)
            return None
        return {
            "blockNumber": int(receipt["blockNumber"]),
            "status": int(receipt["status"]),
            "gasUsed": int(receipt["gasUsed"]),
        }

    def _contract(self, address: str, abi: list[dict[str, Any]]) -> Any:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def token_decimals(self, token: str) -> int:
        return int(self._contract(token, ERC20_ABI).functions.decimals().call())

    def token_balance(self, token: str, owner: str) -> int:
        return int(self._contract(token, ERC20_ABI).functions.balanceOf(owner).call())

    def encode_token_transfer(self, token: str, to: str, units: int) -> str:
        return self.encode_function_call(token, ERC20_ABI, "transfer", [to, units])

    def call_function(
        self, address: str, abi: list[dict[str, Any]], method: str, params: list[Any]
    ) -> Any:
        """Read-only eth_call of a contract method."""
        function = getattr(self._contract(address, abi).functions, method)
        return function(*params).call()

    def encode_function_call(
        self, address: str, abi: list[dict[str, Any]], method: str, params: list[Any]
    ) -> str:
        """ABI-encoded calldata for a contract method."""
        return str(self._contract(address, abi).encode_abi(method, args=list(params)))
