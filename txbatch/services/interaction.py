"""One-off wallet and contract interactions outside batch jobs."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog
from eth_account import Account
from eth_account.messages import encode_defunct, encode_typed_data
from web3 import Web3

from txbatch.core.amounts import from_base_units
from txbatch.core.errors import SetupError
from txbatch.models.tx_intent import TxIntent
from txbatch.services.chain_client import ChainClient
from txbatch.services.submitter import DEFAULT_RECEIPT_TIMEOUT_SECONDS, TransactionSubmitter

if TYPE_CHECKING:
    from collections.abc import Callable

    from eth_account.signers.local import LocalAccount

    from txbatch.services.protocols import ChainClientProtocol

logger = structlog.get_logger(__name__)

MAX_GENERATED_WALLETS = 100


def _account(private_key: str | None) -> LocalAccount:
    if not private_key:
        msg = "PRIVATE_KEY is required"
        raise SetupError(msg)
    try:
        return Account.from_key(private_key)
    except Exception:
        msg = "Invalid private key"
        raise SetupError(msg) from None


def _stringify(value: Any) -> Any:
    """JSON-safe rendering of contract call results."""
    if isinstance(value, bytes):
        return Web3.to_hex(value)
    if isinstance(value, list | tuple):
        return [_stringify(item) for item in value]
    if isinstance(value, bool | str) or value is None:
        return value
    return str(value)


class InteractionService:
    """Signing, calls and single sends against an RPC endpoint."""

    def __init__(
        self,
        chain_factory: Callable[[str], ChainClientProtocol] | None = None,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT_SECONDS,
    ) -> None:
        self.chain_factory = chain_factory or ChainClient
        self.receipt_timeout = receipt_timeout

    def sign_message(self, private_key: str | None, message: str) -> dict[str, str]:
        """EIP-191 personal message signature."""
        account = _account(private_key)
        signed = account.sign_message(encode_defunct(text=message))
        logger.info("message_signed", address=account.address)
        return {
            "address": account.address,
            "message": message,
            "signature": Web3.to_hex(signed.signature),
        }

    def sign_typed_data(
        self,
        private_key: str | None,
        domain: dict[str, Any],
        types: dict[str, Any],
        value: dict[str, Any],
    ) -> dict[str, str]:
        """EIP-712 typed data signature. `types` excludes EIP712Domain."""
        account = _account(private_key)
        message_types = {name: fields for name, fields in types.items() if name != "EIP712Domain"}
        signable = encode_typed_data(
            domain_data=domain, message_types=message_types, message_data=value
        )
        signed = account.sign_message(signable)
        logger.info("typed_data_signed", address=account.address)
        return {"address": account.address, "signature": Web3.to_hex(signed.signature)}

    def call_contract(
        self,
        rpc: str,
        contract: str,
        abi: list[dict[str, Any]],
        method: str,
        params: list[Any] | None = None,
    ) -> Any:
        """Read-only contract call; integers are returned as strings."""
        chain = self.chain_factory(rpc)
        result = chain.call_function(contract, abi, method, list(params or []))
        logger.info("contract_called", contract=contract, method=method)
        return _stringify(result)

    def _send(
        self, chain: ChainClientProtocol, account: LocalAccount, intent: TxIntent
    ) -> dict[str, Any]:
        submitter = TransactionSubmitter(chain, account, receipt_timeout=self.receipt_timeout)
        sent = submitter.submit(intent, retries=1)
        return {
            "hash": sent.hash,
            "from": sent.from_address,
            "to": sent.to,
            "blockNumber": sent.block_number,
            "status": sent.status,
            "gasUsed": sent.gas_used,
        }

    def send_contract_transaction(
        self,
        private_key: str | None,
        rpc: str,
        contract: str,
        abi: list[dict[str, Any]],
        method: str,
        params: list[Any] | None = None,
        value: str = "0",
        gas_limit: int | None = None,
        gas_price: str | None = None,
    ) -> dict[str, Any]:
        """Send a state-changing contract method call and wait for its receipt."""
        account = _account(private_key)
        chain = self.chain_factory(rpc)
        intent = TxIntent(
            to=Web3.to_checksum_address(contract),
            data=chain.encode_function_call(contract, abi, method, list(params or [])),
            value=Web3.to_wei(Decimal(value or "0"), "ether"),
            gas_limit=gas_limit,
            gas_price=Web3.to_wei(Decimal(gas_price), "gwei") if gas_price else None,
        )
        return self._send(chain, account, intent)

    def send_raw_transaction(
        self,
        private_key: str | None,
        rpc: str,
        to: str,
        data: str = "0x",
        value: str = "0",
        gas_limit: int | None = None,
        chain_id: int | None = None,
    ) -> dict[str, Any]:
        """Send arbitrary calldata; gas is estimated with a 200000 fallback."""
        account = _account(private_key)
        chain = self.chain_factory(rpc)
        intent = TxIntent(
            to=Web3.to_checksum_address(to),
            data=data or "0x",
            value=Web3.to_wei(Decimal(value or "0"), "ether"),
            gas_limit=gas_limit,
            chain_id=chain_id,
        )
        return self._send(chain, account, intent)

    def wallet_info(self, private_key: str | None, rpc: str) -> dict[str, Any]:
        """Address, native balance, nonce and network of the signing wallet."""
        account = _account(private_key)
        chain = self.chain_factory(rpc)
        balance = chain.get_balance(account.address)
        return {
            "address": account.address,
            "balance": from_base_units(balance, 18),
            "balanceWei": str(balance),
            "nonce": chain.get_transaction_count(account.address, "latest"),
            "chainId": chain.chain_id(),
            "network": chain.network_name(),
        }

    @staticmethod
    def generate_wallets(count: int) -> list[dict[str, str]]:
        """Create `count` random accounts (1..100)."""
        if not 1 <= count <= MAX_GENERATED_WALLETS:
            msg = f"count must be between 1 and {MAX_GENERATED_WALLETS}"
            raise ValueError(msg)
        wallets = []
        for _ in range(count):
            account = Account.create()
            wallets.append({"address": account.address, "privateKey": Web3.to_hex(account.key)})
        logger.info("wallets_generated", count=count)
        return wallets
