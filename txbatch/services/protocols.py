"""Service protocols defining interfaces for dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from txbatch.models.submission import FailureRecord, SubmissionResult


class ChainClientProtocol(Protocol):
    """Protocol for the JSON-RPC chain client."""

    def block_number(self) -> int: ...

    def chain_id(self) -> int: ...

    def network_name(self) -> str: ...

    def gas_price(self) -> int: ...

    def get_balance(self, address: str) -> int: ...

    def get_transaction_count(self, address: str, block: str = "pending") -> int: ...

    def estimate_gas(self, transaction: dict[str, Any]) -> int: ...

    def send_raw_transaction(self, raw_transaction: bytes) -> str: ...

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> dict[str, int] | None: ...

    def token_decimals(self, token: str) -> int: ...

    def token_balance(self, token: str, owner: str) -> int: ...

    def encode_token_transfer(self, token: str, to: str, units: int) -> str: ...

    def call_function(
        self, address: str, abi: list[dict[str, Any]], method: str, params: list[Any]
    ) -> Any: ...

    def encode_function_call(
        self, address: str, abi: list[dict[str, Any]], method: str, params: list[Any]
    ) -> str: ...


class BatchObserver(Protocol):
    """Receives progress events from a running batch."""

    def on_wallet_resolved(self, wallet: str) -> None: ...

    def on_planned(
        self,
        total: int,
        planned_total: str | None,
        balances: dict[str, str] | None,
    ) -> None: ...

    def on_warning(self, message: str) -> None: ...

    def on_item_settled(
        self,
        completed: int,
        total: int,
        outcome: SubmissionResult | FailureRecord,
    ) -> None: ...


class NullObserver:
    """Observer that ignores every event."""

    def on_wallet_resolved(self, wallet: str) -> None:
        pass

    def on_planned(
        self,
        total: int,
        planned_total: str | None,
        balances: dict[str, str] | None,
    ) -> None:
        pass

    def on_warning(self, message: str) -> None:
        pass

    def on_item_settled(
        self,
        completed: int,
        total: int,
        outcome: SubmissionResult | FailureRecord,
    ) -> None:
        pass
