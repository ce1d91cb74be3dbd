"""Signs, broadcasts and confirms one transaction with bounded retries."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog

from txbatch.core.errors import SubmissionError
from txbatch.core.gas import BACKOFF_CAP_SECONDS, BACKOFF_STEP_SECONDS, bump_gas_price
from txbatch.models.submission import SentTransaction
from txbatch.utils.retry import submission_retrying

if TYPE_CHECKING:
    from collections.abc import Callable

    from eth_account.signers.local import LocalAccount

    from txbatch.models.tx_intent import TxIntent
    from txbatch.services.nonce_allocator import NonceAllocator
    from txbatch.services.protocols import ChainClientProtocol

logger = structlog.get_logger(__name__)

DEFAULT_RECEIPT_TIMEOUT_SECONDS = 120.0


class TransactionSubmitter:
    """Submits transactions from one signing account.

    Each attempt resolves its own nonce, so a retry after a dropped broadcast
    does not reuse a stale value. A missing receipt is not an error: the
    result is returned with block number, status and gas used left unset.
    """

    def __init__(
        self,
        chain: ChainClientProtocol,
        account: LocalAccount,
        nonce_allocator: NonceAllocator | None = None,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT_SECONDS,
        backoff_step: float = BACKOFF_STEP_SECONDS,
        backoff_cap: float = BACKOFF_CAP_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.chain = chain
        self.account = account
        self.nonce_allocator = nonce_allocator
        self.receipt_timeout = receipt_timeout
        self.backoff_step = backoff_step
        self.backoff_cap = backoff_cap
        self._sleep = sleep

    @property
    def address(self) -> str:
        return str(self.account.address)

    def submit(self, intent: TxIntent, retries: int) -> SentTransaction:
        """Send `intent`, making at most `retries` attempts.

        Raises:
            SubmissionError: every attempt failed.
        """
        retrying = submission_retrying(
            max_attempts=retries,
            step=self.backoff_step,
            cap=self.backoff_cap,
            sleep=self._sleep,
        )
        try:
            return retrying(self._send_once, intent)
        except Exception as exc:
            attempts = retrying.statistics.get("attempt_number", retries)
            logger.error("submission_failed", to=intent.to, attempts=attempts, error=str(exc))
            raise SubmissionError(attempts, str(exc)) from exc

    def _resolve_nonce(self, intent: TxIntent) -> int:
        if intent.nonce is not None:
            return intent.nonce
        if self.nonce_allocator is not None:
            return self.nonce_allocator.allocate(self.address, self._pending_nonce)
        return self._pending_nonce(self.address)

    def _pending_nonce(self, address: str) -> int:
        return self.chain.get_transaction_count(address, "pending")

    def build_transaction(self, intent: TxIntent, nonce: int) -> dict[str, Any]:
        """Fill in gas price, chain id and gas limit for one attempt."""
        if intent.gas_price is not None:
            gas_price = intent.gas_price
        else:
            gas_price = bump_gas_price(self.chain.gas_price(), intent.gas_price_bump_percent)
        chain_id = intent.chain_id if intent.chain_id is not None else self.chain.chain_id()

        tx: dict[str, Any] = {
            "from": self.address,
            "to": intent.to,
            "value": intent.value,
            "data": intent.data,
            "nonce": nonce,
            "gasPrice": gas_price,
            "chainId": chain_id,
        }
        tx["gas"] = intent.gas_limit if intent.gas_limit is not None else self._gas_limit(intent)
        return tx

    def _gas_limit(self, intent: TxIntent) -> int:
        try:
            estimate = self.chain.estimate_gas(
                {"from": self.address, "to": intent.to, "value": intent.value, "data": intent.data}
            )
        except Exception as exc:
            logger.warning(
                "gas_estimate_failed",
                to=intent.to,
                fallback=intent.fallback_gas_limit,
                error=str(exc),
            )
            return intent.fallback_gas_limit
        if intent.gas_bounds is not None:
            return intent.gas_bounds.apply(estimate)
        return estimate

    def _send_once(self, intent: TxIntent) -> SentTransaction:
        nonce = self._resolve_nonce(intent)
        try:
            tx = self.build_transaction(intent, nonce)
            signed = self.account.sign_transaction(tx)
            tx_hash = self.chain.send_raw_transaction(signed.raw_transaction)
        except Exception:
            # The nonce may or may not have been consumed; re-read it next time.
            if self.nonce_allocator is not None and intent.nonce is None:
                self.nonce_allocator.invalidate(self.address)
            raise

        logger.info("transaction_sent", hash=tx_hash, nonce=nonce, to=intent.to)
        receipt = self._wait(tx_hash)
        sent = SentTransaction(
            hash=tx_hash,
            nonce=nonce,
            from_address=self.address,
            to=intent.to,
        )
        if receipt is None:
            return sent
        logger.info(
            "transaction_confirmed",
            hash=tx_hash,
            block_number=receipt["blockNumber"],
            status=receipt["status"],
        )
        return sent.model_copy(
            update={
                "block_number": receipt["blockNumber"],
                "status": receipt["status"],
                "gas_used": str(receipt["gasUsed"]),
            }
        )

    def _wait(self, tx_hash: str) -> dict[str, int] | None:
        try:
            return self.chain.wait_for_receipt(tx_hash, self.receipt_timeout)
        except Exception as exc:
            logger.warning("receipt_unavailable", hash=tx_hash, error=str(exc))
            return None
