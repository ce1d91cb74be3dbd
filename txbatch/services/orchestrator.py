"""Drives the submitter over a planned batch and aggregates the outcome."""

from __future__ import annotations

import time
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog
from eth_account import Account
from web3 import Web3

from txbatch.core.amounts import from_base_units, plan_amounts, to_base_units
from txbatch.core.errors import BatchAbortedError, PlanningError, SetupError, SubmissionError
from txbatch.core.gas import (
    BACKOFF_CAP_SECONDS,
    BACKOFF_STEP_SECONDS,
    TOKEN_TRANSFER_GAS_ESTIMATE,
    estimate_total_gas_cost,
)
from txbatch.models.batch_config import (
    EthTransferConfig,
    FailurePolicy,
    RawBatchConfig,
    TokenTransferConfig,
)
from txbatch.models.planned_item import PlannedItem
from txbatch.models.submission import FailureRecord, SubmissionResult
from txbatch.models.summary import BatchRunSummary
from txbatch.models.tx_intent import GasBounds, TxIntent
from txbatch.repositories.tx_log_repository import TxLogRepository
from txbatch.services.chain_client import ChainClient
from txbatch.services.nonce_allocator import NonceAllocator
from txbatch.services.protocols import NullObserver
from txbatch.services.submitter import DEFAULT_RECEIPT_TIMEOUT_SECONDS, TransactionSubmitter
from txbatch.utils.progress import ProgressTracker

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from eth_account.signers.local import LocalAccount

    from txbatch.models.batch_config import BatchConfig
    from txbatch.services.protocols import BatchObserver, ChainClientProtocol

logger = structlog.get_logger(__name__)

FALLBACK_GAS_PRICE_WEI = Web3.to_wei(1, "gwei")
ETH_GAS_PRICE_BUMP_PERCENT = 120


class BatchOrchestrator:
    """Runs one batch configuration to completion on the calling thread.

    Token batches abort on the first item that exhausts its retries; raw and
    ETH batches record the failure and keep going. The policy is declared on
    each config type as `failure_policy`.
    """

    def __init__(
        self,
        chain_factory: Callable[[str], ChainClientProtocol] | None = None,
        nonce_allocator: NonceAllocator | None = None,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT_SECONDS,
        backoff_step: float = BACKOFF_STEP_SECONDS,
        backoff_cap: float = BACKOFF_CAP_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.chain_factory = chain_factory or ChainClient
        self.nonce_allocator = nonce_allocator or NonceAllocator()
        self.receipt_timeout = receipt_timeout
        self.backoff_step = backoff_step
        self.backoff_cap = backoff_cap
        self._sleep = sleep
        self._rng = rng

    def run(self, config: BatchConfig, observer: BatchObserver | None = None) -> BatchRunSummary:
        """Execute `config` and return its summary.

        Raises:
            SetupError: bad key, unreachable RPC or unreadable token state.
            PlanningError: the plan cannot be encoded or funded; nothing was sent.
            BatchAbortedError: a token transfer exhausted its retries.
        """
        observer = observer or NullObserver()
        logger.info(
            "batch_started",
            mode=config.mode,
            planned=config.planned_count(),
            policy=config.failure_policy.value,
        )
        try:
            if isinstance(config, TokenTransferConfig):
                return self._run_token(config, observer)
            if isinstance(config, RawBatchConfig):
                return self._run_raw(config, observer)
            return self._run_eth(config, observer)
        except Exception as exc:
            logger.error("batch_failed", mode=config.mode, error=str(exc))
            raise

    def _connect(self, config: BatchConfig) -> tuple[ChainClientProtocol, LocalAccount]:
        try:
            account = Account.from_key(config.private_key)
        except Exception:
            # The original message may echo key material.
            msg = "Invalid private key"
            raise SetupError(msg) from None

        chain = self.chain_factory(config.rpc)
        try:
            chain.block_number()
        except Exception as exc:
            msg = f"RPC endpoint unreachable: {exc}"
            raise SetupError(msg) from exc
        logger.info("wallet_resolved", wallet=account.address, rpc=config.rpc)
        return chain, account

    def _submitter(
        self,
        chain: ChainClientProtocol,
        account: LocalAccount,
        nonce_allocator: NonceAllocator | None = None,
    ) -> TransactionSubmitter:
        return TransactionSubmitter(
            chain,
            account,
            nonce_allocator=nonce_allocator,
            receipt_timeout=self.receipt_timeout,
            backoff_step=self.backoff_step,
            backoff_cap=self.backoff_cap,
            sleep=self._sleep,
        )

    def _run_token(self, config: TokenTransferConfig, observer: BatchObserver) -> BatchRunSummary:
        chain, account = self._connect(config)
        wallet = str(account.address)
        observer.on_wallet_resolved(wallet)

        try:
            decimals = chain.token_decimals(config.token)
            token_balance = chain.token_balance(config.token, wallet)
            native_balance = chain.get_balance(wallet)
        except Exception as exc:
            msg = f"Failed to read token state for {config.token}: {exc}"
            raise SetupError(msg) from exc
        balances = {
            "token": from_base_units(token_balance, decimals),
            "native": from_base_units(native_balance, 18),
        }
        logger.info("balances_read", wallet=wallet, decimals=decimals, **balances)

        gas_per_tx = self._preflight_gas(chain, config, wallet, decimals, token_balance, observer)
        gas_price = self._network_gas_price(chain)
        estimated_cost = estimate_total_gas_cost(gas_price, gas_per_tx, config.count)
        if native_balance < estimated_cost:
            warning = (
                f"Native balance {balances['native']} is below the estimated gas cost "
                f"{from_base_units(estimated_cost, 18)}; transactions may fail"
            )
            logger.warning("native_balance_low", wallet=wallet, estimated_cost_wei=estimated_cost)
            observer.on_warning(warning)

        items = self._plan_token_items(config, decimals)
        planned_units = sum(item.units or 0 for item in items)
        if planned_units > token_balance:
            msg = (
                f"Planned total {from_base_units(planned_units, decimals)} exceeds "
                f"token balance {balances['token']}"
            )
            raise PlanningError(msg)
        planned_total = from_base_units(planned_units, decimals)
        observer.on_planned(len(items), planned_total, balances)

        submitter = self._submitter(chain, account)
        bounds = GasBounds()
        fallback_gas = bounds.apply(gas_per_tx)

        def settle(item: PlannedItem) -> SubmissionResult | FailureRecord:
            if not item.units:
                logger.warning("zero_amount_skipped", index=item.index, amount=item.amount)
                return FailureRecord(
                    index=item.index,
                    to=item.to,
                    amount=item.amount,
                    error="Amount rounds to zero base units",
                )
            intent = TxIntent(
                to=config.token,
                data=chain.encode_token_transfer(config.token, item.to, item.units),
                chain_id=config.chain_id,
                gas_bounds=bounds,
                fallback_gas_limit=fallback_gas,
            )
            try:
                sent = submitter.submit(intent, config.retries)
            except SubmissionError as exc:
                return self._exhausted(config, item, exc, amount=item.amount)
            return SubmissionResult.from_sent(
                item.index, sent, to=item.to, amount=item.amount, units=str(item.units)
            )

        return self._drive(
            config,
            wallet,
            items,
            settle,
            observer,
            balances=balances,
            planned_total=planned_total,
        )

    def _preflight_gas(
        self,
        chain: ChainClientProtocol,
        config: TokenTransferConfig,
        wallet: str,
        decimals: int,
        token_balance: int,
        observer: BatchObserver,
    ) -> int:
        """Gas for one sample transfer, or the fallback when it cannot be estimated."""
        sample = "0.01" if token_balance > 0 else "0.0001"
        try:
            data = chain.encode_token_transfer(
                config.token, config.to, to_base_units(sample, decimals)
            )
            return chain.estimate_gas({"from": wallet, "to": config.token, "data": data})
        except Exception as exc:
            logger.warning(
                "preflight_gas_estimate_failed",
                fallback=TOKEN_TRANSFER_GAS_ESTIMATE,
                error=str(exc),
            )
            observer.on_warning(f"Could not estimate gas: {exc}")
            return TOKEN_TRANSFER_GAS_ESTIMATE

    @staticmethod
    def _network_gas_price(chain: ChainClientProtocol) -> int:
        try:
            price = chain.gas_price()
        except Exception as exc:
            logger.warning("gas_price_unavailable", error=str(exc))
            return FALLBACK_GAS_PRICE_WEI
        return price or FALLBACK_GAS_PRICE_WEI

    def _plan_token_items(self, config: TokenTransferConfig, decimals: int) -> list[PlannedItem]:
        try:
            amounts = list(
                plan_amounts(
                    config.min_amount,
                    config.max_amount,
                    config.count,
                    config.precision,
                    self._rng,
                )
            )
        except ValueError as exc:
            msg = f"Cannot plan amounts between {config.min_amount} and {config.max_amount}: {exc}"
            raise PlanningError(msg) from exc

        items = []
        for index, amount in enumerate(amounts, start=1):
            try:
                units = to_base_units(amount, decimals)
            except ValueError as exc:
                msg = f"Cannot encode amount {amount} with {decimals} decimals"
                raise PlanningError(msg) from exc
            items.append(PlannedItem(index=index, to=config.to, amount=amount, units=units))
        return items

    def _run_raw(self, config: RawBatchConfig, observer: BatchObserver) -> BatchRunSummary:
        chain, account = self._connect(config)
        wallet = str(account.address)
        observer.on_wallet_resolved(wallet)

        items = []
        for round_number in range(1, config.count + 1):
            for tx_index, transaction in enumerate(config.transactions, start=1):
                for _ in range(transaction.count):
                    items.append(
                        PlannedItem(
                            index=len(items) + 1,
                            to=transaction.to,
                            transaction=transaction,
                            round=round_number,
                            tx_index=tx_index,
                        )
                    )
        observer.on_planned(len(items), None, None)
        submitter = self._submitter(chain, account)

        def settle(item: PlannedItem) -> SubmissionResult | FailureRecord:
            transaction = item.transaction
            assert transaction is not None
            gas_price = transaction.gas_price or config.gas_price
            intent = TxIntent(
                to=transaction.to,
                data=transaction.data,
                value=Web3.to_wei(Decimal(transaction.value), "ether"),
                gas_limit=transaction.gas_limit or config.gas_limit,
                gas_price=Web3.to_wei(Decimal(gas_price), "gwei") if gas_price else None,
                chain_id=transaction.chain_id,
            )
            metadata = {"data": transaction.data, "round": item.round, "tx_index": item.tx_index}
            try:
                sent = submitter.submit(intent, config.retries)
            except SubmissionError as exc:
                return self._exhausted(config, item, exc, **metadata)
            return SubmissionResult.from_sent(item.index, sent, **metadata)

        return self._drive(config, wallet, items, settle, observer)

    def _run_eth(self, config: EthTransferConfig, observer: BatchObserver) -> BatchRunSummary:
        chain, account = self._connect(config)
        wallet = str(account.address)
        observer.on_wallet_resolved(wallet)

        items = [
            PlannedItem(index=index, to=transfer.to, amount=transfer.amount)
            for index, transfer in enumerate(config.transfers(), start=1)
        ]
        observer.on_planned(len(items), None, None)
        submitter = self._submitter(chain, account, nonce_allocator=self.nonce_allocator)

        def settle(item: PlannedItem) -> SubmissionResult | FailureRecord:
            intent = TxIntent(
                to=item.to,
                value=Web3.to_wei(Decimal(item.amount or "0"), "ether"),
                gas_price_bump_percent=ETH_GAS_PRICE_BUMP_PERCENT,
            )
            try:
                sent = submitter.submit(intent, config.retries)
            except SubmissionError as exc:
                return self._exhausted(config, item, exc, amount=item.amount)
            return SubmissionResult.from_sent(item.index, sent, amount=item.amount)

        try:
            return self._drive(config, wallet, items, settle, observer)
        finally:
            self.nonce_allocator.release(wallet)

    @staticmethod
    def _exhausted(
        config: BatchConfig,
        item: PlannedItem,
        exc: SubmissionError,
        **metadata: Any,
    ) -> FailureRecord:
        """Apply the config's failure policy to an item that ran out of retries."""
        if config.failure_policy is FailurePolicy.ABORT:
            raise BatchAbortedError(item.index, exc) from exc
        return FailureRecord(index=item.index, to=item.to, error=str(exc), **metadata)

    def _drive(
        self,
        config: BatchConfig,
        wallet: str,
        items: list[PlannedItem],
        settle: Callable[[PlannedItem], SubmissionResult | FailureRecord],
        observer: BatchObserver,
        balances: dict[str, str] | None = None,
        planned_total: str | None = None,
    ) -> BatchRunSummary:
        """Settle items in order, sleeping `delay` between them, then write the log."""
        tracker = ProgressTracker(total=len(items))
        for position, item in enumerate(items):
            outcome = settle(item)
            if isinstance(outcome, FailureRecord):
                tracker.record_failure(outcome)
                logger.warning(
                    "item_failed",
                    index=item.index,
                    to=item.to,
                    error=outcome.error,
                )
            else:
                tracker.record_success(outcome)
                logger.info("item_settled", index=item.index, hash=outcome.hash)
            observer.on_item_settled(tracker.processed, tracker.total, outcome)
            tracker.log_progress()

            if position < len(items) - 1 and config.delay > 0:
                self._sleep(config.delay)

        log_path = TxLogRepository(config.log_dir).write(tracker.results)
        summary = BatchRunSummary(
            mode=config.mode,
            wallet=wallet,
            total=tracker.total,
            successful=tracker.successful,
            failed=tracker.failed,
            duration=tracker.elapsed_seconds,
            results=tracker.results,
            failures=tracker.failures,
            log_path=str(log_path),
            balances=balances,
            planned_total=planned_total,
        )
        logger.info(
            "batch_completed",
            mode=config.mode,
            total=summary.total,
            successful=summary.successful,
            failed=summary.failed,
            duration=f"{summary.duration:.2f}",
            log_path=summary.log_path,
        )
        return summary
