"""Unit tests for gas arithmetic and the submission retry policy."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from txbatch.core.gas import (
    backoff_seconds,
    bump_gas_price,
    clamp_gas_limit,
    estimate_total_gas_cost,
)
from txbatch.models.tx_intent import GasBounds
from txbatch.utils.retry import submission_retrying


class TestClampGasLimit:
    """Tests for clamp_gas_limit and GasBounds."""

    def test_small_estimates_are_raised_to_floor(self) -> None:
        assert clamp_gas_limit(50_000) == 80_000

    def test_estimates_are_padded(self) -> None:
        assert clamp_gas_limit(100_000) == 102_000

    def test_large_estimates_are_capped(self) -> None:
        assert clamp_gas_limit(300_000) == 250_000

    def test_gas_bounds_apply_uses_same_rule(self) -> None:
        assert GasBounds().apply(100_000) == 102_000
        assert GasBounds(padding=0, floor=0, ceiling=60_000).apply(70_000) == 60_000


class TestBackoff:
    """Tests for backoff_seconds."""

    @pytest.mark.parametrize(
        ("attempt", "expected"),
        [(1, 5.0), (2, 10.0), (5, 25.0), (6, 30.0), (10, 30.0)],
    )
    def test_linear_then_capped(self, attempt: int, expected: float) -> None:
        assert backoff_seconds(attempt) == expected

    def test_custom_step_and_cap(self) -> None:
        assert backoff_seconds(3, step=0.5, cap=1.0) == 1.0


class TestGasPrice:
    """Tests for gas price helpers."""

    def test_bump_by_twenty_percent(self) -> None:
        assert bump_gas_price(1_000_000_000, 120) == 1_200_000_000

    def test_no_bump(self) -> None:
        assert bump_gas_price(12345, 100) == 12345

    def test_total_gas_cost(self) -> None:
        assert estimate_total_gas_cost(2, 21_000, 3) == 126_000


class TestSubmissionRetrying:
    """Tests for the tenacity retry controller."""

    def test_permanent_failure_makes_exactly_max_attempts(self) -> None:
        sleeps: list[float] = []
        action = MagicMock(side_effect=ConnectionError("rpc down"))

        with pytest.raises(ConnectionError, match="rpc down"):
            submission_retrying(3, sleep=sleeps.append)(action)

        assert action.call_count == 3
        assert sleeps == [5.0, 10.0]

    def test_recovers_after_one_failure(self) -> None:
        sleeps: list[float] = []
        action = MagicMock(side_effect=[TimeoutError("slow"), "ok"])

        assert submission_retrying(3, sleep=sleeps.append)(action) == "ok"
        assert sleeps == [5.0]

    def test_single_attempt_never_sleeps(self) -> None:
        sleeps: list[float] = []
        action = MagicMock(side_effect=ValueError("bad"))

        with pytest.raises(ValueError):
            submission_retrying(1, sleep=sleeps.append)(action)

        assert sleeps == []

    def test_attempt_count_is_recorded(self) -> None:
        retrying = submission_retrying(2, sleep=lambda _: None)
        with pytest.raises(RuntimeError):
            retrying(MagicMock(side_effect=RuntimeError("x")))
        assert retrying.statistics["attempt_number"] == 2
