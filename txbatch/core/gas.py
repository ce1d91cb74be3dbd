"""Gas limit, gas price and retry backoff arithmetic."""

from __future__ import annotations

DEFAULT_GAS_LIMIT = 200_000
TOKEN_TRANSFER_GAS_ESTIMATE = 120_000

TOKEN_GAS_PADDING = 2_000
TOKEN_GAS_FLOOR = 80_000
TOKEN_GAS_CEILING = 250_000

BACKOFF_STEP_SECONDS = 5.0
BACKOFF_CAP_SECONDS = 30.0


def clamp_gas_limit(
    estimate: int,
    padding: int = TOKEN_GAS_PADDING,
    floor: int = TOKEN_GAS_FLOOR,
    ceiling: int = TOKEN_GAS_CEILING,
) -> int:
    """Pad an estimate and clamp it into [floor, ceiling]."""
    return min(max(estimate + padding, floor), ceiling)


def backoff_seconds(
    attempt: int,
    step: float = BACKOFF_STEP_SECONDS,
    cap: float = BACKOFF_CAP_SECONDS,
) -> float:
    """Wait after the given 1-based failed attempt: min(attempt * step, cap)."""
    return min(attempt * step, cap)


def bump_gas_price(gas_price: int, percent: int) -> int:
    """Scale a wei gas price by an integer percentage (120 -> +20%)."""
    return gas_price * percent // 100


def estimate_total_gas_cost(gas_price: int, gas_per_tx: int, count: int) -> int:
    """Worst-case native cost of `count` transactions, in wei."""
    return gas_price * gas_per_tx * count
