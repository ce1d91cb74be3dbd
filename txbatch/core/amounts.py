"""Random transfer amount planning and token unit conversion.

Amounts are handled as decimal strings end to end so a planned value such as
"0.0123" is exactly what gets scaled into base units.
"""

from __future__ import annotations

import random
from decimal import ROUND_CEILING, ROUND_FLOOR, Context, Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

DEFAULT_PRECISION = 4

# Wide enough for uint256 base units.
_CONTEXT = Context(prec=80)


def _format_fixed(value: Decimal) -> str:
    return format(value, "f")


def _grid_steps(low: Decimal, high: Decimal, precision: int) -> tuple[int, int]:
    # Integer steps of 10**-precision, so a drawn value never leaves the bounds.
    low_steps = int(low.scaleb(precision, _CONTEXT).to_integral_value(ROUND_CEILING))
    high_steps = int(high.scaleb(precision, _CONTEXT).to_integral_value(ROUND_FLOOR))
    return low_steps, high_steps


def has_representable_value(min_value: str, max_value: str, precision: int) -> bool:
    """True when some value with `precision` decimals lies in [min_value, max_value]."""
    low = Decimal(min_value)
    high = Decimal(max_value)
    if low == high:
        return True
    low_steps, high_steps = _grid_steps(low, high, precision)
    return low_steps <= high_steps


def random_decimal_string(
    min_value: str,
    max_value: str,
    precision: int = DEFAULT_PRECISION,
    rng: random.Random | None = None,
) -> str:
    """Return a random value in [min_value, max_value] with exactly `precision` decimals.

    The value is drawn uniformly from the grid of `precision`-digit numbers inside the
    bounds. Non-numeric input raises decimal.InvalidOperation.
    """
    if precision < 0:
        msg = "precision must not be negative"
        raise ValueError(msg)

    low = Decimal(min_value)
    high = Decimal(max_value)
    if not (low.is_finite() and high.is_finite()):
        msg = "amount bounds must be finite numbers"
        raise ValueError(msg)
    if low > high:
        msg = f"min ({min_value}) must not exceed max ({max_value})"
        raise ValueError(msg)

    if low == high:
        return _format_fixed(low.quantize(Decimal(1).scaleb(-precision), context=_CONTEXT))

    low_steps, high_steps = _grid_steps(low, high, precision)
    if low_steps > high_steps:
        msg = f"no value with {precision} decimals lies between {min_value} and {max_value}"
        raise ValueError(msg)

    steps = (rng or random).randint(low_steps, high_steps)
    return _format_fixed(Decimal(steps).scaleb(-precision, _CONTEXT))


def plan_amounts(
    min_value: str,
    max_value: str,
    count: int,
    precision: int = DEFAULT_PRECISION,
    rng: random.Random | None = None,
) -> Iterator[str]:
    """Lazily yield `count` random amounts."""
    for _ in range(count):
        yield random_decimal_string(min_value, max_value, precision, rng)


def to_base_units(amount: str, decimals: int) -> int:
    """Scale a decimal amount string into integer base units."""
    scaled = Decimal(amount).scaleb(decimals, _CONTEXT)
    if scaled != scaled.to_integral_value():
        msg = f"{amount} has more than {decimals} decimals"
        raise ValueError(msg)
    return int(scaled)


def from_base_units(units: int, decimals: int) -> str:
    """Render integer base units as a decimal string ("1.5", "100.0")."""
    text = _format_fixed(Decimal(units).scaleb(-decimals, _CONTEXT).normalize(_CONTEXT))
    if "." not in text:
        text += ".0"
    return text
