"""Fully specified transaction intent handed to the submitter."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from txbatch.core.gas import (
    DEFAULT_GAS_LIMIT,
    TOKEN_GAS_CEILING,
    TOKEN_GAS_FLOOR,
    TOKEN_GAS_PADDING,
    clamp_gas_limit,
)


class GasBounds(BaseModel):
    """Padding and clamp applied to a network gas estimate."""

    model_config = ConfigDict(frozen=True)

    padding: int = TOKEN_GAS_PADDING
    floor: int = TOKEN_GAS_FLOOR
    ceiling: int = TOKEN_GAS_CEILING

    def apply(self, estimate: int) -> int:
        return clamp_gas_limit(estimate, self.padding, self.floor, self.ceiling)


class TxIntent(BaseModel):
    """What to send. Unset nonce, gas limit, gas price and chain id are resolved per attempt."""

    model_config = ConfigDict(frozen=True)

    to: str
    data: str = "0x"
    value: int = 0
    nonce: int | None = None
    gas_limit: int | None = None
    gas_price: int | None = None
    chain_id: int | None = None
    gas_bounds: GasBounds | None = None
    fallback_gas_limit: int = DEFAULT_GAS_LIMIT
    gas_price_bump_percent: int = 100
