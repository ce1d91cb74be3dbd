"""One unit of planned work inside a batch."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from txbatch.models.batch_config import RawTransaction


class PlannedItem(BaseModel):
    """A target plus whatever the mode needs to build its transaction.

    Token items carry `amount` and `units`; raw items carry `transaction` with its
    round and position; ETH items carry `amount` as ether.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    to: str
    amount: str | None = None
    units: int | None = None
    transaction: RawTransaction | None = None
    round: int | None = None
    tx_index: int | None = None
