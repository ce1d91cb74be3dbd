"""Tagged batch configurations, one frozen model per batch mode."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from txbatch.core.amounts import DEFAULT_PRECISION, has_representable_value
from txbatch.utils.validators import checksum_address, is_hex_data, is_valid_url, parse_decimal


class BatchMode(StrEnum):
    """Kind of batch a configuration describes."""

    TOKEN = "token"
    RAW = "raw"
    ETH = "eth"


class FailurePolicy(StrEnum):
    """What a batch does when one item exhausts its retries."""

    ABORT = "abort"
    CONTINUE = "continue"


class _BatchConfigBase(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    failure_policy: ClassVar[FailurePolicy]

    private_key: str = Field(repr=False)
    rpc: str
    delay: float = 1.0
    retries: int = 3
    log_dir: str = "logs"

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, value: str) -> str:
        """Private key must be present."""
        if not value.strip():
            msg = "privateKey must not be empty"
            raise ValueError(msg)
        return value.strip()

    @field_validator("rpc")
    @classmethod
    def validate_rpc(cls, value: str) -> str:
        """RPC endpoint must be an HTTP(S) URL."""
        if not is_valid_url(value):
            msg = f"rpc must be an http(s) URL, got {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("delay")
    @classmethod
    def validate_delay(cls, value: float) -> float:
        """Delay must not be negative."""
        if value < 0:
            msg = "delay must not be negative"
            raise ValueError(msg)
        return value

    @field_validator("retries")
    @classmethod
    def validate_retries(cls, value: int) -> int:
        """At least one attempt is required."""
        if value < 1:
            msg = "retries must be at least 1"
            raise ValueError(msg)
        return value

    def redacted(self) -> dict[str, Any]:
        """JSON-ready view without the private key."""
        return self.model_dump(mode="json", by_alias=True, exclude={"private_key"})


class TokenTransferConfig(_BatchConfigBase):
    """Random-amount ERC20 transfers from one wallet to one recipient."""

    failure_policy: ClassVar[FailurePolicy] = FailurePolicy.ABORT

    mode: Literal["token"] = "token"
    token: str
    to: str
    count: int = 20
    min_amount: str = Field(default="0.01", alias="min")
    max_amount: str = Field(default="0.5", alias="max")
    precision: int = DEFAULT_PRECISION
    chain_id: int | None = None

    @field_validator("token", "to")
    @classmethod
    def validate_address(cls, value: str) -> str:
        """Addresses are stored in checksum form."""
        return checksum_address(value)

    @field_validator("count")
    @classmethod
    def validate_count(cls, value: int) -> int:
        """Count must be positive."""
        if value < 1:
            msg = "count must be at least 1"
            raise ValueError(msg)
        return value

    @field_validator("min_amount", "max_amount")
    @classmethod
    def validate_amount(cls, value: str) -> str:
        """Amount bounds must be non-negative decimals."""
        parse_decimal(value)
        return value

    @field_validator("precision")
    @classmethod
    def validate_precision(cls, value: int) -> int:
        """Precision must fit in a token's decimals."""
        if value < 0 or value > 18:
            msg = "precision must be between 0 and 18"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def validate_bounds(self) -> TokenTransferConfig:
        """min must not exceed max, and some amount at `precision` must fit between them."""
        if parse_decimal(self.min_amount) > parse_decimal(self.max_amount):
            msg = f"min ({self.min_amount}) must not exceed max ({self.max_amount})"
            raise ValueError(msg)
        if not has_representable_value(self.min_amount, self.max_amount, self.precision):
            msg = (
                f"no amount with {self.precision} decimals lies between "
                f"{self.min_amount} and {self.max_amount}"
            )
            raise ValueError(msg)
        return self

    def planned_count(self) -> int:
        """Number of items this batch will plan."""
        return self.count


class RawTransaction(BaseModel):
    """One raw call in a raw batch; its own overrides win over the batch's."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    to: str
    data: str = "0x"
    value: str = "0"
    gas_limit: int | None = None
    gas_price: str | None = None
    chain_id: int | None = None
    count: int = 1

    @field_validator("to")
    @classmethod
    def validate_to(cls, value: str) -> str:
        """Destination is stored in checksum form."""
        return checksum_address(value, "to")

    @field_validator("data")
    @classmethod
    def validate_data(cls, value: str) -> str:
        """Calldata must be 0x-prefixed hex."""
        if not is_hex_data(value):
            msg = "data must be 0x-prefixed hex"
            raise ValueError(msg)
        return value

    @field_validator("value")
    @classmethod
    def validate_value(cls, value: str) -> str:
        """Value is an ether amount."""
        parse_decimal(value, "value")
        return value

    @field_validator("gas_price")
    @classmethod
    def validate_gas_price(cls, value: str | None) -> str | None:
        """Gas price is a gwei amount."""
        if value is not None:
            parse_decimal(value, "gasPrice")
        return value

    @field_validator("count")
    @classmethod
    def validate_count(cls, value: int) -> int:
        """Each transaction is sent at least once per round."""
        if value < 1:
            msg = "count must be at least 1"
            raise ValueError(msg)
        return value


class RawBatchConfig(_BatchConfigBase):
    """A list of raw transactions sent `count` rounds in a row."""

    failure_policy: ClassVar[FailurePolicy] = FailurePolicy.CONTINUE

    mode: Literal["raw"] = "raw"
    transactions: list[RawTransaction] = Field(min_length=1)
    count: int = 1
    gas_limit: int | None = None
    gas_price: str | None = None

    @field_validator("count")
    @classmethod
    def validate_count(cls, value: int) -> int:
        """At least one round."""
        if value < 1:
            msg = "count must be at least 1"
            raise ValueError(msg)
        return value

    @field_validator("gas_price")
    @classmethod
    def validate_gas_price(cls, value: str | None) -> str | None:
        """Gas price is a gwei amount."""
        if value is not None:
            parse_decimal(value, "gasPrice")
        return value

    def planned_count(self) -> int:
        """Number of sends across all rounds."""
        return self.count * sum(tx.count for tx in self.transactions)


class EthTransfer(BaseModel):
    """A native-currency transfer."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra="ignore")

    to: str
    amount: str

    @field_validator("to")
    @classmethod
    def validate_to(cls, value: str) -> str:
        """Recipient is stored in checksum form."""
        return checksum_address(value, "to")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str) -> str:
        """Amount is a positive ether value."""
        if parse_decimal(value) == 0:
            msg = "amount must be greater than 0"
            raise ValueError(msg)
        return value


class EthTransferConfig(_BatchConfigBase):
    """Either one `to`/`amount` transfer or a list of them."""

    failure_policy: ClassVar[FailurePolicy] = FailurePolicy.CONTINUE

    mode: Literal["eth"] = "eth"
    delay: float = 0.0
    to: str | None = None
    amount: str | None = None
    transactions: list[EthTransfer] | None = None

    @model_validator(mode="after")
    def validate_targets(self) -> EthTransferConfig:
        """Exactly one of to/amount or transactions must describe the transfers."""
        if self.transactions is not None:
            if not self.transactions:
                msg = "transactions must be a non-empty array"
                raise ValueError(msg)
            if self.to is not None:
                msg = "use either 'to' and 'amount' or 'transactions', not both"
                raise ValueError(msg)
            return self
        if self.to is None:
            msg = "either 'to' and 'amount' or 'transactions' is required"
            raise ValueError(msg)
        if self.amount is None:
            msg = "amount is required when 'to' is provided"
            raise ValueError(msg)
        # Reuse EthTransfer's address and amount checks.
        EthTransfer(to=self.to, amount=self.amount)
        return self

    def transfers(self) -> list[EthTransfer]:
        """Normalized transfer list."""
        if self.transactions is not None:
            return list(self.transactions)
        return [EthTransfer(to=self.to or "", amount=self.amount or "")]

    def planned_count(self) -> int:
        """Number of transfers."""
        return len(self.transfers())


BatchConfig = Annotated[
    TokenTransferConfig | RawBatchConfig | EthTransferConfig,
    Field(discriminator="mode"),
]
