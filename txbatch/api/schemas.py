"""Request bodies for the HTTP API and batch config construction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from txbatch.utils.validators import format_validation_errors

if TYPE_CHECKING:
    from txbatch.models.config import Settings

ConfigT = TypeVar("ConfigT", bound=BaseModel)


class _Request(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )


class SignRequest(_Request):
    message: str = Field(min_length=1)


class SignTypedRequest(_Request):
    domain: dict[str, Any]
    types: dict[str, Any]
    value: dict[str, Any]


class CallRequest(_Request):
    rpc: str
    contract: str
    abi: list[dict[str, Any]]
    method: str
    params: list[Any] = Field(default_factory=list)


class SendRequest(CallRequest):
    value: str = "0"
    gas_limit: int | None = None
    gas_price: str | None = None


class SendRawRequest(_Request):
    rpc: str
    to: str
    data: str
    value: str = "0"
    gas_limit: int | None = None
    chain_id: int | None = None


class GenerateWalletsRequest(_Request):
    count: int = 1


def build_config(
    model: type[ConfigT],
    body: dict[str, Any],
    settings: Settings,
    use_server_key: bool = False,
) -> ConfigT:
    """Validate a job body into a batch config, or raise a 400.

    With `use_server_key` the signing key comes from the server's PRIVATE_KEY
    and any key in the body is ignored.
    """
    data = dict(body)
    data.setdefault("logDir", settings.log_dir)
    if use_server_key:
        if not settings.private_key:
            raise HTTPException(status_code=500, detail="PRIVATE_KEY not configured on server")
        data.pop("private_key", None)
        data["privateKey"] = settings.private_key
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        detail = format_validation_errors(exc.errors())
        raise HTTPException(status_code=400, detail=detail) from None
