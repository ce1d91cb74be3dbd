"""Wallet and contract interaction endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from txbatch.api.deps import (
    InteractionDep,
    RegistryDep,
    SettingsDep,
    require_api_key,
    require_private_api_key,
)
from txbatch.api.errors import internal_errors
from txbatch.api.routes.batch import queued_response
from txbatch.api.schemas import (
    CallRequest,
    GenerateWalletsRequest,
    SendRawRequest,
    SendRequest,
    SignRequest,
    SignTypedRequest,
    build_config,
)
from txbatch.models.batch_config import EthTransferConfig, RawBatchConfig
from txbatch.models.job import JobType
from txbatch.services.interaction import MAX_GENERATED_WALLETS

# Endpoints signing with the server's PRIVATE_KEY.
private_router = APIRouter(
    prefix="/interact",
    tags=["Interact"],
    dependencies=[Depends(require_private_api_key)],
)

# Endpoints where the caller supplies the key, or no key is involved.
jobs_router = APIRouter(
    prefix="/interact",
    tags=["Interact"],
    dependencies=[Depends(require_api_key)],
)


@private_router.post("/sign")
def sign(
    request: SignRequest, settings: SettingsDep, interaction: InteractionDep
) -> dict[str, str]:
    with internal_errors("sign"):
        return interaction.sign_message(settings.private_key, request.message)


@private_router.post("/sign-typed")
def sign_typed(
    request: SignTypedRequest, settings: SettingsDep, interaction: InteractionDep
) -> dict[str, str]:
    with internal_errors("sign_typed"):
        return interaction.sign_typed_data(
            settings.private_key, request.domain, request.types, request.value
        )


@private_router.post("/call")
def call(request: CallRequest, interaction: InteractionDep) -> dict[str, Any]:
    with internal_errors("call"):
        result = interaction.call_contract(
            request.rpc, request.contract, request.abi, request.method, request.params
        )
    return {"result": result}


@private_router.post("/send")
def send(
    request: SendRequest, settings: SettingsDep, interaction: InteractionDep
) -> dict[str, Any]:
    with internal_errors("send"):
        return interaction.send_contract_transaction(
            settings.private_key,
            request.rpc,
            request.contract,
            request.abi,
            request.method,
            request.params,
            value=request.value,
            gas_limit=request.gas_limit,
            gas_price=request.gas_price,
        )


@private_router.post("/send-raw")
def send_raw(
    request: SendRawRequest, settings: SettingsDep, interaction: InteractionDep
) -> dict[str, Any]:
    with internal_errors("send_raw"):
        return interaction.send_raw_transaction(
            settings.private_key,
            request.rpc,
            request.to,
            data=request.data,
            value=request.value,
            gas_limit=request.gas_limit,
            chain_id=request.chain_id,
        )


@private_router.get("/wallet")
def wallet(
    settings: SettingsDep,
    interaction: InteractionDep,
    rpc: str | None = None,
) -> dict[str, Any]:
    if not rpc:
        raise HTTPException(status_code=400, detail="Missing required query param: rpc")
    with internal_errors("wallet"):
        return interaction.wallet_info(settings.private_key, rpc)


@jobs_router.post("/batch-send-raw")
def batch_send_raw(
    registry: RegistryDep,
    settings: SettingsDep,
    body: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    """Queue a raw transaction batch signed with the key in the body."""
    config = build_config(RawBatchConfig, body, settings)
    with internal_errors("batch_send_raw"):
        job_id = registry.create(config, JobType.BATCH_SEND_RAW)
    return queued_response(job_id, "Batch send-raw started")


@jobs_router.post("/send-eth")
def send_eth(
    registry: RegistryDep,
    settings: SettingsDep,
    body: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    """Queue one ETH transfer or a list of them."""
    config = build_config(EthTransferConfig, body, settings)
    total = config.planned_count()
    with internal_errors("send_eth"):
        job_id = registry.create(config, JobType.SEND_ETH)
    message = (
        f"Batch ETH transfer started ({total} transactions)"
        if config.transactions is not None
        else "ETH transfer started"
    )
    return queued_response(job_id, message, total=total)


@jobs_router.post("/generate-wallets")
def generate_wallets(
    interaction: InteractionDep,
    request: GenerateWalletsRequest | None = None,
) -> dict[str, Any]:
    count = request.count if request is not None else 1
    if not 1 <= count <= MAX_GENERATED_WALLETS:
        detail = f"Count must be between 1 and {MAX_GENERATED_WALLETS}"
        raise HTTPException(status_code=400, detail=detail)
    with internal_errors("generate_wallets"):
        wallets = interaction.generate_wallets(count)
    return {"count": len(wallets), "wallets": wallets}
