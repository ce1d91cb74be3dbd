"""Integration tests for the HTTP API using FastAPI's TestClient."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient

from txbatch.api.app import create_app
from txbatch.models.config import Settings
from txbatch.services.interaction import InteractionService
from txbatch.services.job_registry import JobRegistry
from txbatch.services.nonce_allocator import NonceAllocator
from txbatch.services.orchestrator import BatchOrchestrator

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

API_KEY = "test-api-key"
PRIVATE_API_KEY = "test-private-api-key"
WAIT_SECONDS = 10.0


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, private_key: str) -> Settings:
    monkeypatch.chdir(tmp_path)
    return Settings(
        api_key=API_KEY,
        private_api_key=PRIVATE_API_KEY,
        private_key=private_key,
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def registry(chain: MagicMock) -> JobRegistry:
    orchestrator = BatchOrchestrator(
        chain_factory=lambda rpc: chain,
        nonce_allocator=NonceAllocator(lease_ttl_seconds=0.05),
        sleep=lambda seconds: None,
        rng=random.Random(7),
    )
    return JobRegistry(orchestrator, max_workers=2)


@pytest.fixture
def client(settings: Settings, registry: JobRegistry, chain: MagicMock) -> Iterator[TestClient]:
    app = create_app(
        settings,
        registry=registry,
        interaction=InteractionService(chain_factory=lambda rpc: chain),
    )
    with TestClient(app) as test_client:
        yield test_client


def _headers(key: str = API_KEY) -> dict[str, str]:
    return {"x-api-key": key}


def _token_body(token: str, recipient: str, **overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "rpc": "http://localhost:8545",
        "token": token,
        "to": recipient,
        "count": 2,
        "min": "0.5",
        "max": "0.5",
        "delay": 0,
    }
    body.update(overrides)
    return body


class TestHealth:
    """Tests for GET /health."""

    def test_health_needs_no_key(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["activeJobs"] == 0
        assert isinstance(data["timestamp"], int)


class TestAppWiring:
    """Tests for create_app service injection."""

    def test_injected_empty_services_are_kept(
        self, settings: Settings, registry: JobRegistry, chain: MagicMock
    ) -> None:
        interaction = InteractionService(chain_factory=lambda rpc: chain)
        assert len(registry) == 0

        app = create_app(settings, registry=registry, interaction=interaction)

        assert app.state.registry is registry
        assert app.state.interaction is interaction
        registry.shutdown(wait=True)


class TestAuth:
    """Tests for API key checks."""

    def test_missing_key(self, client: TestClient) -> None:
        response = client.get("/batch")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized: Invalid or missing API key"}

    def test_wrong_key(self, client: TestClient) -> None:
        assert client.get("/batch", headers=_headers("nope")).status_code == 401

    def test_private_endpoints_use_their_own_key(self, client: TestClient) -> None:
        response = client.post("/interact/sign", json={"message": "hi"}, headers=_headers())

        assert response.status_code == 401

    def test_unconfigured_key(
        self, settings: Settings, registry: JobRegistry, chain: MagicMock
    ) -> None:
        app = create_app(
            settings.model_copy(update={"private_api_key": None}),
            registry=registry,
            interaction=InteractionService(chain_factory=lambda rpc: chain),
        )
        with TestClient(app) as test_client:
            response = test_client.get("/interact/wallet?rpc=http://localhost:8545")

        assert response.status_code == 500
        assert response.json() == {"error": "PRIVATE_API_KEY not configured on server"}


class TestBatchJobs:
    """Tests for /batch endpoints."""

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/batch", json={}, headers=_headers())

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields: rpc, token, to"}

    def test_invalid_bounds(self, client: TestClient, token: str, recipient: str) -> None:
        body = _token_body(token, recipient, min="2", max="1")

        response = client.post("/batch", json=body, headers=_headers())

        assert response.status_code == 400
        assert "must not exceed" in response.json()["error"]

    def test_missing_server_key(
        self, settings: Settings, registry: JobRegistry, token: str, recipient: str
    ) -> None:
        app = create_app(settings.model_copy(update={"private_key": None}), registry=registry)
        with TestClient(app) as test_client:
            response = test_client.post(
                "/batch", json=_token_body(token, recipient), headers=_headers()
            )

        assert response.status_code == 500
        assert response.json() == {"error": "PRIVATE_KEY not configured on server"}

    def test_batch_runs_to_completion(
        self,
        client: TestClient,
        registry: JobRegistry,
        token: str,
        recipient: str,
        sender: str,
    ) -> None:
        response = client.post("/batch", json=_token_body(token, recipient), headers=_headers())

        assert response.status_code == 200
        queued = response.json()
        assert queued["status"] == "queued"
        assert queued["message"] == "Batch transaction started"
        job_id = queued["jobId"]
        assert queued["statusUrl"] == f"/batch/{job_id}"

        registry.wait(job_id, timeout=WAIT_SECONDS)
        job = client.get(f"/batch/{job_id}", headers=_headers()).json()

        assert job["status"] == "completed"
        assert job["type"] == "batch"
        assert job["wallet"] == sender
        assert job["completed"] == 2
        assert [tx["amount"] for tx in job["transactions"]] == ["0.5000", "0.5000"]
        assert job["failedTransactions"] == []
        assert job["summary"]["successful"] == 2
        assert job["logPath"].endswith(".txlog.json")

    def test_list_and_delete(
        self, client: TestClient, registry: JobRegistry, token: str, recipient: str
    ) -> None:
        job_id = client.post(
            "/batch", json=_token_body(token, recipient), headers=_headers()
        ).json()["jobId"]
        registry.wait(job_id, timeout=WAIT_SECONDS)

        listing = client.get("/batch", headers=_headers()).json()
        assert listing["total"] == 1
        assert listing["jobs"][0]["id"] == job_id

        deleted = client.delete(f"/batch/{job_id}", headers=_headers())
        assert deleted.json() == {"message": "Job deleted"}
        assert client.get(f"/batch/{job_id}", headers=_headers()).status_code == 404

    def test_unknown_job(self, client: TestClient) -> None:
        response = client.get("/batch/job_0_unknown00", headers=_headers())

        assert response.status_code == 404
        assert response.json() == {"error": "Job not found"}
        assert client.delete("/batch/job_0_unknown00", headers=_headers()).status_code == 404


class TestInteractJobs:
    """Tests for job-starting /interact endpoints."""

    def test_batch_send_raw(
        self,
        client: TestClient,
        registry: JobRegistry,
        private_key: str,
        recipient: str,
    ) -> None:
        body = {
            "privateKey": private_key,
            "rpc": "http://localhost:8545",
            "transactions": [{"to": recipient, "data": "0x01", "count": 2}],
            "delay": 0,
        }

        queued = client.post("/interact/batch-send-raw", json=body, headers=_headers()).json()
        job = registry.wait(queued["jobId"], timeout=WAIT_SECONDS)

        assert queued["message"] == "Batch send-raw started"
        assert job is not None
        assert job.status == "completed"
        assert job.type == "batch-send-raw"
        assert len(job.transactions) == 2

    def test_batch_send_raw_requires_body_key(
        self, client: TestClient, recipient: str
    ) -> None:
        body = {"rpc": "http://localhost:8545", "transactions": [{"to": recipient}]}

        response = client.post("/interact/batch-send-raw", json=body, headers=_headers())

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields: privateKey"}

    def test_send_eth_list(
        self,
        client: TestClient,
        registry: JobRegistry,
        private_key: str,
        recipient: str,
        other_recipient: str,
    ) -> None:
        body = {
            "privateKey": private_key,
            "rpc": "http://localhost:8545",
            "transactions": [
                {"to": recipient, "amount": "0.1"},
                {"to": other_recipient, "amount": "0.2"},
            ],
        }

        queued = client.post("/interact/send-eth", json=body, headers=_headers()).json()
        job = registry.wait(queued["jobId"], timeout=WAIT_SECONDS)

        assert queued["message"] == "Batch ETH transfer started (2 transactions)"
        assert queued["total"] == 2
        assert job is not None
        assert [tx.nonce for tx in job.transactions] == [7, 8]

    def test_send_eth_single(
        self, client: TestClient, private_key: str, recipient: str
    ) -> None:
        body = {
            "privateKey": private_key,
            "rpc": "http://localhost:8545",
            "to": recipient,
            "amount": "0.1",
        }

        queued = client.post("/interact/send-eth", json=body, headers=_headers()).json()

        assert queued["message"] == "ETH transfer started"
        assert queued["total"] == 1

    def test_send_eth_without_targets(self, client: TestClient, private_key: str) -> None:
        body = {"privateKey": private_key, "rpc": "http://localhost:8545"}

        response = client.post("/interact/send-eth", json=body, headers=_headers())

        assert response.status_code == 400
        assert "either 'to' and 'amount' or 'transactions' is required" in response.json()["error"]

    def test_generate_wallets(self, client: TestClient) -> None:
        response = client.post("/interact/generate-wallets", json={"count": 2}, headers=_headers())

        data = response.json()
        assert data["count"] == 2
        assert len(data["wallets"]) == 2

    def test_generate_wallets_defaults_to_one(self, client: TestClient) -> None:
        response = client.post("/interact/generate-wallets", headers=_headers())

        assert response.json()["count"] == 1

    def test_generate_wallets_bounds(self, client: TestClient) -> None:
        response = client.post(
            "/interact/generate-wallets", json={"count": 101}, headers=_headers()
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Count must be between 1 and 100"}


class TestInteractPrivate:
    """Tests for endpoints signing with the server key."""

    def test_sign(self, client: TestClient, sender: str) -> None:
        response = client.post(
            "/interact/sign", json={"message": "hello"}, headers=_headers(PRIVATE_API_KEY)
        )

        data = response.json()
        assert data["address"] == sender
        recovered = Account.recover_message(
            encode_defunct(text="hello"), signature=data["signature"]
        )
        assert recovered == sender

    def test_sign_requires_message(self, client: TestClient) -> None:
        response = client.post("/interact/sign", json={}, headers=_headers(PRIVATE_API_KEY))

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields: message"}

    def test_call(self, client: TestClient, chain: MagicMock, token: str) -> None:
        chain.call_function.return_value = 42
        body = {"rpc": "http://localhost:8545", "contract": token, "abi": [], "method": "get"}

        response = client.post("/interact/call", json=body, headers=_headers(PRIVATE_API_KEY))

        assert response.json() == {"result": "42"}

    def test_send_raw(self, client: TestClient, recipient: str, sender: str) -> None:
        body = {"rpc": "http://localhost:8545", "to": recipient, "data": "0x01"}

        response = client.post("/interact/send-raw", json=body, headers=_headers(PRIVATE_API_KEY))

        data = response.json()
        assert data["from"] == sender
        assert data["status"] == 1

    def test_send_failure_is_a_server_error(
        self, client: TestClient, chain: MagicMock, recipient: str
    ) -> None:
        chain.send_raw_transaction.side_effect = ConnectionError("rejected")
        body = {"rpc": "http://localhost:8545", "to": recipient, "data": "0x01"}

        response = client.post("/interact/send-raw", json=body, headers=_headers(PRIVATE_API_KEY))

        assert response.status_code == 500
        assert "rejected" in response.json()["error"]

    def test_wallet(self, client: TestClient, sender: str) -> None:
        response = client.get(
            "/interact/wallet",
            params={"rpc": "http://localhost:8545"},
            headers=_headers(PRIVATE_API_KEY),
        )

        data = response.json()
        assert data["address"] == sender
        assert data["network"] == "linea"

    def test_wallet_requires_rpc(self, client: TestClient) -> None:
        response = client.get("/interact/wallet", headers=_headers(PRIVATE_API_KEY))

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required query param: rpc"}
