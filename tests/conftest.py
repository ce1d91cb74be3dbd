"""Shared test fixtures for txbatch.

The chain client is always a MagicMock; signing uses a real eth-account key
(the well-known first Hardhat development account).
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3 import Web3

from txbatch.models.batch_config import RawBatchConfig, TokenTransferConfig
from txbatch.services.nonce_allocator import NonceAllocator
from txbatch.services.orchestrator import BatchOrchestrator

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from eth_account.signers.local import LocalAccount

TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
RECIPIENT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
OTHER_RECIPIENT = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
TOKEN = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
RPC_URL = "http://localhost:8545"


def _tx_hash(raw_transaction: bytes) -> str:
    return Web3.to_hex(Web3.keccak(raw_transaction))


@pytest.fixture
def private_key() -> str:
    return TEST_PRIVATE_KEY


@pytest.fixture
def sender() -> str:
    return TEST_ADDRESS


@pytest.fixture
def recipient() -> str:
    return RECIPIENT


@pytest.fixture
def other_recipient() -> str:
    return OTHER_RECIPIENT


@pytest.fixture
def token() -> str:
    return TOKEN


@pytest.fixture
def rpc_url() -> str:
    return RPC_URL


@pytest.fixture
def account() -> LocalAccount:
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def chain() -> MagicMock:
    """A healthy chain: 18-decimal token, 100 tokens and 10 ETH, instant receipts."""
    mock_chain = MagicMock()
    mock_chain.block_number.return_value = 100
    mock_chain.chain_id.return_value = 59144
    mock_chain.network_name.return_value = "linea"
    mock_chain.gas_price.return_value = 1_000_000_000
    mock_chain.get_balance.return_value = 10 * 10**18
    mock_chain.get_transaction_count.return_value = 7
    mock_chain.estimate_gas.return_value = 50_000
    mock_chain.send_raw_transaction.side_effect = _tx_hash
    mock_chain.wait_for_receipt.return_value = {
        "blockNumber": 101,
        "status": 1,
        "gasUsed": 51_000,
    }
    mock_chain.token_decimals.return_value = 18
    mock_chain.token_balance.return_value = 100 * 10**18
    mock_chain.encode_token_transfer.return_value = "0xa9059cbb"
    mock_chain.encode_function_call.return_value = "0x60fe47b1"
    return mock_chain


@pytest.fixture
def sleeps() -> list[float]:
    """Records every sleep instead of waiting."""
    return []


@pytest.fixture
def nonce_allocator() -> Iterator[NonceAllocator]:
    allocator = NonceAllocator(lease_ttl_seconds=0.05)
    yield allocator
    allocator.close()


@pytest.fixture
def orchestrator(
    chain: MagicMock, sleeps: list[float], nonce_allocator: NonceAllocator
) -> BatchOrchestrator:
    """Orchestrator wired to the mock chain with recorded sleeps."""
    return BatchOrchestrator(
        chain_factory=lambda rpc: chain,
        nonce_allocator=nonce_allocator,
        sleep=sleeps.append,
        rng=random.Random(7),
    )


@pytest.fixture
def token_config(tmp_path: Path) -> Callable[..., TokenTransferConfig]:
    """Factory for token configs logging under tmp_path."""

    def make(**overrides: Any) -> TokenTransferConfig:
        data: dict[str, Any] = {
            "privateKey": TEST_PRIVATE_KEY,
            "rpc": RPC_URL,
            "token": TOKEN,
            "to": RECIPIENT,
            "count": 3,
            "min": "1",
            "max": "1",
            "delay": 0,
            "retries": 3,
            "logDir": str(tmp_path / "logs"),
        }
        data.update(overrides)
        return TokenTransferConfig.model_validate(data)

    return make


@pytest.fixture
def raw_config(tmp_path: Path) -> Callable[..., RawBatchConfig]:
    """Factory for raw batch configs logging under tmp_path."""

    def make(**overrides: Any) -> RawBatchConfig:
        data: dict[str, Any] = {
            "privateKey": TEST_PRIVATE_KEY,
            "rpc": RPC_URL,
            "transactions": [
                {"to": RECIPIENT, "data": "0x01"},
                {"to": OTHER_RECIPIENT, "data": "0x02"},
            ],
            "delay": 0,
            "retries": 3,
            "logDir": str(tmp_path / "logs"),
        }
        data.update(overrides)
        return RawBatchConfig.model_validate(data)

    return make
