"""Contract tests for InteractionService."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct, encode_typed_data

from txbatch.core.errors import SetupError, SubmissionError
from txbatch.services.interaction import InteractionService

TYPED_DOMAIN: dict[str, Any] = {
    "name": "Ether Mail",
    "version": "1",
    "chainId": 1,
    "verifyingContract": "0xCcCCccccCCCCcCCCCCCcCcCccCcCCCcCcccccccC",
}
TYPED_TYPES: dict[str, Any] = {
    "Person": [
        {"name": "name", "type": "string"},
        {"name": "wallet", "type": "address"},
    ],
    "Mail": [
        {"name": "from", "type": "Person"},
        {"name": "to", "type": "Person"},
        {"name": "contents", "type": "string"},
    ],
}
TYPED_VALUE: dict[str, Any] = {
    "from": {"name": "Cow", "wallet": "0xCD2a3d9F938E13CD947Ec05AbC7FE734Df8DD826"},
    "to": {"name": "Bob", "wallet": "0xbBbBBBBbbBBBbbbBbbBbbbbBBbBbbbbBbBbbBBbB"},
    "contents": "Hello, Bob!",
}


@pytest.fixture
def service(chain: MagicMock) -> InteractionService:
    return InteractionService(chain_factory=lambda rpc: chain)


class TestSigning:
    """Tests for message and typed data signatures."""

    def test_sign_message_is_recoverable(
        self, service: InteractionService, private_key: str, sender: str
    ) -> None:
        signed = service.sign_message(private_key, "hello txbatch")

        assert signed["address"] == sender
        assert signed["message"] == "hello txbatch"
        recovered = Account.recover_message(
            encode_defunct(text="hello txbatch"), signature=signed["signature"]
        )
        assert recovered == sender

    def test_sign_typed_data_is_recoverable(
        self, service: InteractionService, private_key: str, sender: str
    ) -> None:
        types = {
            **TYPED_TYPES,
            "EIP712Domain": [{"name": "name", "type": "string"}],
        }

        signed = service.sign_typed_data(private_key, TYPED_DOMAIN, types, TYPED_VALUE)

        signable = encode_typed_data(
            domain_data=TYPED_DOMAIN, message_types=TYPED_TYPES, message_data=TYPED_VALUE
        )
        assert signed["address"] == sender
        assert Account.recover_message(signable, signature=signed["signature"]) == sender

    def test_missing_key(self, service: InteractionService) -> None:
        with pytest.raises(SetupError, match="PRIVATE_KEY is required"):
            service.sign_message(None, "hello")

    def test_invalid_key_is_not_echoed(self, service: InteractionService) -> None:
        with pytest.raises(SetupError, match="^Invalid private key$"):
            service.sign_message("0xnot-a-key", "hello")


class TestChainInteraction:
    """Tests for calls, sends and wallet info."""

    def test_call_contract_stringifies_results(
        self, service: InteractionService, chain: MagicMock, token: str
    ) -> None:
        chain.call_function.return_value = (10**30, b"\x01\x02", True, "name")

        result = service.call_contract("http://localhost:8545", token, [], "info", None)

        assert result == [str(10**30), "0x0102", True, "name"]
        chain.call_function.assert_called_once_with(token, [], "info", [])

    def test_send_raw_transaction(
        self, service: InteractionService, chain: MagicMock, private_key: str, sender: str
    ) -> None:
        target = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"

        sent = service.send_raw_transaction(private_key, "http://localhost:8545", target, "0x01")

        assert sent["from"] == sender
        assert sent["to"] == "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
        assert sent["blockNumber"] == 101
        assert sent["status"] == 1
        assert sent["gasUsed"] == "51000"

    def test_send_is_attempted_once(
        self, service: InteractionService, chain: MagicMock, private_key: str, recipient: str
    ) -> None:
        chain.send_raw_transaction.side_effect = ConnectionError("rejected")

        with pytest.raises(SubmissionError, match="rejected"):
            service.send_raw_transaction(private_key, "http://localhost:8545", recipient)

        assert chain.send_raw_transaction.call_count == 1

    def test_send_contract_transaction_encodes_call(
        self, service: InteractionService, chain: MagicMock, private_key: str, token: str
    ) -> None:
        abi = [{"type": "function", "name": "set", "inputs": [{"name": "x", "type": "uint256"}]}]

        sent = service.send_contract_transaction(
            private_key, "http://localhost:8545", token, abi, "set", [5], gas_limit=60_000
        )

        chain.encode_function_call.assert_called_once_with(token, abi, "set", [5])
        chain.estimate_gas.assert_not_called()
        assert sent["to"] == token

    def test_wallet_info(
        self, service: InteractionService, chain: MagicMock, private_key: str, sender: str
    ) -> None:
        info = service.wallet_info(private_key, "http://localhost:8545")

        assert info == {
            "address": sender,
            "balance": "10.0",
            "balanceWei": str(10 * 10**18),
            "nonce": 7,
            "chainId": 59144,
            "network": "linea",
        }
        chain.get_transaction_count.assert_called_once_with(sender, "latest")


class TestGenerateWallets:
    """Tests for InteractionService.generate_wallets."""

    def test_generated_keys_match_addresses(self) -> None:
        wallets = InteractionService.generate_wallets(3)

        assert len(wallets) == 3
        assert len({wallet["address"] for wallet in wallets}) == 3
        for wallet in wallets:
            assert Account.from_key(wallet["privateKey"]).address == wallet["address"]

    @pytest.mark.parametrize("count", [0, 101])
    def test_count_out_of_range(self, count: int) -> None:
        with pytest.raises(ValueError, match="between 1 and 100"):
            InteractionService.generate_wallets(count)
