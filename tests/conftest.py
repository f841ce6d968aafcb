"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock

import pytest

# Set test environment
os.environ["API_KEY"] = "test-api-key"
os.environ["DEBUG"] = "true"
os.environ.pop("RENDER_URL", None)

from dispenser.chain.base import LedgerClient
from dispenser.signing.identity import Identity, derive_identity

# Well-known development mnemonic; index 0 is the first Hardhat/Anvil account
TEST_MNEMONIC = "test test test test test test test test test test test junk"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

API_KEY = "test-api-key"
TOKEN_CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
RECIPIENT = "0x70997970C51812dc3A010C7d01b50e0d172dE79C"
TX_HASH = "0x" + "ab" * 32

ONE_ETHER = 10**18


@pytest.fixture(scope="session")
def identity() -> Identity:
    """Identity derived from the test mnemonic."""
    return derive_identity(TEST_MNEMONIC)


@pytest.fixture
def ledger() -> AsyncMock:
    """Mock ledger client: 1 ETH, 50 tokens, submissions succeed."""
    client = AsyncMock(spec=LedgerClient)
    client.get_chain_id.return_value = 31337
    client.get_native_balance.return_value = ONE_ETHER
    client.get_token_balance.return_value = 50 * ONE_ETHER
    client.submit_token_transfer.return_value = TX_HASH
    client.wait_for_confirmation.return_value = {"status": "0x1", "transactionHash": TX_HASH}
    return client


def ledger_call_count(client: AsyncMock) -> int:
    """Total number of ledger calls made through a mock client."""
    return sum(
        getattr(client, name).await_count
        for name in (
            "get_native_balance",
            "get_token_balance",
            "submit_token_transfer",
            "wait_for_confirmation",
        )
    )
