"""Tests for the JSON-RPC ledger client."""

import json
from typing import Callable, Optional

import httpx
import pytest
import rlp
from eth_account import Account

from dispenser.chain.evm import EVMLedgerClient, encode_balance_of, encode_transfer
from dispenser.errors import LedgerError

from tests.conftest import RECIPIENT, TEST_ADDRESS, TOKEN_CONTRACT, TX_HASH

RPC_URL = "http://node.test"


class FakeNode:
    """Minimal JSON-RPC node answering from a method -> result table."""

    def __init__(self, results: Optional[dict] = None):
        self.results = {
            "eth_chainId": "0x7a69",
            "eth_getBalance": hex(10**18),
            "eth_call": "0x" + format(50 * 10**18, "064x"),
            "eth_getTransactionCount": "0x5",
            "eth_gasPrice": hex(10**9),
            "eth_estimateGas": hex(52000),
            "eth_sendRawTransaction": TX_HASH,
            "eth_getTransactionReceipt": {"blockNumber": "0x10", "status": "0x1"},
        }
        self.results.update(results or {})
        self.calls: list[dict] = []

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append(body)
        result = self.results[body["method"]]

        if isinstance(result, Exception):
            raise result
        if callable(result):
            result = result(body)
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def make_client(node: FakeNode, poll_interval: float = 0.0) -> EVMLedgerClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(node.handler))
    return EVMLedgerClient(RPC_URL, TOKEN_CONTRACT, poll_interval=poll_interval, http_client=http_client)


def decode_nonce(raw_tx_hex: str) -> int:
    """Nonce of a signed legacy transaction."""
    fields = rlp.decode(bytes.fromhex(raw_tx_hex[2:]))
    return int.from_bytes(fields[0], "big")


class TestEncoding:
    """Tests for calldata encoding."""

    def test_balance_of(self):
        data = encode_balance_of(TEST_ADDRESS)
        assert data == "0x70a08231" + "0" * 24 + TEST_ADDRESS[2:].lower()

    def test_transfer(self):
        data = encode_transfer(RECIPIENT, 10500000000000000000)
        assert data.startswith("0xa9059cbb")
        assert data[10:74] == "0" * 24 + RECIPIENT[2:].lower()
        assert int(data[74:], 16) == 10500000000000000000


class TestReads:
    """Tests for balance and chain reads."""

    @pytest.mark.asyncio
    async def test_chain_id_is_cached(self):
        node = FakeNode()
        client = make_client(node)

        assert await client.get_chain_id() == 31337
        assert await client.get_chain_id() == 31337
        assert len(node.calls_to("eth_chainId")) == 1

    @pytest.mark.asyncio
    async def test_native_balance(self):
        node = FakeNode()
        client = make_client(node)

        assert await client.get_native_balance(TEST_ADDRESS) == 10**18
        assert node.calls_to("eth_getBalance")[0]["params"] == [TEST_ADDRESS, "latest"]

    @pytest.mark.asyncio
    async def test_token_balance(self):
        node = FakeNode()
        client = make_client(node)

        assert await client.get_token_balance(TEST_ADDRESS) == 50 * 10**18
        call = node.calls_to("eth_call")[0]["params"][0]
        assert call["to"] == TOKEN_CONTRACT
        assert call["data"] == encode_balance_of(TEST_ADDRESS)

    @pytest.mark.asyncio
    async def test_token_balance_empty_result(self):
        client = make_client(FakeNode({"eth_call": "0x"}))

        with pytest.raises(LedgerError) as exc_info:
            await client.get_token_balance(TEST_ADDRESS)
        assert exc_info.value.code == "CALL_EXCEPTION"

    @pytest.mark.asyncio
    async def test_rpc_error(self):
        node = FakeNode({"eth_getBalance": {"error": {"code": -32603, "message": "internal error"}}})
        client = make_client(node)

        with pytest.raises(LedgerError) as exc_info:
            await client.get_native_balance(TEST_ADDRESS)
        assert exc_info.value.code == -32603
        assert exc_info.value.reason == "internal error"

    @pytest.mark.asyncio
    async def test_network_error(self):
        node = FakeNode({"eth_getBalance": httpx.ConnectError("connection refused")})
        client = make_client(node)

        with pytest.raises(LedgerError) as exc_info:
            await client.get_native_balance(TEST_ADDRESS)
        assert exc_info.value.code == "NETWORK_ERROR"


class TestSubmit:
    """Tests for signing and broadcasting."""

    @pytest.mark.asyncio
    async def test_submit_signs_transfer(self, identity):
        node = FakeNode()
        client = make_client(node)

        tx_hash = await client.submit_token_transfer(identity.account, RECIPIENT, 10**18)

        assert tx_hash == TX_HASH
        raw = node.calls_to("eth_sendRawTransaction")[0]["params"][0]
        assert Account.recover_transaction(raw) == TEST_ADDRESS
        assert decode_nonce(raw) == 5

        estimate = node.calls_to("eth_estimateGas")[0]["params"][0]
        assert estimate["from"] == TEST_ADDRESS
        assert estimate["to"] == TOKEN_CONTRACT
        assert estimate["data"] == encode_transfer(RECIPIENT, 10**18)

    @pytest.mark.asyncio
    async def test_nonce_advances_when_node_lags(self, identity):
        """A pending count that has not caught up must not reuse a nonce."""
        node = FakeNode()
        client = make_client(node)

        await client.submit_token_transfer(identity.account, RECIPIENT, 1)
        await client.submit_token_transfer(identity.account, RECIPIENT, 1)

        raws = [c["params"][0] for c in node.calls_to("eth_sendRawTransaction")]
        assert [decode_nonce(r) for r in raws] == [5, 6]

    @pytest.mark.asyncio
    async def test_broadcast_failure_resets_nonce_and_reports_hash(self, identity):
        node = FakeNode({
            "eth_sendRawTransaction": {"error": {"code": -32000, "message": "replacement transaction underpriced"}},
        })
        client = make_client(node)

        with pytest.raises(LedgerError) as exc_info:
            await client.submit_token_transfer(identity.account, RECIPIENT, 1)

        assert exc_info.value.code == -32000
        assert exc_info.value.transaction_hash.startswith("0x")
        assert len(exc_info.value.transaction_hash) == 66

        node.results["eth_sendRawTransaction"] = TX_HASH
        await client.submit_token_transfer(identity.account, RECIPIENT, 1)
        raw = node.calls_to("eth_sendRawTransaction")[-1]["params"][0]
        assert decode_nonce(raw) == 5

    @pytest.mark.asyncio
    async def test_estimate_revert(self, identity):
        node = FakeNode({
            "eth_estimateGas": {"error": {"code": 3, "message": "execution reverted: ERC20: transfer amount exceeds balance"}},
        })
        client = make_client(node)

        with pytest.raises(LedgerError) as exc_info:
            await client.submit_token_transfer(identity.account, RECIPIENT, 1)

        assert "exceeds balance" in exc_info.value.reason
        assert node.calls_to("eth_sendRawTransaction") == []


class TestConfirmation:
    """Tests for receipt polling."""

    @pytest.mark.asyncio
    async def test_polls_until_mined(self):
        receipts = iter([None, None, {"blockNumber": "0x11", "status": "0x1"}])
        node = FakeNode({"eth_getTransactionReceipt": lambda body: next(receipts)})
        client = make_client(node)

        receipt = await client.wait_for_confirmation(TX_HASH)

        assert receipt["status"] == "0x1"
        assert len(node.calls_to("eth_getTransactionReceipt")) == 3

    @pytest.mark.asyncio
    async def test_reverted(self):
        node = FakeNode({"eth_getTransactionReceipt": {"blockNumber": "0x11", "status": "0x0"}})
        client = make_client(node)

        with pytest.raises(LedgerError) as exc_info:
            await client.wait_for_confirmation(TX_HASH)

        assert exc_info.value.code == "CALL_EXCEPTION"
        assert exc_info.value.transaction_hash == TX_HASH

    @pytest.mark.asyncio
    async def test_timeout(self):
        node = FakeNode({"eth_getTransactionReceipt": None})
        client = make_client(node, poll_interval=0.01)

        with pytest.raises(LedgerError) as exc_info:
            await client.wait_for_confirmation(TX_HASH, timeout=0.05)

        assert exc_info.value.code == "TIMEOUT"
        assert exc_info.value.transaction_hash == TX_HASH
