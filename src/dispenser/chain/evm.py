"""EVM ledger client.

Talks raw JSON-RPC over httpx and signs locally with eth_account.
Supports native balance reads and ERC20 balanceOf/transfer.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from eth_abi import encode
from eth_account.signers.local import LocalAccount
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3

from dispenser.chain.base import LedgerClient
from dispenser.errors import LedgerError

logger = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = function_signature_to_4byte_selector("balanceOf(address)")
TRANSFER_SELECTOR = function_signature_to_4byte_selector("transfer(address,uint256)")


def _to_int(value: Any) -> int:
    """Decode a JSON-RPC quantity."""
    if isinstance(value, int):
        return value
    if not value or value == "0x":
        return 0
    return int(value, 16)


def encode_balance_of(owner: str) -> str:
    """Calldata for balanceOf(owner)."""
    return Web3.to_hex(BALANCE_OF_SELECTOR + encode(["address"], [Web3.to_checksum_address(owner)]))


def encode_transfer(destination: str, amount: int) -> str:
    """Calldata for transfer(destination, amount)."""
    return Web3.to_hex(
        TRANSFER_SELECTOR
        + encode(["address", "uint256"], [Web3.to_checksum_address(destination), amount])
    )


class EVMLedgerClient(LedgerClient):
    """JSON-RPC client for one EVM endpoint and one ERC20 contract.

    Submissions for the same sender must be serialized by the caller; the
    nonce cache assumes one in-flight submission per address.
    """

    def __init__(
        self,
        rpc_url: str,
        token_contract: str,
        timeout: float = 30.0,
        poll_interval: float = 2.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize client.

        Args:
            rpc_url: JSON-RPC endpoint
            token_contract: ERC20 contract address
            timeout: Per-request timeout in seconds
            poll_interval: Seconds between receipt polls
            http_client: Preconfigured client (tests inject a MockTransport here)
        """
        self.rpc_url = rpc_url
        self.token_contract = Web3.to_checksum_address(token_contract)
        self.poll_interval = poll_interval
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._request_id = 0
        self._chain_id: Optional[int] = None
        self._nonce_cache: dict[str, int] = {}

    async def close(self) -> None:
        await self._client.aclose()

    async def _rpc(self, method: str, params: list) -> Any:
        """Perform one JSON-RPC call and return its result."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }

        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise LedgerError(f"{method} failed: {e}", code="NETWORK_ERROR") from e
        except ValueError as e:
            raise LedgerError(f"{method} returned invalid JSON", code="SERVER_ERROR") from e

        if "error" in data and data["error"]:
            error = data["error"]
            if isinstance(error, dict):
                raise LedgerError(
                    error.get("message", "unknown error"),
                    code=error.get("code"),
                )
            raise LedgerError(str(error), code="SERVER_ERROR")

        if "result" not in data:
            raise LedgerError(f"{method} returned no result", code="SERVER_ERROR")

        return data["result"]

    async def get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = _to_int(await self._rpc("eth_chainId", []))
        return self._chain_id

    async def get_native_balance(self, address: str) -> int:
        return _to_int(await self._rpc("eth_getBalance", [address, "latest"]))

    async def get_token_balance(self, address: str) -> int:
        result = await self._rpc(
            "eth_call",
            [{"to": self.token_contract, "data": encode_balance_of(address)}, "latest"],
        )
        if not result or result == "0x":
            raise LedgerError(
                f"balanceOf returned no data from {self.token_contract}",
                code="CALL_EXCEPTION",
            )
        return _to_int(result)

    async def _get_next_nonce(self, address: str) -> int:
        """Next nonce for address: the higher of the pending count and our cache."""
        chain_nonce = _to_int(await self._rpc("eth_getTransactionCount", [address, "pending"]))
        cached_nonce = self._nonce_cache.get(address, 0)
        next_nonce = max(chain_nonce, cached_nonce)
        self._nonce_cache[address] = next_nonce + 1
        return next_nonce

    def _reset_nonce_cache(self, address: str) -> None:
        self._nonce_cache.pop(address, None)

    async def submit_token_transfer(
        self,
        account: LocalAccount,
        destination: str,
        amount: int,
    ) -> str:
        data = encode_transfer(destination, amount)
        call = {"from": account.address, "to": self.token_contract, "data": data}

        chain_id = await self.get_chain_id()
        gas = _to_int(await self._rpc("eth_estimateGas", [call]))
        gas_price = _to_int(await self._rpc("eth_gasPrice", []))
        nonce = await self._get_next_nonce(account.address)

        tx = {
            "to": self.token_contract,
            "value": 0,
            "data": data,
            "gas": gas,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": chain_id,
        }
        signed = account.sign_transaction(tx)
        local_hash = Web3.to_hex(signed.hash)

        logger.info(
            "Broadcasting transfer of %d base units to %s (nonce=%d, tx=%s)",
            amount, destination, nonce, local_hash,
        )

        try:
            tx_hash = await self._rpc(
                "eth_sendRawTransaction", [Web3.to_hex(signed.raw_transaction)]
            )
        except LedgerError as e:
            # Next submission must refetch the nonce from the node
            self._reset_nonce_cache(account.address)
            e.transaction_hash = e.transaction_hash or local_hash
            raise

        return tx_hash or local_hash

    async def wait_for_confirmation(
        self, tx_hash: str, timeout: Optional[float] = None
    ) -> dict:
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        while True:
            receipt = await self._rpc("eth_getTransactionReceipt", [tx_hash])

            if receipt is not None and receipt.get("blockNumber") is not None:
                if _to_int(receipt.get("status", "0x1")) == 0:
                    raise LedgerError(
                        "transaction reverted",
                        code="CALL_EXCEPTION",
                        transaction_hash=tx_hash,
                    )
                return receipt

            if timeout is not None and loop.time() - start_time > timeout:
                raise LedgerError(
                    f"transaction not confirmed after {timeout}s",
                    code="TIMEOUT",
                    transaction_hash=tx_hash,
                )

            await asyncio.sleep(self.poll_interval)
