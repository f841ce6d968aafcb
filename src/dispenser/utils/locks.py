"""Concurrency control for transaction submission.

Provides per-sender locking so that transactions from one address are
broadcast one at a time and never race for the same nonce.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


class SenderLockRegistry:
    """Registry of one asyncio.Lock per sender address.

    Example:
        locks = SenderLockRegistry()
        async with locks.hold(address, operation="submit"):
            tx_hash = await client.submit_token_transfer(...)
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def get_lock(self, address: str) -> asyncio.Lock:
        """Get or create the lock for a sender address.

        Args:
            address: Sender address (case-insensitive)

        Returns:
            asyncio.Lock for the sender
        """
        key = address.lower()
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    @asynccontextmanager
    async def hold(
        self,
        address: str,
        operation: str = "submit",
        timeout: Optional[float] = None,
    ):
        """Hold the sender lock for the duration of the block.

        Args:
            address: Sender address
            operation: Description for logging
            timeout: Maximum time to wait for the lock (None = wait forever)

        Raises:
            LockTimeoutError: If the lock is not acquired in time
        """
        lock = self.get_lock(address)

        try:
            if timeout:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Lock timeout for {address} after {timeout}s: {operation}")
            raise LockTimeoutError(
                f"Could not acquire lock for {address} within {timeout}s"
            )

        logger.debug(f"Lock acquired for {address}: {operation}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Lock released for {address}: {operation}")
