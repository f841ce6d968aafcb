"""Base interface for ledger access.

Transfer flow through a ledger client:
1. Balances are read for the solvency checks
2. Transfer is built, signed and broadcast (submit)
3. Receipt is polled until the transaction is mined (confirm)
"""

from abc import ABC, abstractmethod
from typing import Optional

from eth_account.signers.local import LocalAccount


class LedgerClient(ABC):
    """Abstract base class for the ledger the dispenser talks to.

    Every method is a suspending I/O call and raises LedgerError on failure.
    """

    @abstractmethod
    async def get_chain_id(self) -> int:
        """Return the chain id reported by the endpoint."""
        pass

    @abstractmethod
    async def get_native_balance(self, address: str) -> int:
        """Return the native balance of address in wei."""
        pass

    @abstractmethod
    async def get_token_balance(self, address: str) -> int:
        """Return the token balance of address in token base units."""
        pass

    @abstractmethod
    async def submit_token_transfer(
        self,
        account: LocalAccount,
        destination: str,
        amount: int,
    ) -> str:
        """Sign and broadcast a token transfer.

        Args:
            account: Signing account (source of funds)
            destination: Recipient address
            amount: Amount in token base units

        Returns:
            Transaction hash once the node accepted it into its pool
        """
        pass

    @abstractmethod
    async def wait_for_confirmation(
        self, tx_hash: str, timeout: Optional[float] = None
    ) -> dict:
        """Block until tx_hash is mined successfully.

        Args:
            tx_hash: Transaction hash returned by submit_token_transfer
            timeout: Seconds to wait (None = no limit)

        Returns:
            Transaction receipt
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None
