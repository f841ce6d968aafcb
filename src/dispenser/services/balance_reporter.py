"""Balance reporting for the disbursing account.

Reads are always fresh from the ledger; nothing is cached.
"""

import asyncio
import logging
from dataclasses import dataclass

from dispenser.chain.base import LedgerClient
from dispenser.config import NATIVE_DECIMALS
from dispenser.errors import BalanceQueryFailed, LedgerError
from dispenser.signing.identity import Identity
from dispenser.units import format_units

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceSnapshot:
    """Balances of the held account as decimal strings."""
    address: str
    native_balance: str
    token_balance: str


class BalanceReporter:
    """Reports native and token balances of the dispenser's account."""

    def __init__(self, identity: Identity, client: LedgerClient, token_decimals: int = 18):
        self.identity = identity
        self.client = client
        self.token_decimals = token_decimals

    async def get_balances(self) -> BalanceSnapshot:
        """Query both balances concurrently.

        Raises:
            BalanceQueryFailed: If either read fails
        """
        address = self.identity.address

        try:
            native_raw, token_raw = await asyncio.gather(
                self.client.get_native_balance(address),
                self.client.get_token_balance(address),
            )
        except LedgerError as e:
            logger.error(
                "Balance fetch failed for %s: code=%s reason=%s",
                address, e.code, e.reason, exc_info=True,
            )
            raise BalanceQueryFailed(e.reason) from e

        return BalanceSnapshot(
            address=address,
            native_balance=format_units(native_raw, NATIVE_DECIMALS),
            token_balance=format_units(token_raw, self.token_decimals),
        )
