"""Ledger access for the dispenser."""

from dispenser.chain.base import LedgerClient
from dispenser.chain.evm import EVMLedgerClient

__all__ = ["LedgerClient", "EVMLedgerClient"]
