"""Dispenser services.

- BalanceReporter: native and token balances of the held account
- TransferAuthorizer: validated, serialized token transfers
- TokenDispenser: service object wiring both to one identity
- SelfPinger: optional keep-alive task
"""

from dispenser.services.balance_reporter import BalanceReporter, BalanceSnapshot
from dispenser.services.dispenser import TokenDispenser
from dispenser.services.keepalive import SelfPinger
from dispenser.services.transfer_authorizer import (
    TransferAuthorizer,
    TransferOutcome,
    TransferRequest,
)

__all__ = [
    "BalanceReporter",
    "BalanceSnapshot",
    "SelfPinger",
    "TokenDispenser",
    "TransferAuthorizer",
    "TransferOutcome",
    "TransferRequest",
]
