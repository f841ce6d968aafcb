"""Error taxonomy for balance queries and transfers."""

from enum import Enum
from typing import Optional


class TransferErrorKind(str, Enum):
    """Why a transfer or balance query did not succeed."""
    UNAUTHORIZED = "unauthorized"
    INVALID_ADDRESS = "invalid_address"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_GAS = "insufficient_gas"
    INSUFFICIENT_TOKEN_BALANCE = "insufficient_token_balance"
    BALANCE_QUERY_FAILED = "balance_query_failed"
    TRANSFER_FAILED = "transfer_failed"


class DispenserError(Exception):
    """Base class for dispenser errors."""


class CredentialError(DispenserError):
    """Raised at startup when the signing identity cannot be bound."""


class LedgerError(DispenserError):
    """Raised by a ledger client when a read, submission or confirmation fails.

    Attributes:
        code: Ledger or transport error code (JSON-RPC code, NETWORK_ERROR, ...)
        reason: Human readable reason
        transaction_hash: Hash assigned before the failure, if any
    """

    def __init__(
        self,
        reason: str,
        code: Optional[object] = None,
        transaction_hash: Optional[str] = None,
    ):
        self.reason = reason
        self.code = code
        self.transaction_hash = transaction_hash
        super().__init__(reason)

    def diagnostics(self) -> dict:
        """Fields worth logging for an operator."""
        return {
            "code": self.code,
            "reason": self.reason,
            "transaction_hash": self.transaction_hash,
        }


class BalanceQueryFailed(DispenserError):
    """Raised when either balance read fails."""

    kind = TransferErrorKind.BALANCE_QUERY_FAILED


class TransferRejected(DispenserError):
    """Raised inside the transfer pipeline to short-circuit with a failure kind."""

    def __init__(self, kind: TransferErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(detail or kind.value)
