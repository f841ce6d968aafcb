"""Guarded outbound token transfers.

Transfer flow (each step short-circuits with a failed outcome):
1. Caller key is checked against the configured API key
2. Destination address is validated
3. Amount is validated (finite, strictly positive)
4. Amount is converted to token base units
5. Native balance must be non-zero (gas)
6. Token balance must cover the amount
7. Transfer is signed and broadcast under the sender lock
   (a lock wait past `lock_timeout` fails the transfer unsent)
8. Receipt is awaited outside the lock

Steps 5 and 6 are advisory: balances may change between the check and
the broadcast.
"""

import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from web3 import Web3

from dispenser.chain.base import LedgerClient
from dispenser.errors import LedgerError, TransferErrorKind, TransferRejected
from dispenser.signing.identity import Identity
from dispenser.units import parse_decimal, parse_units
from dispenser.utils.locks import LockTimeoutError, SenderLockRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferRequest:
    """Request to send tokens to an address."""
    address: str
    amount: str


@dataclass
class TransferOutcome:
    """Result of a transfer attempt."""
    success: bool
    tx_hash: Optional[str] = None
    error_kind: Optional[TransferErrorKind] = None
    detail: str = ""
    diagnostics: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, tx_hash: str) -> "TransferOutcome":
        return cls(success=True, tx_hash=tx_hash)

    @classmethod
    def fail(
        cls,
        kind: TransferErrorKind,
        detail: str = "",
        diagnostics: Optional[dict] = None,
    ) -> "TransferOutcome":
        return cls(
            success=False,
            error_kind=kind,
            detail=detail,
            diagnostics=diagnostics or {},
        )


class TransferAuthorizer:
    """Validates, authorizes and executes token transfers from the held identity."""

    def __init__(
        self,
        identity: Identity,
        client: LedgerClient,
        api_key: str,
        locks: SenderLockRegistry,
        token_decimals: int = 18,
        confirmation_timeout: Optional[float] = None,
        lock_timeout: Optional[float] = None,
    ):
        """Initialize authorizer.

        Args:
            identity: Account that signs and funds transfers
            client: Ledger client
            api_key: Shared secret callers must present
            locks: Submission lock registry shared by every transfer
            token_decimals: Token decimal precision
            confirmation_timeout: Seconds to wait for a receipt (None = no limit)
            lock_timeout: Seconds to wait for the submission lock (None = no limit)
        """
        self.identity = identity
        self.client = client
        self._api_key = api_key
        self.locks = locks
        self.token_decimals = token_decimals
        self.confirmation_timeout = confirmation_timeout
        self.lock_timeout = lock_timeout

    def is_authorized(self, caller_credential: Optional[str]) -> bool:
        """Exact match of the caller key against the configured key."""
        if not self._api_key or caller_credential is None:
            return False
        return hmac.compare_digest(
            caller_credential.encode("utf-8"), self._api_key.encode("utf-8")
        )

    def _validate_address(self, address: str) -> str:
        if not isinstance(address, str) or not Web3.is_address(address):
            raise TransferRejected(TransferErrorKind.INVALID_ADDRESS, "Invalid address")
        return Web3.to_checksum_address(address)

    def _validate_amount(self, amount: str) -> int:
        try:
            value = parse_decimal(amount)
        except ValueError as e:
            raise TransferRejected(TransferErrorKind.INVALID_AMOUNT, str(e))

        if value <= Decimal(0):
            raise TransferRejected(TransferErrorKind.INVALID_AMOUNT, "amount must be positive")

        try:
            units = parse_units(value, self.token_decimals)
        except ValueError as e:
            raise TransferRejected(TransferErrorKind.INVALID_AMOUNT, str(e))

        if units <= 0:
            raise TransferRejected(TransferErrorKind.INVALID_AMOUNT, "amount rounds to zero")
        return units

    async def _check_solvency(self, amount: int) -> None:
        address = self.identity.address

        native_balance = await self.client.get_native_balance(address)
        if native_balance == 0:
            raise TransferRejected(
                TransferErrorKind.INSUFFICIENT_GAS, "Insufficient ETH for gas"
            )

        token_balance = await self.client.get_token_balance(address)
        if token_balance < amount:
            raise TransferRejected(
                TransferErrorKind.INSUFFICIENT_TOKEN_BALANCE,
                f"Insufficient token balance: have {token_balance}, need {amount}",
            )

    async def transfer(
        self, caller_credential: Optional[str], request: TransferRequest
    ) -> TransferOutcome:
        """Run the full transfer pipeline and report the outcome."""
        if not self.is_authorized(caller_credential):
            logger.warning("Rejected transfer request with invalid API key")
            return TransferOutcome.fail(TransferErrorKind.UNAUTHORIZED, "Forbidden")

        try:
            destination = self._validate_address(request.address)
            amount = self._validate_amount(request.amount)
            await self._check_solvency(amount)

            async with self.locks.hold(
                self.identity.address, operation="submit", timeout=self.lock_timeout
            ):
                tx_hash = await self.client.submit_token_transfer(
                    self.identity.account, destination, amount
                )
            logger.info(f"Transfer {tx_hash} broadcast, waiting for confirmation")

            await self.client.wait_for_confirmation(
                tx_hash, timeout=self.confirmation_timeout
            )

        except TransferRejected as e:
            logger.info(f"Transfer rejected ({e.kind.value}): {e.detail}")
            return TransferOutcome.fail(e.kind, e.detail)

        except LedgerError as e:
            self._log_failure(request, e)
            return TransferOutcome.fail(
                TransferErrorKind.TRANSFER_FAILED,
                "Transaction failed",
                diagnostics=e.diagnostics(),
            )

        except LockTimeoutError as e:
            logger.warning(f"Transfer to {request.address} not submitted: {e}")
            return TransferOutcome.fail(
                TransferErrorKind.TRANSFER_FAILED,
                "Submission queue busy",
                diagnostics={"code": "LOCK_TIMEOUT", "reason": str(e)},
            )

        except Exception as e:
            self._log_failure(request, e)
            return TransferOutcome.fail(
                TransferErrorKind.TRANSFER_FAILED,
                "Transaction failed",
                diagnostics={"code": type(e).__name__, "reason": str(e)},
            )

        logger.info(f"Transfer {tx_hash} confirmed: {request.amount} to {destination}")
        return TransferOutcome.ok(tx_hash)

    def _log_failure(self, request: TransferRequest, error: Exception) -> None:
        """Write the operator-facing failure report."""
        if isinstance(error, LedgerError):
            code, reason, tx_hash = error.code, error.reason, error.transaction_hash
        else:
            code, reason, tx_hash = type(error).__name__, str(error), None

        lines = [
            "=== ERC20 TRANSFER ERROR ===",
            f"Time: {datetime.now(timezone.utc).isoformat()}",
            f"Destination: {request.address}",
            f"Amount: {request.amount}",
        ]
        if code is not None:
            lines.append(f"Error Code: {code}")
        if reason:
            lines.append(f"Reason: {reason}")
        if tx_hash:
            lines.append(f"Transaction Hash: {tx_hash}")
        lines.append("=============================")
        logger.error("\n".join(lines), exc_info=error)
