"""Balance and token transfer endpoints."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from dispenser.api.deps import get_dispenser
from dispenser.errors import BalanceQueryFailed, TransferErrorKind
from dispenser.services.dispenser import TokenDispenser
from dispenser.services.transfer_authorizer import TransferRequest

logger = logging.getLogger(__name__)

router = APIRouter()

# Failure kind -> (HTTP status, caller-facing message)
ERROR_RESPONSES: dict[TransferErrorKind, tuple[int, str]] = {
    TransferErrorKind.UNAUTHORIZED: (403, "Forbidden"),
    TransferErrorKind.INVALID_ADDRESS: (400, "Invalid address"),
    TransferErrorKind.INVALID_AMOUNT: (400, "Invalid amount"),
    TransferErrorKind.INSUFFICIENT_GAS: (400, "Insufficient ETH for gas"),
    TransferErrorKind.INSUFFICIENT_TOKEN_BALANCE: (400, "Insufficient token balance"),
    TransferErrorKind.TRANSFER_FAILED: (500, "Transaction failed. Check server logs for details."),
}


class SendTokenRequest(BaseModel):
    """Send token request body.

    Wrong types never fail parsing; they become empty strings and are
    rejected later as an invalid address or amount, after the key check.
    """
    address: str = ""
    amount: str = ""  # Decimal as string

    @field_validator("address", mode="before")
    @classmethod
    def _coerce_address(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> str:
        if isinstance(value, bool):
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value if isinstance(value, str) else ""

    def to_transfer_request(self) -> TransferRequest:
        return TransferRequest(address=self.address, amount=self.amount)


class BalanceResponse(BaseModel):
    """Balances of the dispenser account."""
    address: str
    eth: str
    token: str


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(dispenser: TokenDispenser = Depends(get_dispenser)):
    """Native and token balance of the dispenser account."""
    try:
        snapshot = await dispenser.balances.get_balances()
    except BalanceQueryFailed:
        return JSONResponse(status_code=500, content={"error": "Failed to fetch balances"})

    return BalanceResponse(
        address=snapshot.address,
        eth=snapshot.native_balance,
        token=snapshot.token_balance,
    )


async def _read_body(request: Request) -> SendTokenRequest:
    """Parse the JSON body leniently; anything but an object is an empty request."""
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        payload = {}
    return SendTokenRequest.model_validate(payload)


@router.post("/sendToken")
async def send_token(
    request: Request,
    x_api_key: Optional[str] = Header(None),
    dispenser: TokenDispenser = Depends(get_dispenser),
):
    """Send tokens from the dispenser account once the transfer is confirmed."""
    body = await _read_body(request)
    outcome = await dispenser.transfers.transfer(x_api_key, body.to_transfer_request())

    if outcome.success:
        return {"success": True, "txHash": outcome.tx_hash}

    status_code, message = ERROR_RESPONSES.get(
        outcome.error_kind, ERROR_RESPONSES[TransferErrorKind.TRANSFER_FAILED]
    )
    return JSONResponse(status_code=status_code, content={"error": message})
