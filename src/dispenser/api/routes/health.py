"""Liveness endpoint."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    """Liveness check used by the self-pinger and external monitors."""
    return "pong"
