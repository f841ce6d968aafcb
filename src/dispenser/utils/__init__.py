"""Utility modules for the dispenser."""

from dispenser.utils.locks import LockTimeoutError, SenderLockRegistry

__all__ = ["LockTimeoutError", "SenderLockRegistry"]
