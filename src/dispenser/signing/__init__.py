"""Signing identity derived from the configured seed phrase."""

from dispenser.signing.identity import Identity, bind_identity, derive_identity

__all__ = ["Identity", "bind_identity", "derive_identity"]
