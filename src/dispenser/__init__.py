"""Custodial ERC-20 token dispenser."""

__version__ = "0.1.0"
