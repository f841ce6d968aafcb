"""Signing identity of the dispenser.

Derives the single disbursing account from a BIP-39 seed phrase:
- Path: m/44'/60'/0'/0/index (index 0 by default)
- Address: 0x... checksum encoded

The private key only lives in memory for the process lifetime.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from bip_utils import Bip39MnemonicValidator, Bip39SeedGenerator, Bip44, Bip44Changes, Bip44Coins
from eth_account import Account
from eth_account.signers.local import LocalAccount

from dispenser.chain.base import LedgerClient
from dispenser.config import Settings
from dispenser.errors import CredentialError, LedgerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The account the dispenser signs with."""
    address: str
    account: LocalAccount = field(repr=False)


def derive_identity(seed_phrase: Optional[str], index: int = 0) -> Identity:
    """Derive the EVM account at index from a seed phrase.

    Raises:
        CredentialError: If the phrase is missing or not a valid BIP-39 mnemonic
    """
    if not seed_phrase or not seed_phrase.strip():
        raise CredentialError("SEED_PHRASE is not set")

    mnemonic = " ".join(seed_phrase.split())
    if not Bip39MnemonicValidator().IsValid(mnemonic):
        raise CredentialError("SEED_PHRASE is not a valid BIP-39 mnemonic")

    seed = Bip39SeedGenerator(mnemonic).Generate()
    bip44 = Bip44.FromSeed(seed, Bip44Coins.ETHEREUM)
    node = bip44.Purpose().Coin().Account(0).Change(Bip44Changes.CHAIN_EXT).AddressIndex(index)
    private_key = node.PrivateKey().Raw().ToBytes()

    account = Account.from_key(private_key)
    return Identity(address=account.address, account=account)


async def bind_identity(settings: Settings, client: LedgerClient) -> Identity:
    """Derive the identity and check that the ledger endpoint answers.

    Raises:
        CredentialError: On a bad phrase or an unreachable endpoint
    """
    identity = derive_identity(settings.seed_phrase)

    try:
        chain_id = await client.get_chain_id()
    except LedgerError as e:
        raise CredentialError(f"Ledger endpoint unreachable: {e.reason}") from e

    logger.info(f"Bound wallet {identity.address} to chain {chain_id}")
    return identity
