"""Service object that owns the identity, ledger client and submission locks."""

import logging
from typing import Optional

from dispenser.chain.base import LedgerClient
from dispenser.chain.evm import EVMLedgerClient
from dispenser.config import Settings
from dispenser.errors import CredentialError
from dispenser.services.balance_reporter import BalanceReporter
from dispenser.services.transfer_authorizer import TransferAuthorizer
from dispenser.signing.identity import Identity, bind_identity
from dispenser.utils.locks import SenderLockRegistry

logger = logging.getLogger(__name__)


class TokenDispenser:
    """Process-wide service handed to request handlers.

    Holds the single signing identity and the ledger connection as fields,
    plus the lock registry that serializes submissions for that identity.
    """

    def __init__(
        self,
        identity: Identity,
        client: LedgerClient,
        api_key: str,
        token_decimals: int = 18,
        confirmation_timeout: Optional[float] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.identity = identity
        self.client = client
        self.locks = SenderLockRegistry()
        self.balances = BalanceReporter(identity, client, token_decimals)
        self.transfers = TransferAuthorizer(
            identity,
            client,
            api_key=api_key,
            locks=self.locks,
            token_decimals=token_decimals,
            confirmation_timeout=confirmation_timeout,
            lock_timeout=lock_timeout,
        )

    @property
    def address(self) -> str:
        return self.identity.address

    @classmethod
    async def from_settings(
        cls, settings: Settings, client: Optional[LedgerClient] = None
    ) -> "TokenDispenser":
        """Build the service, binding the identity to the ledger endpoint.

        Raises:
            CredentialError: If the phrase, endpoint or token contract is unusable
        """
        if client is None:
            if not settings.rpc_url:
                raise CredentialError("RPC_URL is not set")
            if not settings.erc20_address:
                raise CredentialError("ERC20_ADDRESS is not set")
            try:
                client = EVMLedgerClient(
                    settings.rpc_url,
                    settings.erc20_address,
                    timeout=settings.rpc_timeout,
                    poll_interval=settings.confirmation_poll_interval,
                )
            except ValueError as e:
                raise CredentialError(f"Invalid ERC20_ADDRESS: {e}") from e

        try:
            identity = await bind_identity(settings, client)
        except CredentialError:
            await client.close()
            raise

        if not settings.api_key:
            logger.warning("API_KEY not set - all transfer requests will be rejected")

        return cls(
            identity,
            client,
            api_key=settings.api_key,
            token_decimals=settings.token_decimals,
            confirmation_timeout=settings.confirmation_timeout,
            lock_timeout=settings.submit_lock_timeout,
        )

    async def close(self) -> None:
        await self.client.close()
