"""Application configuration using pydantic-settings.

One EVM account is derived from SEED_PHRASE and moves a single ERC-20 token.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NATIVE_DECIMALS = 18


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Server
    # ======================
    host: str = Field(default="0.0.0.0", description="HTTP listen host")
    port: int = Field(default=3000, description="HTTP listen port")
    debug: bool = Field(default=False, description="Enable debug logging")

    # ======================
    # Ledger
    # ======================
    rpc_url: str = Field(default="", description="EVM JSON-RPC endpoint URL")
    rpc_timeout: float = Field(default=30.0, description="Per-request RPC timeout in seconds")
    seed_phrase: Optional[str] = Field(
        default=None, description="BIP-39 seed phrase of the disbursing account"
    )

    # ======================
    # Token
    # ======================
    erc20_address: str = Field(default="", description="ERC-20 token contract address")
    token_decimals: int = Field(default=18, ge=0, le=77, description="Token decimal precision")

    # ======================
    # Auth
    # ======================
    api_key: str = Field(default="", description="Shared secret expected in x-api-key")

    # ======================
    # Confirmation
    # ======================
    confirmation_timeout: Optional[float] = Field(
        default=None, description="Seconds to wait for a receipt (None = wait forever)"
    )
    confirmation_poll_interval: float = Field(
        default=2.0, description="Seconds between receipt polls"
    )
    submit_lock_timeout: Optional[float] = Field(
        default=None, description="Seconds to wait for the submission lock (None = wait forever)"
    )

    # ======================
    # Keep-alive
    # ======================
    render_url: Optional[str] = Field(
        default=None, description="Public base URL to self-ping (unset = disabled)"
    )
    self_ping_interval: float = Field(default=300.0, description="Seconds between self-pings")

    @property
    def has_wallet(self) -> bool:
        """Check if a seed phrase of plausible length is configured."""
        return bool(self.seed_phrase and len(self.seed_phrase.split()) >= 12)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "rpc_url": self._redact_url(self.rpc_url) if self.rpc_url else "(not set)",
            "wallet_configured": self.has_wallet,
            "erc20_address": self.erc20_address or "(not set)",
            "token_decimals": self.token_decimals,
            "api_key": "***" if self.api_key else "(not set)",
            "confirmation_timeout": self.confirmation_timeout,
            "submit_lock_timeout": self.submit_lock_timeout,
            "self_ping": self.render_url or "(disabled)",
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact credentials and API-key path segments of an RPC URL."""
        if "://" not in url:
            return url
        proto, rest = url.split("://", 1)
        if "@" in rest:
            _, rest = rest.rsplit("@", 1)
            rest = f"***@{rest}"
        host, _, path = rest.partition("/")
        # Infura/Alchemy style endpoints carry the key as the last path segment
        if path:
            return f"{proto}://{host}/***"
        return f"{proto}://{host}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
