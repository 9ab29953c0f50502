"""Configuration management for API endpoints, credentials and pacing.

Loads configuration from environment variables or a .env file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(name, f"expected a number, got {raw!r}")


@dataclass
class AppConfig:
    """Settings for the ledger client, the price source and static documents."""

    # TonAPI
    tonapi_base_url: str = "https://tonapi.io/v2"
    jetton_master: Optional[str] = None
    # Seed bearer token; the credential store wins once it holds one
    tonapi_token: Optional[str] = None

    # Minimum seconds between two requests, per tier
    anonymous_min_gap: float = 4.0
    authenticated_min_gap: float = 1.0
    # Used when a 429 carries no Retry-After header
    retry_after_default: float = 4.0
    # None disables the httpx timeout entirely
    request_timeout: Optional[float] = None

    # CoinGecko (public API works without key)
    coingecko_id: Optional[str] = None
    coingecko_api_key: Optional[str] = None
    price_poll_interval: float = 60.0

    # Local state and static documents
    credential_store_path: Path = Path.home() / ".jetton_holders" / "credentials.json"
    tags_source: Optional[str] = None
    distribution_source: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        store_path = os.getenv("CREDENTIAL_STORE_PATH")
        return cls(
            tonapi_base_url=os.getenv("TONAPI_BASE_URL", cls.tonapi_base_url).rstrip("/"),
            jetton_master=os.getenv("JETTON_MASTER"),
            tonapi_token=os.getenv("TONAPI_TOKEN") or None,
            anonymous_min_gap=_float_env("TONAPI_ANON_GAP", cls.anonymous_min_gap),
            authenticated_min_gap=_float_env("TONAPI_AUTH_GAP", cls.authenticated_min_gap),
            retry_after_default=_float_env(
                "TONAPI_RETRY_AFTER_DEFAULT", cls.retry_after_default
            ),
            request_timeout=_float_env("TONAPI_TIMEOUT", None),
            coingecko_id=os.getenv("COINGECKO_ID"),
            coingecko_api_key=os.getenv("COINGECKO_API_KEY") or None,
            price_poll_interval=_float_env("PRICE_POLL_INTERVAL", cls.price_poll_interval),
            credential_store_path=(
                Path(store_path).expanduser() if store_path else cls.credential_store_path
            ),
            tags_source=os.getenv("TAGS_SOURCE"),
            distribution_source=os.getenv("DISTRIBUTION_SOURCE"),
        )

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "AppConfig":
        """
        Load configuration from .env file and environment variables.

        Args:
            env_file: Optional path to .env file. If not provided,
                      looks for .env in the project root.

        Returns:
            AppConfig instance with loaded values
        """
        if env_file:
            load_dotenv(env_file)
        else:
            project_root = Path(__file__).parent.parent.parent
            env_path = project_root / ".env"
            if env_path.exists():
                load_dotenv(env_path)

        return cls.from_env()

    def require_master(self) -> str:
        """Return the jetton master address or fail loudly."""
        if not self.jetton_master:
            raise ConfigurationError("JETTON_MASTER", "jetton master address is not set")
        return self.jetton_master

    def has_coingecko(self) -> bool:
        """Check if a CoinGecko coin id is configured for fiat values."""
        return bool(self.coingecko_id)


# Global config instance (lazy loaded)
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def reload_config(env_file: Optional[Path] = None) -> AppConfig:
    """Reload configuration from environment."""
    global _config
    _config = AppConfig.load(env_file)
    return _config
