"""Configuration management for the billing service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from wanderlust_billing.billing.errors import ConfigurationError


def _first_env(*names: str, default: str = "") -> str:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    razorpay_key_id: str
    razorpay_key_secret: str
    razorpay_webhook_secret: str
    razorpay_api_base: str
    supabase_url: str
    supabase_anon_key: str
    app_access_code: str
    admin_dash_token: str
    currency: str
    merchant_name: str
    gateway_timeout_seconds: float
    host: str
    port: int
    debug: bool
    log_level: str

    # Environment variable name for each secret, used for error messages and
    # the diagnostics endpoint.
    REQUIRED_ENV = {
        "RAZORPAY_KEY_ID": "razorpay_key_id",
        "RAZORPAY_KEY_SECRET": "razorpay_key_secret",
        "RAZORPAY_WEBHOOK_SECRET": "razorpay_webhook_secret",
        "SUPABASE_URL": "supabase_url",
        "SUPABASE_ANON_KEY": "supabase_anon_key",
        "APP_ACCESS_CODE": "app_access_code",
        "ADMIN_DASH_TOKEN": "admin_dash_token",
    }

    @property
    def HOST(self) -> str:
        """Alias for host."""
        return self.host

    @property
    def PORT(self) -> int:
        """Alias for port."""
        return self.port

    @property
    def DEBUG(self) -> bool:
        """Alias for debug."""
        return self.debug

    def require(self, env_name: str) -> str:
        """Return a required setting by its environment name.

        Raises:
            ConfigurationError: If the setting is empty.
        """
        value = getattr(self, self.REQUIRED_ENV[env_name])
        if not value:
            raise ConfigurationError(f"Missing environment variable: {env_name}")
        return value

    def presence(self) -> dict[str, bool]:
        """Report which required settings are configured, without values."""
        return {
            env_name: bool(getattr(self, attr))
            for env_name, attr in self.REQUIRED_ENV.items()
        }

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./wanderlust.db",
            ),
            razorpay_key_id=os.getenv("RAZORPAY_KEY_ID", ""),
            razorpay_key_secret=os.getenv("RAZORPAY_KEY_SECRET", ""),
            razorpay_webhook_secret=os.getenv("RAZORPAY_WEBHOOK_SECRET", ""),
            razorpay_api_base=os.getenv(
                "RAZORPAY_API_BASE", "https://api.razorpay.com/v1"
            ),
            supabase_url=_first_env("SUPABASE_URL", "VITE_SUPABASE_URL"),
            supabase_anon_key=_first_env("SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY"),
            app_access_code=os.getenv("APP_ACCESS_CODE", ""),
            admin_dash_token=_first_env("ADMIN_DASH_TOKEN", "SYNC_TOKEN"),
            currency=os.getenv("CURRENCY", "INR"),
            merchant_name=os.getenv("MERCHANT_NAME", "Wanderlust German Journeys"),
            gateway_timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
