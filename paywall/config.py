"""Application configuration using pydantic-settings."""

import warnings

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "GPT Paywall API"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Shared secret presented by the GPT action
    gpt_api_key: str = ""

    # Airtable (user directory)
    airtable_api_key: str = ""
    airtable_base_id: str = ""
    airtable_table_name: str = "Users"
    airtable_api_url: str = "https://api.airtable.com/v0"

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_price_id: str = ""
    stripe_price_ids: dict[str, str] = {}
    customer_source_tag: str = "gpt_paywall"

    # Redirects
    success_url: str = "https://chat.openai.com"
    cancel_url: str = "https://chat.openai.com"
    return_url: str = "https://chat.openai.com"

    # Outbound calls (Airtable + Stripe)
    http_timeout_seconds: float = 10.0

    # Rate limiting
    gateway_rate_limit_window_seconds: int = 15 * 60
    gateway_rate_limit_max: int = 100
    api_key_rate_limit_window_seconds: int = 60
    api_key_rate_limit_max: int = 30
    rate_limit_storage_uri: str = "memory://"

    # Frontend
    frontend_url: str = ""
    cors_origins: list[str] = [
        "https://chat.openai.com",
        "https://chatgpt.com",
    ]

    @model_validator(mode="after")
    def _ensure_frontend_in_cors(self) -> "Settings":
        """Ensure the configured frontend_url is always in cors_origins."""
        if self.frontend_url and self.frontend_url not in self.cors_origins:
            self.cors_origins.append(self.frontend_url)
        return self

    @model_validator(mode="after")
    def _warn_missing_api_key(self) -> "Settings":
        """Warn early when the shared API secret is missing."""
        if not self.gpt_api_key:
            warnings.warn(
                "GPT_API_KEY is not set; every authenticated endpoint will answer "
                "with a server configuration error until it is.",
                UserWarning,
                stacklevel=1,
            )
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
