"""Environment-driven settings for the relay process.

Loaded once in `create_app()` and passed to handlers as an immutable value
(see `.env.example`).
"""

from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


CASHFREE_BASE_URLS: dict[str, str] = {
    "sandbox": "https://sandbox.cashfree.com/pg",
    "production": "https://api.cashfree.com/pg",
}


class RelaySettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "cashfree-relay"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001
    cashfree_app_id: str | None = None
    cashfree_secret_key: SecretStr | None = None
    cashfree_environment: Literal["sandbox", "production"] = "production"
    cashfree_api_version: str = "2023-08-01"
    upstream_timeout_seconds: float = 5.0
    return_url_template: str = "https://luxeandlush.vercel.app/payment/success?order_id={order_id}"
    order_note: str = "Luxe & Lush Jewelry Purchase"
    cors_origins: str = "*"
    otel_exporter_otlp_endpoint: str | None = None
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @field_validator("cashfree_environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def has_credentials(self) -> bool:
        """True when both the client id and client secret are non-empty."""

        secret = self.cashfree_secret_key.get_secret_value() if self.cashfree_secret_key else ""
        return bool(self.cashfree_app_id) and bool(secret)

    @property
    def cashfree_base_url(self) -> str:
        return CASHFREE_BASE_URLS[self.cashfree_environment]

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        return origins or ["*"]
