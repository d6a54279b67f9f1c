"""Startup-time helpers for safe config logging."""

from typing import Any

from pydantic import SecretStr

from cashrelay.common.config import RelaySettings
from cashrelay.common.logging import logger


SECRET_MARKERS = ("key", "secret", "password", "token")


def _safe_value(name: str, value: Any) -> Any:
    """Return a loggable form of one setting, hiding anything secret-like."""

    if value is None:
        return "<unset>"
    if isinstance(value, SecretStr) or any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>" if str(value) else "<empty>"
    return value


def redacted_config(settings: RelaySettings, keys: list[str]) -> dict[str, Any]:
    """Build the startup config dict for the selected setting names."""

    config: dict[str, Any] = {"service": settings.service_name}
    for key in keys:
        config[key] = _safe_value(key, getattr(settings, key, None))
    config["has_credentials"] = settings.has_credentials
    return config


def log_startup_config(settings: RelaySettings, keys: list[str]) -> None:
    """Log selected startup config keys for quick troubleshooting."""

    logger.info("startup_config=%s", redacted_config(settings, keys))
