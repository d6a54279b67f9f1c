"""Relay error kinds and their JSON envelope.

Every error raised by a handler is converted to `{"success": false, ...}` by
the exception handler registered in `create_app()`; none reach the client as a
bare traceback.
"""

from typing import Any


MISSING_CREDENTIALS_MESSAGE = "Cashfree credentials not configured"


class RelayError(Exception):
    """Base class for errors that map to a JSON envelope."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(RelayError):
    """A required input field is missing or invalid."""

    status_code = 400


class ConfigError(RelayError):
    """Upstream credentials are not configured."""

    def __init__(self, message: str = MISSING_CREDENTIALS_MESSAGE) -> None:
        super().__init__(message)


class UpstreamError(RelayError):
    """Transport failure or non-2xx status from the gateway."""

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class ContractViolation(RelayError):
    """The gateway answered 2xx but left out a field the relay depends on."""

    def __init__(self, message: str, error: str | None = None, upstream_body: Any = None) -> None:
        super().__init__(message)
        self.error = error
        self.upstream_body = upstream_body

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        if self.error is not None:
            body["error"] = self.error
        if self.upstream_body is not None:
            body["cashfreeResponse"] = self.upstream_body
        return body
