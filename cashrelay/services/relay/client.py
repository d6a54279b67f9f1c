"""Thin async client for the Cashfree PG orders API.

One `httpx.AsyncClient` is opened per call and closed before returning, so no
connection state is shared between requests.
"""

from time import perf_counter
from typing import Any
from urllib.parse import quote

import httpx

from cashrelay.common.config import RelaySettings
from cashrelay.common.errors import ConfigError, UpstreamError
from cashrelay.common.logging import logger
from cashrelay.common.metrics import upstream_latency_seconds, upstream_requests_total


GENERIC_UPSTREAM_MESSAGE = "Error processing the request."


def _decode(resp: httpx.Response) -> Any:
    """Return the JSON body, the raw text when it is not JSON, or None if empty."""

    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _segment(value: str) -> str:
    return quote(value, safe="")


def upstream_error_message(body: Any, fallback: str) -> str:
    """Pick the gateway's own error message when the body carries one."""

    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return fallback or GENERIC_UPSTREAM_MESSAGE


class CashfreeClient:
    """Issues single requests to Cashfree with the static credential headers."""

    def __init__(
        self,
        settings: RelaySettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        if not self.settings.has_credentials:
            raise ConfigError()
        return {
            "Content-Type": "application/json",
            "x-api-version": self.settings.cashfree_api_version,
            "x-client-id": self.settings.cashfree_app_id,
            "x-client-secret": self.settings.cashfree_secret_key.get_secret_value(),
        }

    def _loggable_headers(self) -> dict[str, str]:
        return {
            "x-api-version": self.settings.cashfree_api_version,
            "x-client-id": self.settings.cashfree_app_id or "MISSING",
            "x-client-secret": "[HIDDEN]" if self.settings.has_credentials else "MISSING",
        }

    async def _request(self, operation: str, method: str, path: str, payload: dict | None = None) -> Any:
        """Send one request and return the decoded body of a 2xx response.

        Raises `UpstreamError` on transport failures and non-2xx answers.
        """

        headers = self._headers()
        url = f"{self.settings.cashfree_base_url}{path}"
        logger.info(
            "cashfree request operation=%s method=%s url=%s environment=%s headers=%s",
            operation,
            method,
            url,
            self.settings.cashfree_environment,
            self._loggable_headers(),
        )
        if payload is not None:
            logger.debug("cashfree request body=%s", payload)

        start = perf_counter()
        outcome = "error"
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.upstream_timeout_seconds,
                transport=self.transport,
            ) as client:
                resp = await client.request(method, url, headers=headers, json=payload)
            body = _decode(resp)
            logger.info("cashfree response operation=%s status=%s", operation, resp.status_code)
            logger.debug("cashfree response body=%s", body)
            if resp.is_error:
                message = upstream_error_message(body, f"Cashfree responded with HTTP {resp.status_code}")
                logger.error(
                    "cashfree rejected request operation=%s status=%s body=%s",
                    operation,
                    resp.status_code,
                    body,
                )
                raise UpstreamError(message, upstream_status=resp.status_code)
            outcome = "ok"
            return body
        except httpx.HTTPError as exc:
            logger.error("cashfree request failed operation=%s error=%r", operation, exc)
            raise UpstreamError(upstream_error_message(None, str(exc))) from exc
        finally:
            upstream_latency_seconds.labels(
                service=self.settings.service_name,
                operation=operation,
            ).observe(max(0.0, perf_counter() - start))
            upstream_requests_total.labels(
                service=self.settings.service_name,
                operation=operation,
                outcome=outcome,
            ).inc()

    async def create_order(self, payload: dict) -> Any:
        return await self._request("create_order", "POST", "/orders", payload)

    async def get_order(self, order_id: str) -> Any:
        return await self._request("get_order", "GET", f"/orders/{_segment(order_id)}")

    async def get_order_payments(self, order_id: str) -> Any:
        return await self._request("get_order_payments", "GET", f"/orders/{_segment(order_id)}/payments")

    async def get_payment(self, order_id: str, payment_id: str) -> Any:
        path = f"/orders/{_segment(order_id)}/payments/{_segment(payment_id)}"
        return await self._request("get_payment", "GET", path)
