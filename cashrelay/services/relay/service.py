"""Relay handlers: validate input, call Cashfree once, shape the envelope."""

from time import time
from typing import Any
from uuid import uuid4

from cashrelay.common.config import RelaySettings
from cashrelay.common.errors import ConfigError, ContractViolation, ValidationError
from cashrelay.common.logging import logger, order_id_ctx
from cashrelay.common.metrics import webhook_notifications_total
from cashrelay.services.relay.client import CashfreeClient
from cashrelay.services.relay.schemas import (
    OrderStatusQuery,
    PaymentRequest,
    PaymentStatusQuery,
    WebhookNotification,
)


ORDER_CURRENCY = "INR"
DEFAULT_CUSTOMER_NAME = "Customer"
DEFAULT_CUSTOMER_EMAIL = "test@example.com"
ORDER_TAGS = {"source": "website", "platform": "web"}


def generate_order_id() -> str:
    """Millisecond timestamp plus 48 random bits, e.g. `ORDER_1718000000000_3f9a0c1b2d4e`."""

    return f"ORDER_{int(time() * 1000)}_{uuid4().hex[:12]}"


def _is_empty(body: Any) -> bool:
    return body is None or body == ""


class RelayService:
    """Stateless request handlers bound to one immutable settings value."""

    def __init__(self, settings: RelaySettings, client: CashfreeClient | None = None) -> None:
        self.settings = settings
        self.client = client or CashfreeClient(settings)

    def require_credentials(self) -> None:
        """Raise `ConfigError` unless both Cashfree credentials are set."""

        if not self.settings.has_credentials:
            raise ConfigError()

    def build_order_payload(self, req: PaymentRequest, order_id: str) -> dict[str, Any]:
        """Translate a checkout request into a Cashfree create-order body."""

        return_url = req.return_url or self.settings.return_url_template.format(order_id=order_id)
        return {
            "order_id": order_id,
            "order_amount": req.order_amount,
            "order_currency": ORDER_CURRENCY,
            "customer_details": {
                "customer_id": req.customer_id,
                "customer_name": req.customer_name or DEFAULT_CUSTOMER_NAME,
                "customer_email": req.customer_email or DEFAULT_CUSTOMER_EMAIL,
                "customer_phone": req.customer_phone,
            },
            "order_meta": {"return_url": return_url},
            "order_note": self.settings.order_note,
            "order_tags": dict(ORDER_TAGS),
        }

    async def create_payment(self, req: PaymentRequest) -> dict[str, Any]:
        """Create a Cashfree order and return its payment session.

        Raises `ContractViolation` when Cashfree accepts the order but returns
        no `payment_session_id`.
        """

        self.require_credentials()
        if not req.order_amount or not req.customer_id or not req.customer_phone:
            raise ValidationError("Missing required fields")
        if req.order_amount <= 0:
            raise ValidationError("order_amount must be a positive number")

        order_id = generate_order_id()
        order_id_ctx.set(order_id)
        payload = self.build_order_payload(req, order_id)
        body = await self.client.create_order(payload)

        if isinstance(body, dict) and body.get("payment_session_id"):
            logger.info("payment session created cf_order_id=%s", body.get("cf_order_id"))
            return {"success": True, "data": body}

        logger.error("missing payment_session_id in cashfree response: %s", body)
        raise ContractViolation(
            "No payment_session_id received from Cashfree.",
            upstream_body=body if body is not None else {},
        )

    async def order_status(self, query: OrderStatusQuery) -> dict[str, Any]:
        self.require_credentials()
        if not query.order_id:
            raise ValidationError("order_id is required")
        order_id_ctx.set(query.order_id)

        body = await self.client.get_order(query.order_id)
        if _is_empty(body):
            raise ContractViolation(
                "Unable to fetch order status",
                error="Empty response from Cashfree",
            )
        return {"success": True, "data": body}

    async def payment_status(self, query: PaymentStatusQuery) -> dict[str, Any]:
        """Look up one payment when `payment_id` is given, else all payments of the order."""

        self.require_credentials()
        if not query.order_id:
            raise ValidationError("order_id is required")
        order_id_ctx.set(query.order_id)

        if query.payment_id:
            body = await self.client.get_payment(query.order_id, query.payment_id)
        else:
            body = await self.client.get_order_payments(query.order_id)
        if _is_empty(body):
            raise ContractViolation(
                "Unable to fetch payment status",
                error="Empty response from Cashfree",
            )
        return {"success": True, "data": body}

    def handle_webhook(self, notification: WebhookNotification) -> dict[str, Any]:
        """Log the reported outcome. Unknown statuses are accepted, never rejected."""

        status = notification.payment_status
        order_id = notification.order_id
        if order_id is not None:
            order_id_ctx.set(str(order_id))
        logger.info("webhook received: %s", notification.model_dump())

        if status == "SUCCESS":
            bucket = "SUCCESS"
            logger.info("payment successful for order %s, payment ID: %s", order_id, notification.payment_id)
            # Order fulfilment hooks in here once orders are persisted.
        elif status == "FAILED":
            bucket = "FAILED"
            logger.info("payment failed for order %s", order_id)
        else:
            bucket = "OTHER"
            logger.info("payment status %s for order %s", status, order_id)

        webhook_notifications_total.labels(
            service=self.settings.service_name,
            payment_status=bucket,
        ).inc()
        return {"success": True, "message": "Webhook processed"}
