"""Request and notification schemas for relay endpoints.

Required-field checks happen in `RelayService` so that a missing field and a
missing credential are reported in a fixed order; these models only coerce
types.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PaymentRequest(BaseModel):
    """Checkout payload accepted by `POST /api/payment`."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    order_amount: float | None = Field(default=None, allow_inf_nan=False)
    customer_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    return_url: str | None = None

    @field_validator("order_amount", mode="before")
    @classmethod
    def _reject_bool_amount(cls, value):
        if isinstance(value, bool):
            raise ValueError("order_amount must be a number")
        return value


class OrderStatusQuery(BaseModel):
    """Body of `POST /api/order-status`."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    order_id: str | None = None


class PaymentStatusQuery(OrderStatusQuery):
    """Body of `POST /api/payment-status`; `payment_id` narrows to one payment."""

    payment_id: str | None = None


class WebhookNotification(BaseModel):
    """Fields the relay reads from a gateway notification.

    No type enforcement: whatever the gateway sends is kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    order_id: Any = None
    order_status: Any = None
    order_amount: Any = None
    payment_id: Any = None
    payment_status: Any = None

    @classmethod
    def from_payload(cls, payload: Any) -> "WebhookNotification":
        """Read flat keys, falling back to the nested `data.order` / `data.payment` layout."""

        if not isinstance(payload, dict):
            return cls()
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        order = data.get("order") if isinstance(data.get("order"), dict) else {}
        payment = data.get("payment") if isinstance(data.get("payment"), dict) else {}

        fields = dict(payload)
        fields.setdefault("order_id", order.get("order_id"))
        fields.setdefault("order_status", order.get("order_status"))
        fields.setdefault("order_amount", order.get("order_amount"))
        fields.setdefault("payment_id", payment.get("cf_payment_id", payment.get("payment_id")))
        fields.setdefault("payment_status", payment.get("payment_status"))
        return cls.model_validate(fields)
