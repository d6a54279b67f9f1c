"""Tests for `POST /api/payment`."""

import re

import httpx
import pytest


VALID_REQUEST = {
    "order_amount": 1499.5,
    "customer_id": "cust-42",
    "customer_phone": "9876543210",
}

SESSION_BODY = {
    "cf_order_id": "2149460581",
    "order_id": "ORDER_1",
    "order_status": "ACTIVE",
    "payment_session_id": "session_abc123",
}


@pytest.mark.parametrize("missing", ["order_amount", "customer_id", "customer_phone"])
def test_missing_required_field_is_rejected(client, upstream, missing):
    """Each required field is checked before anything is sent upstream."""

    body = {k: v for k, v in VALID_REQUEST.items() if k != missing}
    resp = client.post("/api/payment", json=body)

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Missing required fields"}
    assert upstream.requests == []


def test_non_positive_amount_is_rejected(client, upstream):
    resp = client.post("/api/payment", json={**VALID_REQUEST, "order_amount": -10})

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert upstream.requests == []


def test_wrong_type_reports_invalid_body(client):
    resp = client.post("/api/payment", json={**VALID_REQUEST, "order_amount": "lots"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["errors"][0]["field"] == "body.order_amount"


def test_missing_credentials_is_config_error(unconfigured_client, upstream):
    resp = unconfigured_client.post("/api/payment", json=VALID_REQUEST)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Cashfree credentials not configured"}
    assert upstream.requests == []


def test_success_wraps_upstream_body_unchanged(client, upstream):
    upstream.respond(200, SESSION_BODY)

    resp = client.post("/api/payment", json=VALID_REQUEST)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": SESSION_BODY}


def test_upstream_request_shape(client, upstream):
    """Order payload, headers and sandbox URL sent to Cashfree."""

    upstream.respond(200, SESSION_BODY)
    client.post("/api/payment", json={**VALID_REQUEST, "customer_phone": 9876543210})

    request = upstream.last
    assert request.method == "POST"
    assert str(request.url) == "https://sandbox.cashfree.com/pg/orders"
    assert request.headers["x-api-version"] == "2023-08-01"
    assert request.headers["x-client-id"] == "test-app-id"
    assert request.headers["x-client-secret"] == "test-secret"
    assert request.headers["content-type"] == "application/json"

    payload = upstream.last_json()
    assert re.fullmatch(r"ORDER_\d{13}_[0-9a-f]{12}", payload["order_id"])
    assert payload["order_amount"] == 1499.5
    assert payload["order_currency"] == "INR"
    assert payload["customer_details"] == {
        "customer_id": "cust-42",
        "customer_name": "Customer",
        "customer_email": "test@example.com",
        "customer_phone": "9876543210",
    }
    assert payload["order_meta"]["return_url"].endswith(f"?order_id={payload['order_id']}")
    assert payload["order_note"] == "Luxe & Lush Jewelry Purchase"
    assert payload["order_tags"] == {"source": "website", "platform": "web"}


def test_optional_fields_are_forwarded(client, upstream):
    upstream.respond(200, SESSION_BODY)
    client.post(
        "/api/payment",
        json={
            **VALID_REQUEST,
            "customer_name": "Asha",
            "customer_email": "asha@example.in",
            "return_url": "https://shop.example/return",
        },
    )

    payload = upstream.last_json()
    assert payload["customer_details"]["customer_name"] == "Asha"
    assert payload["customer_details"]["customer_email"] == "asha@example.in"
    assert payload["order_meta"] == {"return_url": "https://shop.example/return"}


def test_production_environment_uses_production_url(client_factory, upstream):
    upstream.respond(200, SESSION_BODY)
    client = client_factory(cashfree_environment="PRODUCTION")

    client.post("/api/payment", json=VALID_REQUEST)

    assert str(upstream.last.url) == "https://api.cashfree.com/pg/orders"


def test_missing_session_id_is_contract_violation(client, upstream):
    """A 2xx without payment_session_id returns the raw body for diagnostics."""

    upstream.respond(200, {"order_status": "ACTIVE"})

    resp = client.post("/api/payment", json=VALID_REQUEST)

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "message": "No payment_session_id received from Cashfree.",
        "cashfreeResponse": {"order_status": "ACTIVE"},
    }


def test_upstream_error_message_is_relayed(client, upstream):
    upstream.respond(400, {"message": "order_amount : invalid value", "code": "order_amount_invalid"})

    resp = client.post("/api/payment", json=VALID_REQUEST)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "order_amount : invalid value"}


def test_upstream_error_without_message_uses_fallback(client, upstream):
    upstream.respond(502, "Bad Gateway")

    resp = client.post("/api/payment", json=VALID_REQUEST)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Cashfree responded with HTTP 502"}


def test_transport_failure_is_upstream_error(client, upstream):
    upstream.raise_exc = httpx.ConnectError("connection refused")

    resp = client.post("/api/payment", json=VALID_REQUEST)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "connection refused"}


def test_request_id_is_echoed(client, upstream):
    upstream.respond(200, SESSION_BODY)

    resp = client.post("/api/payment", json=VALID_REQUEST, headers={"x-request-id": "req-1"})

    assert resp.headers["x-request-id"] == "req-1"


@pytest.mark.parametrize("amount", [b"NaN", b"Infinity", b"-Infinity"])
def test_non_finite_amount_is_rejected(client, upstream, amount):
    """Non-finite amounts never reach order creation."""

    body = b'{"order_amount": ' + amount + b', "customer_id": "cust-42", "customer_phone": "9876543210"}'
    resp = client.post("/api/payment", content=body, headers={"content-type": "application/json"})

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["errors"][0]["field"] == "body.order_amount"
    assert upstream.requests == []


def test_boolean_amount_is_rejected(client, upstream):
    resp = client.post("/api/payment", json={**VALID_REQUEST, "order_amount": True})

    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "body.order_amount"
    assert upstream.requests == []


def test_unparseable_body_is_invalid_request(client, upstream):
    resp = client.post("/api/payment", content=b"{oops", headers={"content-type": "application/json"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid request body"
    assert upstream.requests == []


@pytest.mark.parametrize(
    "kwargs",
    [
        {"json": {**VALID_REQUEST, "order_amount": "lots"}},
        {"json": ["not", "an", "object"]},
        {"content": b"{oops", "headers": {"content-type": "application/json"}},
        {},
    ],
)
def test_missing_credentials_wins_over_malformed_body(unconfigured_client, upstream, kwargs):
    """Without credentials every body, well-formed or not, gets the config error."""

    resp = unconfigured_client.post("/api/payment", **kwargs)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Cashfree credentials not configured"}
    assert upstream.requests == []
