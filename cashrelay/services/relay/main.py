"""HTTP surface of the Cashfree relay.

Each route validates its input, makes one call to Cashfree through
`RelayService`, and answers with the `{success, data|message}` envelope.
Settings are read once in `create_app()` and reach handlers through
dependencies.
"""

from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

import httpx
import uvicorn
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cashrelay.common.config import RelaySettings
from cashrelay.common.errors import RelayError
from cashrelay.common.logging import configure_logging, logger, request_id_ctx
from cashrelay.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
)
from cashrelay.common.startup import log_startup_config
from cashrelay.common.tracing import setup_tracing
from cashrelay.services.relay.client import CashfreeClient
from cashrelay.services.relay.schemas import (
    OrderStatusQuery,
    PaymentRequest,
    PaymentStatusQuery,
    WebhookNotification,
)
from cashrelay.services.relay.service import RelayService


UNMATCHED_ROUTE = "<unmatched>"

STARTUP_KEYS = [
    "port",
    "cashfree_environment",
    "cashfree_api_version",
    "cashfree_app_id",
    "cashfree_secret_key",
    "upstream_timeout_seconds",
    "cors_origins",
    "otel_exporter_otlp_endpoint",
]


def get_settings(request: Request) -> RelaySettings:
    return request.app.state.settings


def get_service(request: Request) -> RelayService:
    return request.app.state.relay


def require_credentials(relay: RelayService = Depends(get_service)) -> None:
    """Route dependency: reject before the body is read when credentials are unset."""

    relay.require_credentials()


async def read_json(request: Request):
    """Return the decoded JSON body, treating an empty body as `{}`."""

    body = await request.body()
    return await request.json() if body else {}


async def parse_body(request: Request, model: type[BaseModel]):
    """Validate the request body against `model`, reporting problems as `RequestValidationError`."""

    try:
        payload = await read_json(request)
    except ValueError as exc:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": f"Invalid JSON: {exc}", "input": None}]
        ) from exc
    try:
        return model.model_validate(payload)
    except ModelValidationError as exc:
        raise RequestValidationError(
            [{**err, "loc": ("body", *err["loc"])} for err in exc.errors(include_url=False, include_context=False)]
        ) from exc


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Convert a handler error into the uniform failure envelope."""

    logger.warning(
        "relay error path=%s kind=%s status=%s message=%s",
        request.url.path,
        type(exc).__name__,
        exc.status_code,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 with per-field detail."""

    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning("invalid request body path=%s errors=%s", request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request body", "errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error path=%s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


def create_app(
    settings: RelaySettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the relay app around one immutable settings value.

    `transport` replaces the network transport of the Cashfree client, which
    lets tests point the relay at an in-process stub.
    """

    settings = settings or RelaySettings()
    configure_logging(settings)
    log_startup_config(settings, STARTUP_KEYS)

    app = FastAPI(title="Cashfree Payment Relay")
    app.state.settings = settings
    app.state.relay = RelayService(settings, CashfreeClient(settings, transport=transport))

    setup_tracing(settings, app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        """Tag logs with a request id and record request count and latency."""

        request_id = request.headers.get("x-request-id") or str(uuid4())
        request_id_ctx.set(request_id)
        start = perf_counter()
        route = UNMATCHED_ROUTE
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            response.headers["x-request-id"] = request_id
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    @app.get("/")
    def root(current: RelaySettings = Depends(get_settings)):
        """Service heartbeat with environment and credential presence."""

        return {
            "status": "Backend running",
            "timestamp": _now_iso(),
            "environment": current.cashfree_environment,
            "hasCredentials": current.has_credentials,
        }

    @app.get("/api/health")
    def health(current: RelaySettings = Depends(get_settings)):
        """Liveness check endpoint."""

        return {
            "status": "OK",
            "service": "Cashfree Payment Backend",
            "timestamp": _now_iso(),
            "environment": current.cashfree_environment,
            "hasCredentials": current.has_credentials,
        }

    @app.post("/api/payment", dependencies=[Depends(require_credentials)])
    async def create_payment(request: Request, relay: RelayService = Depends(get_service)):
        """Create a Cashfree order and return its payment session."""

        return await relay.create_payment(await parse_body(request, PaymentRequest))

    @app.post("/api/order-status", dependencies=[Depends(require_credentials)])
    async def order_status(request: Request, relay: RelayService = Depends(get_service)):
        return await relay.order_status(await parse_body(request, OrderStatusQuery))

    @app.post("/api/payment-status", dependencies=[Depends(require_credentials)])
    async def payment_status(request: Request, relay: RelayService = Depends(get_service)):
        return await relay.payment_status(await parse_body(request, PaymentStatusQuery))

    @app.post("/api/webhook")
    async def webhook(request: Request, relay: RelayService = Depends(get_service)):
        """Acknowledge a Cashfree notification.

        The sender is not signature-verified. Any status value is accepted so
        the gateway never retries because of relay-side classification.
        """

        try:
            payload = await read_json(request)
            return relay.handle_webhook(WebhookNotification.from_payload(payload))
        except Exception as exc:
            logger.exception("webhook processing failed: %s", exc)
            return JSONResponse(
                status_code=500,
                content={"success": False, "message": "Webhook processing failed"},
            )

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    return app


def run() -> None:
    """Console entrypoint: serve the relay with uvicorn."""

    settings = RelaySettings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
