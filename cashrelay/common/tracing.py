"""Optional OpenTelemetry tracing for the relay app.

Tracing is switched on by setting `OTEL_EXPORTER_OTLP_ENDPOINT`; without it the
app runs uninstrumented.
"""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

from cashrelay.common.config import RelaySettings
from cashrelay.common.logging import logger


# Probe and scrape endpoints produce noise, not useful spans.
EXCLUDED_URLS = "api/health$,metrics$"


def setup_tracing(settings: RelaySettings, app: FastAPI) -> bool:
    """Register an OTLP exporter and instrument `app`; returns whether tracing is on.

    The global tracer provider can only be set once per process, so later apps
    reuse the provider that is already registered.
    """

    endpoint = settings.otel_exporter_otlp_endpoint
    if not endpoint:
        return False

    if not isinstance(trace.get_tracer_provider(), TracerProvider):
        resource = Resource.create({"service.name": settings.service_name})
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)
        logger.info("tracing enabled endpoint=%s", endpoint)

    FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)
    return True
