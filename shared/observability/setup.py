import logging
import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

# OpenTelemetry
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from shared.config.settings import settings

# Health probes and scrapes would drown out real traffic
UNTRACED_URLS = "health,metrics"

_tracer_provider_set = False


def add_otel_ids(logger, log_method, event_dict):
    """Structlog processor: ties a log line to the request span it was written under."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


def add_deployment(logger, log_method, event_dict):
    event_dict.setdefault("deployment", settings.SERVICE_NAME)
    return event_dict


def configure_logging():
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_deployment,
            add_otel_ids,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _component_hook(component: str):
    def hook(span, scope):
        if span and span.is_recording():
            span.set_attribute("storefront.component", component)
    return hook


def configure_tracing(app: FastAPI, component: str):
    global _tracer_provider_set
    if not settings.TRACING_ENABLED:
        return

    # One provider per process; every mounted app reports under the deployment name
    if not _tracer_provider_set:
        provider = TracerProvider(resource=Resource.create({SERVICE_NAME: settings.SERVICE_NAME}))
        trace.set_tracer_provider(provider)
        exporter = OTLPSpanExporter(endpoint=settings.OTLP_ENDPOINT, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        _tracer_provider_set = True

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=UNTRACED_URLS,
        server_request_hook=_component_hook(component),
    )


def configure_metrics(app: FastAPI):
    # HTTP latency and status counts, served next to the domain counters at /metrics
    Instrumentator(excluded_handlers=["/health", "/metrics"]).instrument(app).expose(app)


def setup_observability(app: FastAPI, component: str, expose_metrics: bool = False):
    """
    Bootstraps logging, tracing and metrics for one FastAPI app.

    Mounted sub-apps call this with their component name, which tags their
    request spans. Only the root app passes `expose_metrics`: the Prometheus
    registry is process-wide, so a single /metrics endpoint covers them all.
    """
    configure_logging()
    configure_tracing(app, component)
    if expose_metrics:
        configure_metrics(app)
    structlog.get_logger(__name__).info(
        "observability_configured", component=component, tracing=settings.TRACING_ENABLED
    )
