import logging
import structlog

# OpenTelemetry
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from prometheus_client import start_http_server

from shared.config.settings import LOG_LEVEL, METRICS_PORT, OTLP_ENDPOINT


# 1. Structlog Processor: Injects Trace/Span IDs into every log line
def add_otel_ids(logger, log_method, event_dict):
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


# 2. Configure Structlog for JSON output
def configure_logging(level: str = LOG_LEVEL):
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_otel_ids,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# 3. Configure OpenTelemetry Tracing
def configure_tracing(service_name: str, otlp_endpoint: str = OTLP_ENDPOINT):
    resource = Resource.create({SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)

    # Spans are still created without an endpoint, they just go nowhere
    if otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    # Child spans for every payment gateway / notification webhook call
    HTTPXClientInstrumentor().instrument()


# 4. Expose Prometheus Metrics
def configure_metrics(port: int = METRICS_PORT):
    # Business counters live in metrics.py; 0 leaves scraping to the host process
    if port:
        start_http_server(port)


# --- THE MASTER SETUP FUNCTION ---
def setup_observability(service_name: str):
    """
    Bootstraps Logging, Tracing and the metrics endpoint for the
    order-management core. Call this once at process start-up.
    """
    configure_logging()
    configure_tracing(service_name)
    configure_metrics()
