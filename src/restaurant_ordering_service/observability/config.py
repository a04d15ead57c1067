"""Logging and OpenTelemetry setup."""

import logging
import os
import re
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.botocore import BotocoreInstrumentor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from pythonjsonlogger import jsonlogger

logger = logging.getLogger(__name__)

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-_\.=]+", re.IGNORECASE)


class RedactBearerTokenFilter(logging.Filter):
    """Replace bearer credentials in log messages with a placeholder."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if "bearer" in message.lower():
            record.msg = _BEARER_PATTERN.sub(r"\1[REDACTED]", message)
            record.args = None
        return True


def get_service_resource(environment: str) -> Resource:
    """Create OpenTelemetry resource with service identification.

    Args:
        environment: Deployment environment name

    Returns:
        Resource with service name and environment attributes
    """
    return Resource.create(
        {
            "service.name": os.getenv("OTEL_SERVICE_NAME", "ordering-svc"),
            "deployment.environment": environment,
        }
    )


def _otlp_endpoint() -> str:
    return os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")


def setup_tracing(resource: Resource) -> None:
    """Install a tracer provider exporting spans over OTLP/HTTP."""
    endpoint = _otlp_endpoint()
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")))
    trace.set_tracer_provider(provider)

    logger.info(f"OpenTelemetry tracing configured with endpoint: {endpoint}")


def setup_metrics(resource: Resource) -> None:
    """Install a meter provider exporting metrics over OTLP/HTTP every minute."""
    endpoint = _otlp_endpoint()
    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics"), export_interval_millis=60000
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger.info(f"OpenTelemetry metrics configured with endpoint: {endpoint}")


def setup_auto_instrumentation() -> None:
    """Instrument botocore (DynamoDB) and httpx (payment authority) calls."""
    BotocoreInstrumentor().instrument()
    HTTPXClientInstrumentor().instrument()

    logger.info("Auto-instrumentation enabled for botocore and httpx")


def setup_observability(app: Any = None, environment: str = "development") -> None:
    """Initialize tracing, metrics and auto-instrumentation.

    Exporters are skipped in the test environment, where in-process providers are
    installed instead.

    Args:
        app: Optional FastAPI application to instrument
        environment: Deployment environment name
    """
    resource = get_service_resource(environment)

    if environment == "test":
        trace.set_tracer_provider(TracerProvider(resource=resource))
        metrics.set_meter_provider(MeterProvider(resource=resource))
    else:
        setup_tracing(resource)
        setup_metrics(resource)
        setup_auto_instrumentation()

    if app is not None:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI application instrumented")

    logger.info("OpenTelemetry observability fully configured")


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_str = log_level.upper()
    level = getattr(logging, level_str, logging.INFO)

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        timestamp=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(RedactBearerTokenFilter())
    root_logger.addHandler(console_handler)

    logger.info(f"Structured JSON logging configured at {level_str} level")
