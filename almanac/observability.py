"""
Almanac logging and tracing.

Logging goes through the standard library; ``configure_logging`` installs a
single stream handler on the ``almanac`` logger.

Tracing (OpenTelemetry) is enabled via environment variables:
- ALMANAC_OTEL_ENABLED=true
- ALMANAC_OTEL_SERVICE_NAME=almanac-api
- ALMANAC_OTEL_EXPORTER=console|otlp
- ALMANAC_OTEL_OTLP_ENDPOINT=https://... (only if exporter=otlp)
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from . import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger("almanac")
    root.setLevel(level or config.get_log_level())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root


def configure_observability() -> bool:
    if not config.otel_enabled():
        return False

    service_name = os.environ.get("ALMANAC_OTEL_SERVICE_NAME", "almanac-api")
    exporter = os.environ.get("ALMANAC_OTEL_EXPORTER", "console").lower()

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    except ImportError:
        logging.getLogger(__name__).warning("ALMANAC_OTEL_ENABLED set but opentelemetry-sdk is not installed")
        return False

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    if exporter == "otlp":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        endpoint = os.environ.get("ALMANAC_OTEL_OTLP_ENDPOINT")
        span_exporter = OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()
        provider.add_span_processor(BatchSpanProcessor(span_exporter))
    else:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    return True


def instrument_app(app) -> bool:
    if not config.otel_enabled():
        return False
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.logging import LoggingInstrumentor
    except ImportError:
        return False

    LoggingInstrumentor().instrument(set_logging_format=True)
    FastAPIInstrumentor.instrument_app(app)
    return True
