"""OpenTelemetry wiring plus the tracer and instruments used by the engine.

The API-level ``tracer`` and counters are safe to use whether or not
``setup_telemetry`` ran: without an installed provider they are no-ops.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes

from esop_analytics import __version__
from esop_analytics.config import AppSettings

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "esop_analytics"
METRIC_EXPORT_INTERVAL_MS = 15_000

tracer = trace.get_tracer(INSTRUMENTATION_NAME, __version__)
_meter = metrics.get_meter(INSTRUMENTATION_NAME, __version__)

rate_fallbacks = _meter.create_counter(
    "esop.rates.fallbacks",
    description="Rate lookups answered by a static fallback after every source failed",
)
rate_source_failures = _meter.create_counter(
    "esop.rates.source_failures",
    description="Individual rate source attempts that failed or returned unusable data",
)
holdings_valued = _meter.create_counter(
    "esop.holdings.valued",
    description="Holdings valued, split by whether the row stayed active",
)

_installed = False


@dataclass(frozen=True)
class OtlpOptions:
    endpoint: str | None
    insecure: bool

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "OtlpOptions":
        return cls(endpoint=settings.telemetry_otlp_endpoint, insecure=settings.telemetry_otlp_insecure)

    def kwargs(self) -> dict[str, Any]:
        options: dict[str, Any] = {"insecure": self.insecure}
        if self.endpoint:
            options["endpoint"] = self.endpoint
        return options


@contextmanager
def analytics_span(name: str, **attributes: Any) -> Iterator[trace.Span]:
    """Open a span under the engine tracer, dropping attributes that are ``None``."""

    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"esop.{key}", value)
        yield span


def setup_telemetry(app: FastAPI, settings: AppSettings) -> bool:
    """Install OTLP exporters and instrument FastAPI, httpx and logging.

    Returns whether telemetry is active after the call. Only the first
    enabled call installs anything.
    """

    global _installed  # noqa: PLW0603

    if _installed:
        return True
    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return False

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
            ResourceAttributes.SERVICE_VERSION: __version__,
            ResourceAttributes.SERVICE_NAMESPACE: "esop-analytics",
        }
    )
    options = OtlpOptions.from_settings(settings)

    tracer_provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**options.kwargs())))
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(**options.kwargs()),
        export_interval_millis=METRIC_EXPORT_INTERVAL_MS,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(meter_provider)

    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(**options.kwargs())))
    set_logger_provider(logger_provider)
    LoggingInstrumentor().instrument(set_logging_format=False)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider, meter_provider=meter_provider)
    # Rate sources and the quote oracle all go through httpx
    HTTPXClientInstrumentor().instrument()

    _installed = True
    logger.info("Telemetry exporting to %s", options.endpoint or "the default OTLP endpoint")
    return True


__all__ = [
    "OtlpOptions",
    "analytics_span",
    "holdings_valued",
    "rate_fallbacks",
    "rate_source_failures",
    "setup_telemetry",
    "tracer",
]
