from __future__ import annotations

import os

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Tracer

from apps.feedback_api.logger import get_logger

logger = get_logger(__name__)

_providers: tuple[TracerProvider, MeterProvider] | None = None


def setup_observability(*, environment: str, version: str) -> None:
    """Registra providers de trazas y métricas para el proceso.

    Con OTEL_EXPORTER_OTLP_ENDPOINT exporta por OTLP/gRPC; sin él los spans y
    contadores se registran pero no salen del proceso (tests/local).

    Idempotente: los providers globales de OTel solo se pueden fijar una vez.
    """
    global _providers
    if _providers is not None:
        return

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    resource = Resource.create(
        {
            "service.name": os.getenv("OTEL_SERVICE_NAME", "feedback-api"),
            "service.version": version,
            "deployment.environment": environment,
        }
    )

    tracer_provider = TracerProvider(resource=resource)
    readers = []
    if endpoint:
        tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        readers.append(PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=endpoint), export_interval_millis=10_000))
    meter_provider = MeterProvider(resource=resource, metric_readers=readers)

    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(meter_provider)
    _providers = (tracer_provider, meter_provider)

    logger.info("observability_configured", otlp_endpoint=endpoint or None)


def shutdown_observability() -> None:
    """Vacía spans/métricas pendientes (apagado ordenado)."""
    if _providers is None:
        return
    tracer_provider, meter_provider = _providers
    tracer_provider.force_flush()
    meter_provider.force_flush()


def get_tracer(name: str = "apps.feedback_api") -> Tracer:
    return trace.get_tracer(name)


def get_meter(name: str = "apps.feedback_api"):
    return metrics.get_meter(name)
