# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""OpenTelemetry instruments for detection and haptic command traffic."""

import logging
import os
from typing import Optional

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes

logger = logging.getLogger(__name__)

METER_NAME = "fingertip-overlay"
EXPORT_INTERVAL_MS = 5000

_meter: Optional[metrics.Meter] = None


def _otlp_readers() -> list[MetricReader]:
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT") or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT"
    )
    if not endpoint:
        return []
    try:
        exporter = OTLPMetricExporter(endpoint=endpoint)
    except Exception as err:  # pragma: no cover - exporter misconfiguration
        logger.warning(
            "OTLP metrics exporter setup failed; metrics stay local",
            extra={"error": str(err)},
        )
        return []
    return [PeriodicExportingMetricReader(exporter, export_interval_millis=EXPORT_INTERVAL_MS)]


def configure_metrics(
    service_name: str,
    service_version: str,
    environment: Optional[str] = None,
) -> metrics.Meter:
    """Install a MeterProvider for this process and return the overlay meter.

    Metrics are exported over OTLP HTTP only when an
    ``OTEL_EXPORTER_OTLP[_METRICS]_ENDPOINT`` is set. Calling again returns
    the meter from the first call.

    Instruments created before this call are bound to the API's proxy
    provider and start recording once the provider is installed.
    """
    global _meter
    if _meter is not None:
        return _meter

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: service_name,
            ResourceAttributes.SERVICE_VERSION: service_version,
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: environment
            or os.getenv("ENVIRONMENT", "development"),
        }
    )
    metrics.set_meter_provider(
        MeterProvider(resource=resource, metric_readers=_otlp_readers())
    )
    _meter = metrics.get_meter(METER_NAME, service_version)
    return _meter


def get_meter() -> metrics.Meter:
    """Return the configured meter, or a proxy meter before configuration."""
    return _meter if _meter is not None else metrics.get_meter(METER_NAME)


def get_detection_duration() -> metrics.Histogram:
    """Histogram of end-to-end detect() time in milliseconds."""
    return get_meter().create_histogram(
        "detection_duration",
        unit="ms",
        description="Preprocess, inference and postprocess time per frame",
    )


def get_detections_count() -> metrics.Counter:
    return get_meter().create_counter(
        "detections_total",
        description="Detections returned after filtering and NMS",
    )


def get_haptic_commands_count() -> metrics.Counter:
    """Counter of haptic frames written, labelled by ``command``."""
    return get_meter().create_counter(
        "haptic_commands_total",
        description="Haptic command frames written to the device",
    )


def get_haptic_failures_count() -> metrics.Counter:
    return get_meter().create_counter(
        "haptic_command_failures_total",
        description="Haptic command writes that failed",
    )
