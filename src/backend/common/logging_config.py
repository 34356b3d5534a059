# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Console and OpenTelemetry logging for the overlay tools."""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional

from opentelemetry import _logs, trace
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes

_configured = False

# Attributes every LogRecord carries; anything else came in via ``extra``
_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

# BLE scans and model downloads log every packet/chunk at INFO
NOISY_LOGGERS: tuple[str, ...] = ("bleak", "httpx", "httpcore")


class _ServiceFormatter(logging.Formatter):
    """Collects service, trace and ``extra`` context for a record."""

    def __init__(self, service_name: str, environment: str) -> None:
        super().__init__()
        self.service_name = service_name
        self.environment = environment

    def _fields(self, record: logging.LogRecord) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "service": self.service_name,
            "environment": self.environment,
        }
        span = trace.get_current_span().get_span_context()
        if span.is_valid:
            fields["trace_id"] = format(span.trace_id, "032x")
            fields["span_id"] = format(span.span_id, "016x")
        fields.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key not in fields
        )
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)
        return fields

    @staticmethod
    def _iso_time(record: logging.LogRecord) -> str:
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()


class JsonFormatter(_ServiceFormatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self._iso_time(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in self._fields(record).items():
            payload.setdefault(key, value)
        return json.dumps(payload, ensure_ascii=True, default=str)


class PrettyFormatter(_ServiceFormatter):
    """``<time> <LEVEL> [logger] message key=value ...`` for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        fields = self._fields(record)
        fields["env"] = fields.pop("environment")
        context = " ".join(f"{key}={value}" for key, value in fields.items())
        return (
            f"{self._iso_time(record)} {record.levelname:<7} [{record.name}] "
            f"{record.getMessage()} {context}"
        )


def _logger_provider(resource: Resource) -> LoggerProvider:
    provider = LoggerProvider(resource=resource)
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT") or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT"
    )
    if endpoint:
        try:
            provider.add_log_record_processor(
                BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint))
            )
        except Exception as err:  # pragma: no cover - keep console logging
            logging.getLogger(__name__).warning(
                "OTLP exporter setup failed; console logging only",
                extra={"error": str(err)},
            )
    return provider


def configure_logging(
    service_name: str,
    service_version: Optional[str] = None,
    environment: Optional[str] = None,
) -> None:
    """Route the root logger to the console and OpenTelemetry.

    ``LOG_LEVEL`` sets the level (INFO), ``LOG_FORMAT`` picks ``json`` or
    ``pretty`` console output, ``ENVIRONMENT`` tags every record. Records are
    shipped over OTLP HTTP only when an ``OTEL_EXPORTER_OTLP[_LOGS]_ENDPOINT``
    is set. Below DEBUG, bleak and httpx are limited to warnings. Only the
    first call has an effect.
    """
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    env = environment if environment is not None else os.getenv("ENVIRONMENT", "development")

    provider = _logger_provider(
        Resource.create(
            {
                ResourceAttributes.SERVICE_NAME: service_name,
                ResourceAttributes.SERVICE_VERSION: service_version or "unknown",
                ResourceAttributes.DEPLOYMENT_ENVIRONMENT: env,
            }
        )
    )
    _logs.set_logger_provider(provider)

    formatter_cls = (
        PrettyFormatter if os.getenv("LOG_FORMAT", "json").lower() == "pretty" else JsonFormatter
    )
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter_cls(service_name, env))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(console)
    root.addHandler(LoggingHandler(level=level, logger_provider=provider))

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
