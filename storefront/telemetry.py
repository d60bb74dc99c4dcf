"""
Logging and tracing setup.

Logs are JSON lines carrying the active trace and span ids, so a log line
can be matched to the checkout span that produced it. Tracing goes through
the OpenTelemetry API; the rest of the package only ever asks for a tracer
and never touches the SDK directly.
"""

import logging
import sys
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from pythonjsonlogger.json import JsonFormatter

from . import __version__

logger = logging.getLogger(__name__)

_tracing_configured = False
_log_handler: Optional[logging.Handler] = None


class TraceContextJsonFormatter(JsonFormatter):
    """JSON formatter that adds trace_id/span_id when a span is active."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            log_record["trace_id"] = format(ctx.trace_id, "032x")
            log_record["span_id"] = format(ctx.span_id, "016x")

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["timestamp"] = self.formatTime(record, self.datefmt)


def setup_logging(level: str = "INFO", service_name: str = "storefront") -> None:
    """
    Route the root logger to stdout as JSON.

    Safe to call more than once; the handler installed by a previous call
    is replaced, other handlers on the root logger are left alone.
    """
    global _log_handler

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        TraceContextJsonFormatter(
            "%(message)s",
            static_fields={"service": service_name},
        )
    )

    root = logging.getLogger()
    if _log_handler is not None:
        root.removeHandler(_log_handler)
    root.addHandler(handler)
    _log_handler = handler
    root.setLevel(level.upper())

    # uvicorn's access log duplicates what the checkout span already records
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def setup_tracing(
    service_name: str,
    sample_rate: float = 1.0,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Install the SDK tracer provider for this process.

    OpenTelemetry only accepts one global provider, so repeated calls keep
    the first one and just hand back a tracer.
    """
    global _tracing_configured

    if not _tracing_configured:
        provider = TracerProvider(
            resource=Resource(attributes={
                SERVICE_NAME: service_name,
                SERVICE_VERSION: __version__,
            }),
            sampler=TraceIdRatioBased(sample_rate),
        )
        if console_export:
            provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(provider)
        _tracing_configured = True
        logger.info(
            "Tracing configured",
            extra={"sample_rate": sample_rate, "console_export": console_export},
        )

    return get_tracer()


def get_tracer(name: Optional[str] = None) -> trace.Tracer:
    return trace.get_tracer(name or "storefront", __version__)
