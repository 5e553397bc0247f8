import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from .custom_logging import setup_logging


def init_monitoring(settings: Any):
    """
    Unified initialization for logging and tracing.

    Args:
        settings: Settings object providing environment, log_level,
            json_logs and enable_tracing.
    """
    # 1. Logging
    if settings.environment == "production":
        log_level = getattr(logging, settings.log_level)
    else:
        log_level = logging.DEBUG
    setup_logging(level=log_level, json_logs=settings.json_logs)
    logger = logging.getLogger("qr-recovery.init")

    # 2. OpenTelemetry
    if not settings.enable_tracing:
        logger.info("Tracing disabled, spans are no-ops")
        return
    if not isinstance(trace.get_tracer_provider(), TracerProvider):
        tracer_provider = TracerProvider()
        trace.set_tracer_provider(tracer_provider)
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("OpenTelemetry SDK initialized with ConsoleSpanExporter")
