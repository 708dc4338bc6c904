"""
Monitoring & Observability Layer

Structured logging with request/session correlation and in-process
Prometheus-compatible metrics for the Hue gateway.
"""

# Logging
from .logging import (
    JSONFormatter,
    ContextFilter,
    StructuredLogger,
    configure_logging,
    configure_from_preset,
    get_logger,
    set_request_context,
    clear_request_context,
    get_request_id,
    get_session_id,
    LOGGING_PRESETS,
)

# Metrics
from .metrics import (
    MetricType,
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    get_registry,
    counter,
    gauge,
    histogram,
    setup_standard_metrics,
)

__all__ = [
    # Logging
    'JSONFormatter',
    'ContextFilter',
    'StructuredLogger',
    'configure_logging',
    'configure_from_preset',
    'get_logger',
    'set_request_context',
    'clear_request_context',
    'get_request_id',
    'get_session_id',
    'LOGGING_PRESETS',

    # Metrics
    'MetricType',
    'Counter',
    'Gauge',
    'Histogram',
    'MetricsRegistry',
    'get_registry',
    'counter',
    'gauge',
    'histogram',
    'setup_standard_metrics',
]
