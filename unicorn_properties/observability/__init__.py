"""
Observability for Unicorn Properties.

Logging:
    - configure_logging(): Configure loguru-based logging
    - configure_logging_from_env(): Configure from UNICORN_LOG_* settings
    - get_logger(): Get a logger instance
    - bind_property_context(): Bind property context to logger
    - handler_logging_context(): Context manager for invocation logging
    - property_logging_context(): Context manager for per-property logging

Tracing (requires `pip install unicorn-properties[tracing]`):
    - TracingConfig: Configuration dataclass for tracing
    - configure_tracing(): Configure OpenTelemetry tracing
    - is_tracing_enabled(): Check if tracing is enabled
    - trace_handler(): Context manager for invocation spans
    - add_span_event(): Add event to current span
    - set_span_attribute(): Set attribute on current span
"""

from unicorn_properties.observability.logging import (
    bind_property_context,
    configure_logging,
    configure_logging_from_env,
    get_logger,
    handler_logging_context,
    property_logging_context,
)
from unicorn_properties.observability.tracing import (
    TracingConfig,
    add_span_event,
    configure_tracing,
    extract_trace_context,
    is_tracing_enabled,
    set_span_attribute,
    trace_handler,
)

__all__ = [
    # Logging
    "configure_logging",
    "configure_logging_from_env",
    "get_logger",
    "bind_property_context",
    "handler_logging_context",
    "property_logging_context",
    # Tracing
    "TracingConfig",
    "configure_tracing",
    "is_tracing_enabled",
    "trace_handler",
    "add_span_event",
    "set_span_attribute",
    "extract_trace_context",
]
