"""
OpenTelemetry tracing integration for Unicorn Properties.

Provides optional spans around function invocations. Tracing is disabled by
default and enabled with UNICORN_TRACING_ENABLED=true.

This module handles the case where OpenTelemetry is not installed: tracing
is then disabled and a warning is logged.
"""

from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from unicorn_properties import __version__

if TYPE_CHECKING:
    from unicorn_properties.config import UnicornConfig

_tracing_enabled: bool = False
_tracer: Any = None
_current_span: ContextVar[Any] = ContextVar("current_span", default=None)


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing.

    Attributes:
        enabled: Whether tracing is enabled.
        service_name: Service name for traces.
        endpoint: OTLP endpoint URL.
        exporter: Exporter type ("otlp" or "console").
        sample_rate: Sampling rate (0.0 to 1.0).
    """

    enabled: bool = False
    service_name: str = "unicorn-properties"
    endpoint: str | None = None
    exporter: str = "otlp"
    sample_rate: float = 1.0

    @classmethod
    def from_config(cls, config: "UnicornConfig") -> "TracingConfig":
        return cls(
            enabled=config.tracing_enabled,
            service_name=config.service_name,
            endpoint=config.tracing_endpoint,
            exporter=config.tracing_exporter,
            sample_rate=config.tracing_sample_rate,
        )


def configure_tracing(config: TracingConfig) -> None:
    """Configure and initialize OpenTelemetry tracing.

    If OpenTelemetry packages are not installed, tracing is disabled and a
    warning is logged.

    Note:
        Install tracing dependencies with: pip install unicorn-properties[tracing]
    """
    global _tracing_enabled, _tracer

    if not config.enabled:
        _tracing_enabled = False
        _tracer = None
        logger.debug("Tracing is disabled")
        return

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

        resource = Resource.create(
            {
                "service.name": config.service_name,
                "service.version": __version__,
            }
        )
        provider = TracerProvider(resource=resource, sampler=TraceIdRatioBased(config.sample_rate))
        trace.set_tracer_provider(provider)

        if config.endpoint or config.exporter == "console":
            _configure_exporter(provider, config)

        _tracer = trace.get_tracer("unicorn_properties", __version__)
        _tracing_enabled = True

        logger.info(
            f"Tracing configured: service={config.service_name}, "
            f"endpoint={config.endpoint}, sample_rate={config.sample_rate}"
        )

    except ImportError as e:
        logger.warning(
            f"OpenTelemetry not installed, tracing disabled: {e}. "
            "Install with: pip install unicorn-properties[tracing]"
        )
        _tracing_enabled = False
        _tracer = None


def _configure_exporter(provider: Any, config: TracingConfig) -> None:
    if config.exporter == "otlp":
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                OTLPSpanExporter,
            )
            from opentelemetry.sdk.trace.export import BatchSpanProcessor

            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=config.endpoint))
            )
            logger.debug(f"OTLP exporter configured for {config.endpoint}")
        except ImportError:
            logger.warning(
                "OTLP exporter not installed: pip install opentelemetry-exporter-otlp"
            )

    elif config.exporter == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        logger.debug("Console exporter configured")

    else:
        logger.warning(f"Unknown trace exporter: {config.exporter}")


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled."""
    return _tracing_enabled


@contextmanager
def trace_handler(
    function_name: str,
    headers: dict[str, str] | None = None,
    **attributes: Any,
) -> Generator[Any, None, None]:
    """Context manager to create a span for one function invocation.

    If ``headers`` carry a W3C trace context (API Gateway requests), the span
    continues that trace. If tracing is disabled, yields None.

    Args:
        function_name: Name of the function being invoked.
        headers: Optional inbound request headers.
        **attributes: Additional span attributes.

    Example:
        with trace_handler("request_approval", property_id=property_id):
            ...
    """
    if not _tracing_enabled or _tracer is None:
        yield None
        return

    from opentelemetry import trace
    from opentelemetry.trace import Status, StatusCode

    parent = extract_trace_context(headers) if headers else None

    with _tracer.start_as_current_span(
        f"handler:{function_name}",
        context=parent,
        kind=trace.SpanKind.SERVER,
    ) as span:
        span.set_attribute("unicorn.function_name", function_name)
        for key, value in attributes.items():
            span.set_attribute(f"unicorn.{key}", str(value))

        token = _current_span.set(span)
        try:
            yield span
            span.set_status(Status(StatusCode.OK))
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            span.set_attribute("unicorn.error_type", type(e).__name__)
            raise
        finally:
            _current_span.reset(token)


def add_span_event(name: str, attributes: dict[str, Any] | None = None) -> None:
    """Add an event to the current span.

    Example:
        add_span_event("event_published", {"detail_type": "ContractStatusChanged"})
    """
    if not _tracing_enabled:
        return

    span = _current_span.get()
    if span is not None:
        span.add_event(name, attributes=attributes or {})


def set_span_attribute(key: str, value: Any) -> None:
    """Set an attribute (prefixed with "unicorn.") on the current span."""
    if not _tracing_enabled:
        return

    span = _current_span.get()
    if span is not None:
        span.set_attribute(f"unicorn.{key}", str(value))


def extract_trace_context(headers: dict[str, str]) -> Any:
    """Extract trace context from incoming headers, or None if tracing is disabled."""
    if not _tracing_enabled:
        return None

    from opentelemetry.propagate import extract

    return extract(headers)
