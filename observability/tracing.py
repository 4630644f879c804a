"""
OpenTelemetry distributed tracing integration.

Wraps store operations and HTTP requests in spans so a slow or failing
backend shows up next to the request that hit it.
Configure via environment variables:
- OTEL_ENABLED: "true" to enable (default: false)
- OTEL_SERVICE_NAME: Service name for traces (default: counting-service)
- OTEL_EXPORTER_OTLP_ENDPOINT: OTLP collector endpoint (default: http://localhost:4317)
"""

from __future__ import annotations

import functools
import logging
import os
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Tracing is an optional extra; without it every helper below is a no-op.
OTEL_AVAILABLE = False
try:
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    OTEL_AVAILABLE = True
except ImportError:
    pass

_tracer: Optional[Any] = None
_initialized = False


def is_tracing_enabled() -> bool:
    """Check if tracing is enabled."""
    return os.getenv("OTEL_ENABLED", "false").lower() == "true" and OTEL_AVAILABLE


def init_tracing(service_name: Optional[str] = None, endpoint: Optional[str] = None) -> bool:
    """
    Initialize OpenTelemetry tracing.

    Safe to call more than once. Returns True if tracing is active.
    """
    global _tracer, _initialized

    if _initialized:
        return True

    if not is_tracing_enabled():
        logger.debug("OpenTelemetry tracing is disabled")
        return False

    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        svc_name = service_name or os.getenv("OTEL_SERVICE_NAME", "counting-service")
        otlp_endpoint = endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")

        resource = Resource(
            attributes={
                "service.name": svc_name,
                "deployment.environment": os.getenv("DEPLOYMENT_ENV", "development"),
            }
        )
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
        trace.set_tracer_provider(provider)

        _tracer = trace.get_tracer(svc_name)
        _initialized = True

        logger.info(f"OpenTelemetry tracing initialized: service={svc_name}, endpoint={otlp_endpoint}")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize OpenTelemetry tracing: {e}")
        return False


def get_tracer() -> Optional[Any]:
    """Get the global tracer instance, or None when tracing is off."""
    if not _initialized:
        init_tracing()
    return _tracer


def _set_attributes(span: Any, attributes: Optional[Dict[str, Any]]) -> None:
    for key, value in (attributes or {}).items():
        if value is not None:
            span.set_attribute(key, value if isinstance(value, (bool, int, float)) else str(value))


@contextmanager
def trace_span(name: str, attributes: Optional[Dict[str, Any]] = None, record_exception: bool = True):
    """
    Context manager for creating trace spans.

    Usage:
        with trace_span("store.incr", {"store.backend": "redis"}):
            ...

    Exceptions raised in the body are recorded on the span and re-raised.
    If tracing is disabled, this yields None and does nothing else.
    """
    tracer = get_tracer()

    if tracer is None:
        yield None
        return

    with tracer.start_as_current_span(name, record_exception=False, set_status_on_exception=False) as span:
        _set_attributes(span, attributes)
        try:
            yield span
        except Exception as e:
            if record_exception:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def traced(name: Optional[str] = None, attributes: Optional[Dict[str, Any]] = None):
    """
    Decorator for tracing function or method execution.

    Usage:
        @traced("store.incr")
        def incr(self): ...
    """

    def decorator(func: Callable) -> Callable:
        span_name = name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            span_attrs = dict(attributes or {})
            span_attrs["code.function"] = func.__qualname__
            with trace_span(span_name, span_attrs):
                return func(*args, **kwargs)

        return wrapper

    return decorator


def add_span_attribute(key: str, value: Any) -> None:
    """Add an attribute to the current span."""
    if not OTEL_AVAILABLE or value is None:
        return

    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value if isinstance(value, (bool, int, float)) else str(value))


def setup_fastapi_tracing(app) -> None:
    """
    Set up OpenTelemetry instrumentation for FastAPI.

    Call this after creating your FastAPI app.
    """
    if not is_tracing_enabled():
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        init_tracing()
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI OpenTelemetry instrumentation enabled")

    except ImportError:
        logger.warning("opentelemetry-instrumentation-fastapi not installed")
