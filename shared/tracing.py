"""OpenTelemetry tracing helpers.

Spans from the whitelist store and the hook entry points nest under the
FastAPI request span; httpx and redis calls to collaborators nest under them.
"""

from typing import Optional
import os
import functools

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.trace import Status, StatusCode

_instrumented = False


def configure_tracing(service_name: str,
                      otel_exporter: Optional[str] = None,
                      enable_console: bool = False,
                      environment: str = "local") -> None:
    """Install a tracer provider exporting over OTLP/gRPC.

    Exporter headers and TLS settings come from the standard
    ``OTEL_EXPORTER_OTLP_*`` variables, which the exporter reads itself.
    """
    global _instrumented

    provider = TracerProvider(resource=Resource.create({
        "service.name": service_name,
        "service.namespace": "licensing-access",
        "service.version": "1.0.0",
        "service.instance.id": os.getenv("HOSTNAME", "unknown"),
        "deployment.environment": environment,
    }))

    exporter_kwargs = {"endpoint": otel_exporter} if otel_exporter else {}
    if otel_exporter and otel_exporter.startswith("http://"):
        exporter_kwargs["insecure"] = True
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_kwargs)))
    if enable_console:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)

    if not _instrumented:
        FastAPIInstrumentor().instrument()
        HTTPXClientInstrumentor().instrument()
        RedisInstrumentor().instrument()
        _instrumented = True


def get_tracer(name: str):
    return trace.get_tracer(name)


def trace_function(operation_name: Optional[str] = None, **attributes):
    """Run a coroutine function inside a span.

    Rejections raised as LicensingAccessException carry their error code on
    the span so denied mints and conflicting mutations can be told apart.
    """

    def decorator(func):
        name = operation_name or f"{func.__module__}.{func.__qualname__}"
        tracer = get_tracer(func.__module__)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with tracer.start_as_current_span(name, attributes=attributes or None,
                                              record_exception=False) as span:
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    code = getattr(exc, "code", None)
                    if code:
                        span.set_attribute("licensing.error_code", code)
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise

        return wrapper

    return decorator


def add_span_attributes(**attributes):
    """Add attributes to the current span, skipping unset values."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        for key, value in attributes.items():
            if value is not None:
                current_span.set_attribute(key, value)


def add_span_event(name: str, **attributes):
    """Add an event to the current span."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        current_span.add_event(name, attributes)
