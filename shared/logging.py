"""
Structured JSON logging for the Licensing Access Layer.

Every log line carries the service name, the request id and, once a
whitelist mutation has identified them, the acting caller and IP asset.
"""

import sys
import uuid
import logging
from typing import Any, Dict, Optional
from contextvars import ContextVar

import structlog
from opentelemetry import trace

_log_context: ContextVar[Dict[str, str]] = ContextVar("licensing_log_context", default={})


def _bind(**fields: Optional[str]):
    context = dict(_log_context.get())
    context.update({key: value for key, value in fields.items() if value})
    _log_context.set(context)


def _service_name_processor(service_name: str):
    def add_service_name(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict
    return add_service_name


def add_trace_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the active OpenTelemetry trace and span ids."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = f"{span_context.trace_id:032x}"
        event_dict["span_id"] = f"{span_context.span_id:016x}"
    return event_dict


def add_request_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach request-scoped fields without overriding explicit ones."""
    for key, value in _log_context.get().items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structlog to emit JSON through the standard library."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _service_name_processor(service_name),
            add_trace_context,
            add_request_context,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def set_request_id(request_id: Optional[str] = None) -> str:
    """Start a request scope; generates an id when the client sent none."""
    request_id = request_id or str(uuid.uuid4())
    _log_context.set({"request_id": request_id})
    return request_id


def set_caller_context(caller: Optional[str] = None, ip_id: Optional[str] = None):
    """Bind the acting caller and target IP asset to subsequent log lines."""
    _bind(caller=caller, ip_id=ip_id)


def clear_context():
    _log_context.set({})


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
