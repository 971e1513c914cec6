"""Span helpers for access decisions"""

import asyncio
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

_tracer = trace.get_tracer("ifarm")


def traced(operation_name: str | None = None, attributes: dict[str, Any] | None = None):
    """
    Decorator wrapping a function call in a span.

    Usage:
        @traced("authz.decide")
        async def decide(self, subject, action, resource, environment, state):
            ...

    Exceptions are recorded on the span and re-raised.
    """

    def decorator(func: Callable) -> Callable:
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            with _tracer.start_as_current_span(span_name, attributes=attributes) as span:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with _tracer.start_as_current_span(span_name, attributes=attributes) as span:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def add_span_attributes(**attributes: Any) -> None:
    """
    Set attributes on the current span; None values are skipped.

    Usage:
        add_span_attributes(**{"authz.tenant_id": tenant_id})
    """
    span = trace.get_current_span()
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, value)
