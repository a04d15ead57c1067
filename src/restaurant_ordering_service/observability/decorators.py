"""OpenTelemetry tracing decorators."""

import functools
import inspect
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

# Type variable for generic function signatures
F = TypeVar("F", bound=Callable[..., Any])


@contextmanager
def _span(tracer: trace.Tracer, name: str, attributes: dict[str, Any]) -> Iterator[Span]:
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_attribute("success", False)
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            raise
        span.set_attribute("success", True)


def traced(
    span_name: str | None = None,
    service_name: str = "ordering-svc",
    record_args: tuple[str, ...] = (),
) -> Callable[[F], F]:
    """Decorator to add OpenTelemetry tracing to a function.

    Creates a span around the decorated function and marks it failed when the function
    raises. Async functions are supported. Arguments named in ``record_args`` are
    attached to the span as ``arg.<name>`` attributes when they are scalars.

    Args:
        span_name: Name for the span (defaults to function name if not provided)
        service_name: Service name for span attributes
        record_args: Names of arguments to record on the span

    Returns:
        Decorated function with tracing

    Example:
        @traced("resume_settlement", record_args=("payment_id",))
        async def resume_settlement(self, payment_id: str) -> ReconciliationResult:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)
        signature = inspect.signature(func)

        def span_attributes(args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
            attributes: dict[str, Any] = {
                "service.name": service_name,
                "function.name": func.__name__,
            }
            if record_args:
                bound = signature.bind_partial(*args, **kwargs)
                for arg in record_args:
                    value = bound.arguments.get(arg)
                    if isinstance(value, (str, int, float, bool)):
                        attributes[f"arg.{arg}"] = value
            return attributes

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with _span(tracer, name, span_attributes(args, kwargs)):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _span(tracer, name, span_attributes(args, kwargs)):
                return func(*args, **kwargs)

        return sync_wrapper  # type: ignore

    return decorator
