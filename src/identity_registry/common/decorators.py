"""Common decorators for registry components."""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any, Concatenate, ParamSpec, TypeVar

import opentelemetry.trace

from identity_registry.common.exceptions import RegistryError

P = ParamSpec("P")
T = TypeVar("T")

# Principal-valued parameters copied onto the span
_SPAN_PRINCIPALS = ("caller", "subject", "issuer")


def registry_operation(
    name: str,
) -> Callable[
    [Callable[Concatenate[Any, P], Awaitable[T]]],
    Callable[Concatenate[Any, P], Awaitable[T]],
]:
    """
    Instrument a registry mutation.

    Opens an OpenTelemetry span tagged with the operation and the principals
    it touches, counts the outcome on the instance's metrics collector and
    logs rejected operations. The decorated method's instance must expose
    ``_metrics`` and ``_logger``.

    Args:
        name: Operation name used for the span and the metric label
    """

    def decorator(
        func: Callable[Concatenate[Any, P], Awaitable[T]],
    ) -> Callable[Concatenate[Any, P], Awaitable[T]]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(self: Any, *args: P.args, **kwargs: P.kwargs) -> T:
            tracer = opentelemetry.trace.get_tracer(__name__)
            arguments = signature.bind_partial(self, *args, **kwargs).arguments

            with tracer.start_as_current_span(f"registry.{name}") as span:
                span.set_attribute("registry.operation", name)
                for param in _SPAN_PRINCIPALS:
                    if arguments.get(param):
                        span.set_attribute(f"registry.{param}", str(arguments[param]))

                start = time.perf_counter()
                try:
                    result = await func(self, *args, **kwargs)
                except RegistryError as e:
                    span.set_attribute("registry.status", e.code)
                    span.record_exception(e)
                    self._metrics.counter(
                        "registry_operations_total",
                        labels={"operation": name, "status": e.code},
                    ).inc()
                    self._logger.warning(
                        "operation_rejected",
                        operation=name,
                        code=e.code,
                        reason=e.message,
                    )
                    raise

                span.set_attribute("registry.status", "ok")

            self._metrics.counter(
                "registry_operations_total",
                labels={"operation": name, "status": "ok"},
            ).inc()
            self._metrics.histogram(
                "registry_operation_duration_ms",
                labels={"operation": name},
            ).observe((time.perf_counter() - start) * 1000)
            return result

        return wrapper

    return decorator
