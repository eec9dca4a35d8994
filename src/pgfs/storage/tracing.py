"""OpenTelemetry tracing for file system operations.

Provides the traced_fs_operation decorator used on FileSystem methods. Spans
are only emitted when PGFS_OTEL_ENABLED is set; span attributes carry the
object name and result metadata, never content bytes or attribute values.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from opentelemetry import trace

from pgfs.observability.tracing import is_tracing_enabled
from pgfs.storage.models import FileInfo

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def traced_fs_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace file system operations with OpenTelemetry.

    Args:
        operation: Operation name (e.g., "stat", "open", "create", "remove").

    Returns:
        Decorated function that emits a span named ``pgfs.fs.<operation>``
        when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return func(self, *args, **kwargs)

            tracer = trace.get_tracer("pgfs.fs")
            with tracer.start_as_current_span(f"pgfs.fs.{operation}") as span:
                span.set_attribute("pgfs.operation", operation)
                if args and isinstance(args[0], str):
                    span.set_attribute("pgfs.name", args[0])
                span.set_attribute("pgfs.table", getattr(self, "table_name", "unknown"))

                try:
                    result = func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                _add_result_attributes(span, result, operation)
                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, result: Any, operation: str) -> None:
    """Add result-based attributes to span.

    Only sizes, types and digests are recorded.
    """
    info = result if isinstance(result, FileInfo) else getattr(result, "info", None)

    if isinstance(info, FileInfo):
        span.set_attribute("pgfs.kind", info.kind.value)
        span.set_attribute("pgfs.content_size", info.content_size)
        if info.content_type:
            span.set_attribute("pgfs.content_type", info.content_type)
        if info.content_sha256:
            span.set_attribute("pgfs.content_sha256", info.content_sha256.hex())

    if operation == "list" and isinstance(result, list):
        span.set_attribute("pgfs.entry_count", len(result))
