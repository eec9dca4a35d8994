"""pgfs Observability module.

Provides OpenTelemetry tracing setup.
"""

from pgfs.observability.tracing import configure_tracing, is_tracing_enabled

__all__ = ["configure_tracing", "is_tracing_enabled"]
