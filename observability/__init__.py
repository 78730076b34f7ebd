"""Observability infrastructure: logging context and optional tracing.

setup_logging:
    Console + rotating file handlers, text or JSON, job context injected.

set_job_context / clear_context:
    Tag log records with the running job name and run id.

setup_tracing / trace_operation:
    Optional Logfire spans with PydanticAI instrumentation.

Example:
    >>> from observability import setup_tracing, trace_operation
    >>> setup_tracing(enabled=True, service_name="curator")
    >>> with trace_operation("job.cleanup"):
    ...     janitor.run()
"""

from observability.logging import clear_context, set_job_context, setup_logging
from observability.tracing import TracingContext, setup_tracing, trace_operation

__all__ = [
    "clear_context",
    "set_job_context",
    "setup_logging",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
