"""
Structured logging configuration for the Investment Portfolio gateway.

All logs are JSON-formatted with these standard fields:
- timestamp: ISO 8601 timestamp
- event: The log event name (first positional argument)
- request_id: UUID for tracing requests end-to-end
- client_host: Address of the caller (when available)
- duration_ms: Operation duration in milliseconds
- outcome: Result of the operation (for cache and upstream events)

Credentials are never passed to the logger; the sign-in payload is logged
through `redact_credentials` only.
"""
import uuid
from contextvars import ContextVar
from typing import Any, Optional

import structlog

# Context variables for request-scoped data
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
client_host_ctx: ContextVar[str] = ContextVar("client_host", default="")

REDACTED = "***"
SENSITIVE_KEYS = frozenset({"password", "token"})


def add_context_vars(
    logger: structlog.typing.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Processor that adds context variables to log entries."""
    request_id = request_id_ctx.get()
    client_host = client_host_ctx.get()

    if request_id:
        event_dict["request_id"] = request_id
    if client_host:
        event_dict["client_host"] = client_host

    return event_dict


def configure_logging() -> None:
    """Configure structlog with JSON output and context processors."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            add_context_vars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)


def set_request_context(request_id: str, client_host: Optional[str] = None) -> None:
    """Set the request context for logging."""
    request_id_ctx.set(request_id)
    if client_host:
        client_host_ctx.set(client_host)


def clear_request_context() -> None:
    """Clear the request context after request completion."""
    request_id_ctx.set("")
    client_host_ctx.set("")


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return str(uuid.uuid4())


def redact_credentials(payload: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of `payload` that is safe to log."""
    return {
        key: REDACTED if key in SENSITIVE_KEYS else value
        for key, value in payload.items()
    }


def log_envelope(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    status: int,
    cache: Optional[str],
    duration_ms: float,
    error: Optional[str] = None,
) -> None:
    """Log the final envelope of an orchestrated operation with standard fields."""
    outcome = "success" if status < 400 else "error"

    fields: dict[str, Any] = {
        "operation": operation,
        "status": status,
        "outcome": outcome,
        "cache": cache,
        "duration_ms": round(duration_ms, 2),
    }
    if error:
        fields["error"] = error

    if outcome == "success":
        logger.info("envelope_completed", **fields)
    else:
        logger.warning("envelope_completed", **fields)
