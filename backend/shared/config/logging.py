"""
Structured logging for the API and the counter CLI.

Loggers accept keyword context (``logger.info("Order placed", order_id=7)``).
Production emits one JSON object per line; development prints coloured,
human-readable lines. The X-Request-ID of the current request is attached
by CorrelationIdFilter.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings


def _request_id(record: logging.LogRecord) -> str | None:
    request_id = getattr(record, "request_id", None)
    return request_id if request_id and request_id != "-" else None


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, "extra_data", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON document per record, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if request_id := _request_id(record):
            payload["request_id"] = request_id
        if context := _context(record):
            payload["data"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            payload["source"] = f"{record.filename}:{record.lineno} in {record.funcName}"
        return json.dumps(payload, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Coloured single-line output for local runs."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        parts = [
            f"{color}{datetime.now():%H:%M:%S} {record.levelname:<8}{self.RESET}",
        ]
        if request_id := _request_id(record):
            parts.append(f"{self.DIM}{request_id[:8]}{self.RESET}")
        parts.append(f"{record.name}: {record.getMessage()}")

        line = " ".join(parts)
        if context := _context(record):
            line += "  " + " ".join(f"{k}={v}" for k, v in context.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger whose level methods take keyword context alongside the message."""

    def _log(
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: dict | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **context: Any,
    ) -> None:
        extra = dict(extra or {})
        extra["extra_data"] = context or None
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel,
        )


logging.setLoggerClass(StructuredLogger)


# Libraries that are chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine")


def setup_logging() -> None:
    """Install the stdout handler on the root logger. Called once at startup."""
    # Deferred: correlation imports the web stack, which imports settings
    from shared.infrastructure.correlation import CorrelationIdFilter

    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        StructuredFormatter() if settings.environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    return logging.getLogger(name)  # type: ignore[return-value]


def mask_identity(identity_id: str | None) -> str:
    """First 8 characters of a subject claim: enough to correlate, not to replay."""
    if not identity_id:
        return "<no-identity>"
    return identity_id if len(identity_id) <= 8 else identity_id[:8] + "..."


def mask_token(token: str | None) -> str:
    """Push tokens look like ExponentPushToken[xxxx]; keep only the prefix."""
    if not token:
        return "<no-token>"
    return token[: min(12, max(4, len(token) - 8))] + "***"


rest_api_logger = get_logger("rest_api")
orders_logger = get_logger("rest_api.orders")
pickup_logger = get_logger("rest_api.pickup")
notifications_logger = get_logger("rest_api.notifications")

security_audit_logger = get_logger("security.audit")


# =============================================================================
# Security audit
# =============================================================================


def audit_role_change(
    actor_id: str,
    target_id: str,
    old_role: str,
    new_role: str,
    **extra: Any,
) -> None:
    """Role changes widen or narrow every later request of the target."""
    security_audit_logger.warning(
        "ROLE_AUDIT: ROLE_CHANGED",
        actor=mask_identity(actor_id),
        target=mask_identity(target_id),
        old_role=old_role,
        new_role=new_role,
        **extra,
    )


def audit_auth_event(
    event_type: str,
    identity_id: str | None = None,
    success: bool = True,
    reason: str | None = None,
    **extra: Any,
) -> None:
    security_audit_logger.log(
        logging.INFO if success else logging.WARNING,
        f"AUTH_AUDIT: {event_type}",
        event_type=event_type,
        identity=mask_identity(identity_id),
        success=success,
        reason=reason,
        **extra,
    )
