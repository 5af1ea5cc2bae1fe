"""Audit logging for certificate request generation.

Provides structured logging with correlation IDs so each generated request,
rejected input and encoded statement can be traced back to the CLI run or
HTTP call that produced it.
"""

from __future__ import annotations

import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from eidas_csr.config import AuditConfig


# Context variable for request correlation ID
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation ID for request tracing."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID for current request context."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear the correlation ID after request completes."""
    _correlation_id.set("")


# Structured format for audit logs
_AUDIT_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} [{level}] "
    "[{extra[correlation_id]}] <{extra[event]}> {message} | {extra}"
)


def configure_audit_logger(config: AuditConfig) -> None:
    """Configure the audit logger based on settings."""
    logger.remove()

    logger.add(
        sys.stderr,
        level=config.log_level.value,
        format=_AUDIT_FORMAT,
        filter=lambda r: r["extra"].get("audit", False),
    )

    log_path = Path(config.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        str(log_path),
        level=config.log_level.value,
        format=_AUDIT_FORMAT,
        rotation="10 MB",
        retention="90 days",
        compression="gz",
        filter=lambda r: r["extra"].get("audit", False),
    )


def _get_audit_logger() -> Any:
    """Get logger bound with audit context."""
    return logger.bind(
        audit=True,
        correlation_id=get_correlation_id() or "-",
        event="",
    )


def log_request_generated(
    *,
    subject: str,
    flavor: str,
    roles: Sequence[str],
    authority_id: str,
    fingerprint: str,
) -> None:
    """Log a signed certificate request."""
    audit = _get_audit_logger().bind(
        event="request_generated",
        csr_subject=subject,
        flavor=flavor,
        roles=",".join(roles),
        authority_id=authority_id,
        fingerprint=fingerprint,
    )
    audit.info("{} request generated: {}", flavor, subject)


def log_request_rejected(*, subject: str, reason: str) -> None:
    """Log request inputs that failed policy validation."""
    audit = _get_audit_logger().bind(
        event="request_rejected",
        csr_subject=subject,
        reason=reason,
    )
    audit.warning("Request rejected: {}", subject)


def log_files_written(*, csr_path: str, key_path: str) -> None:
    """Log PEM output written to disk."""
    audit = _get_audit_logger().bind(
        event="files_written",
        csr_path=csr_path,
        key_path=key_path,
    )
    audit.info("Request written to {}, key written to {}", csr_path, key_path)


def log_qc_statement_encoded(*, roles: Sequence[str], authority_id: str, flavor: str) -> None:
    """Log a qualified statement produced through the API."""
    audit = _get_audit_logger().bind(
        event="qc_statement_encoded",
        roles=",".join(roles),
        authority_id=authority_id,
        flavor=flavor,
    )
    audit.info("Qualified statement encoded for {}", authority_id)


def log_qc_statement_decoded(*, roles: Sequence[str], authority_id: str) -> None:
    """Log a qualified statement decoded through the API."""
    audit = _get_audit_logger().bind(
        event="qc_statement_decoded",
        roles=",".join(roles),
        authority_id=authority_id,
    )
    audit.info("Qualified statement decoded for {}", authority_id)


def log_error(*, error: Exception, context: str) -> None:
    """Log an error with full context."""
    audit = _get_audit_logger().bind(
        event="error",
        error_type=type(error).__name__,
        error_message=str(error),
        context=context,
    )
    audit.exception("Error during {}: {}", context, error)


def log_startup(*, version: str, host: str, port: int) -> None:
    """Log server startup."""
    audit = _get_audit_logger().bind(
        event="startup",
        version=version,
        host=host,
        port=port,
    )
    audit.info("eidas-csr v{} starting", version)


def log_shutdown() -> None:
    """Log server shutdown."""
    audit = _get_audit_logger().bind(event="shutdown")
    audit.info("eidas-csr shutting down")
