"""
Audit logging for security-relevant events.

Provides structured audit logging for launch, token and observation events.
"""

import logging
from typing import Any

import structlog

_audit_logger = structlog.wrap_logger(
    logging.getLogger("smart_vitals.audit"),
    wrapper_class=structlog.stdlib.BoundLogger,
)


class AuditEvent:
    """Constants for audit event types."""

    # Launch events
    LAUNCH_TAKEOVER = "launch.takeover"
    LAUNCH_RESTORE = "launch.restore"
    LAUNCH_ERROR = "launch.error"

    # Authentication events
    AUTH_START = "auth.start"
    AUTH_SUCCESS = "auth.success"
    AUTH_FAILURE = "auth.failure"

    # Resource access events
    RESOURCE_READ = "resource.read"
    RESOURCE_SEARCH = "resource.search"
    RESOURCE_CREATE = "resource.create"


SESSION_ID_VISIBLE_CHARS = 8


def truncate_session_id(session_id: str, visible_chars: int = SESSION_ID_VISIBLE_CHARS) -> str:
    """Truncate session ID for logging while preserving enough for correlation."""
    if len(session_id) > visible_chars:
        return session_id[:visible_chars] + "..."
    return session_id


def audit_log(
    event: str,
    *,
    session_id: str | None = None,
    issuer: str | None = None,
    patient_id: str | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    success: bool = True,
    error: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Log an audit event.

    Args:
        event: Event type from AuditEvent constants
        session_id: Browser session identifier (truncated in output)
        issuer: FHIR server issuer URL
        patient_id: Patient in launch context
        resource_type: Optional FHIR resource type
        resource_id: Optional resource ID
        success: Whether the operation succeeded
        error: Optional error message if failed
        details: Optional additional details
    """
    log_data: dict[str, Any] = {
        "audit_event": event,
        "success": success,
    }

    if session_id:
        log_data["session_id"] = truncate_session_id(session_id)
    if issuer:
        log_data["issuer"] = issuer
    if patient_id:
        log_data["patient_id"] = patient_id
    if resource_type:
        log_data["resource_type"] = resource_type
    if resource_id:
        log_data["resource_id"] = resource_id
    if error:
        log_data["error"] = error
    if details:
        log_data["details"] = details

    if success:
        _audit_logger.info(event, **log_data)
    else:
        _audit_logger.warning(event, **log_data)
