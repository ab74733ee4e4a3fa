import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request

from reztek_service.logging_config import RequestContext

# Get dedicated security audit logger
logger = logging.getLogger("reztek_service.security")

SENSITIVE_KEYS = (
    "password",
    "token",
    "session",
    "cookie",
    "secret",
    "key",
    "authorization",
)


def _sanitize_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove sensitive information from data before logging.
    """
    sanitized = data.copy()
    for key, value in list(sanitized.items()):
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = _sanitize_data(value)
    return sanitized


def log_security_event(
    event_type: str,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    additional_data: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
    status: str = "success",
    detail: Optional[str] = None,
) -> None:
    """
    Log a security-related event with structured data.

    Args:
        event_type: Type of security event (e.g., "login", "session_rejected")
        user_id: Provider id of the user associated with the event
        ip_address: IP address of the caller
        additional_data: Any additional relevant data, redacted before logging
        request: FastAPI request object
        status: Outcome status ("success", "failure", "attempt")
        detail: Optional detailed message
    """
    security_event: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "status": status,
    }

    if user_id:
        security_event["user_id"] = str(user_id)

    request_id = RequestContext.get_request_id()
    if request_id:
        security_event["request_id"] = request_id

    if ip_address:
        security_event["ip_address"] = ip_address
    elif request and request.client:
        security_event["ip_address"] = request.client.host

    if request:
        security_event["request"] = {
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent", "unknown"),
        }

    if additional_data:
        security_event["data"] = _sanitize_data(additional_data)

    if detail:
        security_event["detail"] = detail

    logger.info(
        f"Security event: {event_type} - {status}",
        extra={"security_event": security_event},
    )


def log_login_attempt(request: Request, email: str, portal: str):
    log_security_event(
        event_type="login_attempt",
        additional_data={"email": email, "portal": portal},
        request=request,
        status="attempt",
    )


def log_login_success(request: Request, user_id: str, email: str, encoding: str):
    log_security_event(
        event_type="login_success",
        user_id=user_id,
        additional_data={"email": email, "encoding": encoding},
        request=request,
        status="success",
    )


def log_login_failure(request: Request, email: str, reason: str):
    log_security_event(
        event_type="login_failure",
        additional_data={"email": email},
        request=request,
        status="failure",
        detail=reason,
    )


def log_session_rejected(request: Request, reason: Any):
    """
    Log a session that failed verification at an admin or tenant boundary.
    """
    log_security_event(
        event_type="session_rejected",
        request=request,
        status="failure",
        detail=getattr(reason, "value", None) or str(reason),
    )


def log_logout(request: Request, detail: Optional[str] = None):
    log_security_event(event_type="logout", request=request, status="success", detail=detail)


def log_password_reset_request(request: Request, email: str, status: str = "attempt"):
    log_security_event(
        event_type="password_reset_request",
        additional_data={"email": email},
        request=request,
        status=status,
    )


def log_admin_action(
    request: Request,
    email: Optional[str],
    action: str,
    target_id: Optional[str] = None,
    additional_data: Optional[Dict[str, Any]] = None,
):
    """
    Log an administrative action.
    """
    data = dict(additional_data or {})
    data["action"] = action
    data["admin_email"] = email
    if target_id:
        data["target_id"] = target_id

    log_security_event(
        event_type="admin_action",
        additional_data=data,
        request=request,
        status="success",
    )
