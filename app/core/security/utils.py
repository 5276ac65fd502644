"""
Security Utilities

Request IDs and structured logging of access decisions.
"""

import re
import secrets
from typing import Any, Dict, Mapping, Optional

from starlette.requests import HTTPConnection

from app.config import logger
from app.core.security.constants import REQUEST_ID_HEADER

SENSITIVE_KEYS = frozenset({"token", "authorization", "password", "secret"})


def generate_request_id() -> str:
    return secrets.token_hex(16)


def get_request_id(conn: HTTPConnection) -> str:
    """Reuse a well-formed incoming request ID, otherwise mint one."""
    request_id = conn.headers.get(REQUEST_ID_HEADER)
    if request_id and len(request_id) <= 64 and re.match(r"^[a-zA-Z0-9_-]+$", request_id):
        return request_id
    return generate_request_id()


def client_address(conn: HTTPConnection) -> str:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = conn.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return conn.client.host if conn.client else "unknown"


def mask_sensitive_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of ``data`` with credential-like values redacted, nested dicts included."""
    masked: Dict[str, Any] = {}
    for key, value in data.items():
        if any(s in key.lower() for s in SENSITIVE_KEYS):
            masked[key] = "[REDACTED]"
        elif isinstance(value, Mapping):
            masked[key] = mask_sensitive_data(value)
        else:
            masked[key] = value
    return masked


def log_security_event(
    event_type: str,
    conn: Optional[HTTPConnection] = None,
    user: Optional[Mapping[str, Any]] = None,
    level: str = "warning",
    **details: Any,
) -> None:
    """
    Log an access decision with who asked, from where, and for what.

    WebSocket handshakes carry the ID token in the query string, so the
    query is never logged; only the path is.
    """
    log_data: Dict[str, Any] = {"security_event": event_type}
    if user:
        log_data["user_id"] = user.get("uid")
        log_data["tenant_id"] = user.get("tenant_id")
        log_data["role"] = user.get("role")
    if conn is not None:
        log_data["client_ip"] = client_address(conn)
        log_data["path"] = conn.url.path
        log_data["request_id"] = getattr(conn.state, "request_id", None) or get_request_id(conn)
    if details:
        log_data["details"] = mask_sensitive_data(details)

    log_func = getattr(logger, level, logger.warning)
    log_func("Security event: %s | %s", event_type, log_data)
