"""
Security module for VidStream.

Provides:
- Role constants
- Upload and identifier validation
- Request ID tracking
- Security event logging
"""

from app.core.security.constants import (
    ALL_ROLES,
    ALLOWED_VIDEO_EXTENSIONS,
    MAX_TITLE_LENGTH,
    REQUEST_ID_HEADER,
    ROLE_ADMIN,
    ROLE_EDITOR,
    ROLE_VIEWER,
    UPLOAD_ROLES,
)
from app.core.security.validation import (
    ValidationError,
    sanitize_text,
    validate_video_id,
    validate_video_upload,
)
from app.core.security.utils import (
    client_address,
    generate_request_id,
    get_request_id,
    mask_sensitive_data,
    log_security_event,
)

__all__ = [
    # Constants
    "ALL_ROLES",
    "ALLOWED_VIDEO_EXTENSIONS",
    "MAX_TITLE_LENGTH",
    "REQUEST_ID_HEADER",
    "ROLE_ADMIN",
    "ROLE_EDITOR",
    "ROLE_VIEWER",
    "UPLOAD_ROLES",
    # Validation
    "ValidationError",
    "sanitize_text",
    "validate_video_id",
    "validate_video_upload",
    # Utils
    "client_address",
    "generate_request_id",
    "get_request_id",
    "mask_sensitive_data",
    "log_security_event",
]
