"""
Input Validation Module

Validates and sanitizes user inputs to prevent security issues.
"""

import re
from pathlib import PurePath
from typing import Optional

from app.core.security.constants import (
    ALLOWED_VIDEO_EXTENSIONS,
    MAX_FILENAME_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_VIDEO_ID_LENGTH,
)


class ValidationError(Exception):
    """Raised when input validation fails."""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


def validate_video_id(video_id: str) -> str:
    """
    Validate video ID format (prevents path traversal).
    
    Video IDs should be alphanumeric with limited special chars.
    """
    if not video_id or not isinstance(video_id, str):
        raise ValidationError("Video ID is required", field="video_id")
    
    video_id = video_id.strip()
    
    # Allow alphanumeric, hyphens, underscores only
    if not re.match(r"^[a-zA-Z0-9_-]+$", video_id):
        raise ValidationError("Invalid video ID format", field="video_id")
    
    if len(video_id) > MAX_VIDEO_ID_LENGTH:
        raise ValidationError("Video ID too long", field="video_id")
    
    return video_id


def validate_video_upload(filename: Optional[str], content_type: Optional[str]) -> str:
    """
    Validate an uploaded file's name and content type.

    Returns:
        A storage-safe version of the original filename.
    """
    if not content_type or not content_type.startswith("video/"):
        raise ValidationError("Only videos are allowed", field="video")

    if not filename:
        raise ValidationError("Uploaded file has no name", field="video")

    # Drop any client-side directory components
    name = PurePath(filename.replace("\\", "/")).name
    safe = re.sub(r"[^a-zA-Z0-9_.-]", "_", name).strip("._")
    if not safe:
        raise ValidationError("Invalid file name", field="video")

    suffix = PurePath(safe).suffix.lower()
    if suffix not in ALLOWED_VIDEO_EXTENSIONS:
        raise ValidationError(
            f"Unsupported file type. Allowed: {', '.join(sorted(ALLOWED_VIDEO_EXTENSIONS))}",
            field="video",
        )

    if len(safe) > MAX_FILENAME_LENGTH:
        stem = PurePath(safe).stem[: MAX_FILENAME_LENGTH - len(suffix)]
        safe = f"{stem}{suffix}"

    return safe


def sanitize_text(text: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    """
    Sanitize text input by removing potentially dangerous characters.
    
    Preserves most Unicode for internationalization.
    """
    if not text:
        return ""
    
    # Remove null bytes and control characters (except newlines/tabs)
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    
    # Truncate
    if len(text) > max_length:
        text = text[:max_length]
    
    return text.strip()
