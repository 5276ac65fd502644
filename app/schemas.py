"""
Pydantic models for request/response validation.

Provides type-safe, validated data structures for all API endpoints.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.repositories.models import Sensitivity, VideoJob, VideoStatus
from app.core.security.constants import ALL_ROLES


# -----------------------------------------------------------------------------
# Base Models
# -----------------------------------------------------------------------------

class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        str_min_length=0,
    )


# -----------------------------------------------------------------------------
# WebSocket Messages
# -----------------------------------------------------------------------------

class ProgressEvent(BaseSchema):
    """Payload of a ``video:progress`` event."""
    videoId: str
    status: VideoStatus
    progress: int = Field(..., ge=0, le=100)
    message: str


# -----------------------------------------------------------------------------
# API Response Models
# -----------------------------------------------------------------------------

class VideoResponse(BaseSchema):
    """Public view of a video job. Storage paths are never exposed."""
    id: str
    title: str
    original_filename: str
    filename: str
    status: VideoStatus
    sensitivity: Sensitivity
    duration: Optional[float] = None
    size: int
    mime_type: str
    owner_id: str
    tenant_id: str
    optimized: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_job(cls, job: VideoJob) -> "VideoResponse":
        return cls(
            id=job.id,
            title=job.title,
            original_filename=job.original_filename,
            filename=job.filename,
            status=job.status,
            sensitivity=job.sensitivity,
            duration=job.duration,
            size=job.size,
            mime_type=job.mime_type,
            owner_id=job.owner_id,
            tenant_id=job.tenant_id,
            optimized=job.output_path is not None,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class UserVideosResponse(BaseSchema):
    """Response for the video list."""
    videos: List[VideoResponse]


class DeleteVideoResponse(BaseSchema):
    """Response after deleting a video."""
    success: bool
    video_id: str
    message: Optional[str] = None


# -----------------------------------------------------------------------------
# User Management Models
# -----------------------------------------------------------------------------

class RoleUpdateRequest(BaseSchema):
    """Request to change a user's role."""
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in ALL_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(sorted(ALL_ROLES))}")
        return v


class UserResponse(BaseSchema):
    """A user account as seen by its tenant."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: str
    tenant_id: str
    disabled: bool = False


class UsersListResponse(BaseSchema):
    """Response for the tenant user list."""
    users: List[UserResponse]


class HealthResponse(BaseSchema):
    """Health check response."""
    status: str = "healthy"
    version: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
