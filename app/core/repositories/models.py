"""
Pydantic models for repository data structures.

Provides type safety and validation for video job records, plus the
lifecycle rules the processing pipeline relies on.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from app.core.repositories.exceptions import InvalidTransitionError


class VideoStatus(str, Enum):
    """Lifecycle status of a video job."""
    UPLOADING = "Uploading"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FLAGGED = "Flagged"
    ERROR = "Error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class Sensitivity(str, Enum):
    """Content classification of a video."""
    PENDING = "Pending"
    SAFE = "Safe"
    FLAGGED = "Flagged"


TERMINAL_STATUSES: FrozenSet[VideoStatus] = frozenset({
    VideoStatus.COMPLETED,
    VideoStatus.FLAGGED,
    VideoStatus.ERROR,
})

# Allowed forward moves. Staying in the same status is always allowed.
# Every terminal status is reached from Processing.
STATUS_TRANSITIONS: Dict[VideoStatus, FrozenSet[VideoStatus]] = {
    VideoStatus.UPLOADING: frozenset({VideoStatus.PROCESSING}),
    VideoStatus.PROCESSING: frozenset({
        VideoStatus.COMPLETED,
        VideoStatus.FLAGGED,
        VideoStatus.ERROR,
    }),
    VideoStatus.COMPLETED: frozenset(),
    VideoStatus.FLAGGED: frozenset(),
    VideoStatus.ERROR: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_video_id() -> str:
    return uuid4().hex


class VideoJob(BaseModel):
    """A single uploaded video and its processing state."""

    id: str = Field(default_factory=generate_video_id, min_length=1, max_length=100)

    # File information
    title: str = Field(..., min_length=1, max_length=500)
    original_filename: str = Field(..., min_length=1, max_length=300)
    filename: str = Field(..., min_length=1, max_length=300)
    source_path: str = Field(..., min_length=1)
    output_path: Optional[str] = None
    size: int = Field(default=0, ge=0)
    mime_type: str = Field(default="video/mp4", max_length=100)

    # Processing state
    status: VideoStatus = VideoStatus.PROCESSING
    sensitivity: Sensitivity = Sensitivity.PENDING
    duration: Optional[float] = Field(None, ge=0)

    # Ownership
    owner_id: str = Field(..., min_length=1, max_length=128)
    tenant_id: str = Field(..., min_length=1, max_length=128)

    # Timestamps
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("mime_type")
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        if not v.startswith("video/"):
            raise ValueError(f"Invalid mime_type: {v}. Only video files are accepted")
        return v

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def playback_path(self) -> str:
        """File to serve to viewers: the optimized output when there is one."""
        return self.output_path or self.source_path

    def transition_to(self, status: VideoStatus) -> None:
        """
        Move the job along its lifecycle.

        Raises:
            InvalidTransitionError: If the move is not a forward edge
        """
        if status == self.status:
            return
        if status not in STATUS_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Video {self.id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        self.updated_at = _utcnow()

    def record_verdict(self, verdict: Sensitivity) -> None:
        """
        Record the classifier verdict. Allowed exactly once, while processing.

        Raises:
            InvalidTransitionError: If the verdict is already set, the verdict
                is ``Pending``, or the job is not processing
        """
        if verdict == Sensitivity.PENDING:
            raise InvalidTransitionError("A verdict must be Safe or Flagged")
        if self.sensitivity != Sensitivity.PENDING:
            raise InvalidTransitionError(
                f"Video {self.id} already classified as {self.sensitivity.value}"
            )
        if self.status != VideoStatus.PROCESSING:
            raise InvalidTransitionError(
                f"Video {self.id} can only be classified while processing"
            )
        self.sensitivity = verdict
        self.updated_at = _utcnow()

    def attach_output(self, output_path: Path) -> None:
        """Point the job at its optimized file. Path and filename move together."""
        self.output_path = str(output_path)
        self.filename = output_path.name
        self.updated_at = _utcnow()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoJob":
        """Create from a stored document dictionary."""
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a Firestore-compatible dictionary."""
        return self.model_dump(mode="python", exclude_none=False) | {
            "status": self.status.value,
            "sensitivity": self.sensitivity.value,
        }
