"""
Repository layer for video job persistence.

This package provides clean, testable interfaces for data access following
the Repository Pattern. ``get_video_store`` returns the store selected by
the ``JOB_STORE`` setting.
"""

from typing import Optional

from app.config import JOB_STORE
from app.core.repositories.base import VideoStore
from app.core.repositories.exceptions import (
    InvalidTransitionError,
    RepositoryError,
    ValidationError,
    VideoRepositoryError,
)
from app.core.repositories.memory import InMemoryVideoRepository
from app.core.repositories.models import Sensitivity, VideoJob, VideoStatus

_store: Optional[VideoStore] = None


def get_video_store() -> VideoStore:
    """Get the global video store instance."""
    global _store
    if _store is None:
        if JOB_STORE == "memory":
            _store = InMemoryVideoRepository()
        else:
            # Imported lazily so memory mode never touches Firebase
            from app.core.repositories.videos import FirestoreVideoRepository

            _store = FirestoreVideoRepository()
    return _store


__all__ = [
    "InMemoryVideoRepository",
    "InvalidTransitionError",
    "RepositoryError",
    "Sensitivity",
    "ValidationError",
    "VideoJob",
    "VideoRepositoryError",
    "VideoStatus",
    "VideoStore",
    "get_video_store",
]
