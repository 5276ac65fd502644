"""
Video job repository for Firestore.

Stores one document per uploaded video in the top-level ``videos``
collection, keyed by video id. Owner and tenant ids are plain fields so
both the per-user and per-tenant listings are single-field queries.
"""

import logging
from typing import Any, List, Optional

from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from app.core.firebase_client import get_firestore_client
from app.core.repositories.exceptions import (
    ValidationError,
    VideoRepositoryError,
)
from app.core.repositories.models import VideoJob

logger = logging.getLogger(__name__)

VIDEOS_COLLECTION = "videos"
MAX_LIST_LIMIT = 1000


def _validate_limit(limit: Optional[int]) -> None:
    if limit is not None and (limit < 1 or limit > MAX_LIST_LIMIT):
        raise ValidationError(f"Invalid limit: {limit}")


class FirestoreVideoRepository:
    """
    Repository for managing video jobs in Firestore.

    Every operation wraps client failures in ``VideoRepositoryError`` so
    callers only have to handle the repository exception hierarchy.
    """

    def __init__(self, db: Optional[Any] = None):
        """
        Initialize video repository.

        Args:
            db: Optional Firestore client; the shared client is used when omitted
        """
        self.db = db if db is not None else get_firestore_client()
        self.videos_collection = self.db.collection(VIDEOS_COLLECTION)

    def find_by_id(self, video_id: str) -> Optional[VideoJob]:
        """
        Get a video job.

        Returns:
            VideoJob instance or None if not found

        Raises:
            VideoRepositoryError: If retrieval fails
        """
        try:
            doc = self.videos_collection.document(video_id).get()
            if doc.exists:
                data = doc.to_dict()
                if data:
                    return VideoJob.from_dict(data)
            return None
        except Exception as e:
            logger.error(f"Failed to get video {video_id}: {e}", exc_info=True)
            raise VideoRepositoryError(f"Failed to get video: {e}") from e

    def save(self, job: VideoJob) -> VideoJob:
        """
        Create or overwrite a video job.

        Raises:
            VideoRepositoryError: If the write fails
        """
        try:
            doc_ref = self.videos_collection.document(job.id)
            doc_ref.set(job.to_dict(), merge=True)
            logger.debug(f"Saved video {job.id} with status {job.status.value}")
            return job
        except Exception as e:
            logger.error(f"Failed to save video {job.id}: {e}", exc_info=True)
            raise VideoRepositoryError(f"Failed to save video: {e}") from e

    def delete_one(self, video_id: str) -> bool:
        """
        Delete a video job.

        Returns:
            True if deleted, False if not found

        Raises:
            VideoRepositoryError: If deletion fails
        """
        try:
            doc_ref = self.videos_collection.document(video_id)
            doc = doc_ref.get()
            if not doc.exists:
                return False
            doc_ref.delete()
            logger.debug(f"Deleted video {video_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete video {video_id}: {e}", exc_info=True)
            raise VideoRepositoryError(f"Failed to delete video: {e}") from e

    def list_for_owner(self, owner_id: str, limit: Optional[int] = None) -> List[VideoJob]:
        """List one user's videos, newest first."""
        return self._list_where("owner_id", owner_id, limit)

    def list_for_tenant(self, tenant_id: str, limit: Optional[int] = None) -> List[VideoJob]:
        """List every video in a tenant, newest first."""
        return self._list_where("tenant_id", tenant_id, limit)

    def _list_where(self, field: str, value: str, limit: Optional[int]) -> List[VideoJob]:
        _validate_limit(limit)
        try:
            query = (
                self.videos_collection
                .where(filter=FieldFilter(field, "==", value))
                .order_by("created_at", direction=firestore.Query.DESCENDING)
            )
            if limit:
                query = query.limit(limit)

            videos = []
            for doc in query.stream():
                data = doc.to_dict()
                if data:
                    try:
                        videos.append(VideoJob.from_dict(data))
                    except Exception as e:
                        logger.warning(f"Failed to parse video {doc.id}: {e}")
                        continue
            return videos
        except Exception as e:
            logger.error(f"Failed to list videos by {field}: {e}", exc_info=True)
            raise VideoRepositoryError(f"Failed to list videos: {e}") from e
