"""
In-process video job repository.

Used for local development (``JOB_STORE=memory``) and by the test suite.
Jobs are copied on the way in and out so callers never share instances.
"""

import logging
from threading import Lock
from typing import Dict, List, Optional

from app.core.repositories.models import VideoJob

logger = logging.getLogger(__name__)


class InMemoryVideoRepository:
    """Thread-safe dictionary-backed video store."""

    def __init__(self) -> None:
        self._jobs: Dict[str, VideoJob] = {}
        self._lock = Lock()

    def find_by_id(self, video_id: str) -> Optional[VideoJob]:
        with self._lock:
            job = self._jobs.get(video_id)
            return job.model_copy(deep=True) if job else None

    def save(self, job: VideoJob) -> VideoJob:
        with self._lock:
            self._jobs[job.id] = job.model_copy(deep=True)
        logger.debug(f"Saved video {job.id} with status {job.status.value}")
        return job

    def delete_one(self, video_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(video_id, None) is not None

    def list_for_owner(self, owner_id: str, limit: Optional[int] = None) -> List[VideoJob]:
        return self._list(lambda job: job.owner_id == owner_id, limit)

    def list_for_tenant(self, tenant_id: str, limit: Optional[int] = None) -> List[VideoJob]:
        return self._list(lambda job: job.tenant_id == tenant_id, limit)

    def _list(self, predicate, limit: Optional[int]) -> List[VideoJob]:
        with self._lock:
            matches = [job.model_copy(deep=True) for job in self._jobs.values() if predicate(job)]
        matches.sort(key=lambda job: job.created_at, reverse=True)
        return matches[:limit] if limit else matches
