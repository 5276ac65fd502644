"""
Storage contract shared by every video job repository.
"""

from typing import List, Optional, Protocol

from app.core.repositories.models import VideoJob


class VideoStore(Protocol):
    """
    Persistence boundary for video jobs.

    Writes are last-write-wins; implementations need no transactions.
    """

    def find_by_id(self, video_id: str) -> Optional[VideoJob]:
        ...

    def save(self, job: VideoJob) -> VideoJob:
        ...

    def delete_one(self, video_id: str) -> bool:
        ...

    def list_for_owner(self, owner_id: str, limit: Optional[int] = None) -> List[VideoJob]:
        ...

    def list_for_tenant(self, tenant_id: str, limit: Optional[int] = None) -> List[VideoJob]:
        ...
