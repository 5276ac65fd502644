"""
Real-time notifications over WebSocket.

A recipient (one user id) may hold several open sessions; every event for
that recipient is fanned out to all of them. Delivery is best effort: a
socket that fails to receive is logged and dropped, never raised to the
caller.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, Set

from fastapi import WebSocket

from app.core.repositories.models import VideoJob, VideoStatus
from app.schemas import ProgressEvent

logger = logging.getLogger(__name__)


# Event names
EVENT_PROGRESS = "video:progress"
EVENT_NEW = "video:new"
EVENT_UPDATED = "video:updated"
EVENT_DELETED = "video:deleted"


class Notifier(Protocol):
    async def emit_to_recipient(
        self,
        recipient_id: str,
        event: str,
        payload: Any,
    ) -> None:
        ...


class ConnectionManager:
    """Tracks open WebSocket sessions keyed by recipient id."""

    def __init__(self) -> None:
        self._connections: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, recipient_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections[recipient_id].add(websocket)
        logger.debug(f"Session joined channel {recipient_id}")

    async def disconnect(self, recipient_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            sessions = self._connections.get(recipient_id)
            if sessions is None:
                return
            sessions.discard(websocket)
            if not sessions:
                del self._connections[recipient_id]
        logger.debug(f"Session left channel {recipient_id}")

    def session_count(self, recipient_id: str) -> int:
        return len(self._connections.get(recipient_id, ()))

    async def emit_to_recipient(
        self,
        recipient_id: str,
        event: str,
        payload: Any,
    ) -> None:
        """
        Send an event to every session of a recipient.

        Args:
            recipient_id: Channel key (the user id)
            event: Event name
            payload: JSON-serializable event data
        """
        async with self._lock:
            sessions = list(self._connections.get(recipient_id, ()))

        if not sessions:
            logger.debug(f"No sessions for {recipient_id}; dropped {event}")
            return

        message = {
            "event": event,
            "data": payload,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        for websocket in sessions:
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send {event} via WebSocket: {e}")
                await self.disconnect(recipient_id, websocket)


def progress_payload(
    video_id: str,
    status: VideoStatus,
    progress: int,
    message: str,
) -> Dict[str, Any]:
    """Build the payload of a ``video:progress`` event."""
    event = ProgressEvent(videoId=video_id, status=status, progress=progress, message=message)
    return event.model_dump(mode="json")


def job_payload(job: VideoJob) -> Dict[str, Any]:
    """Serialize a full job record for list-refresh events."""
    return job.model_dump(mode="json")


async def send_progress(
    notifier: Notifier,
    job: VideoJob,
    progress: int,
    message: str,
    status: Optional[VideoStatus] = None,
) -> None:
    """
    Send a progress update for a job to its owner.

    Args:
        notifier: Notification channel
        job: Job the update is about
        progress: Percent complete (0-100)
        message: Human-readable step description
        status: Status to report; defaults to the job's current status
    """
    await notifier.emit_to_recipient(
        job.owner_id,
        EVENT_PROGRESS,
        progress_payload(job.id, status or job.status, progress, message),
    )


async def send_new(notifier: Notifier, job: VideoJob) -> None:
    await notifier.emit_to_recipient(job.owner_id, EVENT_NEW, job_payload(job))


async def send_updated(notifier: Notifier, job: VideoJob) -> None:
    await notifier.emit_to_recipient(job.owner_id, EVENT_UPDATED, job_payload(job))


async def send_deleted(notifier: Notifier, owner_id: str, video_id: str) -> None:
    await notifier.emit_to_recipient(owner_id, EVENT_DELETED, {"videoId": video_id})


_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Get the global connection manager instance."""
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager
