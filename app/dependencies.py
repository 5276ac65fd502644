"""
Shared service instances for request handlers.

Routes receive these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

from typing import Optional

from app.core.notifier import ConnectionManager, get_connection_manager
from app.core.repositories import VideoStore, get_video_store
from app.core.users import UserDirectory, get_user_directory
from app.core.workflow import ProcessingOrchestrator, ProcessingQueue

_queue: Optional[ProcessingQueue] = None


def get_store() -> VideoStore:
    return get_video_store()


def get_notifier() -> ConnectionManager:
    return get_connection_manager()


def get_processing_queue() -> ProcessingQueue:
    """Get the global processing queue, wired to the pipeline."""
    global _queue
    if _queue is None:
        orchestrator = ProcessingOrchestrator(
            store=get_video_store(),
            notifier=get_connection_manager(),
        )
        _queue = ProcessingQueue(orchestrator.run)
    return _queue


def get_directory() -> UserDirectory:
    return get_user_directory()
