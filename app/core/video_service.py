"""
Video lifecycle operations used by the HTTP layer.

Creating a video stores the upload, records the job as Processing, tells
the owner about it and queues it for the pipeline. Deleting a video
removes the record together with its files.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import UploadFile

from app.config import MAX_UPLOAD_BYTES, UPLOAD_CHUNK_BYTES, UPLOADS_DIR
from app.core.notifier import Notifier, send_deleted, send_new, send_progress, send_updated
from app.core.repositories.base import VideoStore
from app.core.repositories.models import VideoJob, VideoStatus
from app.core.security.constants import ROLE_ADMIN
from app.core.security.validation import sanitize_text, validate_video_upload
from app.core.transcoder import optimized_path
from app.core.workflow.queue import ProcessingQueue

logger = logging.getLogger(__name__)

MSG_QUEUED = "Video uploaded, starting processing pipeline..."
MSG_REJECTED = "Server is busy, processing could not start. Please try again."


class UploadTooLargeError(Exception):
    """Raised when an upload exceeds MAX_UPLOAD_BYTES."""
    pass


async def store_upload(
    upload: UploadFile,
    tenant_id: str,
    uploads_dir: Path = UPLOADS_DIR,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> tuple[Path, str, int]:
    """
    Write an uploaded file under ``uploads_dir/<tenant_id>/``.

    Returns:
        Tuple of (stored path, original safe filename, size in bytes)

    Raises:
        ValidationError: If the file is not an accepted video
        UploadTooLargeError: If the file exceeds ``max_bytes``
    """
    safe_name = validate_video_upload(upload.filename, upload.content_type)
    target_dir = uploads_dir / tenant_id
    target_dir.mkdir(parents=True, exist_ok=True)
    # Unique prefix keeps every job's files in its own namespace
    dest = target_dir / f"{uuid4().hex}-{safe_name}"

    size = 0
    try:
        with open(dest, "wb") as f:
            while True:
                chunk = await upload.read(UPLOAD_CHUNK_BYTES)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise UploadTooLargeError(
                        f"File exceeds the {max_bytes // (1024 * 1024)}MB limit"
                    )
                f.write(chunk)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise

    logger.info(f"Stored upload {dest.name} ({size} bytes)")
    return dest, safe_name, size


async def create_video(
    store: VideoStore,
    notifier: Notifier,
    queue: ProcessingQueue,
    *,
    source_path: Path,
    original_filename: str,
    size: int,
    mime_type: str,
    owner_id: str,
    tenant_id: str,
    title: Optional[str] = None,
) -> VideoJob:
    """
    Record a stored upload and hand it to the processing queue.

    Raises:
        QueueFullError: If the queue refuses the job; the job is then
            marked as Error and its owner is told, so it does not linger
            in Processing
    """
    job = VideoJob(
        title=sanitize_text(title or "") or original_filename,
        original_filename=original_filename,
        filename=source_path.name,
        source_path=str(source_path),
        size=size,
        mime_type=mime_type,
        owner_id=owner_id,
        tenant_id=tenant_id,
        status=VideoStatus.PROCESSING,
    )
    await asyncio.to_thread(store.save, job)
    logger.info(f"Created video {job.id} for user {owner_id} in tenant {tenant_id}")

    await send_new(notifier, job)
    await send_progress(notifier, job, 0, MSG_QUEUED)

    try:
        queue.enqueue(job.id)
    except Exception:
        job.transition_to(VideoStatus.ERROR)
        await asyncio.to_thread(store.save, job)
        await send_progress(notifier, job, 100, MSG_REJECTED)
        await send_updated(notifier, job)
        raise
    return job


def can_view(user: Dict[str, Any], job: VideoJob) -> bool:
    """Owners see their own videos; tenant admins see every video in the tenant."""
    if job.owner_id == user["uid"]:
        return True
    return user["role"] == ROLE_ADMIN and job.tenant_id == user["tenant_id"]


def can_delete(user: Dict[str, Any], job: VideoJob) -> bool:
    return can_view(user, job)


def list_videos(store: VideoStore, user: Dict[str, Any], tenant_wide: bool = False) -> List[VideoJob]:
    """List the caller's videos, or the whole tenant's for admins."""
    if tenant_wide and user["role"] == ROLE_ADMIN:
        return store.list_for_tenant(user["tenant_id"])
    return store.list_for_owner(user["uid"])


def playback_file(job: VideoJob) -> Optional[Path]:
    """The file to stream for a job, or None if it is missing on disk."""
    path = Path(job.playback_path)
    return path if path.is_file() else None


def remove_video_files(job: VideoJob) -> None:
    """Delete a job's upload and any optimized copy."""
    paths = {Path(job.source_path), optimized_path(Path(job.source_path))}
    if job.output_path:
        paths.add(Path(job.output_path))
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove {path} for video {job.id}: {e}")


async def delete_video(store: VideoStore, notifier: Notifier, job: VideoJob) -> bool:
    """
    Delete a job's record and files, then tell its owner.

    Returns:
        False if the record was already gone
    """
    deleted = await asyncio.to_thread(store.delete_one, job.id)
    await asyncio.to_thread(remove_video_files, job)
    if deleted:
        logger.info(f"Deleted video {job.id}")
        await send_deleted(notifier, job.owner_id, job.id)
    return deleted
