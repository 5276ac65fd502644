from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse

from app.config import logger
from app.core import video_service
from app.core.firebase_client import get_current_user, require_roles
from app.core.notifier import ConnectionManager
from app.core.repositories import VideoJob, VideoRepositoryError, VideoStore
from app.core.security import (
    UPLOAD_ROLES,
    ValidationError,
    log_security_event,
    validate_video_id,
)
from app.core.workflow import ProcessingQueue, QueueFullError
from app.dependencies import get_notifier, get_processing_queue, get_store
from app.schemas import DeleteVideoResponse, UserVideosResponse, VideoResponse

router = APIRouter(prefix="/api/videos", tags=["Videos"])


def _load_visible_video(store: VideoStore, video_id: str, user: Dict[str, Any]) -> VideoJob:
    """Fetch a video the caller may see, or raise the matching HTTP error."""
    try:
        video_id = validate_video_id(video_id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    try:
        job = store.find_by_id(video_id)
    except VideoRepositoryError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Video store unavailable")

    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    if not video_service.can_view(user, job):
        log_security_event("video_access_denied", user=user, video_id=video_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    return job


@router.post("/upload", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def upload_video(
    video: UploadFile = File(...),
    title: Optional[str] = Form(None),
    user: Dict[str, Any] = Depends(require_roles(*UPLOAD_ROLES)),
    store: VideoStore = Depends(get_store),
    notifier: ConnectionManager = Depends(get_notifier),
    queue: ProcessingQueue = Depends(get_processing_queue),
) -> VideoResponse:
    """Upload a video and start processing it in the background."""
    try:
        source_path, original_filename, size = await video_service.store_upload(video, user["tenant_id"])
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except video_service.UploadTooLargeError as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))

    try:
        job = await video_service.create_video(
            store,
            notifier,
            queue,
            source_path=source_path,
            original_filename=original_filename,
            size=size,
            mime_type=video.content_type or "video/mp4",
            owner_id=user["uid"],
            tenant_id=user["tenant_id"],
            title=title,
        )
    except QueueFullError:
        logger.warning(f"Rejected upload from {user['uid']}: processing queue full")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Server is busy processing other videos, try again shortly",
        )
    except VideoRepositoryError:
        source_path.unlink(missing_ok=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Video store unavailable")

    return VideoResponse.from_job(job)


@router.get("", response_model=UserVideosResponse)
async def get_videos(
    scope: str = Query("mine", pattern="^(mine|tenant)$"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: VideoStore = Depends(get_store),
) -> UserVideosResponse:
    """List the caller's videos, newest first. Admins may list the whole tenant."""
    try:
        videos: List[VideoJob] = video_service.list_videos(store, user, tenant_wide=scope == "tenant")
    except VideoRepositoryError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Video store unavailable")
    return UserVideosResponse(videos=[VideoResponse.from_job(v) for v in videos])


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: VideoStore = Depends(get_store),
) -> VideoResponse:
    """Get a single video."""
    return VideoResponse.from_job(_load_visible_video(store, video_id, user))


@router.get("/{video_id}/stream")
async def stream_video(
    video_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: VideoStore = Depends(get_store),
) -> FileResponse:
    """Stream a video file with support for HTTP range requests."""
    job = _load_visible_video(store, video_id, user)
    path = video_service.playback_file(job)
    if path is None:
        logger.warning(f"File missing for video {job.id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video file not found")
    media_type = "video/mp4" if job.output_path else job.mime_type
    return FileResponse(path, media_type=media_type, filename=job.filename)


@router.delete("/{video_id}", response_model=DeleteVideoResponse)
async def delete_video(
    video_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    store: VideoStore = Depends(get_store),
    notifier: ConnectionManager = Depends(get_notifier),
) -> DeleteVideoResponse:
    """Delete a video and its files. Allowed for the owner and tenant admins."""
    job = _load_visible_video(store, video_id, user)
    if not video_service.can_delete(user, job):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to delete this video")

    try:
        await video_service.delete_video(store, notifier, job)
    except VideoRepositoryError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Video store unavailable")

    return DeleteVideoResponse(success=True, video_id=job.id, message="Video removed successfully")
