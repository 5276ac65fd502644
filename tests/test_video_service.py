"""
Tests for upload storage and video lifecycle operations.

Run with: pytest tests/test_video_service.py -v
"""

import asyncio
from io import BytesIO

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from conftest import make_job

from app.core import video_service
from app.core.notifier import EVENT_DELETED, EVENT_NEW, EVENT_PROGRESS, EVENT_UPDATED
from app.core.repositories import VideoStatus
from app.core.security import ValidationError
from app.core.workflow import QueueFullError


def make_upload(data=b"\x00" * 100, filename="clip.mp4", content_type="video/mp4"):
    return UploadFile(
        file=BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class StubQueue:
    def __init__(self, error=None):
        self.error = error
        self.enqueued = []

    def enqueue(self, video_id):
        if self.error:
            raise self.error
        self.enqueued.append(video_id)


ADMIN = {"uid": "admin-1", "role": "Admin", "tenant_id": "tenant-1"}
EDITOR = {"uid": "user-1", "role": "Editor", "tenant_id": "tenant-1"}
OUTSIDER = {"uid": "admin-2", "role": "Admin", "tenant_id": "tenant-2"}


class TestStoreUpload:
    """Tests for store_upload."""

    def test_writes_under_tenant_directory(self, tmp_path):
        dest, name, size = asyncio.run(
            video_service.store_upload(make_upload(), "tenant-1", uploads_dir=tmp_path)
        )
        assert dest.parent == tmp_path / "tenant-1"
        assert dest.name.endswith("-clip.mp4")
        assert dest.read_bytes() == b"\x00" * 100
        assert name == "clip.mp4"
        assert size == 100

    def test_uploads_never_collide(self, tmp_path):
        first, _, _ = asyncio.run(video_service.store_upload(make_upload(), "t", uploads_dir=tmp_path))
        second, _, _ = asyncio.run(video_service.store_upload(make_upload(), "t", uploads_dir=tmp_path))
        assert first != second

    def test_strips_client_directories(self, tmp_path):
        dest, name, _ = asyncio.run(
            video_service.store_upload(make_upload(filename="../../etc/evil.mp4"), "t", uploads_dir=tmp_path)
        )
        assert name == "evil.mp4"
        assert dest.parent == tmp_path / "t"

    @pytest.mark.parametrize("filename,content_type", [
        ("notes.txt", "text/plain"),
        ("photo.png", "image/png"),
        ("clip.exe", "video/mp4"),
    ])
    def test_rejects_non_videos(self, tmp_path, filename, content_type):
        with pytest.raises(ValidationError):
            asyncio.run(video_service.store_upload(
                make_upload(filename=filename, content_type=content_type), "t", uploads_dir=tmp_path
            ))

    def test_too_large_is_rejected_and_removed(self, tmp_path):
        with pytest.raises(video_service.UploadTooLargeError):
            asyncio.run(video_service.store_upload(
                make_upload(data=b"\x00" * 2048), "t", uploads_dir=tmp_path, max_bytes=1024
            ))
        assert list((tmp_path / "t").iterdir()) == []


class TestCreateVideo:
    """Tests for create_video."""

    def test_records_notifies_and_queues(self, store, notifier, source_file):
        queue = StubQueue()
        job = asyncio.run(video_service.create_video(
            store, notifier, queue,
            source_path=source_file,
            original_filename="a.mp4",
            size=64,
            mime_type="video/mp4",
            owner_id="user-1",
            tenant_id="tenant-1",
            title="  My trip  ",
        ))

        assert job.title == "My trip"
        assert job.status == VideoStatus.PROCESSING
        assert store.find_by_id(job.id) is not None
        assert queue.enqueued == [job.id]
        assert notifier.names() == [EVENT_NEW, EVENT_PROGRESS]
        assert notifier.progress_values() == [0]

    def test_title_defaults_to_filename(self, store, notifier, source_file):
        job = asyncio.run(video_service.create_video(
            store, notifier, StubQueue(),
            source_path=source_file,
            original_filename="a.mp4",
            size=64,
            mime_type="video/mp4",
            owner_id="user-1",
            tenant_id="tenant-1",
        ))
        assert job.title == "a.mp4"

    def test_full_queue_marks_error(self, store, notifier, source_file):
        with pytest.raises(QueueFullError):
            asyncio.run(video_service.create_video(
                store, notifier, StubQueue(error=QueueFullError("full")),
                source_path=source_file,
                original_filename="a.mp4",
                size=64,
                mime_type="video/mp4",
                owner_id="user-1",
                tenant_id="tenant-1",
            ))

        [job] = store.list_for_owner("user-1")
        assert job.status == VideoStatus.ERROR

        assert notifier.names() == [EVENT_NEW, EVENT_PROGRESS, EVENT_PROGRESS, EVENT_UPDATED]
        final = notifier.progress_events()[-1]
        assert final["progress"] == 100
        assert final["status"] == "Error"
        assert final["message"] == video_service.MSG_REJECTED
        assert notifier.events[-1][2]["status"] == "Error"


class TestAccess:
    """Tests for visibility rules."""

    def test_owner_can_view(self, source_file):
        assert video_service.can_view(EDITOR, make_job(source_file))

    def test_admin_can_view_tenant_videos(self, source_file):
        assert video_service.can_view(ADMIN, make_job(source_file))

    def test_admin_of_other_tenant_cannot_view(self, source_file):
        assert not video_service.can_view(OUTSIDER, make_job(source_file))

    def test_viewer_cannot_see_colleagues_videos(self, source_file):
        viewer = {"uid": "user-9", "role": "Viewer", "tenant_id": "tenant-1"}
        assert not video_service.can_view(viewer, make_job(source_file))
        assert not video_service.can_delete(viewer, make_job(source_file))

    def test_list_scopes(self, store, source_file):
        store.save(make_job(source_file, id="mine"))
        store.save(make_job(source_file, id="theirs", owner_id="user-2"))

        assert [j.id for j in video_service.list_videos(store, EDITOR)] == ["mine"]
        # Only admins may widen the listing to the tenant
        assert [j.id for j in video_service.list_videos(store, EDITOR, tenant_wide=True)] == ["mine"]
        assert {j.id for j in video_service.list_videos(store, ADMIN, tenant_wide=True)} == {"mine", "theirs"}


class TestDeleteVideo:
    """Tests for delete_video and file helpers."""

    def test_removes_record_files_and_notifies(self, store, notifier, source_file):
        output = source_file.with_name("optimized-a.mp4")
        output.write_bytes(b"x")
        job = make_job(source_file)
        job.attach_output(output)
        store.save(job)

        assert asyncio.run(video_service.delete_video(store, notifier, job)) is True
        assert store.find_by_id("v1") is None
        assert not source_file.exists()
        assert not output.exists()
        assert notifier.events == [("user-1", EVENT_DELETED, {"videoId": "v1"})]

    def test_already_gone(self, store, notifier, source_file):
        job = make_job(source_file)
        assert asyncio.run(video_service.delete_video(store, notifier, job)) is False
        assert notifier.events == []

    def test_playback_file(self, source_file):
        job = make_job(source_file)
        assert video_service.playback_file(job) == source_file

        source_file.unlink()
        assert video_service.playback_file(job) is None
