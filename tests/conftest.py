"""
Shared fixtures and test doubles.

Environment is set before any ``app`` import so configuration picks up
the in-memory store and throwaway directories.
"""

import os
import tempfile

os.environ.setdefault("JOB_STORE", "memory")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="vidstream-uploads-"))
os.environ.setdefault("LOG_FILE_PATH", os.path.join(tempfile.mkdtemp(prefix="vidstream-logs-"), "app.log"))

from pathlib import Path
from typing import List, Optional

import pytest

from app.config import ProgressConfig
from app.core.notifier import EVENT_PROGRESS
from app.core.prober import ProbeError
from app.core.repositories import InMemoryVideoRepository, Sensitivity, VideoJob, VideoStatus
from app.core.transcoder import optimized_path
from app.core.workflow import ProcessingOrchestrator


class RecordingNotifier:
    """Notifier that keeps every emitted event."""

    def __init__(self):
        self.events = []

    async def emit_to_recipient(self, recipient_id, event, payload):
        self.events.append((recipient_id, event, payload))

    def names(self) -> List[str]:
        return [event for _, event, _ in self.events]

    def progress_events(self) -> List[dict]:
        return [payload for _, event, payload in self.events if event == EVENT_PROGRESS]

    def progress_values(self) -> List[int]:
        return [payload["progress"] for payload in self.progress_events()]


class FakeTranscoder:
    """Reports the given progress values, then writes the output file."""

    def __init__(self, progress=(25, 50, 100), error: Optional[Exception] = None, error_after_progress=False):
        self.progress = progress
        self.error = error
        self.error_after_progress = error_after_progress
        self.calls = []

    def output_path_for(self, source_path: Path) -> Path:
        return optimized_path(source_path)

    async def transcode(self, source_path, on_progress=None):
        self.calls.append(source_path)
        if self.error is not None and not self.error_after_progress:
            raise self.error
        for value in self.progress:
            if on_progress:
                await on_progress(value)
        if self.error is not None:
            raise self.error
        output = self.output_path_for(source_path)
        output.write_bytes(b"optimized")
        return output


class FakeProber:
    def __init__(self, duration: Optional[float] = 42.0):
        self.duration = duration
        self.calls = []

    async def probe(self, source_path):
        self.calls.append(source_path)
        if self.duration is None:
            raise ProbeError("unreadable")
        return self.duration


class FakeClassifier:
    """Returns queued outcomes in order; exceptions in the queue are raised."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [Sensitivity.SAFE]
        self.calls = 0

    async def classify(self, job):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_job(source_path: Path, **overrides) -> VideoJob:
    fields = dict(
        id="v1",
        title="Holiday",
        original_filename=source_path.name,
        filename=source_path.name,
        source_path=str(source_path),
        size=1024,
        mime_type="video/mp4",
        owner_id="user-1",
        tenant_id="tenant-1",
        status=VideoStatus.PROCESSING,
    )
    fields.update(overrides)
    return VideoJob(**fields)


@pytest.fixture
def store():
    return InMemoryVideoRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "a.mp4"
    path.write_bytes(b"\x00" * 64)
    return path


@pytest.fixture
def saved_job(store, source_file):
    job = make_job(source_file)
    store.save(job)
    return job


@pytest.fixture
def build_orchestrator(store, notifier, sleep):
    def _build(transcoder=None, prober=None, classifier=None, **kwargs):
        return ProcessingOrchestrator(
            store=store,
            notifier=notifier,
            transcoder=transcoder or FakeTranscoder(),
            prober=prober or FakeProber(),
            classifier=classifier or FakeClassifier(Sensitivity.SAFE),
            progress=ProgressConfig(),
            sleep=sleep,
            **kwargs,
        )

    return _build
