"""
Main video processing workflow.

Takes one uploaded video through optimization, sensitivity analysis and
metadata extraction, persisting the job and notifying its owner after
every step. Processing -> Completed | Flagged on success, Error otherwise.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from app.config import (
    CLASSIFIER_RETRIES,
    ERROR_RELOAD_ATTEMPTS,
    ERROR_RELOAD_BACKOFF,
    PROGRESS,
    ProgressConfig,
)
from app.core.classifier import Classifier, RandomClassifier, classify_with_retry
from app.core.notifier import Notifier, send_progress, send_updated
from app.core.prober import FFprobeProber, MetadataProber, probe_or_none
from app.core.repositories.base import VideoStore
from app.core.repositories.models import Sensitivity, VideoJob, VideoStatus
from app.core.transcoder import (
    FFmpegTranscoder,
    TranscodeError,
    Transcoder,
    TranscoderUnavailableError,
)
from app.core.workflow.context import ProcessingContext
from app.core.workflow.simulation import simulate_progress

logger = logging.getLogger(__name__)

MSG_STARTING = "Starting optimization..."
MSG_OPTIMIZING = "Optimizing for streaming..."
MSG_SIMULATING = "Simulating processing (FFmpeg not detected)..."
MSG_CLASSIFYING = "Running sensitivity analysis..."
MSG_SAFE = "Processing complete. Video is safe."
MSG_FLAGGED = "Processing complete. Video flagged for content."
MSG_ERROR = "An error occurred during processing."


class ProcessingOrchestrator:
    """
    Runs the processing pipeline for one video at a time.

    Instances hold no per-job state, so a single orchestrator can serve
    several concurrent runs.
    """

    def __init__(
        self,
        store: VideoStore,
        notifier: Notifier,
        transcoder: Optional[Transcoder] = None,
        prober: Optional[MetadataProber] = None,
        classifier: Optional[Classifier] = None,
        progress: ProgressConfig = PROGRESS,
        classifier_retries: int = CLASSIFIER_RETRIES,
        reload_attempts: int = ERROR_RELOAD_ATTEMPTS,
        reload_backoff: float = ERROR_RELOAD_BACKOFF,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.notifier = notifier
        self.prober = prober or FFprobeProber()
        self.transcoder = transcoder or FFmpegTranscoder(prober=self.prober)
        self.classifier = classifier or RandomClassifier()
        self.progress = progress
        self.classifier_retries = classifier_retries
        self.reload_attempts = max(1, reload_attempts)
        self.reload_backoff = reload_backoff
        self.sleep = sleep

    async def run(self, video_id: str) -> None:
        """
        Process a video to a terminal status.

        Never raises: failures are recorded on the job as ``Error`` and
        reported to the owner. A job that no longer exists is skipped.
        """
        context = ProcessingContext(video_id=video_id)
        try:
            job = await self._find(video_id)
            if job is None:
                logger.info(f"Video {video_id} no longer exists; nothing to process")
                return
            context.job = job
            await self._process(context, job)
        except Exception as e:
            logger.error(f"Error processing video {video_id}: {e}", exc_info=True)
            await self._record_failure(context)

    async def _process(self, context: ProcessingContext, job: VideoJob) -> None:
        if job.is_terminal:
            logger.warning(f"Video {job.id} already finished as {job.status.value}; skipping")
            return

        job.transition_to(VideoStatus.PROCESSING)
        await self._save(job)
        await self._report(context, self.progress.start, MSG_STARTING)
        logger.info(f"Starting processing for video {job.id}")

        source_path = Path(job.source_path)
        output_path = self.transcoder.output_path_for(source_path)
        await self._optimize(context, source_path)

        await self._report(context, self.progress.classify, MSG_CLASSIFYING)
        verdict = await classify_with_retry(self.classifier, job, self.classifier_retries)
        job.record_verdict(verdict)

        # Duration comes from the original upload, not the transcoded copy
        duration = await probe_or_none(self.prober, source_path)
        if duration is not None:
            job.duration = duration

        job.transition_to(
            VideoStatus.COMPLETED if verdict == Sensitivity.SAFE else VideoStatus.FLAGGED
        )
        if context.transcoded and output_path.exists():
            job.attach_output(output_path)

        if await self._find(job.id) is None:
            logger.info(f"Video {job.id} was deleted during processing; discarding result")
            output_path.unlink(missing_ok=True)
            return

        await self._save(job)
        await self._report(
            context,
            self.progress.complete,
            MSG_SAFE if verdict == Sensitivity.SAFE else MSG_FLAGGED,
        )
        await send_updated(self.notifier, job)
        logger.info(f"Video {job.id} finished as {job.status.value}")

    async def _optimize(self, context: ProcessingContext, source_path: Path) -> None:
        """Transcode, or simulate progress up to the end of the transcode window."""

        async def on_transcode_progress(percent: float) -> None:
            await self._report(context, self.progress.rescale(percent), MSG_OPTIMIZING)

        async def on_simulated_tick(value: int) -> None:
            await self._report(context, value, MSG_SIMULATING)

        try:
            await self.transcoder.transcode(source_path, on_progress=on_transcode_progress)
            context.transcoded = True
            return
        except TranscoderUnavailableError:
            logger.info("Simulation mode activated: FFmpeg binary not found")
        except TranscodeError as e:
            logger.warning(f"Transcoding failed for video {context.video_id}, simulating: {e}")

        await simulate_progress(
            self.progress.transcode_end,
            on_simulated_tick,
            start=self.progress.start,
            step=self.progress.simulation_step,
            interval=self.progress.simulation_interval,
            sleep=self.sleep,
        )

    async def _record_failure(self, context: ProcessingContext) -> None:
        """Mark the job as failed and tell its owner."""
        job: Optional[VideoJob] = None
        for attempt in range(1, self.reload_attempts + 1):
            try:
                job = await self._find(context.video_id)
                break
            except Exception as e:
                logger.warning(
                    f"Reload {attempt}/{self.reload_attempts} of video {context.video_id} failed: {e}"
                )
                if attempt < self.reload_attempts:
                    await self.sleep(self.reload_backoff * attempt)
        else:
            logger.error(f"Could not reload video {context.video_id}; failure not recorded")
            return

        if job is None:
            logger.info(f"Video {context.video_id} was deleted; failure not recorded")
            return
        if job.is_terminal and job.status != VideoStatus.ERROR:
            logger.warning(
                f"Video {job.id} already finished as {job.status.value}; not marking as Error"
            )
            return

        context.job = job
        try:
            if job.status == VideoStatus.UPLOADING:
                # Failed before Processing was stored; record it on the way to Error
                job.transition_to(VideoStatus.PROCESSING)
                await self._save(job)
            job.transition_to(VideoStatus.ERROR)
            await self._save(job)
        except Exception as e:
            logger.error(f"Failed to persist Error status for video {job.id}: {e}", exc_info=True)
        await self._report(context, self.progress.complete, MSG_ERROR)

    async def _report(self, context: ProcessingContext, progress: int, message: str) -> None:
        """Send a progress event, keeping each job's percentages strictly increasing."""
        job = context.job
        if job is None or progress <= context.last_progress:
            return
        context.last_progress = progress
        await send_progress(self.notifier, job, progress, message)

    async def _find(self, video_id: str) -> Optional[VideoJob]:
        return await asyncio.to_thread(self.store.find_by_id, video_id)

    async def _save(self, job: VideoJob) -> VideoJob:
        return await asyncio.to_thread(self.store.save, job)
