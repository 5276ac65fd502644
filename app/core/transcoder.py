"""
Web-optimized transcoding with ffmpeg.

Every upload goes through one fixed profile (``TRANSCODE_PROFILE``): an
H.264 MP4 with the index moved to the front of the file so playback can
start before the download finishes.
"""

import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol

from app.config import (
    FFMPEG_PATH,
    OPTIMIZED_PREFIX,
    TRANSCODE_PROFILE,
    TRANSCODE_TIMEOUT,
)
from app.core.prober import FFprobeProber, MetadataProber, probe_or_none
from app.core.utils.ffmpeg import (
    MediaToolError,
    ToolUnavailableError,
    run_ffmpeg_with_progress,
)

logger = logging.getLogger(__name__)

TranscodeProgress = Callable[[float], Awaitable[None]]


class TranscodeError(MediaToolError):
    """Raised when transcoding fails for any reason."""
    pass


class TranscoderUnavailableError(TranscodeError):
    """Raised when the ffmpeg binary cannot be found."""
    pass


class Transcoder(Protocol):
    def output_path_for(self, source_path: Path) -> Path:
        ...

    async def transcode(
        self,
        source_path: Path,
        on_progress: Optional[TranscodeProgress] = None,
    ) -> Path:
        ...


def optimized_path(source_path: Path) -> Path:
    """Where the optimized copy of ``source_path`` is written."""
    return source_path.with_name(f"{OPTIMIZED_PREFIX}{source_path.stem}.mp4")


class FFmpegTranscoder:
    """Converts uploads into streaming-ready MP4 files."""

    def __init__(
        self,
        binary: str = FFMPEG_PATH,
        timeout: float = TRANSCODE_TIMEOUT,
        prober: Optional[MetadataProber] = None,
    ):
        self.binary = binary
        self.timeout = timeout
        self.prober = prober or FFprobeProber()

    def output_path_for(self, source_path: Path) -> Path:
        return optimized_path(source_path)

    def build_command(self, source_path: Path, output_path: Path) -> list[str]:
        return [
            self.binary,
            "-y",
            "-hide_banner",
            "-nostats",
            "-loglevel", "error",
            "-i", str(source_path),
            *TRANSCODE_PROFILE,
            "-progress", "pipe:1",
            str(output_path),
        ]

    async def transcode(
        self,
        source_path: Path,
        on_progress: Optional[TranscodeProgress] = None,
    ) -> Path:
        """
        Transcode a file with the fixed streaming profile.

        Args:
            source_path: Uploaded file
            on_progress: Optional async callback receiving percent complete

        Returns:
            Path of the optimized file

        Raises:
            TranscoderUnavailableError: If ffmpeg is not installed
            TranscodeError: If ffmpeg fails or times out
        """
        output_path = self.output_path_for(source_path)
        # Duration only drives progress reporting; transcoding works without it
        duration = await probe_or_none(self.prober, source_path)

        logger.info(f"Transcoding {source_path.name} -> {output_path.name}")
        try:
            await run_ffmpeg_with_progress(
                self.build_command(source_path, output_path),
                duration=duration,
                timeout=self.timeout,
                progress_callback=on_progress,
                context=f"FFmpeg ({source_path.name})",
            )
        except ToolUnavailableError as e:
            raise TranscoderUnavailableError(str(e)) from e
        except MediaToolError as e:
            output_path.unlink(missing_ok=True)
            raise TranscodeError(str(e)) from e

        if on_progress:
            await on_progress(100.0)
        logger.info(f"Transcoded {source_path.name}")
        return output_path
