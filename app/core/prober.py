"""
Metadata probing with ffprobe.
"""

import json
import logging
import math
from pathlib import Path
from typing import Optional, Protocol

from app.config import FFPROBE_PATH, PROBE_TIMEOUT
from app.core.utils.ffmpeg import MediaToolError, run_ffprobe

logger = logging.getLogger(__name__)


class ProbeError(MediaToolError):
    """Raised when a file's metadata cannot be read."""
    pass


class MetadataProber(Protocol):
    async def probe(self, source_path: Path) -> float:
        ...


def parse_duration(raw: object) -> float:
    """
    Validate a duration value reported by ffprobe.

    Raises:
        ProbeError: If the value is missing, not numeric, or not positive
    """
    if raw is None:
        raise ProbeError("ffprobe reported no duration")
    try:
        duration = float(raw)
    except (TypeError, ValueError) as e:
        raise ProbeError(f"Invalid duration: {raw!r}") from e
    if not math.isfinite(duration) or duration <= 0:
        raise ProbeError(f"Invalid duration: {raw!r}")
    return duration


class FFprobeProber:
    """Reads the container duration of a media file."""

    def __init__(self, binary: str = FFPROBE_PATH, timeout: float = PROBE_TIMEOUT):
        self.binary = binary
        self.timeout = timeout

    async def probe(self, source_path: Path) -> float:
        """
        Get a file's duration in seconds.

        Raises:
            ProbeError: If ffprobe is unavailable, fails, or the file has no
                readable duration
        """
        cmd = [
            self.binary,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "json",
            str(source_path),
        ]
        try:
            output = await run_ffprobe(cmd, timeout=self.timeout)
        except MediaToolError as e:
            raise ProbeError(str(e)) from e

        try:
            data = json.loads(output or "{}")
        except json.JSONDecodeError as e:
            raise ProbeError(f"Unreadable ffprobe output for {source_path}") from e

        duration = parse_duration((data.get("format") or {}).get("duration"))
        logger.debug(f"Probed {source_path.name}: {duration:.2f}s")
        return duration


async def probe_or_none(prober: MetadataProber, source_path: Path) -> Optional[float]:
    """Probe a file, returning None instead of raising."""
    try:
        return await prober.probe(source_path)
    except ProbeError as e:
        logger.info(f"Could not read duration of {source_path.name}: {e}")
        return None
