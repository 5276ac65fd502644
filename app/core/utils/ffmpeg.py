"""
FFmpeg utility functions with error handling and logging.

This module runs the ffmpeg/ffprobe binaries as asyncio subprocesses and
maps their failure modes onto a small exception hierarchy:

- the binary is missing -> ``ToolUnavailableError``
- it ran and failed or timed out -> ``ToolExecutionError``
"""

import asyncio
import logging
import re
from typing import Awaitable, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], Awaitable[None]]

# Patterns for known benign warnings that should be filtered
BENIGN_WARNING_PATTERNS = [
    r"\[av1 @ .*\] Your platform doesn't suppport hardware accelerated AV1 decoding",
    r"\[av1 @ .*\] Failed to get pixel format",
    r"\[av1 @ .*\] Missing Sequence Header",
    r"\[.*\] .* does not support hardware acceleration",
    r"\[.*\] .* hardware acceleration disabled",
]

# Longest stderr tail kept on an exception
MAX_ERROR_OUTPUT = 4000


class MediaToolError(Exception):
    """Base exception for ffmpeg/ffprobe failures."""
    pass


class ToolUnavailableError(MediaToolError):
    """Raised when a media binary cannot be found or started."""
    pass


class ToolExecutionError(MediaToolError):
    """Raised when a media binary exits non-zero or times out."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


def filter_benign_warnings(stderr: str) -> tuple[str, list[str]]:
    """
    Filter out known benign warnings from FFmpeg stderr.

    Args:
        stderr: Raw stderr output from FFmpeg.

    Returns:
        Tuple of (filtered_stderr, filtered_warnings_list).
    """
    lines = stderr.split("\n")
    filtered_lines = []
    filtered_warnings = []

    for line in lines:
        is_benign = False
        for pattern in BENIGN_WARNING_PATTERNS:
            if re.search(pattern, line, re.IGNORECASE):
                is_benign = True
                filtered_warnings.append(line)
                break

        if not is_benign:
            filtered_lines.append(line)

    return "\n".join(filtered_lines), filtered_warnings


def parse_progress_line(line: str, duration: Optional[float]) -> Optional[float]:
    """
    Turn one line of ``-progress`` output into a percentage.

    Only ``out_time_ms`` lines carry position (in microseconds, despite the
    name). Returns None for any other line, or when the duration is unknown.
    """
    if not line.startswith("out_time_ms=") or not duration or duration <= 0:
        return None
    try:
        position = int(line.split("=", 1)[1]) / 1_000_000.0
    except (ValueError, IndexError):
        return None
    if position < 0:
        return None
    return min(100.0, position / duration * 100.0)


async def _spawn(cmd: Sequence[str], **kwargs) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(*cmd, **kwargs)
    except (FileNotFoundError, PermissionError) as e:
        raise ToolUnavailableError(f"{cmd[0]} is not available: {e}") from e


async def _terminate(process: asyncio.subprocess.Process, context: str) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(process.wait(), timeout=5)
    except asyncio.TimeoutError:
        logger.warning(f"{context} process did not terminate after kill")


async def run_ffmpeg_with_progress(
    cmd: List[str],
    duration: Optional[float],
    timeout: float,
    progress_callback: Optional[ProgressCallback] = None,
    context: str = "FFmpeg",
) -> None:
    """
    Run an FFmpeg command, reporting progress from its ``-progress pipe:1`` output.

    The command must already include ``-progress pipe:1``. Progress values
    passed to the callback are strictly increasing percentages in [0, 100].

    Args:
        cmd: FFmpeg command as list of arguments
        duration: Source duration in seconds; without it no intermediate
            progress can be computed
        timeout: Maximum time to wait for FFmpeg to complete
        progress_callback: Optional async callback for progress updates
        context: Description for logging

    Raises:
        ToolUnavailableError: If the binary cannot be started
        ToolExecutionError: If FFmpeg fails or times out
    """
    process = await _spawn(
        cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    stdout, stderr_pipe = process.stdout, process.stderr
    if stdout is None or stderr_pipe is None:
        await _terminate(process, context)
        raise ToolExecutionError(f"{context} started without output pipes")

    last_progress = -1.0

    async def read_progress() -> None:
        nonlocal last_progress
        while True:
            line = await stdout.readline()
            if not line:
                break
            percent = parse_progress_line(line.decode("utf-8", errors="ignore").strip(), duration)
            if percent is not None and percent > last_progress:
                last_progress = percent
                if progress_callback:
                    await progress_callback(percent)

    async def read_stderr() -> bytes:
        return await stderr_pipe.read()

    try:
        stderr_bytes = await _drain(process, read_progress, read_stderr, timeout, context)
    finally:
        await _terminate(process, context)

    if process.returncode != 0:
        stderr, warnings = filter_benign_warnings(stderr_bytes.decode("utf-8", errors="ignore"))
        if warnings:
            logger.debug(f"Filtered {len(warnings)} benign FFmpeg warnings")
        tail = stderr.strip()[-MAX_ERROR_OUTPUT:]
        logger.error(f"{context} exited with code {process.returncode}: {tail}")
        raise ToolExecutionError(
            f"{context} exited with code {process.returncode}",
            returncode=process.returncode,
            stderr=tail,
        )


async def _drain(process, read_progress, read_stderr, timeout: float, context: str) -> bytes:
    """Read both pipes to EOF and wait for exit, bounded by ``timeout``."""
    async def run() -> bytes:
        _, stderr_bytes, _ = await asyncio.gather(read_progress(), read_stderr(), process.wait())
        return stderr_bytes

    try:
        return await asyncio.wait_for(run(), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"{context} exceeded {timeout:.0f}s limit")
        raise ToolExecutionError(f"{context} timed out after {timeout:.0f} seconds") from e


async def run_ffprobe(cmd: List[str], timeout: float, context: str = "ffprobe") -> str:
    """
    Run an ffprobe command and return its stdout.

    Raises:
        ToolUnavailableError: If the binary cannot be started
        ToolExecutionError: If ffprobe fails or times out
    """
    process = await _spawn(
        cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        await _terminate(process, context)
        raise ToolExecutionError(
            f"{context} timed out after {timeout:.0f}s (file may be on slow storage or corrupted)"
        ) from e

    if process.returncode != 0:
        message = stderr.decode("utf-8", errors="ignore").strip()[-MAX_ERROR_OUTPUT:]
        raise ToolExecutionError(
            f"{context} failed: {message}",
            returncode=process.returncode,
            stderr=message,
        )
    return stdout.decode("utf-8", errors="ignore")
