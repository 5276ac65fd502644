"""
Core utility modules for FFmpeg operations.
"""

from app.core.utils.ffmpeg import (
    MediaToolError,
    ToolExecutionError,
    ToolUnavailableError,
    filter_benign_warnings,
    parse_progress_line,
    run_ffmpeg_with_progress,
    run_ffprobe,
)

__all__ = [
    "MediaToolError",
    "ToolExecutionError",
    "ToolUnavailableError",
    "filter_benign_warnings",
    "parse_progress_line",
    "run_ffmpeg_with_progress",
    "run_ffprobe",
]
