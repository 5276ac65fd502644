"""
Data structures for the video processing workflow.
"""

from dataclasses import dataclass
from typing import Optional

from app.core.repositories.models import VideoJob


@dataclass
class ProcessingContext:
    """State carried through one orchestrator run."""

    video_id: str
    job: Optional[VideoJob] = None
    # Highest percent already sent; events below it are dropped
    last_progress: int = -1
    transcoded: bool = False
