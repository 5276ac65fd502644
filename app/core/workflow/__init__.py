"""
Video processing workflow package.

This package runs uploaded videos through the processing pipeline:
- Web-optimized transcoding, with simulated progress when ffmpeg is missing
- Sensitivity classification
- Duration probing
- Progress tracking and WebSocket notification

Module Structure:
- context.py: Per-run state (ProcessingContext)
- simulation.py: Synthetic progress generator
- processor.py: Pipeline orchestration
- queue.py: Background worker pool
"""

from app.core.workflow.context import ProcessingContext
from app.core.workflow.simulation import simulate_progress
from app.core.workflow.processor import ProcessingOrchestrator
from app.core.workflow.queue import ProcessingQueue, QueueFullError

__all__ = [
    "ProcessingContext",
    "simulate_progress",
    "ProcessingOrchestrator",
    "ProcessingQueue",
    "QueueFullError",
]
