"""
Content sensitivity classification.

``Classifier`` is the contract the pipeline depends on: one awaited call
per video that resolves to exactly one verdict. ``RandomClassifier`` is the
placeholder model, a weighted draw after a fixed analysis delay.
"""

import asyncio
import logging
import random
from typing import Optional, Protocol

from app.config import (
    CLASSIFIER_DELAY_SECONDS,
    CLASSIFIER_RETRIES,
    CLASSIFIER_SAFE_PROBABILITY,
)
from app.core.repositories.models import Sensitivity, VideoJob

logger = logging.getLogger(__name__)

# A verdict is a settled sensitivity; Pending is never returned
Verdict = Sensitivity


class ClassificationError(Exception):
    """Raised when a classifier cannot produce a verdict."""
    pass


class Classifier(Protocol):
    async def classify(self, job: VideoJob) -> Verdict:
        ...


class RandomClassifier:
    """Weighted coin flip standing in for a content-safety model."""

    def __init__(
        self,
        safe_probability: float = CLASSIFIER_SAFE_PROBABILITY,
        delay: float = CLASSIFIER_DELAY_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        if not 0.0 <= safe_probability <= 1.0:
            raise ValueError("safe_probability must be between 0 and 1")
        self.safe_probability = safe_probability
        self.delay = delay
        self.rng = rng or random.Random()

    async def classify(self, job: VideoJob) -> Verdict:
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        verdict = Sensitivity.SAFE if self.rng.random() < self.safe_probability else Sensitivity.FLAGGED
        logger.debug(f"Classified video {job.id} as {verdict.value}")
        return verdict


async def classify_with_retry(
    classifier: Classifier,
    job: VideoJob,
    retries: int = CLASSIFIER_RETRIES,
) -> Verdict:
    """
    Run a classifier, retrying failed attempts.

    Raises:
        ClassificationError: If every attempt fails or returns no verdict
    """
    attempts = max(0, retries) + 1
    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            verdict = await classifier.classify(job)
        except Exception as e:
            last_error = e
            logger.warning(f"Classifier attempt {attempt}/{attempts} failed for {job.id}: {e}")
            continue
        if verdict not in (Sensitivity.SAFE, Sensitivity.FLAGGED):
            last_error = ClassificationError(f"Classifier returned {verdict!r}")
            logger.warning(f"Classifier attempt {attempt}/{attempts} gave no verdict for {job.id}")
            continue
        return verdict
    raise ClassificationError(f"Could not classify video {job.id}: {last_error}") from last_error
