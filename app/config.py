import os
import logging
import logging.config
from dataclasses import dataclass
from pathlib import Path

# Base Paths
APP_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = APP_DIR.parent

# Resources
UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR", str(PROJECT_ROOT / "uploads")))

# Logging Setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_FILE_PATH = os.getenv(
    "LOG_FILE_PATH",
    str((PROJECT_ROOT / "logs" / "app.log").resolve()),
)

LOG_DIR = Path(LOG_FILE_PATH).parent
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": LOG_FORMAT,
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": LOG_LEVEL,
            "formatter": "standard",
            "stream": "ext://sys.stdout",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": LOG_LEVEL,
            "formatter": "standard",
            "filename": LOG_FILE_PATH,
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "encoding": "utf8",
        },
    },
    "loggers": {
        "vidstream": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "app": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        # Let uvicorn log to console using its own handlers
        "uvicorn.error": {"level": "INFO"},
        "uvicorn.access": {"level": "INFO"},
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
}

logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger("vidstream")

# Ensure directories exist
UPLOADS_DIR.mkdir(parents=True, exist_ok=True)


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# -----------------------------------------------------------------------------
# Uploads
# -----------------------------------------------------------------------------

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(100 * 1024 * 1024)))  # 100MB
UPLOAD_CHUNK_BYTES = 1024 * 1024

# Organization used when a token carries no tenant claim
DEFAULT_TENANT_ID = os.getenv("DEFAULT_TENANT_ID", "main-workspace")

# "firestore" in deployments, "memory" for local development
JOB_STORE = os.getenv("JOB_STORE", "firestore").lower()

# -----------------------------------------------------------------------------
# Media tools
# -----------------------------------------------------------------------------

FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")
FFPROBE_PATH = os.getenv("FFPROBE_PATH", "ffprobe")
TRANSCODE_TIMEOUT = float(os.getenv("TRANSCODE_TIMEOUT", "1800"))  # seconds
PROBE_TIMEOUT = float(os.getenv("PROBE_TIMEOUT", "30"))  # seconds

# Fixed streaming profile: H.264 with the moov atom up front
TRANSCODE_PROFILE = (
    "-movflags", "+faststart",
    "-c:v", "libx264",
    "-crf", "23",
    "-preset", "medium",
    "-c:a", "aac",
)
OPTIMIZED_PREFIX = "optimized-"

# -----------------------------------------------------------------------------
# Processing pipeline
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ProgressConfig:
    """
    Percent milestones reported to clients while a video is processed.

    Transcoder progress (0-100) is squeezed into the window between
    ``start`` and ``transcode_end`` as ``floor(p * scale) + start``.
    """

    start: int = 10
    transcode_end: int = 80
    scale: float = 0.7
    classify: int = 85
    complete: int = 100
    simulation_step: int = 10
    simulation_interval: float = 1.0

    def rescale(self, transcoder_percent: float) -> int:
        """Map transcoder progress into the orchestrator's window."""
        bounded = max(0.0, min(100.0, float(transcoder_percent)))
        return min(int(bounded * self.scale) + self.start, self.transcode_end)


PROGRESS = ProgressConfig(
    simulation_interval=float(os.getenv("SIMULATION_TICK_SECONDS", "1.0")),
)

CLASSIFIER_SAFE_PROBABILITY = float(os.getenv("CLASSIFIER_SAFE_PROBABILITY", "0.8"))
CLASSIFIER_DELAY_SECONDS = float(os.getenv("CLASSIFIER_DELAY_SECONDS", "3.0"))
CLASSIFIER_RETRIES = int(os.getenv("CLASSIFIER_RETRIES", "1"))

# Store reload attempts when recording a failed job
ERROR_RELOAD_ATTEMPTS = int(os.getenv("ERROR_RELOAD_ATTEMPTS", "3"))
ERROR_RELOAD_BACKOFF = float(os.getenv("ERROR_RELOAD_BACKOFF", "0.5"))  # seconds

# Worker pool
WORKER_CONCURRENCY = int(os.getenv("WORKER_CONCURRENCY", "2"))
QUEUE_MAX_SIZE = int(os.getenv("QUEUE_MAX_SIZE", "100"))
SHUTDOWN_GRACE_SECONDS = float(os.getenv("SHUTDOWN_GRACE_SECONDS", "30"))

# -----------------------------------------------------------------------------
# HTTP surface
# -----------------------------------------------------------------------------

CORS_ORIGINS = _split_csv(
    os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:8000",
    )
)

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"
DEBUG = not IS_PRODUCTION
