"""
Security Constants

Centralized constants for security module.
"""

# Maximum lengths for user inputs
MAX_TITLE_LENGTH = 500
MAX_FILENAME_LENGTH = 200
MAX_VIDEO_ID_LENGTH = 100

# Upload container extensions accepted alongside a video/* content type
ALLOWED_VIDEO_EXTENSIONS = frozenset({
    ".mp4",
    ".m4v",
    ".mov",
    ".mkv",
    ".webm",
    ".avi",
})

# Roles carried in the auth token's custom claims
ROLE_ADMIN = "Admin"
ROLE_EDITOR = "Editor"
ROLE_VIEWER = "Viewer"
ALL_ROLES = frozenset({ROLE_ADMIN, ROLE_EDITOR, ROLE_VIEWER})
UPLOAD_ROLES = frozenset({ROLE_ADMIN, ROLE_EDITOR})

# Request ID header
REQUEST_ID_HEADER = "X-Request-ID"
