"""
Repository exceptions for clean error handling.
"""


class RepositoryError(Exception):
    """Base exception for all repository errors."""
    pass


class VideoRepositoryError(RepositoryError):
    """Exception raised by video repository operations."""
    pass


class ValidationError(RepositoryError):
    """Raised when input validation fails."""
    pass


class InvalidTransitionError(ValidationError):
    """Raised when a video job is moved against its lifecycle."""
    pass
