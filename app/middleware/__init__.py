"""
HTTP middleware for VidStream.
"""

from app.middleware.request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
]
