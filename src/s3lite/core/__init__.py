"""Core utilities and shared components for s3lite."""

from .config import settings
from .exceptions import S3Error, S3LiteError, ValidationError
from .observability import get_logger, get_tracer

__all__ = [
    "settings",
    "S3Error",
    "S3LiteError",
    "ValidationError",
    "get_logger",
    "get_tracer",
]
