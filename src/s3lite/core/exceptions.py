"""Exception hierarchy for s3lite."""

from typing import Any, Dict, Optional


class S3LiteError(Exception):
    """Base exception for all s3lite errors."""

    pass


class ValidationError(S3LiteError):
    """Raised when validation fails."""

    pass


class TransportError(S3LiteError):
    """Raised when the HTTP transport fails before a response is received."""

    pass


class ResponseDecodeError(S3LiteError):
    """Raised when a response body cannot be decoded."""

    pass


class S3Error(S3LiteError):
    """Error response returned by the storage service.

    ``code`` is the provider's error code verbatim (e.g. ``NoSuchKey``), or
    the HTTP status as a string when the service sent no error body (HEAD
    requests). ``info`` holds every field of the decoded ``<Error>`` element.
    """

    def __init__(
        self,
        code: str,
        message: str = "",
        status: Optional[int] = None,
        info: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.status = status
        self.info = info or {}
        super().__init__(f"{code}: {message}" if message else code)
