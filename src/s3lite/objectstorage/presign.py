"""Presigned URL generation (query-string authentication)."""

import base64
import hashlib
import hmac
import time
from typing import Optional

from s3lite.core import settings

from .clients import S3ClientManager
from .request import endpoint_url, escape_path, format_query


def string_to_sign(
    verb: str,
    content_type: str,
    expires: int,
    token: str,
    bucket: str,
    escaped_key: str,
) -> str:
    return (
        f"{verb}\n\n{content_type}\n{expires}\n"
        f"x-amz-security-token:{token}\n"
        f"/{bucket}/{escaped_key}?response-content-disposition=attachment"
    )


def sign_url(
    manager: S3ClientManager,
    bucket: str,
    key: str,
    expires: Optional[int] = None,
    verb: str = "GET",
    content_type: str = "application/octet-stream",
    now: Optional[float] = None,
) -> str:
    """Create a presigned URL for ``key`` in ``bucket``.

    To create an upload URL use ``verb="PUT"`` and set ``content_type`` to
    the ``Content-Type`` the uploader will send; for other verbs the content
    type is not part of the signature.

    Args:
        expires: Lifetime in seconds (default from settings, 3600)
        now: Unix timestamp to sign against, instead of the current time
    """
    if expires is None:
        expires = settings.presign_expires
    if now is None:
        now = time.time()
    if verb != "PUT":
        content_type = ""

    credentials = manager.credentials
    token = manager.session_token
    expires_at = int(round(now + expires))
    escaped_key = escape_path(key)

    to_sign = string_to_sign(verb, content_type, expires_at, token, bucket, escaped_key)
    digest = hmac.new(
        credentials.secret_key.encode("utf-8"),
        to_sign.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    signature = base64.b64encode(digest).decode("ascii").strip()

    query = {
        "AWSAccessKeyId": credentials.access_key,
        "x-amz-security-token": token,
        "Expires": str(expires_at),
        "response-content-disposition": "attachment",
        "Signature": signature,
    }
    base = endpoint_url(manager.config, manager.config.region_name, bucket)
    return f"{base}/{escaped_key}?{format_query(query)}"
