"""Signed request dispatch to the storage service.

The dispatcher sends exactly one HTTP request per call: it resolves the
region (bucket-region cache first, then the configured default), signs the
request with botocore's S3 SigV4 signer and sends it with a shared
``requests.Session``. It never retries; that is the job of the policies in
``s3lite.objectstorage.retry``.
"""

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

import requests
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from requests.structures import CaseInsensitiveDict

from s3lite.core import get_logger, get_tracer, settings
from s3lite.core.exceptions import ResponseDecodeError, S3Error, TransportError

from .documents import error_fields, parse_document
from .request import ResponseMode, S3Request, endpoint_url

if TYPE_CHECKING:
    from botocore.credentials import Credentials

    from .clients.s3_client import S3ClientConfig

logger = get_logger(__name__)
tracer = get_tracer(__name__)

STREAM_CHUNK_SIZE = 1024 * 1024


class BucketRegionCache:
    """Bucket name to region mapping shared by all requests of a session.

    Entries are written only when the service tells us a bucket lives in a
    different region, and are never evicted. Concurrent corrections of the
    same bucket store the same value, so last write wins.
    """

    def __init__(self) -> None:
        self._regions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, bucket: str) -> Optional[str]:
        with self._lock:
            return self._regions.get(bucket)

    def set(self, bucket: str, region: str) -> None:
        with self._lock:
            self._regions[bucket] = region

    def __contains__(self, bucket: str) -> bool:
        with self._lock:
            return bucket in self._regions

    def __len__(self) -> int:
        with self._lock:
            return len(self._regions)


@dataclass
class S3Response:
    """Response of a successful request.

    ``body`` depends on the request's mode: decoded document (or bytes for
    non-document content) for ``DOCUMENT``, bytes for ``RAW``, and the open
    ``requests.Response`` for ``STREAM``. Streamed responses hold a pooled
    connection until ``close()`` is called; use them as context managers.
    """

    status: int
    headers: CaseInsensitiveDict
    body: Any = None

    @property
    def etag(self) -> Optional[str]:
        return self.headers.get("ETag")

    def iter_chunks(self, chunk_size: int = STREAM_CHUNK_SIZE) -> Iterator[bytes]:
        if isinstance(self.body, requests.Response):
            yield from self.body.iter_content(chunk_size=chunk_size)
        elif self.body:
            yield self.body

    def close(self) -> None:
        if isinstance(self.body, requests.Response):
            self.body.close()

    def __enter__(self) -> "S3Response":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class RequestDispatcher:
    """Signs and sends single requests for one client session."""

    def __init__(
        self,
        config: "S3ClientConfig",
        credentials: "Credentials",
        region_cache: BucketRegionCache,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.credentials = credentials
        self.region_cache = region_cache
        self.session = session or requests.Session()

    def region_for(self, bucket: str) -> str:
        if bucket:
            cached = self.region_cache.get(bucket)
            if cached:
                return cached
        return self.config.region_name or settings.default_region

    def url_for(self, request: S3Request, region: str) -> str:
        """URL for ``request``; buckets not in the cache go to the global host."""
        if request.bucket and request.bucket not in self.region_cache:
            return endpoint_url(self.config, None, request.bucket) + request.resource
        return endpoint_url(self.config, region, request.bucket) + request.resource

    def sign(self, request: S3Request, url: str, region: str) -> Dict[str, str]:
        """Return the request headers with SigV4 authentication added."""
        aws_request = AWSRequest(
            method=request.verb,
            url=url,
            headers=dict(request.headers),
            data=request.payload,
        )
        S3SigV4Auth(self.credentials, "s3", region).add_auth(aws_request)
        return dict(aws_request.headers.items())

    def dispatch(self, request: S3Request) -> S3Response:
        """Send ``request`` once and return the decoded response.

        Raises:
            S3Error: The service answered with a non-2xx status
            TransportError: No response was received
        """
        region = self.region_for(request.bucket)
        url = self.url_for(request, region)
        stream = request.mode is ResponseMode.STREAM

        with tracer.start_as_current_span("s3.request") as span:
            span.set_attribute("s3.verb", request.verb)
            span.set_attribute("s3.bucket", request.bucket)
            span.set_attribute("s3.region", region)

            headers = self.sign(request, url, region)
            try:
                response = self.session.request(
                    request.verb,
                    url,
                    headers=headers,
                    data=request.payload,
                    stream=stream,
                    allow_redirects=False,
                    timeout=settings.request_timeout,
                )
            except requests.RequestException as e:
                logger.error(
                    "S3 request failed",
                    verb=request.verb,
                    url=url,
                    error=str(e),
                )
                raise TransportError(f"{request.verb} {url} failed: {e}") from e

            span.set_attribute("http.status_code", response.status_code)

            if response.status_code >= 300:
                error = self._error_from(response)
                response.close()
                logger.debug(
                    "S3 error response",
                    verb=request.verb,
                    bucket=request.bucket,
                    path=request.path,
                    status=response.status_code,
                    code=error.code,
                )
                raise error

            logger.debug(
                "S3 request completed",
                verb=request.verb,
                bucket=request.bucket,
                path=request.path,
                status=response.status_code,
            )
            return S3Response(
                status=response.status_code,
                headers=response.headers,
                body=self._decode(response, request.mode),
            )

    @staticmethod
    def _decode(response: requests.Response, mode: ResponseMode) -> Any:
        if mode is ResponseMode.STREAM:
            return response
        if mode is ResponseMode.RAW:
            return response.content
        return parse_document(
            response.content, response.headers.get("Content-Type", "")
        )

    @staticmethod
    def _error_from(response: requests.Response) -> S3Error:
        body = response.content
        code, message, info = "", "", {}
        if body.lstrip().startswith(b"<"):
            try:
                code, message, info = error_fields(parse_document(body, "xml"))
            except ResponseDecodeError:
                logger.warning(
                    "Undecodable S3 error body", status=response.status_code
                )

        region = response.headers.get("x-amz-bucket-region")
        if region and "Region" not in info:
            info["Region"] = region

        return S3Error(
            code or str(response.status_code),
            message,
            status=response.status_code,
            info=info,
        )
