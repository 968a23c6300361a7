"""Request descriptors and canonical resource/URL construction.

Everything in this module is pure: no I/O, no logging. The dispatcher and
the presigner both build their URLs from these helpers so that the resource
that gets signed is byte-for-byte the resource that gets sent.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Mapping, Optional, Union
from urllib.parse import quote

if TYPE_CHECKING:
    from .clients.s3_client import S3ClientConfig

# Characters left unescaped in query keys and values (RFC 3986 unreserved)
_QUERY_SAFE = "-_.~"


class ResponseMode(str, Enum):
    """How the dispatcher hands the response body back to the caller."""

    DOCUMENT = "document"  # XML/JSON decoded into a mapping, else bytes
    RAW = "raw"  # body as bytes
    STREAM = "stream"  # open body, caller must close


def escape_path(path: str) -> str:
    """Percent-encode an object key for use as a URL path.

    Slashes inside the key are kept so that ``a/b.txt`` stays two path
    segments; every other reserved character is escaped.
    """
    return quote(path, safe="/~")


def format_query(query: Mapping[str, object]) -> str:
    """Encode query parameters in canonical (sorted) order.

    Sub-resource flags such as ``uploads`` or ``tagging`` carry an empty
    value and are rendered as ``uploads=``.
    """
    return "&".join(
        f"{quote(str(key), safe=_QUERY_SAFE)}={quote(str(value), safe=_QUERY_SAFE)}"
        for key, value in sorted(query.items(), key=lambda item: str(item[0]))
    )


def build_resource(
    path: str = "",
    query: Optional[Mapping[str, object]] = None,
    version: Optional[str] = None,
) -> str:
    """Build the canonical ``/path?query`` resource string for a request."""
    params = dict(query or {})
    if version:
        params["versionId"] = version

    query_str = format_query(params)
    resource = "/" + escape_path(path.lstrip("/"))
    if query_str:
        resource += "?" + query_str
    return resource


def endpoint_url(
    config: "S3ClientConfig", region: Optional[str], bucket: str = ""
) -> str:
    """Return the base URL for ``bucket`` in ``region``, without a trailing slash.

    AWS endpoints use virtual-hosted addressing built from the config's
    domain template. A bucket whose region is not known yet (``region`` is
    ``None``) goes to the config's global domain, which routes to the
    bucket's home region and answers a wrongly signed request with the
    region to sign for. A custom ``endpoint_url`` (MinIO and friends)
    switches to path-style addressing, since those services rarely have
    wildcard DNS.
    """
    if config.endpoint_url:
        base = config.endpoint_url.rstrip("/")
        return f"{base}/{bucket}" if bucket else base

    if region is None:
        if bucket and config.global_domain:
            return f"https://{bucket}.{config.global_domain}"
        region = config.region_name

    domain = config.domain_template.format(region=region)
    if bucket:
        return f"https://{bucket}.{domain}"
    return f"https://{domain}"


Body = Union[bytes, str, None]


@dataclass(frozen=True)
class S3Request:
    """One request against the storage service, fixed at construction."""

    verb: str
    bucket: str = ""
    path: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, object] = field(default_factory=dict)
    body: Body = None
    version: Optional[str] = None
    mode: ResponseMode = ResponseMode.DOCUMENT

    @property
    def resource(self) -> str:
        return build_resource(self.path, self.query, self.version)

    @property
    def payload(self) -> bytes:
        if self.body is None:
            return b""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body
