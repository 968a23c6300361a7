"""Object and bucket operations.

Every function takes an ``S3ClientManager`` first and sends its requests
through ``S3ClientManager.request``, which already handles region
redirects. Operation-specific tolerance (eventual consistency after a
write, "not found" as a normal answer) comes from the policies in
``s3lite.objectstorage.retry``.
"""

import re
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from requests.structures import CaseInsensitiveDict

from s3lite.core import get_logger
from s3lite.core.exceptions import S3Error, ValidationError

from . import retry
from .clients import S3ClientManager
from .dispatch import S3Response
from .documents import (
    as_list,
    content_md5,
    create_bucket_configuration,
    tagging_document,
    tags_from_document,
    versioning_configuration,
)
from .request import ResponseMode, escape_path, format_query

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Content types guessed from the key's extension when none is given
CONTENT_TYPES = (
    (".pdf", "application/pdf"),
    (".csv", "text/csv"),
    (".txt", "text/plain"),
    (".log", "text/plain"),
    (".json", "application/json"),
    (".dat", "application/octet-stream"),
    (".gz", "application/octet-stream"),
    (".bz2", "application/octet-stream"),
)


def s3_arn(bucket: str, path: Optional[str] = None) -> str:
    """Amazon Resource Name for a bucket or an object in it."""
    resource = bucket if path is None else f"{bucket}/{path}"
    return f"arn:aws:s3:::{resource}"


def guess_content_type(path: str) -> str:
    for extension, content_type in CONTENT_TYPES:
        if path.endswith(extension):
            return content_type
    return DEFAULT_CONTENT_TYPE


def _metadata_headers(metadata: Optional[Mapping[str, str]]) -> Dict[str, str]:
    return {f"x-amz-meta-{k}": v for k, v in (metadata or {}).items()}


# Objects
def put_object(
    manager: S3ClientManager,
    bucket: str,
    path: str,
    data: Union[bytes, str],
    content_type: Optional[str] = None,
    encoding: Optional[str] = None,
    metadata: Optional[Mapping[str, str]] = None,
    tags: Optional[Mapping[str, str]] = None,
) -> S3Response:
    """Store ``data`` at ``path`` in ``bucket``.

    Args:
        content_type: ``Content-Type`` header, guessed from the extension
            when omitted
        encoding: ``Content-Encoding`` header
        metadata: Sent as ``x-amz-meta-*`` headers
        tags: Object tags, sent in the ``x-amz-tagging`` header
    """
    headers = {"Content-Type": content_type or guess_content_type(path)}
    headers.update(_metadata_headers(metadata))
    if tags:
        headers["x-amz-tagging"] = format_query(tags)
    if encoding:
        headers["Content-Encoding"] = encoding

    logger.info("Putting S3 object", bucket=bucket, path=path)
    return manager.request("PUT", bucket, path=path, headers=headers, content=data)


def get_object(
    manager: S3ClientManager,
    bucket: str,
    path: str,
    version: Optional[str] = None,
    retry_missing: bool = True,
    raw: bool = False,
) -> Any:
    """Fetch the object at ``path``.

    Args:
        version: Object version to fetch
        retry_missing: Retry on ``NoSuchBucket``/``NoSuchKey``, which are
            common right after the object was created
        raw: Return bytes; otherwise XML/JSON content is decoded
    """
    policy = retry.GET_OBJECT if retry_missing else retry.GET_OBJECT_ONCE
    response = policy.call(
        manager.request,
        "GET",
        bucket,
        path=path,
        version=version,
        mode=ResponseMode.RAW if raw else ResponseMode.DOCUMENT,
    )
    return response.body


def _get_object_file(
    manager: S3ClientManager,
    bucket: str,
    path: str,
    filename: str,
    version: Optional[str],
) -> None:
    response = manager.request(
        "GET", bucket, path=path, version=version, mode=ResponseMode.STREAM
    )
    with response:
        with open(filename, "wb") as f:
            for chunk in response.iter_chunks():
                f.write(chunk)
    logger.info("Downloaded S3 object", bucket=bucket, path=path, filename=filename)


def get_object_file(
    manager: S3ClientManager,
    bucket: Union[str, Sequence[str]],
    path: str,
    filename: str,
    version: Optional[str] = None,
) -> None:
    """Stream the object at ``path`` to ``filename``.

    ``bucket`` may be a list of buckets tried in order; a bucket answering
    ``NoSuchKey`` or ``AccessDenied`` moves on to the next one, and the last
    bucket's error propagates.
    """
    if isinstance(bucket, str):
        _get_object_file(manager, bucket, path, filename, version)
        return

    buckets = list(bucket)
    if not buckets:
        raise ValidationError("At least one bucket is required")

    for i, candidate in enumerate(buckets):
        try:
            _get_object_file(manager, candidate, path, filename, version)
            return
        except S3Error as e:
            if i == len(buckets) - 1 or e.code not in ("NoSuchKey", "AccessDenied"):
                raise
            logger.info(
                "Object not available, trying next bucket",
                bucket=candidate,
                path=path,
                code=e.code,
            )


def get_object_meta(
    manager: S3ClientManager,
    bucket: str,
    path: str,
    version: Optional[str] = None,
) -> CaseInsensitiveDict:
    """Object metadata (the HEAD response headers) without the body."""
    return manager.request("HEAD", bucket, path=path, version=version).headers


def object_exists(
    manager: S3ClientManager,
    bucket: str,
    path: str,
    version: Optional[str] = None,
) -> bool:
    """Is there an object in ``bucket`` at ``path``?"""

    def head() -> bool:
        get_object_meta(manager, bucket, path, version=version)
        return True

    return retry.OBJECT_EXISTS.call(head, absent=False)


def delete_object(
    manager: S3ClientManager,
    bucket: str,
    path: str,
    version: Optional[str] = None,
) -> S3Response:
    logger.info("Deleting S3 object", bucket=bucket, path=path, version=version)
    return manager.request("DELETE", bucket, path=path, version=version)


def copy_object(
    manager: S3ClientManager,
    bucket: str,
    path: str,
    to_bucket: Optional[str] = None,
    to_path: Optional[str] = None,
    metadata: Optional[Mapping[str, str]] = None,
) -> S3Response:
    """Server-side copy; the copy's metadata is replaced by ``metadata``."""
    to_bucket = to_bucket or bucket
    to_path = to_path or path

    headers = {
        "x-amz-copy-source": "/" + escape_path(f"{bucket}/{path}"),
        "x-amz-metadata-directive": "REPLACE",
    }
    headers.update(_metadata_headers(metadata))

    logger.info(
        "Copying S3 object",
        source=f"{bucket}/{path}",
        destination=f"{to_bucket}/{to_path}",
    )
    return manager.request("PUT", to_bucket, path=to_path, headers=headers)


# Buckets
def create_bucket(manager: S3ClientManager, bucket: str) -> None:
    """Create ``bucket`` in the session's region; existing own buckets are fine."""
    region = manager.config.region_name
    logger.info("Creating S3 bucket", bucket=bucket, region=region)

    if region == "us-east-1":
        retry.CREATE_BUCKET.call(manager.request, "PUT", bucket, absent=None)
    else:
        retry.CREATE_BUCKET.call(
            manager.request,
            "PUT",
            bucket,
            headers={"Content-Type": "text/plain"},
            content=create_bucket_configuration(region),
            absent=None,
        )


def delete_bucket(manager: S3ClientManager, bucket: str) -> S3Response:
    logger.info("Deleting S3 bucket", bucket=bucket)
    return manager.request("DELETE", bucket)


def put_bucket_cors(
    manager: S3ClientManager, bucket: str, cors_config: str
) -> S3Response:
    """Replace the bucket's CORS configuration with the given XML document."""
    body = cors_config.encode("utf-8")
    return manager.request(
        "PUT",
        bucket,
        query={"cors": ""},
        headers={"Content-MD5": content_md5(body)},
        content=body,
    )


def enable_versioning(manager: S3ClientManager, bucket: str) -> S3Response:
    logger.info("Enabling S3 bucket versioning", bucket=bucket)
    return manager.request(
        "PUT",
        bucket,
        query={"versioning": ""},
        content=versioning_configuration("Enabled"),
    )


# Tagging
def put_tags(
    manager: S3ClientManager,
    bucket: str,
    tags: Mapping[str, str],
    path: str = "",
) -> S3Response:
    """Replace the tags of ``bucket`` or, with ``path``, of an object."""
    body = tagging_document(tags).encode("utf-8")
    return manager.request(
        "PUT",
        bucket,
        path=path,
        query={"tagging": ""},
        headers={"Content-MD5": content_md5(body)},
        content=body,
    )


def get_tags(manager: S3ClientManager, bucket: str, path: str = "") -> Dict[str, str]:
    """Tags of ``bucket`` or, with ``path``, of an object; ``{}`` when untagged."""
    response = retry.GET_TAGS.call(
        manager.request, "GET", bucket, path=path, query={"tagging": ""}, absent=None
    )
    if response is None:
        return {}
    return tags_from_document(response.body)


def delete_tags(manager: S3ClientManager, bucket: str, path: str = "") -> S3Response:
    return manager.request("DELETE", bucket, path=path, query={"tagging": ""})


# Listing
def list_buckets(manager: S3ClientManager) -> List[str]:
    """Names of all buckets owned by the sender of the request."""
    doc = manager.request("GET").body or {}
    buckets = (doc.get("Buckets") or {}).get("Bucket")
    return [b["Name"] for b in as_list(buckets)]


def list_objects(
    manager: S3ClientManager, bucket: str, path_prefix: str = ""
) -> List[Dict[str, Any]]:
    """Objects in ``bucket``, optionally restricted to ``path_prefix``.

    Each entry is the decoded ``<Contents>`` element (``Key``,
    ``LastModified``, ``ETag``, ``Size``, ``StorageClass``, ...).
    """
    objects: List[Dict[str, Any]] = []
    marker = ""
    more = True

    while more:
        query = {}
        if path_prefix:
            query["delimiter"] = "/"
            query["prefix"] = path_prefix
        if marker:
            query["marker"] = marker

        doc = retry.LIST_PAGE.call(manager.request, "GET", bucket, query=query).body
        doc = doc or {}
        contents = as_list(doc.get("Contents"))
        objects.extend(contents)

        more = doc.get("IsTruncated") == "true"
        next_marker = doc.get("NextMarker") or (contents[-1]["Key"] if contents else "")
        if more and (not next_marker or next_marker == marker):
            # A truncated page that does not advance the marker would loop forever
            logger.warning("S3 listing stopped advancing", bucket=bucket, marker=marker)
            break
        marker = next_marker

    logger.debug("Listed S3 objects", bucket=bucket, count=len(objects))
    return objects


def list_keys(
    manager: S3ClientManager, bucket: str, path_prefix: str = ""
) -> Iterator[str]:
    """Like ``list_objects`` but yields object keys only."""
    return (o["Key"] for o in list_objects(manager, bucket, path_prefix))


def list_versions(
    manager: S3ClientManager, bucket: str, path_prefix: str = ""
) -> List[Dict[str, Any]]:
    """All object versions and delete markers in ``bucket``.

    Each entry is the decoded element plus ``state``, which is ``Version``
    or ``DeleteMarker``.
    """
    versions: List[Dict[str, Any]] = []
    key_marker = ""
    version_marker = ""
    more = True

    while more:
        query = {"versions": "", "prefix": path_prefix}
        if key_marker:
            query["key-marker"] = key_marker
        if version_marker:
            query["version-id-marker"] = version_marker

        doc = manager.request("GET", bucket, query=query).body or {}
        page = []
        for state in ("Version", "DeleteMarker"):
            for entry in as_list(doc.get(state)):
                page.append(dict(entry, state=state))
        versions.extend(page)

        more = doc.get("IsTruncated") == "true"
        next_key = doc.get("NextKeyMarker") or (page[-1]["Key"] if page else "")
        next_version = doc.get("NextVersionIdMarker") or ""
        if more and (next_key, next_version) == (key_marker, version_marker):
            logger.warning("S3 version listing stopped advancing", bucket=bucket)
            break
        key_marker, version_marker = next_key, next_version

    return versions


def purge_versions(
    manager: S3ClientManager,
    bucket: str,
    path: str = "",
    pattern: str = "",
) -> int:
    """Delete every object version except the latest one.

    Args:
        path: Only consider keys under this prefix
        pattern: Only consider keys matching this regular expression

    Returns:
        Number of versions deleted
    """
    deleted = 0
    for version in list_versions(manager, bucket, path):
        if pattern and not re.search(pattern, version["Key"]):
            continue
        if version.get("IsLatest") == "true":
            continue
        delete_object(manager, bucket, version["Key"], version=version["VersionId"])
        deleted += 1

    logger.info("Purged S3 object versions", bucket=bucket, path=path, deleted=deleted)
    return deleted
