"""A small client library for Amazon S3 and S3-compatible object storage.

Requests are built and signed locally (SigV4 via botocore) and sent over a
shared HTTP session; responses are decoded into plain mappings. The library
corrects bucket regions transparently, retries the handful of errors that
are known to be transient, and drives multipart uploads part by part.

Key Features:
    - Object put/get/delete/copy, existence checks and metadata
    - Bucket creation, deletion, versioning, CORS and tagging
    - Paginated object and version listing
    - Sequential multipart upload
    - Presigned URLs
    - CLI interface

Usage:
    >>> from s3lite import S3ClientConfig, S3ClientManager, get_object, put_object
    >>> manager = S3ClientManager(S3ClientConfig(aws_profile="my-profile"))
    >>> _ = put_object(manager, "my-bucket", "hello.txt", b"Hello!")
    >>> get_object(manager, "my-bucket", "hello.txt", raw=True)
    b'Hello!'
"""

__version__ = "0.1.0"

from .core.exceptions import (
    ResponseDecodeError,
    S3Error,
    S3LiteError,
    TransportError,
    ValidationError,
)
from .objectstorage import (
    MultipartUpload,
    S3ClientConfig,
    S3ClientManager,
    copy_object,
    create_bucket,
    delete_bucket,
    delete_object,
    delete_tags,
    enable_versioning,
    get_object,
    get_object_file,
    get_object_meta,
    get_tags,
    list_buckets,
    list_keys,
    list_objects,
    list_versions,
    multipart_upload,
    object_exists,
    purge_versions,
    put_bucket_cors,
    put_object,
    put_tags,
    s3_arn,
    sign_url,
)

__all__ = [
    # Errors
    "ResponseDecodeError",
    "S3Error",
    "S3LiteError",
    "TransportError",
    "ValidationError",
    # Session
    "S3ClientConfig",
    "S3ClientManager",
    # Objects
    "copy_object",
    "delete_object",
    "get_object",
    "get_object_file",
    "get_object_meta",
    "object_exists",
    "put_object",
    "s3_arn",
    "sign_url",
    # Buckets
    "create_bucket",
    "delete_bucket",
    "enable_versioning",
    "put_bucket_cors",
    # Tagging
    "delete_tags",
    "get_tags",
    "put_tags",
    # Listing
    "list_buckets",
    "list_keys",
    "list_objects",
    "list_versions",
    "purge_versions",
    # Multipart
    "MultipartUpload",
    "multipart_upload",
]
