"""Object storage operations for S3-compatible services."""

from .clients import S3ClientConfig, S3ClientManager
from .dispatch import BucketRegionCache, RequestDispatcher, S3Response
from .multipart import (
    MultipartUpload,
    abort_multipart_upload,
    begin_multipart_upload,
    complete_multipart_upload,
    multipart_upload,
    upload_part,
)
from .presign import sign_url
from .request import ResponseMode, S3Request, build_resource, escape_path
from .retry import RetryPolicy
from .s3_operations import (
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
    object_exists,
    purge_versions,
    put_bucket_cors,
    put_object,
    put_tags,
    s3_arn,
)

__all__ = [
    "BucketRegionCache",
    "MultipartUpload",
    "RequestDispatcher",
    "ResponseMode",
    "RetryPolicy",
    "S3ClientConfig",
    "S3ClientManager",
    "S3Request",
    "S3Response",
    "abort_multipart_upload",
    "begin_multipart_upload",
    "build_resource",
    "complete_multipart_upload",
    "copy_object",
    "create_bucket",
    "delete_bucket",
    "delete_object",
    "delete_tags",
    "enable_versioning",
    "escape_path",
    "get_object",
    "get_object_file",
    "get_object_meta",
    "get_tags",
    "list_buckets",
    "list_keys",
    "list_objects",
    "list_versions",
    "multipart_upload",
    "object_exists",
    "purge_versions",
    "put_bucket_cors",
    "put_object",
    "put_tags",
    "s3_arn",
    "sign_url",
    "upload_part",
]
