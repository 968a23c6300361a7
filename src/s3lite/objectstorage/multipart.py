"""Multipart upload coordinator.

An upload goes through three request kinds: begin (assigns an upload id),
one upload-part request per chunk, and complete (a manifest listing every
part's ETag in part-number order). Parts are uploaded one at a time, so part
numbers are issued in strictly increasing order starting at 1 and the
manifest order always matches.

A failed part leaves the upload incomplete on the service, where it keeps
accruing storage until aborted. ``multipart_upload`` does not abort by
default; pass ``abort_on_failure=True`` or call ``abort_multipart_upload``.
"""

import io
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Sequence, Tuple

from s3lite.core import get_logger, settings
from s3lite.core.exceptions import S3LiteError, ValidationError

from .clients import S3ClientManager
from .dispatch import S3Response
from .documents import completion_manifest

logger = get_logger(__name__)

MiB = 1024 * 1024
MIN_PART_SIZE = 5 * MiB
MAX_PART_SIZE = 5 * 1024 * MiB
MAX_PARTS = 10_000


@dataclass
class MultipartUpload:
    """Handle for one in-progress multipart upload."""

    bucket: str
    key: str
    upload_id: str
    parts: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def etags(self) -> List[str]:
        return [etag for _, etag in self.parts]

    @property
    def next_part_number(self) -> int:
        return len(self.parts) + 1


def begin_multipart_upload(
    manager: S3ClientManager,
    bucket: str,
    key: str,
    content_type: str = "application/octet-stream",
) -> MultipartUpload:
    """Start a multipart upload and return its handle."""
    response = manager.request(
        "POST",
        bucket,
        path=key,
        query={"uploads": ""},
        headers={"Content-Type": content_type},
    )
    upload_id = response.body["UploadId"]
    logger.info("Multipart upload started", bucket=bucket, key=key, upload_id=upload_id)
    return MultipartUpload(bucket=bucket, key=key, upload_id=upload_id)


def upload_part(
    manager: S3ClientManager,
    upload: MultipartUpload,
    part_number: int,
    data: bytes,
) -> str:
    """Upload one part and record its ETag on ``upload``.

    Raises:
        ValidationError: If ``part_number`` is not the next contiguous
            number, or the part is larger than the service allows
    """
    if part_number != upload.next_part_number:
        raise ValidationError(
            f"Part {part_number} is out of order, expected {upload.next_part_number}"
        )
    if part_number > MAX_PARTS:
        raise ValidationError(f"Multipart uploads are limited to {MAX_PARTS} parts")
    if len(data) > MAX_PART_SIZE:
        raise ValidationError(f"Part {part_number} exceeds {MAX_PART_SIZE} bytes")

    response = manager.request(
        "PUT",
        upload.bucket,
        path=upload.key,
        query={"partNumber": part_number, "uploadId": upload.upload_id},
        content=data,
    )
    etag = response.headers["ETag"]
    upload.parts.append((part_number, etag))
    logger.debug(
        "Uploaded part",
        bucket=upload.bucket,
        key=upload.key,
        part_number=part_number,
        size=len(data),
    )
    return etag


def complete_multipart_upload(
    manager: S3ClientManager,
    upload: MultipartUpload,
    etags: Optional[Sequence[str]] = None,
) -> S3Response:
    """Finalize ``upload``; part numbers in the manifest are 1-based list indices."""
    if etags is None:
        etags = upload.etags

    response = manager.request(
        "POST",
        upload.bucket,
        path=upload.key,
        query={"uploadId": upload.upload_id},
        content=completion_manifest(etags),
    )
    logger.info(
        "Multipart upload completed",
        bucket=upload.bucket,
        key=upload.key,
        parts=len(etags),
    )
    return response


def abort_multipart_upload(manager: S3ClientManager, upload: MultipartUpload) -> None:
    """Discard ``upload`` and every part stored for it."""
    manager.request(
        "DELETE",
        upload.bucket,
        path=upload.key,
        query={"uploadId": upload.upload_id},
    )
    logger.info(
        "Multipart upload aborted",
        bucket=upload.bucket,
        key=upload.key,
        upload_id=upload.upload_id,
    )


def _read_chunk(stream: BinaryIO, size: int) -> bytes:
    # Raw streams may return short reads before EOF
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _remaining_size(stream: BinaryIO) -> Optional[int]:
    """Bytes left in a seekable stream, or ``None`` if it cannot tell."""
    seekable = getattr(stream, "seekable", None)
    if seekable is None or not seekable():
        return None
    position = stream.tell()
    end = stream.seek(0, io.SEEK_END)
    stream.seek(position)
    return end - position


def multipart_upload(
    manager: S3ClientManager,
    bucket: str,
    key: str,
    stream: BinaryIO,
    part_size_mb: Optional[int] = None,
    content_type: str = "application/octet-stream",
    abort_on_failure: bool = False,
) -> S3Response:
    """Upload everything readable from ``stream`` as one object.

    The stream is read in ``part_size_mb`` chunks (default from settings);
    the last chunk may be shorter. Nothing is sent until the first chunk
    has been read.

    Raises:
        ValidationError: If the part size is outside 5 MiB .. 5 GiB, the
            stream is empty, or a seekable stream needs more than 10 000
            parts
    """
    if part_size_mb is None:
        part_size_mb = settings.multipart_part_size_mb
    part_size = part_size_mb * MiB
    if not MIN_PART_SIZE <= part_size <= MAX_PART_SIZE:
        raise ValidationError(
            f"Part size must be between 5 MiB and 5 GiB, got {part_size_mb} MiB"
        )

    size = _remaining_size(stream)
    if size is not None and size > part_size * MAX_PARTS:
        raise ValidationError(
            f"{size} bytes need more than {MAX_PARTS} parts of {part_size_mb} MiB"
        )

    chunk = _read_chunk(stream, part_size)
    if not chunk:
        raise ValidationError(f"Nothing to upload to {bucket}/{key}: stream is empty")

    upload = begin_multipart_upload(manager, bucket, key, content_type=content_type)
    try:
        while chunk:
            upload_part(manager, upload, upload.next_part_number, chunk)
            chunk = _read_chunk(stream, part_size)
        return complete_multipart_upload(manager, upload)
    except Exception:
        if abort_on_failure:
            try:
                abort_multipart_upload(manager, upload)
            except S3LiteError as abort_error:
                logger.warning(
                    "Multipart upload abort failed",
                    bucket=bucket,
                    key=key,
                    upload_id=upload.upload_id,
                    error=str(abort_error),
                )
        else:
            logger.warning(
                "Multipart upload left incomplete",
                bucket=bucket,
                key=key,
                upload_id=upload.upload_id,
                parts=len(upload.parts),
            )
        raise
