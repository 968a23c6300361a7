"""Bounded retry policies keyed on provider error codes.

Two layers sit on top of the dispatcher:

* the region-redirect policy, applied to every request by
  ``S3ClientManager.request``. Buckets start out at the global host, which
  rejects a request signed for the wrong region with
  ``AuthorizationHeaderMalformed`` naming the bucket's real region (a
  regional host answers ``PermanentRedirect`` with an
  ``x-amz-bucket-region`` header instead). The region is written into the
  session's bucket-region cache and the request is re-sent at once, now to
  the regional host. Any other error propagates untouched.
* per-operation policies (object GET, existence check, bucket create, tag
  retrieval, listing pages) that tolerate eventual-consistency lag or map
  "not found"-style codes to ordinary return values.

Policies never retry more than ``max_attempts`` times, and when they give up
the last ``S3Error`` is re-raised as is, so callers always see the
provider's own error code.
"""

from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from s3lite.core import get_logger, settings
from s3lite.core.exceptions import S3Error

from .dispatch import BucketRegionCache

logger = get_logger(__name__)

T = TypeVar("T")

# Sentinel meaning "raise instead of returning an absent value"
_RAISE = object()


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, on which error codes, and what to do between.

    Attributes:
        name: Label used in log records
        max_attempts: Total number of attempts, including the first
        retry_codes: Error codes that trigger another attempt
        absent_codes: Error codes that, once attempts are exhausted, mean
            "the thing does not exist" rather than failure
        backoff: Sleep between attempts (exponential, from settings)
        predicate: Extra condition an error must satisfy to be retried
        on_retry: Side effect run with the error before each retry
    """

    name: str
    max_attempts: int = 1
    retry_codes: FrozenSet[str] = frozenset()
    absent_codes: FrozenSet[str] = frozenset()
    backoff: bool = False
    predicate: Optional[Callable[[S3Error], bool]] = None
    on_retry: Optional[Callable[[S3Error], None]] = None

    def should_retry(self, error: BaseException) -> bool:
        if not isinstance(error, S3Error):
            return False
        if self.predicate is not None:
            return self.predicate(error)
        return error.code in self.retry_codes

    def _wait(self):
        if not self.backoff:
            return wait_none()
        return wait_exponential(
            multiplier=settings.retry_base_delay,
            exp_base=5,
            max=settings.retry_max_delay,
        )

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        logger.warning(
            "Retrying S3 request",
            policy=self.name,
            attempt=retry_state.attempt_number,
            code=getattr(error, "code", None),
        )
        if self.on_retry is not None:
            self.on_retry(error)

    def call(self, fn: Callable[..., T], *args, absent=_RAISE, **kwargs) -> T:
        """Run ``fn`` under this policy.

        Args:
            fn: Callable performing one attempt
            absent: Value returned when the final error's code is one of
                ``absent_codes``; if omitted those errors are raised too

        Raises:
            S3Error: The last error seen, when it is not mapped to ``absent``
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait(),
            retry=retry_if_exception(self.should_retry),
            before_sleep=self._before_sleep,
            reraise=True,
        )
        try:
            return retrying(fn, *args, **kwargs)
        except S3Error as e:
            if absent is not _RAISE and e.code in self.absent_codes:
                logger.debug("S3 error mapped to absent", policy=self.name, code=e.code)
                return absent
            raise


# Errors that name the region the bucket really lives in: a request signed
# for the wrong region at the global host, or sent to the wrong regional host
REDIRECT_CODES = frozenset({"AuthorizationHeaderMalformed", "PermanentRedirect"})


def region_redirect_policy(cache: BucketRegionCache, bucket: str) -> RetryPolicy:
    """Policy that corrects ``bucket``'s region in ``cache`` and re-sends."""

    def has_region_hint(error: S3Error) -> bool:
        return error.code in REDIRECT_CODES and bool(error.info.get("Region"))

    def remember_region(error: S3Error) -> None:
        region = error.info["Region"]
        logger.info("S3 region redirect", bucket=bucket, region=region)
        cache.set(bucket, region)

    return RetryPolicy(
        name="region-redirect",
        max_attempts=3,
        predicate=has_region_hint,
        on_retry=remember_region,
    )


GET_OBJECT = RetryPolicy(
    name="get-object",
    max_attempts=4,
    retry_codes=frozenset({"NoSuchBucket", "NoSuchKey"}),
    backoff=True,
)

GET_OBJECT_ONCE = RetryPolicy(name="get-object")

OBJECT_EXISTS = RetryPolicy(
    name="object-exists",
    max_attempts=2,
    retry_codes=frozenset({"NoSuchBucket", "404", "NoSuchKey", "AccessDenied"}),
    absent_codes=frozenset({"404", "NoSuchKey", "AccessDenied"}),
    backoff=True,
)

CREATE_BUCKET = RetryPolicy(
    name="create-bucket",
    absent_codes=frozenset({"BucketAlreadyOwnedByYou"}),
)

GET_TAGS = RetryPolicy(
    name="get-tags",
    absent_codes=frozenset({"NoSuchTagSet"}),
)

LIST_PAGE = RetryPolicy(
    name="list-page",
    max_attempts=4,
    retry_codes=frozenset({"NoSuchBucket"}),
    backoff=True,
)
