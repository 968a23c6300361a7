"""Tests for the request dispatcher."""

import pytest
import requests

from conftest import error_response, make_response
from s3lite.core.exceptions import ResponseDecodeError, S3Error, TransportError
from s3lite.objectstorage import BucketRegionCache, ResponseMode, S3Request

TAGGING = b"""<?xml version="1.0" encoding="UTF-8"?>
<Tagging xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
  <TagSet><Tag><Key>env</Key><Value>prod</Value></Tag></TagSet>
</Tagging>"""


class TestBucketRegionCache:
    """Test the bucket-region cache."""

    def test_empty(self):
        cache = BucketRegionCache()
        assert cache.get("bucket") is None
        assert "bucket" not in cache
        assert len(cache) == 0

    def test_last_write_wins(self):
        cache = BucketRegionCache()
        cache.set("bucket", "us-west-1")
        cache.set("bucket", "us-west-2")
        assert cache.get("bucket") == "us-west-2"
        assert len(cache) == 1


class TestDispatch:
    """Test single request dispatch with a mocked transport."""

    def test_uncached_bucket_uses_global_host(self, manager, http):
        """Test a bucket with no known region goes to the global host."""
        http.return_value = make_response(200)

        manager.dispatcher.dispatch(S3Request("GET", "bucket", "key.txt"))

        method, url = http.call_args.args
        assert method == "GET"
        assert url == "https://bucket.s3.amazonaws.com/key.txt"

    def test_url_uses_cached_region(self, manager, http):
        """Test a cached bucket region pins the endpoint."""
        http.return_value = make_response(200)
        manager.region_cache.set("bucket", "ap-southeast-2")

        manager.dispatcher.dispatch(S3Request("GET", "bucket", "key.txt"))

        _, url = http.call_args.args
        assert url.startswith("https://bucket.s3.ap-southeast-2.amazonaws.com/")

    def test_request_is_signed(self, manager, http):
        """Test SigV4 headers are attached."""
        http.return_value = make_response(200)

        manager.dispatcher.dispatch(
            S3Request("PUT", "bucket", "k", headers={"Content-Type": "text/plain"}, body=b"x")
        )

        headers = http.call_args.kwargs["headers"]
        assert headers["Authorization"].startswith("AWS4-HMAC-SHA256 Credential=test_key/")
        assert "/us-east-1/s3/aws4_request" in headers["Authorization"]
        assert "X-Amz-Date" in headers
        assert "X-Amz-Content-SHA256" in headers
        assert headers["Content-Type"] == "text/plain"
        assert http.call_args.kwargs["data"] == b"x"
        assert http.call_args.kwargs["allow_redirects"] is False

    def test_query_in_url(self, manager, http):
        http.return_value = make_response(200)

        manager.dispatcher.dispatch(
            S3Request("GET", "bucket", "k", query={"tagging": ""}, version="v1")
        )

        _, url = http.call_args.args
        assert url.endswith("/k?tagging=&versionId=v1")

    def test_document_mode_decodes_xml(self, manager, http):
        http.return_value = make_response(200, TAGGING, {"Content-Type": "application/xml"})

        response = manager.dispatcher.dispatch(S3Request("GET", "bucket", "k"))

        assert response.status == 200
        assert response.body["TagSet"]["Tag"]["Key"] == "env"

    def test_raw_mode_returns_bytes(self, manager, http):
        http.return_value = make_response(200, TAGGING, {"Content-Type": "application/xml"})

        response = manager.dispatcher.dispatch(
            S3Request("GET", "bucket", "k", mode=ResponseMode.RAW)
        )

        assert response.body == TAGGING

    def test_stream_mode_returns_open_body(self, manager, http):
        http.return_value = make_response(200, b"0123456789")

        with manager.dispatcher.dispatch(
            S3Request("GET", "bucket", "k", mode=ResponseMode.STREAM)
        ) as response:
            assert b"".join(response.iter_chunks(4)) == b"0123456789"

        assert http.call_args.kwargs["stream"] is True

    def test_etag_header(self, manager, http):
        http.return_value = make_response(200, headers={"ETag": '"abc"'})

        response = manager.dispatcher.dispatch(S3Request("PUT", "bucket", "k"))

        assert response.etag == '"abc"'

    def test_error_code_from_body(self, manager, http):
        http.return_value = error_response("NoSuchKey", status=404, Key="k")

        with pytest.raises(S3Error) as exc_info:
            manager.dispatcher.dispatch(S3Request("GET", "bucket", "k"))

        error = exc_info.value
        assert error.code == "NoSuchKey"
        assert error.status == 404
        assert error.info["Key"] == "k"

    def test_error_without_body_uses_status(self, manager, http):
        """Test HEAD errors, which carry no body, use the status as code."""
        http.return_value = make_response(404)

        with pytest.raises(S3Error) as exc_info:
            manager.dispatcher.dispatch(S3Request("HEAD", "bucket", "k"))

        assert exc_info.value.code == "404"

    def test_region_header_added_to_error_info(self, manager, http):
        http.return_value = make_response(
            301, headers={"x-amz-bucket-region": "eu-central-1"}
        )

        with pytest.raises(S3Error) as exc_info:
            manager.dispatcher.dispatch(S3Request("HEAD", "bucket", "k"))

        assert exc_info.value.info["Region"] == "eu-central-1"

    def test_error_region_from_body_preferred(self, manager, http):
        response = error_response("AuthorizationHeaderMalformed", Region="us-west-2")
        response.headers["x-amz-bucket-region"] = "eu-central-1"
        http.return_value = response

        with pytest.raises(S3Error) as exc_info:
            manager.dispatcher.dispatch(S3Request("GET", "bucket", "k"))

        assert exc_info.value.info["Region"] == "us-west-2"

    def test_transport_failure(self, manager, http):
        http.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(TransportError, match="connection refused"):
            manager.dispatcher.dispatch(S3Request("GET", "bucket", "k"))

    def test_malformed_success_body(self, manager, http):
        http.return_value = make_response(
            200, b"<?xml version='1.0'?><Oops>", {"Content-Type": "application/xml"}
        )

        with pytest.raises(ResponseDecodeError):
            manager.dispatcher.dispatch(S3Request("GET", "bucket"))
