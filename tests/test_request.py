"""Tests for resource and URL construction."""

import pytest

from s3lite.objectstorage import S3ClientConfig
from s3lite.objectstorage.request import (
    ResponseMode,
    S3Request,
    build_resource,
    endpoint_url,
    escape_path,
    format_query,
)


class TestEscapePath:
    """Test object key escaping."""

    def test_plain_key_unchanged(self):
        assert escape_path("data/file-1_v2.txt") == "data/file-1_v2.txt"

    def test_slashes_preserved(self):
        assert escape_path("a/b/c") == "a/b/c"

    def test_reserved_characters_escaped(self):
        assert escape_path("my file+1.txt") == "my%20file%2B1.txt"
        assert escape_path("a?b#c&d=e") == "a%3Fb%23c%26d%3De"

    def test_tilde_preserved(self):
        assert escape_path("~user/x") == "~user/x"

    def test_unicode_key(self):
        assert escape_path("données.csv") == "donn%C3%A9es.csv"


class TestFormatQuery:
    """Test canonical query string encoding."""

    def test_empty(self):
        assert format_query({}) == ""

    def test_sorted_by_key(self):
        query = {"uploadId": "abc", "partNumber": 2}
        assert format_query(query) == "partNumber=2&uploadId=abc"

    def test_empty_values(self):
        assert format_query({"tagging": ""}) == "tagging="

    def test_values_percent_encoded(self):
        assert format_query({"prefix": "a b/c"}) == "prefix=a%20b%2Fc"


class TestBuildResource:
    """Test resource string construction."""

    def test_root(self):
        assert build_resource() == "/"

    def test_path_only(self):
        assert build_resource("dir/key.txt") == "/dir/key.txt"

    def test_with_query(self):
        resource = build_resource("key", {"tagging": ""})
        assert resource == "/key?tagging="

    def test_version_added_to_query(self):
        resource = build_resource("key", {"tagging": ""}, version="v1")
        assert resource == "/key?tagging=&versionId=v1"

    def test_version_does_not_mutate_query(self):
        query = {"tagging": ""}
        build_resource("key", query, version="v1")
        assert query == {"tagging": ""}

    def test_idempotent(self):
        args = ("some dir/k+ey", {"marker": "x y", "prefix": "a/"}, "3")
        assert build_resource(*args) == build_resource(*args)

    @pytest.mark.parametrize(
        "path,query,version,expected",
        [
            ("", {}, None, "/"),
            ("k", {}, "", "/k"),
            ("k", {"b": "2", "a": "1"}, None, "/k?a=1&b=2"),
            ("a b", {}, "v", "/a%20b?versionId=v"),
        ],
    )
    def test_combinations(self, path, query, version, expected):
        assert build_resource(path, query, version) == expected


class TestEndpointUrl:
    """Test endpoint URL construction."""

    def test_virtual_hosted(self):
        config = S3ClientConfig(region_name="eu-west-1")
        assert (
            endpoint_url(config, "eu-west-1", "bucket")
            == "https://bucket.s3.eu-west-1.amazonaws.com"
        )

    def test_service_root(self):
        config = S3ClientConfig()
        assert endpoint_url(config, "us-east-1") == "https://s3.us-east-1.amazonaws.com"

    def test_custom_endpoint_is_path_style(self):
        config = S3ClientConfig(endpoint_url="http://localhost:9000/")
        assert endpoint_url(config, "us-east-1", "bucket") == "http://localhost:9000/bucket"
        assert endpoint_url(config, "us-east-1") == "http://localhost:9000"

    def test_custom_domain_template(self):
        config = S3ClientConfig(domain_template="s3.{region}.example.com")
        assert (
            endpoint_url(config, "r1", "b") == "https://b.s3.r1.example.com"
        )

    def test_unknown_region_uses_global_host(self):
        config = S3ClientConfig(region_name="eu-west-1")
        assert endpoint_url(config, None, "bucket") == "https://bucket.s3.amazonaws.com"

    def test_unknown_region_without_global_domain(self):
        config = S3ClientConfig(region_name="eu-west-1", global_domain=None)
        assert (
            endpoint_url(config, None, "bucket")
            == "https://bucket.s3.eu-west-1.amazonaws.com"
        )

    def test_unknown_region_service_root_is_regional(self):
        config = S3ClientConfig(region_name="eu-west-1")
        assert endpoint_url(config, None) == "https://s3.eu-west-1.amazonaws.com"

    def test_custom_endpoint_ignores_global_domain(self):
        config = S3ClientConfig(endpoint_url="http://localhost:9000")
        assert endpoint_url(config, None, "bucket") == "http://localhost:9000/bucket"


class TestS3Request:
    """Test the request descriptor."""

    def test_defaults(self):
        request = S3Request("GET", "bucket")
        assert request.mode is ResponseMode.DOCUMENT
        assert request.resource == "/"
        assert request.payload == b""

    def test_string_body_encoded(self):
        request = S3Request("PUT", "bucket", "k", body="héllo")
        assert request.payload == "héllo".encode("utf-8")

    def test_immutable(self):
        request = S3Request("GET", "bucket")
        with pytest.raises(AttributeError):
            request.verb = "PUT"
