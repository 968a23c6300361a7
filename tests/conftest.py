"""Test configuration and fixtures for s3lite."""

import io
from unittest.mock import patch

import pytest
import requests
from moto import mock_aws
from requests.structures import CaseInsensitiveDict

from s3lite.core import settings
from s3lite.objectstorage import S3ClientConfig, S3ClientManager, create_bucket


def make_response(status=200, body=b"", headers=None):
    """Build a fully-read ``requests.Response`` as the transport would return."""
    response = requests.Response()
    response.status_code = status
    response._content = body
    response._content_consumed = True
    response.raw = io.BytesIO(body)
    response.headers = CaseInsensitiveDict(headers or {})
    return response


def error_response(code, status=400, **fields):
    """Build an S3 ``<Error>`` response."""
    extra = "".join(f"<{k}>{v}</{k}>" for k, v in fields.items())
    body = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f"<Error><Code>{code}</Code><Message>{code} message</Message>{extra}</Error>"
    ).encode()
    return make_response(status, body, {"Content-Type": "application/xml"})


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    """Make delay-retry policies retry immediately."""
    monkeypatch.setattr(settings, "retry_base_delay", 0.0)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def config():
    return S3ClientConfig(
        access_key_id="test_key",
        secret_access_key="test_secret",
        region_name="us-east-1",
    )


@pytest.fixture
def manager(config):
    manager = S3ClientManager(config)
    yield manager
    manager.close()


@pytest.fixture
def http(manager):
    """Replace the manager's HTTP transport; set ``side_effect`` per test."""
    with patch.object(manager.dispatcher.session, "request") as mock_request:
        yield mock_request


@pytest.fixture
def s3(aws_credentials):
    """In-process S3 served by moto."""
    with mock_aws():
        yield


@pytest.fixture
def bucket(s3, manager):
    create_bucket(manager, "test-bucket")
    return "test-bucket"
