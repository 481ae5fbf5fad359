"""
Pytest configuration and fixtures for fluent-http tests.
"""

import io
import logging

import pytest
import requests
import responses as responses_lib
from requests.adapters import BaseAdapter

from fluent_http import HTTPClient
from fluent_http.core.logging.config import LoggingConfig


@pytest.fixture
def base_url():
    """Base URL for testing."""
    return "https://api.example.com"


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def client(base_url):
    """HTTP client instance for testing."""
    client = HTTPClient(base_url=base_url, timeout=10)
    yield client
    client.close()


@pytest.fixture
def client_no_base():
    """HTTP client without base URL."""
    client = HTTPClient(timeout=10)
    yield client
    client.close()


@pytest.fixture
def logging_config_with_file(tmp_path):
    """
    LoggingConfig fixture with JSON file logging enabled.

    Uses temporary directory for log files to avoid cleanup issues.
    """
    log_file = tmp_path / "client.log"
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=True,
        file_path=str(log_file)
    )


@pytest.fixture(autouse=True)
def reset_client_loggers():
    """
    Client loggers are process-global: drop handlers and restore
    propagation after each test so caplog sees later records.
    """
    yield
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("fluent_http.client"):
            logger = logging.getLogger(name)
            for handler in logger.handlers[:]:
                handler.close()
                logger.removeHandler(handler)
            logger.propagate = True
            logger.setLevel(logging.NOTSET)


class StubAdapter(BaseAdapter):
    """
    Transport returning canned responses and recording what it was sent.

    Args:
        status: Status code of every response
        body: Response body
        headers: Response headers
        error: Exception raised instead of responding
    """

    def __init__(self, status=200, body=b"", headers=None, error=None):
        super().__init__()
        self.status = status
        self.body = body
        self.headers = headers or {}
        self.error = error
        self.sent = []
        self.send_kwargs = []

    def send(self, request, **kwargs):
        self.sent.append(request)
        self.send_kwargs.append(kwargs)
        if self.error is not None:
            raise self.error

        resp = requests.Response()
        resp.status_code = self.status
        resp.reason = "OK" if self.status < 400 else "Error"
        resp.headers.update(self.headers)
        resp.raw = io.BytesIO(self.body)
        resp._content = self.body
        resp.url = request.url
        resp.request = request
        return resp

    def close(self):
        pass


@pytest.fixture
def stub_adapter():
    return StubAdapter()


@pytest.fixture
def make_adapter():
    """Factory for StubAdapter with custom status/body/headers/error."""
    return StubAdapter
