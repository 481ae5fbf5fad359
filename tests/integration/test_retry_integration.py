"""
Integration tests: retries go through the real session and adapter stack.
"""

from unittest.mock import patch

import pytest
import requests
import responses

from fluent_http import HTTPClient
from fluent_http.core.context import RequestContext
from fluent_http.core.exceptions import CancelledError, ConnectionError, HookError
from fluent_http.core.retry_engine import RetryEngine

pytestmark = pytest.mark.integration

URL = "https://api.example.com/test"


@pytest.fixture
def counted_wait():
    """Replace the retry pause, counting how often it was taken."""
    with patch.object(RetryEngine, "wait", autospec=True, return_value=True) as wait:
        yield wait


@responses.activate
def test_retry_succeeds_after_server_errors():
    """500, 500, 200: the third attempt wins."""
    responses.add(responses.GET, URL, status=500, json={"error": "Server error"})
    responses.add(responses.GET, URL, status=500, json={"error": "Server error"})
    responses.add(responses.GET, URL, status=200, json={"success": True})

    client = HTTPClient(base_url="https://api.example.com", retry_count=3, retry_interval=0)

    response = client.r().get("/test")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert len(responses.calls) == 3


@responses.activate
def test_persistent_server_error_returns_last_response():
    """Retries exhausted on a 500: the response is returned, nothing is raised."""
    responses.add(responses.GET, URL, status=500, json={"error": "Server error"})

    client = HTTPClient(base_url="https://api.example.com", retry_count=2, retry_interval=0)

    response = client.r().get("/test")

    assert response.status_code == 500
    assert response.is_error()
    assert response.error is None
    assert len(responses.calls) == 3


@responses.activate
def test_retry_count_and_waits(counted_wait):
    responses.add(responses.GET, URL, status=200)

    client = HTTPClient(base_url="https://api.example.com", retry_count=2, retry_interval=5)
    client.set_retry_condition(lambda response, error: True)

    response = client.r().get("/test")

    assert response.status_code == 200
    assert len(responses.calls) == 3
    assert counted_wait.call_count == 2


@responses.activate
def test_client_error_not_retried(counted_wait):
    responses.add(responses.GET, URL, status=404)

    client = HTTPClient(base_url="https://api.example.com", retry_count=3)

    assert client.r().get("/test").status_code == 404
    assert len(responses.calls) == 1
    counted_wait.assert_not_called()


@responses.activate
def test_too_many_requests_retried(counted_wait):
    responses.add(responses.GET, URL, status=429)
    responses.add(responses.GET, URL, status=200)

    client = HTTPClient(base_url="https://api.example.com", retry_count=1)

    assert client.r().get("/test").status_code == 200
    assert counted_wait.call_count == 1


@responses.activate
def test_connection_errors_exhaust_retries(counted_wait):
    responses.add(responses.GET, URL, body=requests.exceptions.ConnectionError("refused"))

    client = HTTPClient(base_url="https://api.example.com", retry_count=2)

    with pytest.raises(ConnectionError) as exc_info:
        client.r().get("/test")

    assert len(responses.calls) == 3
    assert exc_info.value.response is not None
    assert exc_info.value.response.status_code == 0


@responses.activate
def test_before_hook_failure_not_retried():
    client = HTTPClient(base_url="https://api.example.com", retry_count=3, retry_interval=0)

    def broken(c, request):
        raise RuntimeError("no token")

    client.on_before_request(broken)

    with pytest.raises(HookError) as exc_info:
        client.r().get("/test")

    assert exc_info.value.stage == "before_request"
    assert len(responses.calls) == 0


@responses.activate
def test_deadline_interrupts_retry_wait():
    responses.add(responses.GET, URL, status=500)

    client = HTTPClient(base_url="https://api.example.com", retry_count=3, retry_interval=30)

    with pytest.raises(CancelledError) as exc_info:
        client.r().set_context(RequestContext.with_timeout(0.05)).get("/test")

    assert exc_info.value.response.status_code == 500
    assert len(responses.calls) == 1


@responses.activate
def test_retry_with_post_body_resent():
    responses.add(responses.POST, URL, status=503)
    responses.add(responses.POST, URL, status=201)

    client = HTTPClient(base_url="https://api.example.com", retry_count=1, retry_interval=0)

    response = client.r().set_body_json({"name": "widget"}).post("/test")

    assert response.status_code == 201
    assert responses.calls[0].request.body == responses.calls[1].request.body
    assert b"widget" in responses.calls[1].request.body
