"""
End-to-end scenarios: full client configuration, structured logging,
cookies and concurrent use.
"""

import json
import threading

import pytest
import responses
from pydantic import BaseModel
from responses import matchers

from fluent_http import HTTPClient, load_from_env
from fluent_http.core.exceptions import ConnectionError

pytestmark = pytest.mark.integration

BASE = "https://api.example.com"


class User(BaseModel):
    id: int
    name: str


class APIError(BaseModel):
    code: str
    message: str


def read_log(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


@responses.activate
def test_full_request_flow():
    responses.add(
        responses.GET,
        f"{BASE}/v2/orgs/acme/users/7",
        json={"id": 7, "name": "Alice"},
        match=[
            matchers.query_param_matcher({"a": ["1", "2"], "expand": "teams"}),
            matchers.header_matcher({
                "Authorization": "Bearer t0k3n",
                "X-Api-Version": "2",
                "User-Agent": "billing/1.0",
            }),
        ],
    )

    client = (
        HTTPClient(base_url=f"{BASE}/v2")
        .set_user_agent("billing/1.0")
        .set_common_header("x-api-version", "2")
        .set_common_query_param("a", "1")
        .set_common_path_param("org", "acme")
    )

    response = (
        client.r()
        .add_query_param("a", "2")
        .set_query_param("expand", "teams")
        .set_path_param("id", 7)
        .set_bearer_token("t0k3n")
        .set_success_result(User)
        .get("/orgs/{org}/users/{id}")
    )

    assert response.is_success()
    assert response.result == User(id=7, name="Alice")
    assert responses.calls[0].request.url.endswith("?a=1&a=2&expand=teams")


@responses.activate
def test_error_result_decoded():
    responses.add(
        responses.POST,
        f"{BASE}/users",
        status=422,
        json={"code": "invalid", "message": "name is required"},
    )

    client = HTTPClient(base_url=BASE).set_common_error_result(APIError)

    response = client.r().set_body({"name": ""}).post("/users")

    assert response.is_error()
    assert response.error_result == APIError(code="invalid", message="name is required")
    assert response.result is None


@responses.activate
def test_server_cookies_sent_back():
    responses.add(
        responses.POST,
        f"{BASE}/login",
        headers={"Set-Cookie": "sid=abc123; Path=/"},
    )
    responses.add(responses.GET, f"{BASE}/me", json={"id": 1, "name": "Bob"})

    client = HTTPClient(base_url=BASE)
    client.r().set_form_data({"user": "bob"}).post("/login")
    client.r().get("/me")

    assert client.get_cookies() == {"sid": "abc123"}
    assert responses.calls[1].request.headers["Cookie"] == "sid=abc123"


@responses.activate
def test_json_file_logging(logging_config_with_file):
    responses.add(responses.GET, f"{BASE}/users", json=[])

    client = HTTPClient(base_url=BASE, logging=logging_config_with_file)
    client.r().get("/users?api_key=secret123")
    client.close()

    entries = read_log(logging_config_with_file.file_path)
    messages = [e["message"] for e in entries]

    assert messages == ["Request started", "Request completed"]
    started, completed = entries
    assert started["request_id"] == completed["request_id"]
    assert started["method"] == "GET"
    assert "secret123" not in started["url"]
    assert completed["status_code"] == 200
    assert completed["logger"] == "fluent_http.client.api.example.com"


@responses.activate
def test_failed_request_logged(logging_config_with_file):
    import requests

    responses.add(responses.GET, f"{BASE}/down", body=requests.exceptions.ConnectionError("refused"))

    client = HTTPClient(
        base_url=BASE,
        logging=logging_config_with_file,
        retry_count=1,
        retry_interval=0,
    )
    with pytest.raises(ConnectionError):
        client.r().get("/down")
    client.close()

    entries = read_log(logging_config_with_file.file_path)
    messages = [e["message"] for e in entries]

    assert messages == [
        "Request started",
        "Request attempt failed (will retry)",
        "Request failed",
    ]
    assert entries[-1]["error_type"] == "ConnectionError"
    assert entries[-1]["level"] == "ERROR"


@responses.activate
def test_debug_logging_to_file(logging_config_with_file):
    responses.add(responses.POST, f"{BASE}/items", json={"ok": True})

    client = HTTPClient(base_url=BASE, logging=logging_config_with_file).enable_debug()
    client.r().set_bearer_token("t0k3n").set_body_json({"name": "widget"}).post("/items")
    client.close()

    entries = {e["message"]: e for e in read_log(logging_config_with_file.file_path)}

    assert "Request details" in entries
    assert "Response details" in entries
    assert "t0k3n" not in json.dumps(entries["Request details"])


@responses.activate
def test_concurrent_requests_share_cookies():
    for i in range(10):
        responses.add(responses.GET, f"{BASE}/data/{i}", json={"id": i})

    client = HTTPClient(base_url=BASE)
    client.cookie_jar.set("sid", "shared")
    results = []
    errors = []
    lock = threading.Lock()

    def worker(i):
        try:
            response = client.r().get(f"/data/{i}")
            with lock:
                results.append((i, response.json()["id"]))
        except Exception as e:
            with lock:
                errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(results) == [(i, i) for i in range(10)]
    assert all(call.request.headers["Cookie"] == "sid=shared" for call in responses.calls)
    client.close()


@responses.activate
def test_client_from_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("FLUENT_HTTP_BASE_URL", BASE)
    monkeypatch.setenv("FLUENT_HTTP_USER_AGENT", "env-agent/2.0")
    responses.add(
        responses.GET,
        f"{BASE}/ping",
        match=[matchers.header_matcher({"User-Agent": "env-agent/2.0"})],
    )

    with HTTPClient(config=load_from_env()) as client:
        assert client.r().get("/ping").status_code == 200
