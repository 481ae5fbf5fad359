"""Тесты настройки HTTPClient."""

import json
import logging

import pytest
from requests.adapters import HTTPAdapter
from requests.cookies import create_cookie

import fluent_http
from fluent_http import ClientConfig, HTTPClient, Request, TimeoutConfig
from fluent_http.core.logging import LoggingConfig, LogLevel


class TestCreation:
    def test_defaults(self):
        client = HTTPClient()

        assert client.base_url == ""
        assert client.timeout == TimeoutConfig(read=30)
        assert client.retry.count == 0
        assert client.user_agent == ""
        assert client.debug is False
        assert client.allow_get_payload is False
        assert client.logger.config is None

    def test_new(self):
        assert isinstance(fluent_http.new(), HTTPClient)

    def test_kwargs_go_to_config(self):
        client = HTTPClient(
            base_url="https://api.example.com/",
            timeout=(2, 8),
            headers={"x-api-version": "2"},
            query_params={"v": "1"},
            retry_count=3,
        )

        assert client.base_url == "https://api.example.com"
        assert client.timeout == TimeoutConfig(connect=2, read=8)
        assert client.headers["X-Api-Version"] == ["2"]
        assert client.query_params == {"v": ["1"]}
        assert client.retry.count == 3

    def test_config_and_base_url(self):
        config = ClientConfig(base_url="https://one.example.com")
        client = HTTPClient(base_url="https://two.example.com", config=config)

        assert client.base_url == "https://two.example.com"
        assert client.config.base_url == "https://two.example.com"

    def test_config_and_kwargs_rejected(self):
        with pytest.raises(TypeError):
            HTTPClient(config=ClientConfig(), retry_count=1)

    def test_logger_named_after_host(self):
        client = HTTPClient(base_url="https://api.example.com")

        assert client.logger.name == "fluent_http.client.api.example.com"
        assert HTTPClient().logger.name == "fluent_http.client"


class TestSetters:
    def test_setters_return_client(self, client):
        assert client.set_timeout(5) is client
        assert client.set_common_header("a", "b") is client
        assert client.set_retry_count(1) is client
        assert client.enable_debug() is client
        assert client.on_before_request(lambda c, r: None) is client

    def test_set_base_url_strips_slash(self, client):
        assert client.set_base_url("https://x.example.com//").base_url == "https://x.example.com"

    def test_common_header_canonical_and_replacing(self, client):
        client.set_common_header("x-trace", "1").set_common_headers({"X-TRACE": "2"})

        assert list(client.headers.keys()) == ["X-Trace"]
        assert client.headers["x-trace"] == ["2"]

    def test_common_params(self, client):
        client.set_common_query_param("a", "1").set_common_query_params({"a": "2", "b": "3"})
        client.set_common_path_param("org", "acme").set_common_path_params({"v": 2})
        client.set_common_form_data({"f": "1"})

        assert client.query_params == {"a": ["2"], "b": ["3"]}
        assert client.path_params == {"org": "acme", "v": "2"}
        assert client.form_data == {"f": ["1"]}

    def test_common_cookies_append(self, client):
        client.set_common_cookies(create_cookie("a", "1"))
        client.set_common_cookies(create_cookie("b", "2"))

        assert [c.name for c in client.cookies] == ["a", "b"]

    def test_debug_toggles(self, client):
        assert client.enable_debug().debug is True
        assert client.disable_debug().debug is False

    def test_dev_mode_installs_debug_logger(self, client):
        client.dev_mode()

        assert client.debug is True
        assert client.logger.config.level is LogLevel.DEBUG
        assert client.logger.name == "fluent_http.client.api.example.com"

    def test_dev_mode_keeps_existing_logger(self, client):
        config = LoggingConfig(level=LogLevel.WARNING, enable_console=False)
        client.set_logging(config).dev_mode()

        assert client.logger.config is config

    def test_get_payload_toggles(self, client):
        assert client.enable_allow_get_method_payload().allow_get_payload is True
        assert client.disable_allow_get_method_payload().allow_get_payload is False

    def test_tls(self, client):
        client.set_tls_client_config(ca_bundle="/etc/ssl/ca.pem", client_cert=("c.pem", "k.pem"))

        assert client.security.verify == "/etc/ssl/ca.pem"
        assert client.security.client_cert == ("c.pem", "k.pem")

        client.enable_insecure_skip_verify()
        assert client.security.verify is False

        client.disable_insecure_skip_verify()
        assert client.security.verify == "/etc/ssl/ca.pem"

    def test_proxy(self, client):
        client.set_proxy("http://proxy.local:8080")
        assert client.proxies == {"http": "http://proxy.local:8080", "https": "http://proxy.local:8080"}

        client.set_proxy({"https": "http://secure.local:3128"})
        assert client.proxies == {"https": "http://secure.local:3128"}

        client.set_proxy(None)
        assert client.proxies == {}

    def test_invalid_proxy(self, client):
        with pytest.raises(ValueError):
            client.set_proxy("proxy-without-scheme")

    def test_retry_setters(self, client):
        condition = lambda response, error: False
        client.set_retry_count(2).set_retry_interval(0.25).set_retry_condition(condition)

        assert client.retry.count == 2
        assert client.retry.interval == 0.25
        assert client.retry.condition is condition

    def test_negative_retry_count_rejected(self, client):
        with pytest.raises(ValueError):
            client.set_retry_count(-1)

    def test_results_and_hooks(self, client):
        checker = lambda response: None
        on_error = lambda c, req, resp, err: None
        before = lambda c, req: None
        after = lambda c, resp: None

        client.set_common_error_result(dict).set_result_state_check_func(checker)
        client.on_error(on_error).on_before_request(before).on_after_response(after)

        assert client.common_error_result is dict
        assert client.result_checker is checker
        assert client.on_error_hook is on_error
        assert client.before_request == [before]
        assert client.after_response == [after]

    def test_codec_setters(self, client):
        marshal = lambda value: b""
        unmarshal = lambda data, target: None

        client.set_json_marshal(marshal).set_json_unmarshal(unmarshal)
        client.set_xml_marshal(marshal).set_xml_unmarshal(unmarshal)

        assert client.json_marshal is marshal
        assert client.json_unmarshal is unmarshal
        assert client.xml_marshal is marshal
        assert client.xml_unmarshal is unmarshal


class TestRequestBuilders:
    @pytest.mark.parametrize("verb", ["get", "post", "put", "patch", "delete", "head", "options"])
    def test_verb_builders(self, client, verb):
        req = getattr(client, verb)("/x")

        assert isinstance(req, Request)
        assert req.client is client
        assert req.method == verb.upper()
        assert req.raw_url == "/x"

    def test_r(self, client):
        req = client.r()

        assert req.client is client
        assert req.method == ""


class TestSessions:
    def test_default_adapter_has_no_retries(self, client):
        adapter = client.session.get_adapter("https://api.example.com")

        assert isinstance(adapter, HTTPAdapter)
        assert adapter.max_retries.total == 0

    def test_session_per_thread_shares_jar(self, client):
        import threading

        sessions = []
        thread = threading.Thread(target=lambda: sessions.append(client.session))
        thread.start()
        thread.join()

        assert sessions[0] is not client.session
        assert sessions[0].cookies is client.session.cookies is client.cookie_jar

    def test_set_transport_resets_sessions(self, client, stub_adapter):
        before = client.session
        client.set_transport(stub_adapter)

        assert client.session is not before
        assert client.session.get_adapter("https://x") is stub_adapter

    def test_cookies(self, client):
        client.cookie_jar.set("sid", "abc")

        assert client.get_cookies() == {"sid": "abc"}

        client.clear_cookies()
        assert client.get_cookies() == {}

    def test_context_manager_closes(self, base_url):
        with HTTPClient(base_url=base_url) as client:
            client.session
            assert client._session_manager.get_active_sessions_count() == 1

        assert client._session_manager.get_active_sessions_count() == 0


class TestClone:
    def test_clone_isolated(self, client):
        client.set_common_header("A", "1").set_common_query_param("q", "1")
        client.set_common_path_param("p", "1").set_common_form_data({"f": "1"})
        client.on_before_request(lambda c, r: None)
        client.set_proxy("http://proxy.local:8080")

        cloned = client.clone()
        cloned.set_common_header("A", "2").set_common_query_param("q", "2")
        cloned.set_common_path_param("p", "2").set_common_form_data({"f": "2"})
        cloned.on_before_request(lambda c, r: None)
        cloned.set_common_cookies(create_cookie("c", "1"))
        cloned.set_proxy(None)

        assert client.headers["A"] == ["1"]
        assert client.query_params == {"q": ["1"]}
        assert client.path_params == {"p": "1"}
        assert client.form_data == {"f": ["1"]}
        assert len(client.before_request) == 1
        assert client.cookies == []
        assert client.proxies["http"] == "http://proxy.local:8080"

    def test_clone_has_own_sessions_and_jar(self, client):
        client.cookie_jar.set("sid", "abc")
        cloned = client.clone()

        assert cloned.session is not client.session
        assert cloned.get_cookies() == {}
        assert cloned.base_url == client.base_url

    def test_clone_requests_bound_to_clone(self, client):
        cloned = client.clone()

        assert cloned.r().client is cloned
        assert cloned._executor.client is cloned

    def test_clone_logs_through_child_logger(self, client):
        cloned = client.clone()

        assert cloned.logger is not client.logger
        assert cloned.logger.name.startswith("fluent_http.client.api.example.com.clone-")

    def test_closing_clone_keeps_original_handlers(self, base_url, logging_config_with_file):
        client = HTTPClient(base_url=base_url, logging=logging_config_with_file)
        handlers = list(client.logger._logger.handlers)

        with client.clone():
            pass
        client.clone().set_logging(LoggingConfig(enable_console=False))

        assert handlers
        assert client.logger._logger.handlers == handlers
        client.close()

    def test_clone_records_reach_original_handlers(self, base_url, logging_config_with_file,
                                                   make_adapter):
        client = HTTPClient(base_url=base_url, logging=logging_config_with_file)
        cloned = client.clone().set_transport(make_adapter(status=200))

        cloned.r().get("/x")
        client.close()

        with open(logging_config_with_file.file_path, encoding="utf-8") as f:
            messages = [json.loads(line)["message"] for line in f]
        assert messages == ["Request started", "Request completed"]


def test_null_handler_installed():
    handlers = logging.getLogger("fluent_http").handlers
    assert any(isinstance(h, logging.NullHandler) for h in handlers)
