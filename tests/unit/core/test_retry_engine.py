"""Тесты RetryEngine."""

import time
from unittest.mock import Mock, patch

from fluent_http.core.config import RetryConfig
from fluent_http.core.context import RequestContext
from fluent_http.core.exceptions import ConnectionError
from fluent_http.core.retry_engine import RetryEngine, default_retry_condition


def response_with(status):
    return Mock(status_code=status)


def test_retry_engine_init():
    """Тест инициализации."""
    engine = RetryEngine(RetryConfig())
    assert engine.attempt == 0
    assert engine.max_attempts == 1


class TestDefaultCondition:
    def test_error_retried(self):
        assert default_retry_condition(None, ConnectionError("refused")) is True

    def test_server_error_retried(self):
        assert default_retry_condition(response_with(500), None) is True
        assert default_retry_condition(response_with(503), None) is True

    def test_too_many_requests_retried(self):
        assert default_retry_condition(response_with(429), None) is True

    def test_client_error_not_retried(self):
        assert default_retry_condition(response_with(404), None) is False

    def test_success_not_retried(self):
        assert default_retry_condition(response_with(200), None) is False

    def test_nothing_not_retried(self):
        assert default_retry_condition(None, None) is False


class TestShouldRetry:
    def test_no_retry_when_count_zero(self):
        engine = RetryEngine(RetryConfig(count=0))
        assert engine.should_retry(None, ConnectionError("x")) is False

    def test_attempt_limit(self):
        """count=2: попытки 0 и 1 можно повторить, попытку 2 нельзя."""
        engine = RetryEngine(RetryConfig(count=2, condition=lambda r, e: True))

        assert engine.should_retry(None, None) is True
        engine.increment()
        assert engine.should_retry(None, None) is True
        engine.increment()
        assert engine.should_retry(None, None) is False

    def test_custom_condition_receives_response_and_error(self):
        condition = Mock(return_value=False)
        engine = RetryEngine(RetryConfig(count=3, condition=condition))
        response = response_with(200)
        error = ConnectionError("x")

        assert engine.should_retry(response, error) is False
        condition.assert_called_once_with(response, error)

    def test_custom_condition_replaces_default(self):
        engine = RetryEngine(RetryConfig(count=1, condition=lambda r, e: r.status_code == 404))

        assert engine.should_retry(response_with(404), None) is True
        assert engine.should_retry(response_with(500), None) is False

    def test_reset(self):
        engine = RetryEngine(RetryConfig(count=1))
        engine.increment()
        engine.reset()

        assert engine.attempt == 0


class TestWait:
    def test_zero_interval_does_not_sleep(self):
        engine = RetryEngine(RetryConfig(count=1, interval=0))

        with patch("fluent_http.core.retry_engine.time.sleep") as sleep:
            assert engine.wait() is True

        sleep.assert_not_called()

    def test_zero_interval_reports_cancelled_context(self):
        engine = RetryEngine(RetryConfig(count=1, interval=0))
        context = RequestContext()
        context.cancel()

        assert engine.wait(context) is False

    def test_fixed_interval_without_context(self):
        engine = RetryEngine(RetryConfig(count=1, interval=0.5))

        with patch("fluent_http.core.retry_engine.time.sleep") as sleep:
            assert engine.wait() is True

        sleep.assert_called_once_with(0.5)

    def test_interval_with_context(self):
        engine = RetryEngine(RetryConfig(count=1, interval=0.01))

        assert engine.wait(RequestContext()) is True

    def test_cancel_interrupts_wait(self):
        engine = RetryEngine(RetryConfig(count=1, interval=10))
        context = RequestContext()
        context.cancel()

        start = time.monotonic()
        assert engine.wait(context) is False
        assert time.monotonic() - start < 1

    def test_deadline_interrupts_wait(self):
        engine = RetryEngine(RetryConfig(count=1, interval=10))

        start = time.monotonic()
        assert engine.wait(RequestContext.with_timeout(0.05)) is False
        assert time.monotonic() - start < 1
