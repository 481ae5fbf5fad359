"""
Execution engine.

One ``execute()`` call runs up to ``retry.count + 1`` attempts. Each attempt:

    prepare -> before-hooks -> send -> read body -> classify
            -> after-hooks -> auto-decode -> retry decision

Preparation errors (URL, body encoding) and before-hook errors abort the
call at once. Transport, body-read, after-hook and success-decode errors
become the attempt's terminal error and go to the retry predicate.
"""

import base64
import io
import os
import time
from datetime import timedelta
from typing import IO, TYPE_CHECKING, Any, Callable, Optional, Tuple

import requests
from requests.cookies import RequestsCookieJar, get_cookie_header
from requests.utils import super_len

from .body import Body, BodyKind, encode_body
from .codecs import unmarshal_for_content_type
from .config import DEFAULT_USER_AGENT
from .exceptions import (
    BodyReadError,
    CancelledError,
    DecodeError,
    HookError,
    HTTPClientException,
    URLParseError,
    ValidationError,
    classify_requests_exception,
)
from .logging.filters import clear_request_id, set_request_id
from .response import Response, ResultState, default_result_checker
from .retry_engine import RetryEngine
from .utils import flatten_headers, merge_headers, merge_values, set_value
from ..utils.sanitizer import mask_headers, mask_url

if TYPE_CHECKING:
    from .http_client import HTTPClient
    from .request import Request

_NO_PAYLOAD_METHODS = frozenset({'GET', 'HEAD'})
_DOWNLOAD_CHUNK = 64 * 1024
_UPLOAD_CHUNK = 64 * 1024


def _basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode('utf-8')).decode('ascii')
    return f"Basic {token}"


def _hook_name(hook: Any) -> str:
    return getattr(hook, '__qualname__', None) or repr(hook)


def _stream_mark(body: Optional[Body]) -> Optional[Tuple[IO, int]]:
    """Start position of a seekable stream body, or None."""
    if body is None or body.kind is not BodyKind.STREAM:
        return None
    stream = body.payload
    try:
        if stream.seekable():
            return stream, stream.tell()
    except (AttributeError, OSError, ValueError):
        pass
    return None


class _ProgressReader:
    """
    File-like wrapper reporting upload progress as the transport reads it.

    ``callback(written, total)``; total is -1 when the size is unknown.
    """

    def __init__(self, data: Any, callback: Callable[[int, int], None]):
        if isinstance(data, bytes):
            total = len(data)
            data = io.BytesIO(data)
        else:
            total = super_len(data) or -1
        self._stream = data
        self._callback = callback
        self._total = total
        self._written = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        if chunk:
            self._written += len(chunk)
            self._callback(self._written, self._total)
        return chunk

    def __iter__(self):
        while True:
            chunk = self.read(_UPLOAD_CHUNK)
            if not chunk:
                return
            yield chunk

    def __len__(self) -> int:
        # 0 = неизвестно: requests отправит chunked
        return max(self._total, 0)


class Executor:
    """
    Runs requests of one HTTPClient through the attempt loop.

    Stateless apart from the client reference, so one Executor serves
    concurrent calls; each call gets its own RetryEngine.
    """

    def __init__(self, client: 'HTTPClient'):
        self.client = client

    @property
    def logger(self):
        return self.client.logger

    # ==================== Вызов ====================

    def execute(self, request: 'Request') -> Response:
        """
        Execute a request.

        Returns:
            Response of the last attempt (no terminal error)

        Raises:
            ValidationError, URLParseError, EncodeError, HookError:
                Raised at once, before or instead of the first send
            HTTPClientException: Terminal error of the last attempt, with
                ``.response`` set to that attempt's Response
        """
        request.validate()
        set_request_id(request.context.request_id)
        try:
            if request.tracer is None:
                return self._execute(request)

            from ..contrib.opentelemetry import request_span
            span_name = request.span_name or f"HTTP {request.method}"
            with request_span(request.tracer, span_name, request.method, request.url) as span:
                return self._execute(request, span)
        finally:
            clear_request_id()

    def _execute(self, request: 'Request', span: Any = None) -> Response:
        engine = RetryEngine(self.client.retry)
        started = time.monotonic()
        log_url = mask_url(request.url)
        response: Optional[Response] = None
        error: Optional[HTTPClientException] = None
        mark = _stream_mark(request.body)

        self.logger.info(
            "Request started",
            request_id=request.context.request_id,
            method=request.method,
            url=log_url,
            max_attempts=engine.max_attempts,
        )

        while True:
            if request.context.done:
                error = CancelledError("Request cancelled before attempt", log_url)
                break

            if span is not None:
                span.record_attempt(engine.attempt)
            if mark is not None and engine.attempt > 0:
                # повтор: поток отдаётся с исходной позиции
                mark[0].seek(mark[1])

            response, error = self._attempt(request, engine, span)

            if span is not None:
                span.record_response(response)

            if not engine.should_retry(response, error):
                break

            self.logger.warning(
                "Request attempt failed (will retry)",
                request_id=request.context.request_id,
                method=request.method,
                url=log_url,
                status_code=response.status_code,
                error=str(error) if error else None,
                error_type=type(error).__name__ if error else None,
                attempt=engine.attempt + 1,
                max_attempts=engine.max_attempts,
                wait_s=self.client.retry.interval,
            )

            if not engine.wait(request.context):
                error = CancelledError("Request cancelled during retry wait", log_url)
                break
            engine.increment()

        duration_ms = round((time.monotonic() - started) * 1000, 2)

        if response is not None:
            response.error = error

        if error is None:
            self.logger.info(
                "Request completed",
                request_id=request.context.request_id,
                method=request.method,
                url=log_url,
                status_code=response.status_code,
                duration_ms=duration_ms,
                attempt=engine.attempt + 1,
                response_size=response.size,
            )
            return response

        error.response = response
        self.logger.error(
            "Request failed",
            request_id=request.context.request_id,
            method=request.method,
            url=log_url,
            status_code=response.status_code if response is not None else None,
            error=str(error),
            error_type=type(error).__name__,
            attempt=engine.attempt + 1,
            max_attempts=engine.max_attempts,
            duration_ms=duration_ms,
        )
        self._notify_error(request, response, error)
        raise error

    # ==================== Попытка ====================

    def _attempt(
        self,
        request: 'Request',
        engine: RetryEngine,
        span: Any,
    ) -> Tuple[Response, Optional[HTTPClientException]]:
        client = self.client

        prepared = self._prepare(request)
        if client.before_request:
            self._run_before_hooks(request)
            # хуки могли изменить запрос
            prepared = self._prepare(request)

        if span is not None:
            span.inject_headers(prepared.headers)
        if client.debug:
            self._debug_request(prepared, engine)

        timeout = (request.timeout or client.timeout).capped(request.context.remaining())
        session = client.session
        settings = session.merge_environment_settings(
            prepared.url,
            dict(client.proxies),
            True,  # stream: тело читается в _read_body
            client.security.verify,
            client.security.client_cert,
        )

        started = time.monotonic()
        try:
            raw = session.send(prepared, timeout=timeout, allow_redirects=True, **settings)
        except (requests.exceptions.RequestException, OSError) as e:
            response = Response(request, duration=timedelta(seconds=time.monotonic() - started))
            error = classify_requests_exception(e, prepared.url)
            error.__cause__ = e
            response.error = error
            return response, error

        response = Response(request, raw, duration=timedelta(seconds=time.monotonic() - started))

        read_error = self._read_body(request, raw, response)
        if read_error is not None:
            response.error = read_error
            return response, read_error

        checker = client.result_checker or default_result_checker
        response._set_state(checker(response))

        error = self._run_after_hooks(response)
        if error is None:
            error = self._decode(request, response)
        response.error = error

        if client.debug:
            self._debug_response(response)

        return response, error

    def _prepare(self, request: 'Request') -> requests.PreparedRequest:
        """
        Assemble the wire request.

        Raises:
            URLParseError: URL cannot be built or is rejected by requests
            EncodeError: Body cannot be encoded
            ValidationError: Header value rejected by requests
        """
        client = self.client
        url = client.build_url(request)

        encoded = encode_body(
            request.body,
            merge_values(client.form_data, request.form_data),
            client.json_marshal,
            client.xml_marshal,
        )
        data = encoded.data
        if request.method in _NO_PAYLOAD_METHODS and not client.allow_get_payload:
            data = None

        headers = merge_headers(client.headers, request.headers)

        if 'User-Agent' not in headers:
            user_agent = request.user_agent or client.user_agent or DEFAULT_USER_AGENT
            set_value(headers, 'User-Agent', user_agent)

        if data is not None and encoded.content_type and 'Content-Type' not in headers:
            set_value(headers, 'Content-Type', encoded.content_type)

        if request.basic_auth and request.basic_auth[0]:
            set_value(headers, 'Authorization', _basic_auth_header(*request.basic_auth))
        if request.bearer_token:
            set_value(headers, 'Authorization', f"Bearer {request.bearer_token}")

        cookies = list(client.cookies) + list(request.cookies)
        jar = None
        if 'Cookie' in headers:
            # Явный Cookie заголовок: requests не добавит куки сам, даже из jar
            pairs = [f"{c.name}={c.value}" for c in cookies]
            stored = get_cookie_header(client.cookie_jar, requests.Request(request.method, url))
            if stored:
                pairs.append(stored)
            headers['Cookie'] = ["; ".join(headers['Cookie'] + pairs)]
        elif cookies:
            jar = RequestsCookieJar()
            for cookie in cookies:
                jar.set_cookie(cookie)

        if data is not None and request.upload_callback is not None:
            data = _ProgressReader(data, request.upload_callback)

        wire = requests.Request(
            method=request.method,
            url=url,
            headers=flatten_headers(headers),
            data=data,
            cookies=jar,
        )
        try:
            return client.session.prepare_request(wire)
        except (requests.exceptions.InvalidURL,
                requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema) as e:
            raise URLParseError(f"Invalid request URL: {e}", url=url) from e
        except requests.exceptions.InvalidHeader as e:
            raise ValidationError(f"Invalid request header: {e}") from e

    def _read_body(
        self,
        request: 'Request',
        raw: requests.Response,
        response: Response,
    ) -> Optional[BodyReadError]:
        try:
            if request.output_path:
                response._set_body(b"", self._download(raw, request.output_path))
            else:
                response._set_body(raw.content)
        except (requests.exceptions.RequestException, OSError) as e:
            error = BodyReadError(f"Failed to read response body: {e}")
            error.__cause__ = e
            return error
        finally:
            raw.close()
        return None

    @staticmethod
    def _download(raw: requests.Response, file_path: str) -> int:
        """Stream the body into ``file_path``; a partial file is removed on failure."""
        written = 0
        try:
            with open(file_path, 'wb') as f:
                for chunk in raw.iter_content(chunk_size=_DOWNLOAD_CHUNK):
                    f.write(chunk)
                    written += len(chunk)
        except Exception:
            if os.path.exists(file_path):
                os.remove(file_path)
            raise
        return written

    # ==================== Хуки ====================

    def _run_before_hooks(self, request: 'Request') -> None:
        for hook in self.client.before_request:
            try:
                hook(self.client, request)
            except Exception as e:
                raise HookError(
                    f"Before request hook {_hook_name(hook)} failed: {e}",
                    stage="before_request",
                    hook=hook,
                ) from e

    def _run_after_hooks(self, response: Response) -> Optional[HookError]:
        for hook in self.client.after_response:
            try:
                hook(self.client, response)
            except Exception as e:
                error = HookError(
                    f"After response hook {_hook_name(hook)} failed: {e}",
                    stage="after_response",
                    hook=hook,
                )
                error.__cause__ = e
                return error
        return None

    def _notify_error(
        self,
        request: 'Request',
        response: Optional[Response],
        error: HTTPClientException,
    ) -> None:
        hook = self.client.on_error_hook
        if hook is None:
            return
        try:
            hook(self.client, request, response, error)
        except Exception:
            self.logger.exception(
                "Error hook failed",
                request_id=request.context.request_id,
                hook=_hook_name(hook),
            )

    # ==================== Декодирование ====================

    def _decode(self, request: 'Request', response: Response) -> Optional[DecodeError]:
        """
        Decode the body into the success or error target.

        Success decode failures are returned as the attempt's error;
        error decode failures are only logged.
        """
        if not response.body:
            return None

        state = response.result_state
        if state is ResultState.SUCCESS and request.success_result is not None:
            try:
                response.result = self._unmarshal(response, request.success_result)
            except Exception as e:
                error = DecodeError(
                    f"Failed to decode success result: {e}",
                    content_type=response.content_type,
                )
                error.__cause__ = e
                return error

        elif state is ResultState.ERROR:
            target = request.error_result
            if target is None:
                target = self.client.common_error_result
            if target is not None:
                try:
                    response.error_result = self._unmarshal(response, target)
                except Exception as e:
                    self.logger.debug(
                        "Failed to decode error result",
                        request_id=request.context.request_id,
                        status_code=response.status_code,
                        error=str(e),
                    )
        return None

    def _unmarshal(self, response: Response, target: Any) -> Any:
        decoder = unmarshal_for_content_type(
            response.content_type,
            self.client.json_unmarshal,
            self.client.xml_unmarshal,
        )
        return decoder(response.body, target)

    # ==================== Debug ====================

    def _preview(self, body: Any) -> str:
        if body is None:
            return ""
        if isinstance(body, bytes):
            text = body.decode('utf-8', errors='replace')
        elif isinstance(body, str):
            text = body
        else:
            return "<stream>"
        limit = self.logger.body_preview_limit
        if len(text) > limit:
            return text[:limit] + "...(truncated)"
        return text

    def _debug_request(self, prepared: requests.PreparedRequest, engine: RetryEngine) -> None:
        self.logger.debug(
            "Request details",
            attempt=engine.attempt + 1,
            max_attempts=engine.max_attempts,
            method=prepared.method,
            url=mask_url(prepared.url),
            request_headers=mask_headers(prepared.headers),
            request_body=self._preview(prepared.body),
        )

    def _debug_response(self, response: Response) -> None:
        self.logger.debug(
            "Response details",
            status=response.status,
            status_code=response.status_code,
            duration_ms=round(response.duration.total_seconds() * 1000, 2),
            response_size=response.size,
            response_headers=mask_headers(response.headers),
            response_body=self._preview(response.body),
        )
