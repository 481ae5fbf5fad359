"""
Иерархия исключений fluent-http.

Классификация:
- ошибки подготовки запроса (URLParseError, EncodeError, ValidationError)
  и before-хуков (HookError) прерывают вызов сразу, без retry
- ошибки попытки (TransportError, BodyReadError, HookError из after-хуков,
  DecodeError) попадают в retry предикат как terminal error попытки
"""

from typing import TYPE_CHECKING, Optional

import requests

if TYPE_CHECKING:
    from .response import Response

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class HTTPClientException(Exception):
    """
    Базовое исключение fluent-http.

    Attributes:
        message: Сообщение об ошибке
        response: Response последней попытки (None если ответа не было)
    """

    def __init__(self, message: str, response: Optional['Response'] = None):
        self.message = message
        self.response = response
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ПОДГОТОВКА ЗАПРОСА (без retry)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ValidationError(HTTPClientException):
    """Запрос не прошёл валидацию (нет метода или URL)."""
    pass

class URLParseError(HTTPClientException):
    """
    Не удалось собрать или распарсить URL.

    Args:
        message: Сообщение
        url: URL после подстановки path параметров
    """

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        msg = message
        if url:
            msg += f" (url: {url})"
        super().__init__(msg)

class EncodeError(HTTPClientException):
    """
    Ошибка сериализации тела запроса.

    Args:
        message: Сообщение
        body_kind: Тип тела ('json', 'xml', ...)
    """

    def __init__(self, message: str, body_kind: Optional[str] = None):
        self.body_kind = body_kind
        super().__init__(message)

class HookError(HTTPClientException):
    """
    Before/after хук выбросил исключение.

    Args:
        message: Сообщение
        stage: 'before_request' или 'after_response'
        hook: Сам хук (для диагностики)
    """

    def __init__(self, message: str, stage: str, hook: object = None):
        self.stage = stage
        self.hook = hook
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ОШИБКИ ПОПЫТКИ (input для retry предиката)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportError(HTTPClientException):
    """Ошибка транспорта: подключение, отправка, таймаут, отмена."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        full_message = f"{message}"
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)

class TimeoutError(TransportError):
    """
    Таймаут запроса.

    Args:
        message: Сообщение об ошибке
        url: URL запроса
        timeout: Значение таймаута
        timeout_type: Тип таймаута ('connect' или 'read')
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        timeout_type: Optional[str] = None
    ):
        self.timeout = timeout
        self.timeout_type = timeout_type

        msg = message
        if timeout_type:
            msg += f" ({timeout_type} timeout"
            if timeout:
                msg += f": {timeout}s"
            msg += ")"

        super().__init__(msg, url)

class ConnectionError(TransportError):
    """
    Ошибка подключения.

    Примеры:
    - Connection refused
    - Connection reset
    - DNS resolution failed
    """
    pass

class ProxyError(ConnectionError):
    """Ошибка прокси."""
    pass

class SSLError(ConnectionError):
    """Ошибка TLS рукопожатия или проверки сертификата."""
    pass

class CancelledError(TransportError):
    """Запрос отменён через RequestContext или истёк его deadline."""
    pass

class BodyReadError(HTTPClientException):
    """Не удалось дочитать тело ответа."""
    pass

class DecodeError(HTTPClientException):
    """
    Не удалось декодировать тело успешного ответа в success target.

    Ошибки декодирования error target не поднимаются (best-effort).
    """

    def __init__(self, message: str, content_type: Optional[str] = None):
        self.content_type = content_type
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def classify_requests_exception(
    exc: Exception,
    url: str
) -> HTTPClientException:
    """
    Конвертировать requests.exceptions в наши исключения.

    Args:
        exc: Исключение из requests
        url: URL запроса

    Returns:
        Наше исключение с правильной классификацией

    Examples:
        >>> exc = requests.exceptions.ConnectTimeout()
        >>> our_exc = classify_requests_exception(exc, "https://example.com")
        >>> assert isinstance(our_exc, TimeoutError)
        >>> assert our_exc.timeout_type == "connect"
    """
    detail = str(exc) or exc.__class__.__name__

    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return TimeoutError(f"Request timeout: {detail}", url, timeout_type="connect")

    elif isinstance(exc, requests.exceptions.Timeout):
        return TimeoutError(f"Request timeout: {detail}", url, timeout_type="read")

    elif isinstance(exc, requests.exceptions.ProxyError):
        return ProxyError(f"Proxy error: {detail}", url)

    elif isinstance(exc, requests.exceptions.SSLError):
        return SSLError(f"SSL error: {detail}", url)

    elif isinstance(exc, requests.exceptions.ConnectionError):
        return ConnectionError(f"Connection error: {detail}", url)

    elif isinstance(exc, (requests.exceptions.ChunkedEncodingError,
                          requests.exceptions.ContentDecodingError,
                          requests.exceptions.StreamConsumedError)):
        return BodyReadError(f"Failed to read response body: {detail}")

    elif isinstance(exc, requests.exceptions.RequestException):
        return TransportError(f"Request failed: {detail}", url)

    else:
        # Неизвестная ошибка транспорта (например, OSError из адаптера)
        return TransportError(f"Unexpected transport error: {detail}", url)
