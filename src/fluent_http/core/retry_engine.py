"""
Retry engine: решение о повторе и пауза между попытками.

Повтор управляется только количеством попыток и предикатом.
Пауза фиксированная (``RetryConfig.interval``), без backoff и jitter.
"""

import logging
import time
from typing import TYPE_CHECKING, Optional

from .config import RetryConfig
from .context import RequestContext

if TYPE_CHECKING:
    from .response import Response

logger = logging.getLogger(__name__)


def default_retry_condition(response: Optional['Response'], error: Optional[Exception]) -> bool:
    """
    Предикат по умолчанию.

    Повторяем, если попытка завершилась ошибкой, сервер ответил 5xx
    или 429 Too Many Requests.
    """
    if error is not None:
        return True
    if response is None:
        return False
    return response.status_code >= 500 or response.status_code == 429


class RetryEngine:
    """
    Механизм retry для одного вызова.

    Examples:
        >>> engine = RetryEngine(RetryConfig(count=2, interval=0.5))
        >>> while True:
        ...     response, error = attempt()
        ...     if not engine.should_retry(response, error):
        ...         break
        ...     engine.wait(context)
        ...     engine.increment()
    """

    def __init__(self, config: RetryConfig):
        """
        Args:
            config: Конфигурация retry
        """
        self.config = config
        self._attempt = 0

    def should_retry(
        self,
        response: Optional['Response'],
        error: Optional[Exception],
    ) -> bool:
        """
        Решить нужна ли ещё одна попытка.

        Args:
            response: Response текущей попытки (если был)
            error: Terminal error текущей попытки (если был)

        Returns:
            True если лимит не исчерпан и предикат сказал "да"
        """
        if self._attempt + 1 >= self.config.max_attempts:
            return False

        condition = self.config.condition or default_retry_condition
        return bool(condition(response, error))

    def wait(self, context: Optional[RequestContext] = None) -> bool:
        """
        Пауза перед следующей попыткой.

        Args:
            context: Контекст вызова; пауза прерывается его отменой или deadline

        Returns:
            True если пауза прошла полностью, False если её прервали
        """
        interval = self.config.interval
        if interval <= 0:
            return context is None or not context.done
        if context is None:
            time.sleep(interval)
            return True
        return context.wait(interval)

    def increment(self):
        """Увеличить счётчик попыток."""
        self._attempt += 1

    def reset(self):
        """Сбросить счётчик."""
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Текущая попытка (с нуля)."""
        return self._attempt

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts
