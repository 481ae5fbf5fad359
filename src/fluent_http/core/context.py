"""Per-call context: deadline, cancellation and shared metadata."""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class RequestContext:
    """Context governing one request's lifetime.

    Attributes:
        request_id: Unique identifier (also used as log correlation id)
        deadline: Absolute ``time.monotonic()`` deadline, None for no deadline
        metadata: Free-form storage for hooks to communicate

    The context bounds every attempt's timeout by the remaining time and
    is checked before each attempt. Retry sleeps wake up early on
    ``cancel()`` or when the deadline passes. An HTTP call already in
    flight is not interrupted.

    Example:
        >>> ctx = RequestContext.with_timeout(2.5)
        >>> client.r().set_context(ctx).get("/slow")
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    deadline: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def with_timeout(cls, seconds: float) -> 'RequestContext':
        """Context whose deadline is ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel the call (observed before attempts and during retry sleeps)."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, None without a deadline."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    @property
    def done(self) -> bool:
        """True once cancelled or past the deadline."""
        return self.cancelled or self.expired

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to ``seconds``; wake early on cancel or deadline.

        Returns:
            True if the full interval elapsed, False if interrupted
        """
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._cancelled.wait(max(remaining, 0))
            return False
        return not self._cancelled.wait(seconds)

    def copy(self) -> 'RequestContext':
        """Copy sharing the deadline and cancellation state, with own metadata."""
        import copy
        return RequestContext(
            request_id=self.request_id,
            deadline=self.deadline,
            metadata=copy.copy(self.metadata),
            _cancelled=self._cancelled,
        )
