"""
Log filters: request id and static extra fields.
"""

import logging
import threading
from typing import Dict, Any, Optional


# Id of the request being executed by the current thread
_request_id_storage = threading.local()


def set_request_id(request_id: str) -> None:
    """
    Set request id for current thread.

    Example:
        >>> set_request_id("5f0c...")
        >>> logger.info("Request started")  # record.request_id == "5f0c..."
    """
    _request_id_storage.value = request_id


def get_request_id() -> Optional[str]:
    """Request id of the current thread, None outside ``execute()``."""
    return getattr(_request_id_storage, 'value', None)


def clear_request_id() -> None:
    if hasattr(_request_id_storage, 'value'):
        delattr(_request_id_storage, 'value')


class RequestIdFilter(logging.Filter):
    """
    Adds ``request_id`` to every record emitted while a request executes.

    Example:
        >>> handler.addFilter(RequestIdFilter())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = get_request_id()
        if request_id and not hasattr(record, 'request_id'):
            record.request_id = request_id
        return True


class ExtraFieldsFilter(logging.Filter):
    """
    Adds static fields (service, environment, ...) to all records.

    Fields already present on the record are not overwritten.

    Example:
        >>> handler.addFilter(ExtraFieldsFilter({"service": "billing"}))
    """

    def __init__(self, extra_fields: Dict[str, Any]):
        super().__init__()
        self.extra_fields = dict(extra_fields)

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.extra_fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
