"""
Log filters for correlation IDs and static extra fields.
"""

import logging
import threading
from typing import Dict, Any, Optional


# Thread-local storage for correlation ID
_correlation_id_storage = threading.local()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set correlation ID for current thread.

    The execution engine sets one per dispatched request so that the
    request record, retries and the response record share an ID.
    """
    _correlation_id_storage.value = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get correlation ID for current thread (None if not set)."""
    return getattr(_correlation_id_storage, 'value', None)


def clear_correlation_id() -> None:
    """Clear correlation ID for current thread."""
    if hasattr(_correlation_id_storage, 'value'):
        delattr(_correlation_id_storage, 'value')


class CorrelationIdFilter(logging.Filter):
    """
    Adds ``correlation_id`` from thread-local storage to every record.

    Example:
        >>> handler.addFilter(CorrelationIdFilter())
        >>> set_correlation_id("req-12345")
        >>> logger.info("Request started")  # correlation_id=req-12345
    """

    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id and not hasattr(record, 'correlation_id'):
            record.correlation_id = correlation_id
        return True


class ExtraFieldsFilter(logging.Filter):
    """
    Adds static fields (service name, environment...) to all records.

    Fields already present on the record are not overwritten.
    """

    def __init__(self, extra_fields: Dict[str, Any]):
        super().__init__()
        self.extra_fields = dict(extra_fields)

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.extra_fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
