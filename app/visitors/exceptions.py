import logging
from contextlib import contextmanager

from django.db import DatabaseError


logger = logging.getLogger(__name__)


class VisitorError(Exception):
    """Base class for errors raised by the visitor lifecycle services."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(VisitorError):
    pass


class NotFoundError(VisitorError):
    pass


class ConflictError(VisitorError):
    pass


class StoreError(VisitorError):
    pass


@contextmanager
def store_errors(operation: str):
    """Re-raise database failures as StoreError, keeping the original as the cause."""
    try:
        yield
    except DatabaseError as exc:
        logger.exception("Visitor store failure", extra={"operation": operation})
        raise StoreError(f"Visitor store unavailable during {operation}") from exc
