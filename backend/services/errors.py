# backend/services/errors.py
"""Error kinds raised by the storefront services.

Every failure is local to one user action: the caller reports it and the user
may retry. Route handlers never catch these, the handlers registered in
``main.py`` turn them into HTTP responses.
"""
from typing import Dict, Optional


class StoreError(Exception):
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(StoreError):
    """Bad or missing input; ``errors`` maps field name to message."""

    status_code = 422

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message or "Validation failed")
        self.errors = dict(errors)


class Unauthorized(StoreError):
    status_code = 401

    def __init__(self, message: str = "Sign in required"):
        super().__init__(message)


class NotFound(StoreError):
    status_code = 404


class PersistenceError(StoreError):
    """Storage or network failure; the message is surfaced verbatim."""

    status_code = 503


class InvalidOperation(StoreError):
    status_code = 400
