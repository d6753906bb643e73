"""
Custom exceptions for the application.

Every error the domain and service layers raise derives from ``DentosError``
so the HTTP layer can translate the whole hierarchy with a single handler.
``status_code`` is the HTTP status the error maps to.
"""

import functools
import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


class DentosError(Exception):
    """Base class for application errors carrying a user-facing message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DentosError):
    """Field-level validation failure, shown next to the offending input."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PermissionDeniedError(DentosError):
    """The caller may not access the requested record or operation."""

    status_code = 403

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class NotFoundError(DentosError):
    """A lookup by id returned nothing."""

    status_code = 404


class InsufficientStockError(DentosError):
    """A stock decrement would leave a negative quantity."""

    status_code = 409

    def __init__(self, message: str, available: int = 0, requested: int = 0):
        super().__init__(message)
        self.available = available
        self.requested = requested


class InvalidSubscriptionTransition(DentosError):
    """An admin subscription operation is not allowed from the current state."""

    status_code = 409


class AuthenticationError(DentosError):
    """Sign-in, registration or password reset failed."""

    status_code = 401


class PersistenceError(DentosError):
    """Opaque gateway failure; the message is safe to show to the user."""

    status_code = 500


def gateway_operation(message: str) -> Callable[[F], F]:
    """Translate store failures raised inside a service method.

    ``SQLAlchemyError`` is logged with its traceback, the session of the
    decorated service (``self.session`` when present) is rolled back, and a
    ``PersistenceError`` carrying ``message`` is raised instead. Application
    errors pass through untouched. No retries are attempted.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                session = getattr(self, "session", None)
                if session is not None:
                    session.rollback()
                logger.error(
                    message,
                    extra={
                        "context": {
                            "operation": f"{type(self).__name__}.{func.__name__}",
                            "error": str(e),
                        }
                    },
                    exc_info=True,
                )
                raise PersistenceError(message) from e

        return wrapper  # type: ignore[return-value]

    return decorator
