from contextlib import nullcontext
from datetime import datetime
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from dentos.core.exceptions import NotFoundError, PermissionDeniedError
from dentos.db.session import atomic
from dentos.utils.date_utils import utcnow

T = TypeVar("T")

Clock = Callable[[], datetime]

OWNERSHIP_HINT = "Verifica que el registro pertenezca a tu cuenta e inicia sesión de nuevo si el problema persiste."


class BaseService:
    """Common plumbing for application services.

    ``session`` is the SQLAlchemy session shared by the injected repositories;
    it is used to group multi-step writes and to roll back after store
    failures. ``clock`` returns the current aware UTC instant.
    """

    def __init__(self, session: Optional[Session] = None, clock: Optional[Clock] = None):
        self.session = session
        self.clock = clock or utcnow

    def now(self) -> datetime:
        return self.clock()

    def transaction(self):
        """Context manager committing the enclosed ``commit=False`` writes together."""
        if self.session is None:
            return nullcontext()
        return atomic(self.session)

    @staticmethod
    def require_owned(record: Optional[T], dentist_id: str, not_found: str) -> T:
        """Return ``record`` if it exists and belongs to ``dentist_id``."""
        if record is None:
            raise NotFoundError(not_found)
        if getattr(record, "dentist_id", None) != dentist_id:
            raise PermissionDeniedError(
                "No tienes permiso para acceder a este registro", hint=OWNERSHIP_HINT
            )
        return record
