from decimal import Decimal
from typing import Optional, Type

from sqlalchemy.orm import Session


def to_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def to_decimal(value: Optional[float]) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


class SqlAlchemyRepository:
    """Shared plumbing for the SQLAlchemy repositories.

    Subclasses set ``model`` and implement ``_to_domain``.
    """

    model: Type = None  # type: ignore[assignment]

    def __init__(self, db_session: Session):
        self.db = db_session

    def _save(self, db_obj, commit: bool):
        """Commit and refresh ``db_obj``, or only flush when inside ``atomic``."""
        if commit:
            self.db.commit()
            self.db.refresh(db_obj)
        else:
            self.db.flush()
        return db_obj

    def _get_row(self, record_id: str):
        return self.db.get(self.model, record_id)

    def _delete_row(self, record_id: str, commit: bool) -> None:
        db_obj = self._get_row(record_id)
        if db_obj is None:
            return
        self.db.delete(db_obj)
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    def _apply(self, db_obj, values: dict) -> None:
        for key, value in values.items():
            setattr(db_obj, key, value)
