from typing import Any, Dict, List, Optional

from dentos.db.base import MedicalHistory as DbMedicalHistory
from dentos.domain.entities import BudgetPayment, MedicalHistory
from dentos.domain.interfaces import IMedicalHistoryRepository
from dentos.repositories.base_repository import SqlAlchemyRepository, to_decimal, to_float
from dentos.utils.date_utils import ensure_utc, isoformat, parse_datetime

SCALAR_FIELDS = (
    "chief_complaint",
    "current_illness",
    "previous_surgeries",
    "family_history",
    "smoking_habit",
    "alcohol_consumption",
    "bruxism",
    "other_habits",
    "extraoral_exam",
    "intraoral_exam",
    "presumptive_diagnosis",
    "definitive_diagnosis",
    "treatment_plan",
    "prognosis",
)
LIST_FIELDS = ("allergies", "current_medications", "systemic_diseases")


def _payment_to_json(payment: BudgetPayment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "date": isoformat(payment.date),
        "treatment": payment.treatment,
        "amount": payment.amount,
    }


def _payment_from_json(raw: Dict[str, Any]) -> BudgetPayment:
    return BudgetPayment(
        id=raw.get("id", ""),
        date=parse_datetime(raw["date"]) if raw.get("date") else None,
        treatment=raw.get("treatment", ""),
        amount=float(raw.get("amount") or 0),
    )


class MedicalHistoryRepository(SqlAlchemyRepository, IMedicalHistoryRepository):
    model = DbMedicalHistory

    def get_by_patient(self, patient_id: str) -> Optional[MedicalHistory]:
        db_obj = self._get_by_patient_row(patient_id)
        return self._to_domain(db_obj) if db_obj else None

    def list_by_dentist(self, dentist_id: str) -> List[MedicalHistory]:
        rows = (
            self.db.query(DbMedicalHistory)
            .filter(DbMedicalHistory.dentist_id == dentist_id)
            .order_by(DbMedicalHistory.created_at.asc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def save(self, history: MedicalHistory, commit: bool = True) -> MedicalHistory:
        db_obj = self._get_by_patient_row(history.patient_id)
        if db_obj is None:
            db_obj = DbMedicalHistory(patient_id=history.patient_id, dentist_id=history.dentist_id)
            self.db.add(db_obj)

        self._apply(db_obj, {f: getattr(history, f) for f in SCALAR_FIELDS})
        self._apply(db_obj, {f: list(getattr(history, f)) for f in LIST_FIELDS})
        # JSON columns are replaced wholesale so change tracking sees the update
        db_obj.odontogram = {k: dict(v) for k, v in history.odontogram.items()}
        db_obj.periodontal_indices = dict(history.periodontal_indices)
        db_obj.budget_amount = to_decimal(history.budget_amount)
        db_obj.budget_payments = [_payment_to_json(p) for p in history.budget_payments]
        return self._to_domain(self._save(db_obj, commit))

    def delete_by_patient(self, patient_id: str, commit: bool = True) -> None:
        db_obj = self._get_by_patient_row(patient_id)
        if db_obj is None:
            return
        self.db.delete(db_obj)
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    def _get_by_patient_row(self, patient_id: str) -> Optional[DbMedicalHistory]:
        return self.db.query(DbMedicalHistory).filter(DbMedicalHistory.patient_id == patient_id).first()

    def _to_domain(self, db_obj: DbMedicalHistory) -> MedicalHistory:
        history = MedicalHistory(
            id=db_obj.id,
            patient_id=db_obj.patient_id,
            dentist_id=db_obj.dentist_id,
            odontogram=dict(db_obj.odontogram or {}),
            periodontal_indices=dict(db_obj.periodontal_indices or {}),
            budget_amount=to_float(db_obj.budget_amount),
            budget_payments=[_payment_from_json(p) for p in (db_obj.budget_payments or [])],
            created_at=ensure_utc(db_obj.created_at),
            updated_at=ensure_utc(db_obj.updated_at),
        )
        for f in SCALAR_FIELDS:
            setattr(history, f, getattr(db_obj, f))
        for f in LIST_FIELDS:
            setattr(history, f, list(getattr(db_obj, f) or []))
        return history
