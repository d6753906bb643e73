from typing import List, Optional

from dentos.core.exceptions import NotFoundError
from dentos.db.base import Visit as DbVisit
from dentos.domain.entities import Visit
from dentos.domain.interfaces import IVisitRepository
from dentos.repositories.base_repository import SqlAlchemyRepository
from dentos.utils.date_utils import ensure_utc


class VisitRepository(SqlAlchemyRepository, IVisitRepository):
    model = DbVisit

    def add(self, visit: Visit, commit: bool = True) -> Visit:
        db_obj = DbVisit(dentist_id=visit.dentist_id)
        self._apply(db_obj, self._values(visit))
        self.db.add(db_obj)
        return self._to_domain(self._save(db_obj, commit))

    def get_by_id(self, visit_id: str) -> Optional[Visit]:
        db_obj = self._get_row(visit_id)
        return self._to_domain(db_obj) if db_obj else None

    def get_by_appointment(self, dentist_id: str, appointment_id: str) -> Optional[Visit]:
        db_obj = (
            self.db.query(DbVisit)
            .filter(DbVisit.dentist_id == dentist_id, DbVisit.appointment_id == appointment_id)
            .first()
        )
        return self._to_domain(db_obj) if db_obj else None

    def list_by_dentist(self, dentist_id: str) -> List[Visit]:
        rows = (
            self.db.query(DbVisit)
            .filter(DbVisit.dentist_id == dentist_id)
            .order_by(DbVisit.visit_date.desc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def list_by_patient(self, dentist_id: str, patient_id: str) -> List[Visit]:
        rows = (
            self.db.query(DbVisit)
            .filter(DbVisit.dentist_id == dentist_id, DbVisit.patient_id == patient_id)
            .order_by(DbVisit.visit_date.desc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def update(self, visit: Visit, commit: bool = True) -> Visit:
        db_obj = self._get_row(visit.id)
        if db_obj is None:
            raise NotFoundError("Visita no encontrada")
        self._apply(db_obj, self._values(visit))
        return self._to_domain(self._save(db_obj, commit))

    def delete(self, visit_id: str, commit: bool = True) -> None:
        self._delete_row(visit_id, commit)

    @staticmethod
    def _values(visit: Visit) -> dict:
        return {
            "patient_id": visit.patient_id,
            "appointment_id": visit.appointment_id,
            "visit_date": visit.visit_date,
            "chief_complaint": visit.chief_complaint,
            "symptoms": visit.symptoms,
            "treatments_performed": list(visit.treatments_performed),
            "notes": visit.notes,
            "diagnosis": visit.diagnosis,
            "prescriptions": list(visit.prescriptions),
            "next_appointment_suggestion": visit.next_appointment_suggestion,
            "attachments": list(visit.attachments),
        }

    def _to_domain(self, db_obj: DbVisit) -> Visit:
        return Visit(
            id=db_obj.id,
            dentist_id=db_obj.dentist_id,
            patient_id=db_obj.patient_id,
            appointment_id=db_obj.appointment_id,
            visit_date=ensure_utc(db_obj.visit_date),
            chief_complaint=db_obj.chief_complaint,
            symptoms=db_obj.symptoms,
            treatments_performed=list(db_obj.treatments_performed or []),
            notes=db_obj.notes,
            diagnosis=db_obj.diagnosis,
            prescriptions=list(db_obj.prescriptions or []),
            next_appointment_suggestion=db_obj.next_appointment_suggestion,
            attachments=list(db_obj.attachments or []),
            created_at=ensure_utc(db_obj.created_at),
            updated_at=ensure_utc(db_obj.updated_at),
        )
