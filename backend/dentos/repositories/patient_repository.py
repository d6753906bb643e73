from typing import List, Optional

from dentos.core.exceptions import NotFoundError
from dentos.db.base import Patient as DbPatient
from dentos.domain.entities import Patient
from dentos.domain.interfaces import IPatientRepository
from dentos.repositories.base_repository import SqlAlchemyRepository, to_decimal, to_float
from dentos.utils.date_utils import ensure_utc


class PatientRepository(SqlAlchemyRepository, IPatientRepository):
    model = DbPatient

    def add(self, patient: Patient, commit: bool = True) -> Patient:
        db_obj = DbPatient(dentist_id=patient.dentist_id)
        self._apply(db_obj, self._values(patient))
        self.db.add(db_obj)
        return self._to_domain(self._save(db_obj, commit))

    def update(self, patient: Patient, commit: bool = True) -> Patient:
        db_obj = self._get_row(patient.id)
        if db_obj is None:
            raise NotFoundError("Paciente no encontrado")
        self._apply(db_obj, self._values(patient))
        return self._to_domain(self._save(db_obj, commit))

    def delete(self, patient_id: str, commit: bool = True) -> None:
        self._delete_row(patient_id, commit)

    def get_by_id(self, patient_id: str) -> Optional[Patient]:
        db_obj = self._get_row(patient_id)
        return self._to_domain(db_obj) if db_obj else None

    def list_by_dentist(self, dentist_id: str) -> List[Patient]:
        rows = (
            self.db.query(DbPatient)
            .filter(DbPatient.dentist_id == dentist_id)
            .order_by(DbPatient.created_at.desc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    @staticmethod
    def _values(patient: Patient) -> dict:
        return {
            "first_name": patient.first_name,
            "last_name": patient.last_name,
            "email": patient.email,
            "phone": patient.phone,
            "date_of_birth": patient.date_of_birth,
            "address": patient.address,
            "medical_notes": patient.medical_notes,
            "group_name": patient.group_name,
            "monthly_price": to_decimal(patient.monthly_price),
            "last_monthly_payment": patient.last_monthly_payment,
        }

    def _to_domain(self, db_obj: DbPatient) -> Patient:
        return Patient(
            id=db_obj.id,
            dentist_id=db_obj.dentist_id,
            first_name=db_obj.first_name,
            last_name=db_obj.last_name,
            email=db_obj.email,
            phone=db_obj.phone,
            date_of_birth=db_obj.date_of_birth,
            address=db_obj.address,
            medical_notes=db_obj.medical_notes,
            group_name=db_obj.group_name,
            monthly_price=to_float(db_obj.monthly_price),
            last_monthly_payment=ensure_utc(db_obj.last_monthly_payment),
            created_at=ensure_utc(db_obj.created_at),
            updated_at=ensure_utc(db_obj.updated_at),
        )
