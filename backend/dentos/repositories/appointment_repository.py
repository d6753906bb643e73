from typing import List, Optional

from dentos.core.exceptions import NotFoundError
from dentos.db.base import Appointment as DbAppointment
from dentos.domain.entities import Appointment
from dentos.domain.interfaces import IAppointmentRepository
from dentos.repositories.base_repository import SqlAlchemyRepository, to_decimal, to_float
from dentos.utils.date_utils import ensure_utc


class AppointmentRepository(SqlAlchemyRepository, IAppointmentRepository):
    model = DbAppointment

    def add(self, appointment: Appointment, commit: bool = True) -> Appointment:
        db_obj = DbAppointment(dentist_id=appointment.dentist_id)
        self._apply(db_obj, self._values(appointment))
        self.db.add(db_obj)
        return self._to_domain(self._save(db_obj, commit))

    def update(self, appointment: Appointment, commit: bool = True) -> Appointment:
        db_obj = self._get_row(appointment.id)
        if db_obj is None:
            raise NotFoundError("Cita no encontrada")
        self._apply(db_obj, self._values(appointment))
        return self._to_domain(self._save(db_obj, commit))

    def delete(self, appointment_id: str, commit: bool = True) -> None:
        self._delete_row(appointment_id, commit)

    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        db_obj = self._get_row(appointment_id)
        return self._to_domain(db_obj) if db_obj else None

    def list_by_dentist(self, dentist_id: str) -> List[Appointment]:
        rows = (
            self.db.query(DbAppointment)
            .filter(DbAppointment.dentist_id == dentist_id)
            .order_by(DbAppointment.date.asc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def list_by_patient(self, dentist_id: str, patient_id: str) -> List[Appointment]:
        rows = (
            self.db.query(DbAppointment)
            .filter(
                DbAppointment.dentist_id == dentist_id,
                DbAppointment.patient_id == patient_id,
            )
            .order_by(DbAppointment.date.desc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    @staticmethod
    def _values(appointment: Appointment) -> dict:
        return {
            "patient_id": appointment.patient_id,
            "date": appointment.date,
            "duration": appointment.duration,
            "type": appointment.type,
            "status": appointment.status,
            "notes": appointment.notes,
            "price": to_decimal(appointment.price),
            "payment_status": appointment.payment_status,
            "transaction_id": appointment.transaction_id,
        }

    def _to_domain(self, db_obj: DbAppointment) -> Appointment:
        return Appointment(
            id=db_obj.id,
            dentist_id=db_obj.dentist_id,
            patient_id=db_obj.patient_id,
            date=ensure_utc(db_obj.date),
            duration=db_obj.duration,
            type=db_obj.type,
            status=db_obj.status,
            notes=db_obj.notes,
            price=to_float(db_obj.price),
            payment_status=db_obj.payment_status,
            transaction_id=db_obj.transaction_id,
            created_at=ensure_utc(db_obj.created_at),
            updated_at=ensure_utc(db_obj.updated_at),
        )
