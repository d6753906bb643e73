"""
Appointment scheduling and charging.

Month and day listings are computed in the application timezone over the
dentist's full appointment list. Charging an appointment writes the income
transaction and the appointment back-reference in one database transaction.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from dentos.core.exceptions import NotFoundError, ValidationError, gateway_operation
from dentos.domain.entities import APPOINTMENT_STATUSES, PAYMENT_STATUSES, Appointment, Transaction
from dentos.domain.finance import appointment_concept, income_category_for
from dentos.domain.interfaces import (
    IAppointmentRepository,
    IPatientRepository,
    ITransactionRepository,
)
from dentos.services.base_service import BaseService
from dentos.utils.date_utils import is_in_month, is_on_day

logger = logging.getLogger(__name__)

APPOINTMENT_NOT_FOUND = "Cita no encontrada"


class AppointmentService(BaseService):
    def __init__(
        self,
        repository: IAppointmentRepository,
        patient_repo: IPatientRepository,
        transaction_repo: ITransactionRepository,
        session=None,
        clock=None,
        tz=None,
    ):
        super().__init__(session, clock)
        self.repository = repository
        self.patient_repo = patient_repo
        self.transaction_repo = transaction_repo
        self.tz = tz

    @gateway_operation("No se pudo guardar la cita")
    def add_appointment(self, dentist_id: str, appointment: Appointment) -> Appointment:
        self.require_owned(
            self.patient_repo.get_by_id(appointment.patient_id), dentist_id, "Paciente no encontrado"
        )
        appointment.dentist_id = dentist_id
        created = self.repository.add(appointment)
        logger.info(
            "Appointment created",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "appointment_id": created.id,
                    "date": created.date.isoformat() if created.date else None,
                }
            },
        )
        return created

    @gateway_operation("No se pudieron cargar las citas")
    def list_appointments(self, dentist_id: str) -> List[Appointment]:
        return self.repository.list_by_dentist(dentist_id)

    @gateway_operation("No se pudieron cargar las citas del mes")
    def list_by_month(self, dentist_id: str, year: int, month: int) -> List[Appointment]:
        return [
            a
            for a in self.repository.list_by_dentist(dentist_id)
            if is_in_month(a.date, year, month, self.tz)
        ]

    @gateway_operation("No se pudieron cargar las citas del día")
    def list_by_day(self, dentist_id: str, day: date) -> List[Appointment]:
        return [a for a in self.repository.list_by_dentist(dentist_id) if is_on_day(a.date, day, self.tz)]

    @gateway_operation("No se pudieron cargar las citas del paciente")
    def list_by_patient(self, dentist_id: str, patient_id: str) -> List[Appointment]:
        return self.repository.list_by_patient(dentist_id, patient_id)

    @gateway_operation("No se pudo cargar la cita")
    def get_appointment(self, dentist_id: str, appointment_id: str) -> Appointment:
        return self.require_owned(
            self.repository.get_by_id(appointment_id), dentist_id, APPOINTMENT_NOT_FOUND
        )

    @gateway_operation("No se pudo actualizar la cita")
    def update_appointment(
        self, dentist_id: str, appointment_id: str, changes: Dict[str, Any]
    ) -> Appointment:
        existing = self.get_appointment(dentist_id, appointment_id)
        changes = {k: v for k, v in changes.items() if k not in ("id", "dentist_id", "transaction_id")}
        if "patient_id" in changes and changes["patient_id"] != existing.patient_id:
            self.require_owned(
                self.patient_repo.get_by_id(changes["patient_id"]), dentist_id, "Paciente no encontrado"
            )
        return self.repository.update(replace(existing, **changes))

    @gateway_operation("No se pudo actualizar el estado de la cita")
    def update_status(self, dentist_id: str, appointment_id: str, status: str) -> Appointment:
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Estado inválido: {status}", "status")
        existing = self.get_appointment(dentist_id, appointment_id)
        return self.repository.update(replace(existing, status=status))

    @gateway_operation("No se pudo eliminar la cita")
    def delete_appointment(self, dentist_id: str, appointment_id: str) -> None:
        self.get_appointment(dentist_id, appointment_id)
        self.repository.delete(appointment_id)

    @gateway_operation("No se pudo registrar el pago")
    def record_payment(
        self,
        dentist_id: str,
        appointment_id: str,
        amount: float,
        payment_method: str,
        status: str,
        notes: Optional[str] = None,
    ) -> Tuple[Appointment, Transaction]:
        """Charge an appointment: income entry plus price and payment status."""
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Estado de pago inválido: {status}", "status")
        appointment = self.get_appointment(dentist_id, appointment_id)
        patient = self.patient_repo.get_by_id(appointment.patient_id)
        if patient is None:
            raise NotFoundError("Paciente no encontrado")
        category, _ = income_category_for(appointment.type)

        with self.transaction():
            transaction = self.transaction_repo.add(
                Transaction(
                    dentist_id=dentist_id,
                    type="income",
                    amount=amount,
                    category=category,
                    concept=appointment_concept(appointment.type, patient),
                    date=self.now(),
                    payment_method=payment_method,
                    status=status,
                    patient_id=patient.id,
                    appointment_id=appointment.id,
                    notes=notes,
                ),
                commit=False,
            )
            appointment = self.repository.update(
                replace(
                    appointment,
                    price=amount,
                    payment_status=status,
                    transaction_id=transaction.id,
                ),
                commit=False,
            )

        logger.info(
            "Appointment payment recorded",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "appointment_id": appointment_id,
                    "transaction_id": transaction.id,
                    "amount": amount,
                    "status": status,
                }
            },
        )
        return appointment, transaction

    @gateway_operation("No se pudo actualizar el estado del pago")
    def update_payment_status(self, dentist_id: str, appointment_id: str, status: str) -> Appointment:
        """Set the appointment payment status and its linked transaction status."""
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Estado de pago inválido: {status}", "payment_status")
        appointment = self.get_appointment(dentist_id, appointment_id)
        with self.transaction():
            if appointment.transaction_id:
                transaction = self.transaction_repo.get_by_id(appointment.transaction_id)
                if transaction is not None and transaction.dentist_id == dentist_id:
                    self.transaction_repo.update(replace(transaction, status=status), commit=False)
            appointment = self.repository.update(replace(appointment, payment_status=status), commit=False)
        return appointment
