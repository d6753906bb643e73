import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from dentos.core.exceptions import ValidationError, gateway_operation
from dentos.domain import finance
from dentos.domain.entities import PAYMENT_STATUSES, Transaction
from dentos.domain.finance import MonthlyBalance, PatientPaymentSummary
from dentos.domain.interfaces import IAppointmentRepository, IPatientRepository, ITransactionRepository
from dentos.services.base_service import BaseService

logger = logging.getLogger(__name__)

TRANSACTION_NOT_FOUND = "Transacción no encontrada"


class TransactionService(BaseService):
    """Ledger entries and the monthly financial aggregation."""

    def __init__(
        self,
        repository: ITransactionRepository,
        appointment_repo: Optional[IAppointmentRepository] = None,
        session=None,
        clock=None,
        tz=None,
        patient_repo: Optional[IPatientRepository] = None,
    ):
        super().__init__(session, clock)
        self.repository = repository
        self.appointment_repo = appointment_repo
        self.patient_repo = patient_repo
        self.tz = tz

    def _check_links(self, dentist_id: str, transaction: Transaction) -> None:
        """Linked patient and appointment must belong to the same dentist."""
        if transaction.patient_id and self.patient_repo is not None:
            self.require_owned(
                self.patient_repo.get_by_id(transaction.patient_id), dentist_id, "Paciente no encontrado"
            )
        if transaction.appointment_id and self.appointment_repo is not None:
            self.require_owned(
                self.appointment_repo.get_by_id(transaction.appointment_id), dentist_id, "Cita no encontrada"
            )

    def _mirror_status(self, dentist_id: str, transaction: Transaction) -> None:
        if not transaction.appointment_id or self.appointment_repo is None:
            return
        appointment = self.appointment_repo.get_by_id(transaction.appointment_id)
        if appointment is not None and appointment.dentist_id == dentist_id:
            self.appointment_repo.update(
                replace(appointment, payment_status=transaction.status), commit=False
            )

    @gateway_operation("No se pudo guardar la transacción")
    def add_transaction(self, dentist_id: str, transaction: Transaction) -> Transaction:
        transaction.dentist_id = dentist_id
        self._check_links(dentist_id, transaction)
        created = self.repository.add(transaction)
        logger.info(
            "Transaction created",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "transaction_id": created.id,
                    "type": created.type,
                    "amount": created.amount,
                }
            },
        )
        return created

    @gateway_operation("No se pudieron cargar las transacciones")
    def list_transactions(self, dentist_id: str) -> List[Transaction]:
        return self.repository.list_by_dentist(dentist_id)

    @gateway_operation("No se pudieron cargar las transacciones del mes")
    def list_by_month(self, dentist_id: str, year: int, month: int) -> List[Transaction]:
        transactions = self.repository.list_by_dentist(dentist_id)
        return finance.sort_recent_first(finance.filter_month(transactions, year, month, self.tz))

    @gateway_operation("No se pudo cargar la transacción")
    def get_transaction(self, dentist_id: str, transaction_id: str) -> Transaction:
        return self.require_owned(
            self.repository.get_by_id(transaction_id), dentist_id, TRANSACTION_NOT_FOUND
        )

    @gateway_operation("No se pudo actualizar la transacción")
    def update_transaction(
        self, dentist_id: str, transaction_id: str, changes: Dict[str, Any]
    ) -> Transaction:
        existing = self.get_transaction(dentist_id, transaction_id)
        changes = {k: v for k, v in changes.items() if k not in ("id", "dentist_id")}
        candidate = replace(existing, **changes)
        self._check_links(dentist_id, candidate)
        with self.transaction():
            updated = self.repository.update(candidate, commit=False)
            if updated.status != existing.status:
                self._mirror_status(dentist_id, updated)
        return updated

    @gateway_operation("No se pudo eliminar la transacción")
    def delete_transaction(self, dentist_id: str, transaction_id: str) -> None:
        self.get_transaction(dentist_id, transaction_id)
        self.repository.delete(transaction_id)

    @gateway_operation("No se pudo calcular el balance mensual")
    def monthly_balance(self, dentist_id: str, year: int, month: int) -> MonthlyBalance:
        if not 1 <= month <= 12:
            raise ValidationError("El mes debe estar entre 1 y 12", "month")
        transactions = self.repository.list_by_dentist(dentist_id)
        balance = finance.calculate_monthly_balance(transactions, year, month, self.tz)
        logger.debug(
            "Monthly balance computed",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "year": year,
                    "month": month,
                    "balance": balance.balance,
                }
            },
        )
        return balance

    @gateway_operation("No se pudo cargar el resumen de pagos")
    def patient_payment_summary(self, dentist_id: str, patient_id: str) -> PatientPaymentSummary:
        transactions = self.repository.list_by_patient(dentist_id, patient_id)
        return finance.summarize_patient_payments(transactions, self.now())

    @gateway_operation("No se pudo actualizar el estado de la transacción")
    def update_status(self, dentist_id: str, transaction_id: str, status: str) -> Transaction:
        """Set the status and mirror it onto the linked appointment, if any."""
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Estado inválido: {status}", "status")
        existing = self.get_transaction(dentist_id, transaction_id)
        with self.transaction():
            updated = self.repository.update(replace(existing, status=status), commit=False)
            self._mirror_status(dentist_id, updated)
        logger.info(
            "Transaction status updated",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "transaction_id": transaction_id,
                    "status": status,
                    "appointment_id": existing.appointment_id,
                }
            },
        )
        return updated
