import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional

from dentos.core.exceptions import NotFoundError, ValidationError, gateway_operation
from dentos.domain.entities import BudgetPayment, MedicalHistory
from dentos.domain.interfaces import IMedicalHistoryRepository, IPatientRepository
from dentos.services.base_service import BaseService

logger = logging.getLogger(__name__)

TOOTH_STATUSES = ("healthy", "caries", "filling", "crown", "missing", "implant", "root-canal", "other")


@dataclass
class BudgetSummary:
    budget_amount: float = 0.0
    total_paid: float = 0.0
    remaining: float = 0.0


class MedicalHistoryService(BaseService):
    """Clinical record of a patient, one document per patient.

    Every operation first checks that the patient belongs to the caller.
    """

    def __init__(
        self,
        repository: IMedicalHistoryRepository,
        patient_repo: IPatientRepository,
        session=None,
        clock=None,
    ):
        super().__init__(session, clock)
        self.repository = repository
        self.patient_repo = patient_repo

    def _check_patient(self, dentist_id: str, patient_id: str) -> None:
        self.require_owned(self.patient_repo.get_by_id(patient_id), dentist_id, "Paciente no encontrado")

    def _require_history(self, patient_id: str) -> MedicalHistory:
        history = self.repository.get_by_patient(patient_id)
        if history is None:
            raise NotFoundError("Historia clínica no encontrada")
        return history

    @gateway_operation("No se pudo cargar la historia clínica")
    def get_history(self, dentist_id: str, patient_id: str) -> Optional[MedicalHistory]:
        self._check_patient(dentist_id, patient_id)
        return self.repository.get_by_patient(patient_id)

    @gateway_operation("No se pudo guardar la historia clínica")
    def save_history(self, dentist_id: str, patient_id: str, changes: Dict[str, Any]) -> MedicalHistory:
        """Create the history or merge ``changes`` into the existing one."""
        self._check_patient(dentist_id, patient_id)
        existing = self.repository.get_by_patient(patient_id)
        if existing is None:
            existing = MedicalHistory(patient_id=patient_id, dentist_id=dentist_id)
        changes = {
            k: v
            for k, v in changes.items()
            if k not in ("id", "patient_id", "dentist_id", "budget_payments")
        }
        saved = self.repository.save(replace(existing, **changes))
        logger.info(
            "Medical history saved",
            extra={"context": {"dentist_id": dentist_id, "patient_id": patient_id}},
        )
        return saved

    @gateway_operation("No se pudo actualizar el odontograma")
    def set_tooth(
        self, dentist_id: str, patient_id: str, tooth: str, status: str, notes: Optional[str] = None
    ) -> MedicalHistory:
        if status not in TOOTH_STATUSES:
            raise ValidationError(f"Estado de diente inválido: {status}", "status")
        self._check_patient(dentist_id, patient_id)
        history = self.repository.get_by_patient(patient_id) or MedicalHistory(
            patient_id=patient_id, dentist_id=dentist_id
        )
        odontogram = dict(history.odontogram)
        entry: Dict[str, Any] = {"status": status}
        if notes:
            entry["notes"] = notes
        odontogram[str(tooth)] = entry
        return self.repository.save(replace(history, odontogram=odontogram))

    @gateway_operation("No se pudo registrar el pago del presupuesto")
    def add_budget_payment(
        self, dentist_id: str, patient_id: str, date: datetime, treatment: str, amount: float
    ) -> MedicalHistory:
        self._check_patient(dentist_id, patient_id)
        history = self._require_history(patient_id)
        payment = BudgetPayment(id=uuid.uuid4().hex, date=date, treatment=treatment, amount=amount)
        return self.repository.save(
            replace(history, budget_payments=list(history.budget_payments) + [payment])
        )

    @gateway_operation("No se pudo eliminar el pago del presupuesto")
    def remove_budget_payment(self, dentist_id: str, patient_id: str, payment_id: str) -> MedicalHistory:
        self._check_patient(dentist_id, patient_id)
        history = self._require_history(patient_id)
        remaining = [p for p in history.budget_payments if p.id != payment_id]
        if len(remaining) == len(history.budget_payments):
            raise NotFoundError("Pago no encontrado")
        return self.repository.save(replace(history, budget_payments=remaining))

    @gateway_operation("No se pudo calcular el presupuesto")
    def budget_summary(self, dentist_id: str, patient_id: str) -> BudgetSummary:
        history = self.get_history(dentist_id, patient_id)
        if history is None:
            return BudgetSummary()
        budget = history.budget_amount or 0.0
        paid = sum(p.amount for p in history.budget_payments)
        return BudgetSummary(budget_amount=budget, total_paid=paid, remaining=budget - paid)

    @gateway_operation("No se pudo eliminar la historia clínica")
    def delete_history(self, dentist_id: str, patient_id: str) -> None:
        self._check_patient(dentist_id, patient_id)
        self.repository.delete_by_patient(patient_id)
