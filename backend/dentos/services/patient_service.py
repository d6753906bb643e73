import logging
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from dentos.core.exceptions import ValidationError, gateway_operation
from dentos.domain.entities import Patient, Transaction
from dentos.domain.finance import MONTHLY_FEE_CATEGORY, is_monthly_fee_due
from dentos.domain.interfaces import IPatientRepository, ITransactionRepository
from dentos.services.base_service import BaseService

logger = logging.getLogger(__name__)

# Group members are registered from a name and phone only
GROUP_MEMBER_BIRTH_DATE = date(2010, 1, 1)
PATIENT_NOT_FOUND = "Paciente no encontrado"


class PatientService(BaseService):
    def __init__(
        self,
        repository: IPatientRepository,
        transaction_repo: Optional[ITransactionRepository] = None,
        session=None,
        clock=None,
    ):
        super().__init__(session, clock)
        self.repository = repository
        self.transaction_repo = transaction_repo

    @gateway_operation("No se pudo guardar el paciente")
    def add_patient(self, dentist_id: str, patient: Patient) -> Patient:
        patient.dentist_id = dentist_id
        created = self.repository.add(patient)
        logger.info(
            "Patient created",
            extra={"context": {"dentist_id": dentist_id, "patient_id": created.id}},
        )
        return created

    @gateway_operation("No se pudieron cargar los pacientes")
    def list_patients(self, dentist_id: str) -> List[Patient]:
        return self.repository.list_by_dentist(dentist_id)

    @gateway_operation("No se pudo cargar el paciente")
    def get_patient(self, dentist_id: str, patient_id: str) -> Patient:
        return self.require_owned(self.repository.get_by_id(patient_id), dentist_id, PATIENT_NOT_FOUND)

    @gateway_operation("No se pudo actualizar el paciente")
    def update_patient(self, dentist_id: str, patient_id: str, changes: Dict[str, Any]) -> Patient:
        existing = self.get_patient(dentist_id, patient_id)
        changes = {k: v for k, v in changes.items() if k not in ("id", "dentist_id")}
        return self.repository.update(replace(existing, **changes))

    @gateway_operation("No se pudo eliminar el paciente")
    def delete_patient(self, dentist_id: str, patient_id: str) -> None:
        self.get_patient(dentist_id, patient_id)
        self.repository.delete(patient_id)
        logger.info(
            "Patient deleted",
            extra={"context": {"dentist_id": dentist_id, "patient_id": patient_id}},
        )

    @gateway_operation("No se pudo buscar pacientes")
    def search_patients(self, dentist_id: str, term: str) -> List[Patient]:
        """Case-insensitive substring match on names, email, phone and group."""
        needle = (term or "").strip().lower()
        patients = self.repository.list_by_dentist(dentist_id)
        if not needle:
            return patients
        return [p for p in patients if _matches(p, needle)]

    @gateway_operation("No se pudieron cargar los grupos")
    def list_groups(self, dentist_id: str) -> Dict[str, int]:
        """Group name -> member count, sorted by name."""
        counts: Dict[str, int] = {}
        for patient in self.repository.list_by_dentist(dentist_id):
            if patient.group_name:
                counts[patient.group_name] = counts.get(patient.group_name, 0) + 1
        return dict(sorted(counts.items(), key=lambda item: item[0].lower()))

    @gateway_operation("No se pudo cargar el grupo")
    def list_by_group(self, dentist_id: str, group_name: str) -> List[Patient]:
        return [p for p in self.repository.list_by_dentist(dentist_id) if p.group_name == group_name]

    @gateway_operation("No se pudieron agregar los integrantes del grupo")
    def add_group_members(
        self,
        dentist_id: str,
        group_name: str,
        members: List[Dict[str, str]],
        monthly_price: Optional[float] = None,
    ) -> List[Patient]:
        """Create one patient per ``{first_name, phone}`` row in ``group_name``."""
        if not members:
            raise ValidationError("Agrega al menos un integrante", "members")
        created = []
        with self.transaction():
            for member in members:
                patient = Patient(
                    dentist_id=dentist_id,
                    first_name=member["first_name"],
                    last_name="",
                    phone=member["phone"],
                    date_of_birth=GROUP_MEMBER_BIRTH_DATE,
                    group_name=group_name,
                    monthly_price=monthly_price,
                )
                created.append(self.repository.add(patient, commit=False))
        logger.info(
            "Group members added",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "group_name": group_name,
                    "count": len(created),
                }
            },
        )
        return created

    @gateway_operation("No se pudo registrar la mensualidad")
    def record_monthly_fee(
        self, dentist_id: str, patient_id: str, payment_method: str = "cash"
    ) -> Tuple[Patient, Transaction]:
        """Register the monthly fee as paid income and stamp the payment date."""
        if self.transaction_repo is None:
            raise RuntimeError("PatientService needs a transaction repository to record fees")
        patient = self.get_patient(dentist_id, patient_id)
        if not patient.monthly_price:
            raise ValidationError("El paciente no tiene una mensualidad configurada", "monthly_price")

        now = self.now()
        with self.transaction():
            transaction = self.transaction_repo.add(
                Transaction(
                    dentist_id=dentist_id,
                    type="income",
                    amount=patient.monthly_price,
                    category=MONTHLY_FEE_CATEGORY,
                    concept=f"Mensualidad - {patient.full_name}",
                    date=now,
                    payment_method=payment_method,
                    status="paid",
                    patient_id=patient.id,
                ),
                commit=False,
            )
            patient = self.repository.update(replace(patient, last_monthly_payment=now), commit=False)

        logger.info(
            "Monthly fee recorded",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "patient_id": patient_id,
                    "amount": transaction.amount,
                }
            },
        )
        return patient, transaction

    @gateway_operation("No se pudo verificar la mensualidad")
    def is_monthly_fee_due(self, dentist_id: str, patient_id: str) -> bool:
        return is_monthly_fee_due(self.get_patient(dentist_id, patient_id), self.now())


def _matches(patient: Patient, needle: str) -> bool:
    fields = (
        patient.first_name,
        patient.last_name,
        patient.email,
        patient.phone,
        patient.group_name,
    )
    return any(needle in value.lower() for value in fields if value)
