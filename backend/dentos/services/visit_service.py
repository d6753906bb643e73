import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from dentos.core.exceptions import ValidationError, gateway_operation
from dentos.domain.entities import Visit
from dentos.domain.interfaces import IAppointmentRepository, IPatientRepository, IVisitRepository
from dentos.services.base_service import BaseService

logger = logging.getLogger(__name__)

VISIT_NOT_FOUND = "Visita no encontrada"


class VisitService(BaseService):
    """Clinical evolution notes; at most one visit per appointment."""

    def __init__(
        self,
        repository: IVisitRepository,
        patient_repo: IPatientRepository,
        appointment_repo: IAppointmentRepository,
        session=None,
        clock=None,
    ):
        super().__init__(session, clock)
        self.repository = repository
        self.patient_repo = patient_repo
        self.appointment_repo = appointment_repo

    def _check_links(self, dentist_id: str, visit: Visit, current_id: Optional[str] = None) -> None:
        self.require_owned(self.patient_repo.get_by_id(visit.patient_id), dentist_id, "Paciente no encontrado")
        if not visit.appointment_id:
            return
        self.require_owned(
            self.appointment_repo.get_by_id(visit.appointment_id), dentist_id, "Cita no encontrada"
        )
        linked = self.repository.get_by_appointment(dentist_id, visit.appointment_id)
        if linked is not None and linked.id != current_id:
            raise ValidationError("La cita ya tiene una visita registrada", "appointment_id")

    @gateway_operation("No se pudo guardar la visita")
    def add_visit(self, dentist_id: str, visit: Visit) -> Visit:
        visit.dentist_id = dentist_id
        self._check_links(dentist_id, visit)
        created = self.repository.add(visit)
        logger.info(
            "Visit created",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "visit_id": created.id,
                    "appointment_id": created.appointment_id,
                }
            },
        )
        return created

    @gateway_operation("No se pudieron cargar las visitas")
    def list_visits(self, dentist_id: str) -> List[Visit]:
        return self.repository.list_by_dentist(dentist_id)

    @gateway_operation("No se pudieron cargar las visitas")
    def list_by_patient(self, dentist_id: str, patient_id: str) -> List[Visit]:
        return self.repository.list_by_patient(dentist_id, patient_id)

    @gateway_operation("No se pudo cargar la visita")
    def get_visit(self, dentist_id: str, visit_id: str) -> Visit:
        return self.require_owned(self.repository.get_by_id(visit_id), dentist_id, VISIT_NOT_FOUND)

    @gateway_operation("No se pudo cargar la visita de la cita")
    def get_by_appointment(self, dentist_id: str, appointment_id: str) -> Optional[Visit]:
        return self.repository.get_by_appointment(dentist_id, appointment_id)

    @gateway_operation("No se pudo actualizar la visita")
    def update_visit(self, dentist_id: str, visit_id: str, changes: Dict[str, Any]) -> Visit:
        existing = self.get_visit(dentist_id, visit_id)
        changes = {k: v for k, v in changes.items() if k not in ("id", "dentist_id")}
        updated = replace(existing, **changes)
        if updated.patient_id != existing.patient_id or updated.appointment_id != existing.appointment_id:
            self._check_links(dentist_id, updated, current_id=existing.id)
        return self.repository.update(updated)

    @gateway_operation("No se pudo eliminar la visita")
    def delete_visit(self, dentist_id: str, visit_id: str) -> None:
        self.get_visit(dentist_id, visit_id)
        self.repository.delete(visit_id)
