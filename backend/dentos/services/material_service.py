"""
Material consumption bookkeeping.

Recording a material snapshots the stock item (name, category, unit, cost)
and decrements its quantity; removing the record gives the quantity back.
Both steps of each operation share one database transaction.
"""

import logging
from typing import List

from dentos.core.exceptions import InsufficientStockError, NotFoundError, ValidationError, gateway_operation
from dentos.domain.entities import AppointmentMaterial
from dentos.domain.interfaces import (
    IAppointmentMaterialRepository,
    IAppointmentRepository,
    IStockRepository,
)
from dentos.services.base_service import BaseService
from dentos.services.stock_service import STOCK_NOT_FOUND

logger = logging.getLogger(__name__)


class MaterialService(BaseService):
    def __init__(
        self,
        repository: IAppointmentMaterialRepository,
        appointment_repo: IAppointmentRepository,
        stock_repo: IStockRepository,
        session=None,
        clock=None,
    ):
        super().__init__(session, clock)
        self.repository = repository
        self.appointment_repo = appointment_repo
        self.stock_repo = stock_repo

    def _get_appointment(self, dentist_id: str, appointment_id: str):
        return self.require_owned(
            self.appointment_repo.get_by_id(appointment_id), dentist_id, "Cita no encontrada"
        )

    @gateway_operation("No se pudo registrar el material")
    def record_use(
        self, dentist_id: str, appointment_id: str, stock_item_id: str, quantity: float
    ) -> AppointmentMaterial:
        if quantity <= 0:
            raise ValidationError("La cantidad debe ser mayor a 0", "quantity")
        self._get_appointment(dentist_id, appointment_id)
        item = self.require_owned(self.stock_repo.get_by_id(stock_item_id), dentist_id, STOCK_NOT_FOUND)
        if item.quantity < quantity:
            raise InsufficientStockError(
                f"Stock insuficiente de {item.name}: disponible {item.quantity:g}, solicitado {quantity:g}",
                available=item.quantity,
                requested=quantity,
            )

        with self.transaction():
            material = self.repository.add(
                AppointmentMaterial(
                    appointment_id=appointment_id,
                    stock_item_id=item.id,
                    stock_item_name=item.name,
                    category=item.category,
                    unit=item.unit,
                    quantity_used=quantity,
                    cost=item.cost,
                    registered_at=self.now(),
                ),
                commit=False,
            )
            self.stock_repo.change_quantity(item.id, -quantity, commit=False)

        logger.info(
            "Material recorded",
            extra={
                "context": {
                    "dentist_id": dentist_id,
                    "appointment_id": appointment_id,
                    "stock_item_id": item.id,
                    "quantity": quantity,
                }
            },
        )
        return material

    @gateway_operation("No se pudieron cargar los materiales")
    def list_materials(self, dentist_id: str, appointment_id: str) -> List[AppointmentMaterial]:
        self._get_appointment(dentist_id, appointment_id)
        return self.repository.list_by_appointment(appointment_id)

    @gateway_operation("No se pudo eliminar el material")
    def remove_material(self, dentist_id: str, appointment_id: str, material_id: str) -> None:
        """Delete a material record and return its quantity to stock."""
        self._get_appointment(dentist_id, appointment_id)
        material = self.repository.get_by_id(material_id)
        if material is None or material.appointment_id != appointment_id:
            raise NotFoundError("Material no encontrado")

        with self.transaction():
            self.repository.delete(material_id, commit=False)
            try:
                self.stock_repo.change_quantity(material.stock_item_id, material.quantity_used, commit=False)
            except NotFoundError:
                # The stock item was deleted after use; only the record goes
                logger.warning(
                    "Stock item missing while removing material",
                    extra={"context": {"stock_item_id": material.stock_item_id}},
                )

    @gateway_operation("No se pudo calcular el costo de materiales")
    def materials_cost(self, dentist_id: str, appointment_id: str) -> float:
        materials = self.list_materials(dentist_id, appointment_id)
        return sum(m.total_cost for m in materials if m.total_cost is not None)
