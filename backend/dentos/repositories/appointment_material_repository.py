from typing import List, Optional

from dentos.db.base import AppointmentMaterial as DbAppointmentMaterial
from dentos.domain.entities import AppointmentMaterial
from dentos.domain.interfaces import IAppointmentMaterialRepository
from dentos.repositories.base_repository import SqlAlchemyRepository, to_decimal, to_float
from dentos.utils.date_utils import ensure_utc


class AppointmentMaterialRepository(SqlAlchemyRepository, IAppointmentMaterialRepository):
    model = DbAppointmentMaterial

    def add(self, material: AppointmentMaterial, commit: bool = True) -> AppointmentMaterial:
        db_obj = DbAppointmentMaterial(
            appointment_id=material.appointment_id,
            stock_item_id=material.stock_item_id,
            stock_item_name=material.stock_item_name,
            category=material.category,
            unit=material.unit,
            quantity_used=material.quantity_used,
            cost=to_decimal(material.cost),
        )
        if material.registered_at is not None:
            db_obj.registered_at = material.registered_at
        self.db.add(db_obj)
        return self._to_domain(self._save(db_obj, commit))

    def get_by_id(self, material_id: str) -> Optional[AppointmentMaterial]:
        db_obj = self._get_row(material_id)
        return self._to_domain(db_obj) if db_obj else None

    def list_by_appointment(self, appointment_id: str) -> List[AppointmentMaterial]:
        rows = (
            self.db.query(DbAppointmentMaterial)
            .filter(DbAppointmentMaterial.appointment_id == appointment_id)
            .order_by(DbAppointmentMaterial.registered_at.desc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def delete(self, material_id: str, commit: bool = True) -> None:
        self._delete_row(material_id, commit)

    def _to_domain(self, db_obj: DbAppointmentMaterial) -> AppointmentMaterial:
        return AppointmentMaterial(
            id=db_obj.id,
            appointment_id=db_obj.appointment_id,
            stock_item_id=db_obj.stock_item_id,
            stock_item_name=db_obj.stock_item_name,
            category=db_obj.category,
            unit=db_obj.unit,
            quantity_used=db_obj.quantity_used,
            cost=to_float(db_obj.cost),
            registered_at=ensure_utc(db_obj.registered_at),
        )
