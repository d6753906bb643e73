import logging
from dataclasses import replace
from typing import Any, Dict, List

from dentos.core.exceptions import gateway_operation
from dentos.domain.entities import StockItem
from dentos.domain.interfaces import IStockRepository
from dentos.services.base_service import BaseService

logger = logging.getLogger(__name__)

STOCK_NOT_FOUND = "Item de stock no encontrado"


class StockService(BaseService):
    def __init__(self, repository: IStockRepository, session=None, clock=None):
        super().__init__(session, clock)
        self.repository = repository

    @gateway_operation("No se pudo guardar el item de stock")
    def add_item(self, dentist_id: str, item: StockItem) -> StockItem:
        item.dentist_id = dentist_id
        return self.repository.add(item)

    @gateway_operation("No se pudo cargar el stock")
    def list_items(self, dentist_id: str) -> List[StockItem]:
        return self.repository.list_by_dentist(dentist_id)

    @gateway_operation("No se pudo cargar el stock bajo")
    def list_low_stock(self, dentist_id: str) -> List[StockItem]:
        return [item for item in self.repository.list_by_dentist(dentist_id) if item.is_low]

    @gateway_operation("No se pudo cargar el item de stock")
    def get_item(self, dentist_id: str, item_id: str) -> StockItem:
        return self.require_owned(self.repository.get_by_id(item_id), dentist_id, STOCK_NOT_FOUND)

    @gateway_operation("No se pudo actualizar el item de stock")
    def update_item(self, dentist_id: str, item_id: str, changes: Dict[str, Any]) -> StockItem:
        existing = self.get_item(dentist_id, item_id)
        changes = {k: v for k, v in changes.items() if k not in ("id", "dentist_id")}
        return self.repository.update(replace(existing, **changes))

    @gateway_operation("No se pudo eliminar el item de stock")
    def delete_item(self, dentist_id: str, item_id: str) -> None:
        self.get_item(dentist_id, item_id)
        self.repository.delete(item_id)

    @gateway_operation("No se pudo actualizar la cantidad")
    def change_quantity(self, dentist_id: str, item_id: str, delta: float) -> StockItem:
        """Add ``delta`` (may be negative); the item is unchanged on InsufficientStockError."""
        self.get_item(dentist_id, item_id)
        updated = self.repository.change_quantity(item_id, delta)
        if updated.is_low:
            logger.warning(
                "Stock item at or below minimum",
                extra={
                    "context": {
                        "dentist_id": dentist_id,
                        "item_id": item_id,
                        "quantity": updated.quantity,
                        "min_quantity": updated.min_quantity,
                    }
                },
            )
        return updated
