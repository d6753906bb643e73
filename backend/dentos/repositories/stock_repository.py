from typing import List, Optional

from sqlalchemy import func

from dentos.core.exceptions import InsufficientStockError, NotFoundError
from dentos.db.base import StockItem as DbStockItem
from dentos.domain.entities import StockItem
from dentos.domain.interfaces import IStockRepository
from dentos.repositories.base_repository import SqlAlchemyRepository, to_decimal, to_float
from dentos.utils.date_utils import ensure_utc


class StockRepository(SqlAlchemyRepository, IStockRepository):
    model = DbStockItem

    def add(self, item: StockItem, commit: bool = True) -> StockItem:
        db_obj = DbStockItem(dentist_id=item.dentist_id)
        self._apply(db_obj, self._values(item))
        self.db.add(db_obj)
        return self._to_domain(self._save(db_obj, commit))

    def update(self, item: StockItem, commit: bool = True) -> StockItem:
        db_obj = self._get_row(item.id)
        if db_obj is None:
            raise NotFoundError("Item de stock no encontrado")
        self._apply(db_obj, self._values(item))
        return self._to_domain(self._save(db_obj, commit))

    def delete(self, item_id: str, commit: bool = True) -> None:
        self._delete_row(item_id, commit)

    def get_by_id(self, item_id: str) -> Optional[StockItem]:
        db_obj = self._get_row(item_id)
        return self._to_domain(db_obj) if db_obj else None

    def list_by_dentist(self, dentist_id: str) -> List[StockItem]:
        rows = (
            self.db.query(DbStockItem)
            .filter(DbStockItem.dentist_id == dentist_id)
            .order_by(func.lower(DbStockItem.name).asc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def change_quantity(self, item_id: str, delta: float, commit: bool = True) -> StockItem:
        db_obj = self._get_row(item_id)
        if db_obj is None:
            raise NotFoundError("Item de stock no encontrado")
        current = db_obj.quantity or 0
        new_quantity = current + delta
        if new_quantity < 0:
            raise InsufficientStockError(
                f"Stock insuficiente de {db_obj.name}: disponible {current:g}, solicitado {-delta:g}",
                available=current,
                requested=-delta,
            )
        db_obj.quantity = new_quantity
        return self._to_domain(self._save(db_obj, commit))

    @staticmethod
    def _values(item: StockItem) -> dict:
        return {
            "name": item.name,
            "category": item.category,
            "quantity": item.quantity,
            "unit": item.unit,
            "min_quantity": item.min_quantity,
            "location": item.location,
            "supplier": item.supplier,
            "cost": to_decimal(item.cost),
            "notes": item.notes,
            "expiration_date": item.expiration_date,
        }

    def _to_domain(self, db_obj: DbStockItem) -> StockItem:
        return StockItem(
            id=db_obj.id,
            dentist_id=db_obj.dentist_id,
            name=db_obj.name,
            category=db_obj.category,
            quantity=db_obj.quantity,
            unit=db_obj.unit,
            min_quantity=db_obj.min_quantity,
            location=db_obj.location,
            supplier=db_obj.supplier,
            cost=to_float(db_obj.cost),
            notes=db_obj.notes,
            expiration_date=db_obj.expiration_date,
            created_at=ensure_utc(db_obj.created_at),
            updated_at=ensure_utc(db_obj.updated_at),
        )
