from typing import List, Optional

from dentos.core.exceptions import NotFoundError
from dentos.db.base import Transaction as DbTransaction
from dentos.domain.entities import Transaction
from dentos.domain.interfaces import ITransactionRepository
from dentos.repositories.base_repository import SqlAlchemyRepository, to_decimal, to_float
from dentos.utils.date_utils import ensure_utc


class TransactionRepository(SqlAlchemyRepository, ITransactionRepository):
    model = DbTransaction

    def add(self, transaction: Transaction, commit: bool = True) -> Transaction:
        db_obj = DbTransaction(dentist_id=transaction.dentist_id)
        self._apply(db_obj, self._values(transaction))
        self.db.add(db_obj)
        return self._to_domain(self._save(db_obj, commit))

    def update(self, transaction: Transaction, commit: bool = True) -> Transaction:
        db_obj = self._get_row(transaction.id)
        if db_obj is None:
            raise NotFoundError("Transacción no encontrada")
        self._apply(db_obj, self._values(transaction))
        return self._to_domain(self._save(db_obj, commit))

    def delete(self, transaction_id: str, commit: bool = True) -> None:
        self._delete_row(transaction_id, commit)

    def get_by_id(self, transaction_id: str) -> Optional[Transaction]:
        db_obj = self._get_row(transaction_id)
        return self._to_domain(db_obj) if db_obj else None

    def list_by_dentist(self, dentist_id: str) -> List[Transaction]:
        rows = (
            self.db.query(DbTransaction)
            .filter(DbTransaction.dentist_id == dentist_id)
            .order_by(DbTransaction.date.desc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def list_by_patient(self, dentist_id: str, patient_id: str) -> List[Transaction]:
        rows = (
            self.db.query(DbTransaction)
            .filter(
                DbTransaction.dentist_id == dentist_id,
                DbTransaction.patient_id == patient_id,
            )
            .order_by(DbTransaction.date.desc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    @staticmethod
    def _values(transaction: Transaction) -> dict:
        return {
            "type": transaction.type,
            "amount": to_decimal(transaction.amount),
            "category": transaction.category,
            "concept": transaction.concept,
            "date": transaction.date,
            "payment_method": transaction.payment_method,
            "status": transaction.status,
            "is_possible": transaction.is_possible,
            "patient_id": transaction.patient_id,
            "appointment_id": transaction.appointment_id,
            "notes": transaction.notes,
        }

    def _to_domain(self, db_obj: DbTransaction) -> Transaction:
        return Transaction(
            id=db_obj.id,
            dentist_id=db_obj.dentist_id,
            type=db_obj.type,
            amount=to_float(db_obj.amount) or 0.0,
            category=db_obj.category,
            concept=db_obj.concept,
            date=ensure_utc(db_obj.date),
            payment_method=db_obj.payment_method,
            status=db_obj.status,
            is_possible=db_obj.is_possible,
            patient_id=db_obj.patient_id,
            appointment_id=db_obj.appointment_id,
            notes=db_obj.notes,
            created_at=ensure_utc(db_obj.created_at),
            updated_at=ensure_utc(db_obj.updated_at),
        )
