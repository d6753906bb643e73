"""
Backup service for exporting a dentist's data as one JSON document.

The document groups every tenant-owned collection:

    {exportDate, dentistInfo, patients, medicalHistories, appointments,
     transactions, stock, visits, metadata: {version, totalRecords}}

Nested timestamps are written as ISO-8601 strings so the result can be passed
straight to ``json.dumps``.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, List

from dentos.core.config import BACKUP_FORMAT_VERSION, get_backup_product_name
from dentos.core.exceptions import gateway_operation
from dentos.domain.entities import DentistProfile
from dentos.domain.interfaces import (
    IAppointmentRepository,
    IMedicalHistoryRepository,
    IPatientRepository,
    IStockRepository,
    ITransactionRepository,
    IVisitRepository,
)
from dentos.services.base_service import BaseService
from dentos.utils.date_utils import ensure_utc, to_app_tz

logger = logging.getLogger(__name__)

COLLECTIONS = ("patients", "medicalHistories", "appointments", "transactions", "stock", "visits")


@dataclass
class BackupStats:
    patients: int
    medical_histories: int
    appointments: int
    transactions: int
    stock: int
    visits: int
    total_records: int
    export_date: str
    estimated_size_kb: float


def _to_json(value: Any) -> Any:
    """Recursively convert datetimes and dates into ISO strings."""
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    return value


def _records(items) -> List[Dict[str, Any]]:
    return [_to_json(asdict(item)) for item in items]


class BackupService(BaseService):
    def __init__(
        self,
        patient_repo: IPatientRepository,
        history_repo: IMedicalHistoryRepository,
        appointment_repo: IAppointmentRepository,
        transaction_repo: ITransactionRepository,
        stock_repo: IStockRepository,
        visit_repo: IVisitRepository,
        session=None,
        clock=None,
    ):
        super().__init__(session, clock)
        self.patient_repo = patient_repo
        self.history_repo = history_repo
        self.appointment_repo = appointment_repo
        self.transaction_repo = transaction_repo
        self.stock_repo = stock_repo
        self.visit_repo = visit_repo

    @gateway_operation("No se pudieron exportar los datos")
    def export_all(self, profile: DentistProfile) -> Dict[str, Any]:
        dentist_id = profile.uid
        data: Dict[str, Any] = {
            "exportDate": self.now().isoformat(),
            "dentistInfo": {
                "uid": dentist_id,
                "email": profile.email or "",
                "display_name": profile.display_name,
                "clinic_name": profile.clinic_name,
                "clinic_address": profile.clinic_address,
                "phone": profile.phone,
                "license_number": profile.license_number,
            },
            "patients": _records(self.patient_repo.list_by_dentist(dentist_id)),
            "medicalHistories": _records(self.history_repo.list_by_dentist(dentist_id)),
            "appointments": _records(self.appointment_repo.list_by_dentist(dentist_id)),
            "transactions": _records(self.transaction_repo.list_by_dentist(dentist_id)),
            "stock": _records(self.stock_repo.list_by_dentist(dentist_id)),
            "visits": _records(self.visit_repo.list_by_dentist(dentist_id)),
        }
        total = sum(len(data[name]) for name in COLLECTIONS)
        data["metadata"] = {"version": BACKUP_FORMAT_VERSION, "totalRecords": total}

        logger.info(
            "Backup exported",
            extra={"context": {"dentist_id": dentist_id, "total_records": total}},
        )
        return data

    def backup_filename(self) -> str:
        day = to_app_tz(self.now()).date()
        return f"backup-{get_backup_product_name()}-{day.isoformat()}.json"

    @staticmethod
    def stats(data: Dict[str, Any]) -> BackupStats:
        size_kb = len(json.dumps(data)) / 1024
        return BackupStats(
            patients=len(data["patients"]),
            medical_histories=len(data["medicalHistories"]),
            appointments=len(data["appointments"]),
            transactions=len(data["transactions"]),
            stock=len(data["stock"]),
            visits=len(data["visits"]),
            total_records=data["metadata"]["totalRecords"],
            export_date=data["exportDate"],
            estimated_size_kb=round(size_kb, 2),
        )
