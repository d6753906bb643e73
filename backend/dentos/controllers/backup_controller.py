import json
import logging
from dataclasses import asdict

from flask import Blueprint, Response

from dentos.core.api_utils import api_response
from dentos.core.auth_decorators import get_clock, get_db, get_dentist_context, require_dentist
from dentos.repositories.appointment_repository import AppointmentRepository
from dentos.repositories.medical_history_repository import MedicalHistoryRepository
from dentos.repositories.patient_repository import PatientRepository
from dentos.repositories.stock_repository import StockRepository
from dentos.repositories.transaction_repository import TransactionRepository
from dentos.repositories.visit_repository import VisitRepository
from dentos.services.backup_service import BackupService

logger = logging.getLogger(__name__)

backup_bp = Blueprint("backup", __name__, url_prefix="/backup")


def _service() -> BackupService:
    db = get_db()
    return BackupService(
        PatientRepository(db),
        MedicalHistoryRepository(db),
        AppointmentRepository(db),
        TransactionRepository(db),
        StockRepository(db),
        VisitRepository(db),
        session=db,
        clock=get_clock(),
    )


@backup_bp.route("/export", methods=["GET"])
@require_dentist
def export_backup():
    """Download every record of the dentist as a JSON attachment."""
    ctx = get_dentist_context()
    service = _service()
    data = service.export_all(ctx.profile)
    filename = service.backup_filename()
    return Response(
        json.dumps(data, indent=2, ensure_ascii=False),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@backup_bp.route("/stats", methods=["GET"])
@require_dentist
def backup_stats():
    ctx = get_dentist_context()
    service = _service()
    stats = service.stats(service.export_all(ctx.profile))
    return api_response(True, "OK", {**asdict(stats), "filename": service.backup_filename()})
