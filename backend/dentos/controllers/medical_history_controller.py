from flask import Blueprint

from dentos.core.api_utils import api_response, entity_data, get_json_body
from dentos.core.auth_decorators import get_clock, get_db, get_dentist_context, require_dentist
from dentos.core.exceptions import ValidationError
from dentos.core.limiter_config import WRITE_LIMIT, limiter
from dentos.core.validation import (
    BudgetPaymentValidator,
    MedicalHistoryValidator,
    ValidationResult,
    validate_payload,
)
from dentos.repositories.medical_history_repository import MedicalHistoryRepository
from dentos.repositories.patient_repository import PatientRepository
from dentos.services.medical_history_service import MedicalHistoryService

medical_history_bp = Blueprint("medical_history", __name__, url_prefix="/patients/<patient_id>/medical-history")


def _service() -> MedicalHistoryService:
    db = get_db()
    return MedicalHistoryService(
        MedicalHistoryRepository(db), PatientRepository(db), session=db, clock=get_clock()
    )


@medical_history_bp.route("", methods=["GET"])
@require_dentist
def get_history(patient_id):
    ctx = get_dentist_context()
    history = _service().get_history(ctx.dentist_id, patient_id)
    return api_response(True, "OK", entity_data(history) if history else None)


@medical_history_bp.route("", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def save_history(patient_id):
    ctx = get_dentist_context()
    changes = validate_payload(MedicalHistoryValidator(), get_json_body())
    history = _service().save_history(ctx.dentist_id, patient_id, changes)
    return api_response(True, "Historia clínica guardada", entity_data(history))


@medical_history_bp.route("", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def delete_history(patient_id):
    ctx = get_dentist_context()
    _service().delete_history(ctx.dentist_id, patient_id)
    return api_response(True, "Historia clínica eliminada")


@medical_history_bp.route("/odontogram/<tooth>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def set_tooth(patient_id, tooth):
    ctx = get_dentist_context()
    validator = MedicalHistoryValidator()
    result = ValidationResult()
    entry = validator.validate_tooth(tooth, get_json_body(), result)
    result.raise_for_errors()
    if entry is None:
        raise ValidationError("El estado del diente es requerido", "status")
    history = _service().set_tooth(
        ctx.dentist_id, patient_id, tooth, entry["status"], entry.get("notes")
    )
    return api_response(True, "Odontograma actualizado", entity_data(history))


@medical_history_bp.route("/budget", methods=["GET"])
@require_dentist
def budget_summary(patient_id):
    ctx = get_dentist_context()
    summary = _service().budget_summary(ctx.dentist_id, patient_id)
    return api_response(True, "OK", entity_data(summary))


@medical_history_bp.route("/budget-payments", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def add_budget_payment(patient_id):
    ctx = get_dentist_context()
    data = validate_payload(BudgetPaymentValidator(), get_json_body())
    history = _service().add_budget_payment(
        ctx.dentist_id, patient_id, data["date"], data["treatment"], data["amount"]
    )
    return api_response(True, "Pago registrado", entity_data(history), 201)


@medical_history_bp.route("/budget-payments/<payment_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def remove_budget_payment(patient_id, payment_id):
    ctx = get_dentist_context()
    history = _service().remove_budget_payment(ctx.dentist_id, patient_id, payment_id)
    return api_response(True, "Pago eliminado", entity_data(history))
