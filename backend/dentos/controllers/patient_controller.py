"""
Patient controller: records, search, cohorts and monthly fees.
"""

from flask import Blueprint, request

from dentos.core.api_utils import api_response, entity_data, get_json_body, list_data
from dentos.core.auth_decorators import get_app_tz, get_clock, get_db, get_dentist_context, require_dentist
from dentos.core.limiter_config import WRITE_LIMIT, limiter
from dentos.core.validation import GroupMembersValidator, PatientValidator, TransactionValidator, validate_payload
from dentos.domain.entities import Patient
from dentos.repositories.appointment_repository import AppointmentRepository
from dentos.repositories.patient_repository import PatientRepository
from dentos.repositories.transaction_repository import TransactionRepository
from dentos.services.appointment_service import AppointmentService
from dentos.services.patient_service import PatientService
from dentos.services.transaction_service import TransactionService

patients_bp = Blueprint("patients", __name__, url_prefix="/patients")


def _service() -> PatientService:
    db = get_db()
    return PatientService(
        PatientRepository(db), TransactionRepository(db), session=db, clock=get_clock()
    )


def _patient_data(patient: Patient) -> dict:
    return entity_data(patient, full_name=patient.full_name)


@patients_bp.route("", methods=["GET"])
@require_dentist
def list_patients():
    """List patients, newest first; ``?q=`` filters by name, email, phone or group.

    ``?page=``/``?per_page=`` return one page plus pagination metadata.
    """
    ctx = get_dentist_context()
    term = request.args.get("q")
    service = _service()
    if term:
        patients = service.search_patients(ctx.dentist_id, term)
    else:
        patients = service.list_patients(ctx.dentist_id)
    return api_response(True, "OK", list_data([_patient_data(p) for p in patients]))


@patients_bp.route("", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def create_patient():
    ctx = get_dentist_context()
    data = validate_payload(PatientValidator(), get_json_body())
    patient = _service().add_patient(ctx.dentist_id, Patient(**data))
    return api_response(True, "Paciente creado", _patient_data(patient), 201)


@patients_bp.route("/<patient_id>", methods=["GET"])
@require_dentist
def get_patient(patient_id):
    ctx = get_dentist_context()
    patient = _service().get_patient(ctx.dentist_id, patient_id)
    return api_response(True, "OK", _patient_data(patient))


@patients_bp.route("/<patient_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_patient(patient_id):
    ctx = get_dentist_context()
    changes = validate_payload(PatientValidator(partial=True), get_json_body())
    patient = _service().update_patient(ctx.dentist_id, patient_id, changes)
    return api_response(True, "Paciente actualizado", _patient_data(patient))


@patients_bp.route("/<patient_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def delete_patient(patient_id):
    ctx = get_dentist_context()
    _service().delete_patient(ctx.dentist_id, patient_id)
    return api_response(True, "Paciente eliminado")


@patients_bp.route("/groups", methods=["GET"])
@require_dentist
def list_groups():
    ctx = get_dentist_context()
    groups = _service().list_groups(ctx.dentist_id)
    return api_response(
        True, "OK", [{"group_name": name, "members": count} for name, count in groups.items()]
    )


@patients_bp.route("/groups/<group_name>", methods=["GET"])
@require_dentist
def list_group_members(group_name):
    ctx = get_dentist_context()
    patients = _service().list_by_group(ctx.dentist_id, group_name)
    return api_response(True, "OK", [_patient_data(p) for p in patients])


@patients_bp.route("/groups", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def add_group_members():
    ctx = get_dentist_context()
    data = validate_payload(GroupMembersValidator(), get_json_body())
    created = _service().add_group_members(
        ctx.dentist_id, data["group_name"], data["members"], data.get("monthly_price")
    )
    return api_response(
        True,
        f"{len(created)} paciente(s) agregado(s) al grupo",
        [_patient_data(p) for p in created],
        201,
    )


@patients_bp.route("/<patient_id>/monthly-fee", methods=["GET"])
@require_dentist
def monthly_fee_status(patient_id):
    ctx = get_dentist_context()
    due = _service().is_monthly_fee_due(ctx.dentist_id, patient_id)
    return api_response(True, "OK", {"due": due})


@patients_bp.route("/<patient_id>/monthly-fee", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def record_monthly_fee(patient_id):
    ctx = get_dentist_context()
    payload = request.get_json(silent=True) or {}
    method = validate_payload(
        TransactionValidator(partial=True), {"payment_method": payload.get("payment_method") or "cash"}
    )["payment_method"]
    patient, transaction = _service().record_monthly_fee(ctx.dentist_id, patient_id, method)
    return api_response(
        True,
        "Mensualidad registrada",
        {"patient": _patient_data(patient), "transaction": entity_data(transaction)},
        201,
    )


@patients_bp.route("/<patient_id>/appointments", methods=["GET"])
@require_dentist
def patient_appointments(patient_id):
    ctx = get_dentist_context()
    db = get_db()
    _service().get_patient(ctx.dentist_id, patient_id)
    service = AppointmentService(
        AppointmentRepository(db), PatientRepository(db), TransactionRepository(db),
        session=db, clock=get_clock(), tz=get_app_tz(),
    )
    appointments = service.list_by_patient(ctx.dentist_id, patient_id)
    return api_response(True, "OK", [entity_data(a) for a in appointments])


@patients_bp.route("/<patient_id>/payments", methods=["GET"])
@require_dentist
def patient_payments(patient_id):
    """Paid and pending totals plus overdue appointment charges."""
    ctx = get_dentist_context()
    db = get_db()
    _service().get_patient(ctx.dentist_id, patient_id)
    service = TransactionService(TransactionRepository(db), session=db, clock=get_clock(), tz=get_app_tz())
    summary = service.patient_payment_summary(ctx.dentist_id, patient_id)
    return api_response(
        True,
        "OK",
        {
            "total_paid": summary.total_paid,
            "total_pending": summary.total_pending,
            "has_overdue": summary.has_overdue,
            "overdue": [entity_data(t) for t in summary.overdue],
        },
    )
