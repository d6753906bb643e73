from flask import Blueprint, request

from dentos.core.api_utils import api_response, entity_data, get_json_body
from dentos.core.auth_decorators import get_clock, get_db, get_dentist_context, require_dentist
from dentos.core.limiter_config import WRITE_LIMIT, limiter
from dentos.core.validation import VisitValidator, validate_payload
from dentos.domain.entities import Visit
from dentos.repositories.appointment_repository import AppointmentRepository
from dentos.repositories.patient_repository import PatientRepository
from dentos.repositories.visit_repository import VisitRepository
from dentos.services.visit_service import VisitService

visits_bp = Blueprint("visits", __name__, url_prefix="/visits")


def _service() -> VisitService:
    db = get_db()
    return VisitService(
        VisitRepository(db), PatientRepository(db), AppointmentRepository(db),
        session=db, clock=get_clock(),
    )


@visits_bp.route("", methods=["GET"])
@require_dentist
def list_visits():
    """All of the dentist's visits, or those of ``?patient_id=``; most recent first."""
    ctx = get_dentist_context()
    patient_id = request.args.get("patient_id")
    service = _service()
    if patient_id:
        visits = service.list_by_patient(ctx.dentist_id, patient_id)
    else:
        visits = service.list_visits(ctx.dentist_id)
    return api_response(True, "OK", [entity_data(v) for v in visits])


@visits_bp.route("", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def create_visit():
    ctx = get_dentist_context()
    data = validate_payload(VisitValidator(), get_json_body())
    visit = _service().add_visit(ctx.dentist_id, Visit(**data))
    return api_response(True, "Visita registrada", entity_data(visit), 201)


@visits_bp.route("/by-appointment/<appointment_id>", methods=["GET"])
@require_dentist
def get_by_appointment(appointment_id):
    ctx = get_dentist_context()
    visit = _service().get_by_appointment(ctx.dentist_id, appointment_id)
    return api_response(True, "OK", entity_data(visit) if visit else None)


@visits_bp.route("/<visit_id>", methods=["GET"])
@require_dentist
def get_visit(visit_id):
    ctx = get_dentist_context()
    visit = _service().get_visit(ctx.dentist_id, visit_id)
    return api_response(True, "OK", entity_data(visit))


@visits_bp.route("/<visit_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_visit(visit_id):
    ctx = get_dentist_context()
    changes = validate_payload(VisitValidator(partial=True), get_json_body())
    visit = _service().update_visit(ctx.dentist_id, visit_id, changes)
    return api_response(True, "Visita actualizada", entity_data(visit))


@visits_bp.route("/<visit_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def delete_visit(visit_id):
    ctx = get_dentist_context()
    _service().delete_visit(ctx.dentist_id, visit_id)
    return api_response(True, "Visita eliminada")
