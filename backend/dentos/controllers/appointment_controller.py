"""
Appointment controller: scheduling, charging and materials used.

Listing accepts either ``?year=&month=`` for a calendar month, ``?day=``
(YYYY-MM-DD) for a single day, or nothing for the whole agenda.
"""

from flask import Blueprint, request

from dentos.core.api_utils import api_response, entity_data, get_json_body, query_int
from dentos.core.auth_decorators import get_app_tz, get_clock, get_db, get_dentist_context, require_dentist
from dentos.core.limiter_config import WRITE_LIMIT, limiter
from dentos.core.validation import (
    AppointmentValidator,
    BaseValidator,
    MaterialUseValidator,
    TransactionValidator,
    ValidationResult,
    validate_payload,
)
from dentos.domain.entities import Appointment
from dentos.repositories.appointment_material_repository import AppointmentMaterialRepository
from dentos.repositories.appointment_repository import AppointmentRepository
from dentos.repositories.patient_repository import PatientRepository
from dentos.repositories.stock_repository import StockRepository
from dentos.repositories.transaction_repository import TransactionRepository
from dentos.services.appointment_service import AppointmentService
from dentos.services.material_service import MaterialService

appointments_bp = Blueprint("appointments", __name__, url_prefix="/appointments")


def _service() -> AppointmentService:
    db = get_db()
    return AppointmentService(
        AppointmentRepository(db), PatientRepository(db), TransactionRepository(db),
        session=db, clock=get_clock(), tz=get_app_tz(),
    )


def _material_service() -> MaterialService:
    db = get_db()
    return MaterialService(
        AppointmentMaterialRepository(db), AppointmentRepository(db), StockRepository(db),
        session=db, clock=get_clock(),
    )


@appointments_bp.route("", methods=["GET"])
@require_dentist
def list_appointments():
    ctx = get_dentist_context()
    service = _service()
    if request.args.get("day"):
        result = ValidationResult()
        day = BaseValidator.validate_date(request.args["day"], "day", result)
        result.raise_for_errors()
        appointments = service.list_by_day(ctx.dentist_id, day)
    elif request.args.get("year") or request.args.get("month"):
        year = query_int("year", minimum=2000, maximum=2100)
        month = query_int("month", minimum=1, maximum=12)
        appointments = service.list_by_month(ctx.dentist_id, year, month)
    else:
        appointments = service.list_appointments(ctx.dentist_id)
    return api_response(True, "OK", [entity_data(a) for a in appointments])


@appointments_bp.route("", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def create_appointment():
    ctx = get_dentist_context()
    data = validate_payload(AppointmentValidator(now=get_clock()()), get_json_body())
    appointment = _service().add_appointment(ctx.dentist_id, Appointment(**data))
    return api_response(True, "Cita creada", entity_data(appointment), 201)


@appointments_bp.route("/<appointment_id>", methods=["GET"])
@require_dentist
def get_appointment(appointment_id):
    ctx = get_dentist_context()
    appointment = _service().get_appointment(ctx.dentist_id, appointment_id)
    return api_response(True, "OK", entity_data(appointment))


@appointments_bp.route("/<appointment_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_appointment(appointment_id):
    ctx = get_dentist_context()
    changes = validate_payload(AppointmentValidator(partial=True), get_json_body())
    appointment = _service().update_appointment(ctx.dentist_id, appointment_id, changes)
    return api_response(True, "Cita actualizada", entity_data(appointment))


@appointments_bp.route("/<appointment_id>/status", methods=["PATCH"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_status(appointment_id):
    ctx = get_dentist_context()
    data = validate_payload(AppointmentValidator(partial=True), {"status": get_json_body().get("status")})
    appointment = _service().update_status(ctx.dentist_id, appointment_id, data.get("status", ""))
    return api_response(True, "Estado actualizado", entity_data(appointment))


@appointments_bp.route("/<appointment_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def delete_appointment(appointment_id):
    ctx = get_dentist_context()
    _service().delete_appointment(ctx.dentist_id, appointment_id)
    return api_response(True, "Cita eliminada")


@appointments_bp.route("/<appointment_id>/payment", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def record_payment(appointment_id):
    """Charge the appointment: creates the income transaction and links it."""
    ctx = get_dentist_context()
    payload = get_json_body()
    data = validate_payload(
        TransactionValidator(partial=True),
        {
            "amount": payload.get("amount"),
            "payment_method": payload.get("payment_method"),
            "status": payload.get("status"),
            "notes": payload.get("notes"),
        },
    )
    appointment, transaction = _service().record_payment(
        ctx.dentist_id,
        appointment_id,
        data["amount"],
        data["payment_method"],
        data["status"],
        data.get("notes"),
    )
    return api_response(
        True,
        "Pago registrado",
        {"appointment": entity_data(appointment), "transaction": entity_data(transaction)},
        201,
    )


@appointments_bp.route("/<appointment_id>/payment-status", methods=["PATCH"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_payment_status(appointment_id):
    ctx = get_dentist_context()
    data = validate_payload(
        TransactionValidator(partial=True), {"status": get_json_body().get("status")}
    )
    appointment = _service().update_payment_status(ctx.dentist_id, appointment_id, data["status"])
    return api_response(True, "Estado de pago actualizado", entity_data(appointment))


@appointments_bp.route("/<appointment_id>/materials", methods=["GET"])
@require_dentist
def list_materials(appointment_id):
    ctx = get_dentist_context()
    service = _material_service()
    materials = service.list_materials(ctx.dentist_id, appointment_id)
    return api_response(
        True,
        "OK",
        {
            "materials": [entity_data(m, total_cost=m.total_cost) for m in materials],
            "total_cost": service.materials_cost(ctx.dentist_id, appointment_id),
        },
    )


@appointments_bp.route("/<appointment_id>/materials", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def record_material(appointment_id):
    ctx = get_dentist_context()
    data = validate_payload(MaterialUseValidator(), get_json_body())
    material = _material_service().record_use(
        ctx.dentist_id, appointment_id, data["stock_item_id"], data["quantity"]
    )
    return api_response(True, "Material registrado", entity_data(material, total_cost=material.total_cost), 201)


@appointments_bp.route("/<appointment_id>/materials/<material_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def remove_material(appointment_id, material_id):
    ctx = get_dentist_context()
    _material_service().remove_material(ctx.dentist_id, appointment_id, material_id)
    return api_response(True, "Material eliminado y stock restituido")
