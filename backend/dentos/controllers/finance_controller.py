"""
Finance controller: ledger transactions and the monthly balance.
"""

from dataclasses import asdict

from flask import Blueprint, request

from dentos.core.api_utils import api_response, entity_data, get_json_body, list_data, query_int
from dentos.core.auth_decorators import get_app_tz, get_clock, get_db, get_dentist_context, require_dentist
from dentos.core.limiter_config import WRITE_LIMIT, limiter
from dentos.core.validation import TransactionValidator, validate_payload
from dentos.domain.entities import Transaction
from dentos.repositories.appointment_repository import AppointmentRepository
from dentos.repositories.patient_repository import PatientRepository
from dentos.repositories.transaction_repository import TransactionRepository
from dentos.services.transaction_service import TransactionService

finances_bp = Blueprint("finances", __name__, url_prefix="/finances")


def _service() -> TransactionService:
    db = get_db()
    return TransactionService(
        TransactionRepository(db), AppointmentRepository(db),
        session=db, clock=get_clock(), tz=get_app_tz(), patient_repo=PatientRepository(db),
    )


@finances_bp.route("/transactions", methods=["GET"])
@require_dentist
def list_transactions():
    """All transactions, or ``?year=&month=`` for one month; most recent first.

    Paged when ``?page=`` or ``?per_page=`` is given.
    """
    ctx = get_dentist_context()
    service = _service()
    if request.args.get("year") or request.args.get("month"):
        year = query_int("year", minimum=2000, maximum=2100)
        month = query_int("month", minimum=1, maximum=12)
        transactions = service.list_by_month(ctx.dentist_id, year, month)
    else:
        transactions = service.list_transactions(ctx.dentist_id)
    return api_response(True, "OK", list_data([entity_data(t) for t in transactions]))


@finances_bp.route("/transactions", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def create_transaction():
    ctx = get_dentist_context()
    data = validate_payload(TransactionValidator(), get_json_body())
    transaction = _service().add_transaction(ctx.dentist_id, Transaction(**data))
    return api_response(True, "Transacción registrada", entity_data(transaction), 201)


@finances_bp.route("/transactions/<transaction_id>", methods=["GET"])
@require_dentist
def get_transaction(transaction_id):
    ctx = get_dentist_context()
    transaction = _service().get_transaction(ctx.dentist_id, transaction_id)
    return api_response(True, "OK", entity_data(transaction))


@finances_bp.route("/transactions/<transaction_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_transaction(transaction_id):
    ctx = get_dentist_context()
    changes = validate_payload(TransactionValidator(partial=True), get_json_body())
    transaction = _service().update_transaction(ctx.dentist_id, transaction_id, changes)
    return api_response(True, "Transacción actualizada", entity_data(transaction))


@finances_bp.route("/transactions/<transaction_id>/status", methods=["PATCH"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_transaction_status(transaction_id):
    """Change the status and mirror it onto the linked appointment."""
    ctx = get_dentist_context()
    data = validate_payload(
        TransactionValidator(partial=True), {"status": get_json_body().get("status")}
    )
    transaction = _service().update_status(ctx.dentist_id, transaction_id, data["status"])
    return api_response(True, "Estado actualizado", entity_data(transaction))


@finances_bp.route("/transactions/<transaction_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def delete_transaction(transaction_id):
    ctx = get_dentist_context()
    _service().delete_transaction(ctx.dentist_id, transaction_id)
    return api_response(True, "Transacción eliminada")


@finances_bp.route("/balance", methods=["GET"])
@require_dentist
def monthly_balance():
    ctx = get_dentist_context()
    year = query_int("year", minimum=2000, maximum=2100)
    month = query_int("month", minimum=1, maximum=12)
    balance = _service().monthly_balance(ctx.dentist_id, year, month)
    return api_response(True, "OK", asdict(balance))
