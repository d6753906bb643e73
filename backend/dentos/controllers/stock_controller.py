"""
Stock controller for the clinic inventory.

This controller:
- Handles HTTP concerns only
- Builds StockService per request on the request session
"""

from flask import Blueprint

from dentos.core.api_utils import api_response, entity_data, get_json_body, list_data
from dentos.core.auth_decorators import get_clock, get_db, get_dentist_context, require_dentist
from dentos.core.exceptions import ValidationError
from dentos.core.limiter_config import WRITE_LIMIT, limiter
from dentos.core.validation import BaseValidator, StockItemValidator, ValidationResult, validate_payload
from dentos.domain.entities import StockItem
from dentos.repositories.stock_repository import StockRepository
from dentos.services.stock_service import StockService

stock_bp = Blueprint("stock", __name__, url_prefix="/stock")


def _service() -> StockService:
    db = get_db()
    return StockService(StockRepository(db), session=db, clock=get_clock())


def _item_data(item: StockItem) -> dict:
    return entity_data(item, is_low=item.is_low)


@stock_bp.route("", methods=["GET"])
@require_dentist
def list_stock():
    """List stock items ordered by name, optionally one page at a time."""
    ctx = get_dentist_context()
    items = _service().list_items(ctx.dentist_id)
    return api_response(True, "OK", list_data([_item_data(i) for i in items]))


@stock_bp.route("/low", methods=["GET"])
@require_dentist
def list_low_stock():
    ctx = get_dentist_context()
    items = _service().list_low_stock(ctx.dentist_id)
    return api_response(True, "OK", [_item_data(i) for i in items])


@stock_bp.route("", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def add_item():
    ctx = get_dentist_context()
    data = validate_payload(StockItemValidator(), get_json_body())
    item = _service().add_item(ctx.dentist_id, StockItem(**data))
    return api_response(True, "Item agregado", _item_data(item), 201)


@stock_bp.route("/<item_id>", methods=["GET"])
@require_dentist
def get_item(item_id):
    ctx = get_dentist_context()
    item = _service().get_item(ctx.dentist_id, item_id)
    return api_response(True, "OK", _item_data(item))


@stock_bp.route("/<item_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_item(item_id):
    ctx = get_dentist_context()
    changes = validate_payload(StockItemValidator(partial=True), get_json_body())
    item = _service().update_item(ctx.dentist_id, item_id, changes)
    return api_response(True, "Item actualizado", _item_data(item))


@stock_bp.route("/<item_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def delete_item(item_id):
    ctx = get_dentist_context()
    _service().delete_item(ctx.dentist_id, item_id)
    return api_response(True, "Item eliminado")


@stock_bp.route("/<item_id>/quantity", methods=["PATCH"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def change_quantity(item_id):
    """Apply ``{"delta": n}``; negative deltas fail with 409 when stock is short."""
    ctx = get_dentist_context()
    payload = get_json_body()
    result = ValidationResult()
    delta = BaseValidator.validate_number(payload.get("delta"), "delta", result, min_value=None, label="delta")
    result.raise_for_errors()
    if delta is None:
        raise ValidationError("El delta es requerido", "delta")
    item = _service().change_quantity(ctx.dentist_id, item_id, delta)
    return api_response(True, "Cantidad actualizada", _item_data(item))
