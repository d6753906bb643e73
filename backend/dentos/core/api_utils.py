"""
Common API utilities for consistent response formatting across all controllers.
"""

from dataclasses import asdict
from datetime import date, datetime
from typing import Any, List, Optional, Sequence

from flask import jsonify, request

from dentos.core.exceptions import ValidationError


def api_response(
    success: bool, message: str, data: Optional[Any] = None, status_code: int = 200
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data

    return jsonify(response), status_code


def get_json_body() -> dict:
    """Return the request JSON object or raise a ValidationError."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("El cuerpo de la solicitud debe ser un objeto JSON")
    return payload


def serialize(value: Any) -> Any:
    """Convert domain values (datetimes, nested dicts/lists) into JSON-safe data."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def entity_data(entity: Any, **extra: Any) -> dict:
    """Serialize a domain dataclass, adding derived values such as ``is_low``."""
    data = asdict(entity)
    data.update(extra)
    return serialize(data)


def query_int(name: str, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """Read a required integer query parameter within optional bounds."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        raise ValidationError(f"Parámetro requerido: {name}", name)
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"El parámetro {name} debe ser un número entero", name)
    if minimum is not None and value < minimum:
        raise ValidationError(f"El parámetro {name} debe ser al menos {minimum}", name)
    if maximum is not None and value > maximum:
        raise ValidationError(f"El parámetro {name} no puede ser mayor que {maximum}", name)
    return value


DEFAULT_PER_PAGE = 10
MIN_PER_PAGE = 5
MAX_PER_PAGE = 100


def wants_page() -> bool:
    """True when the request asks for a page via ``?page=`` or ``?per_page=``."""
    return "page" in request.args or "per_page" in request.args


def paginate(items: Sequence[Any]) -> dict:
    """
    Slice ``items`` by the ``page``/``per_page`` query parameters.

    Non-numeric values fall back to the defaults. ``per_page`` is clamped to
    [MIN_PER_PAGE, MAX_PER_PAGE] and ``page`` to [1, total_pages]; an empty
    collection is a single empty page.
    """
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", DEFAULT_PER_PAGE, type=int)
    per_page = min(max(per_page, MIN_PER_PAGE), MAX_PER_PAGE)

    total = len(items)
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page

    return {
        "items": list(items[start:start + per_page]),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_prev": page > 1,
            "has_next": page < total_pages,
        },
    }


def list_data(items: List[Any]) -> Any:
    """Serialized list, or one page of it when the request asks for paging."""
    if wants_page():
        return paginate(items)
    return items
