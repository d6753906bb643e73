"""
Subscription administration endpoints.

Only identities listed in ADMIN_EMAILS reach these routes; they are not
subject to the subscription gate.
"""

from flask import Blueprint

from dentos.core.api_utils import api_response, entity_data, get_json_body
from dentos.core.auth_decorators import admin_required, get_clock, get_current_identity, get_db
from dentos.core.limiter_config import WRITE_LIMIT, limiter
from dentos.core.validation import BaseValidator, ValidationResult
from dentos.domain.subscription import days_remaining
from dentos.repositories.dentist_profile_repository import DentistProfileRepository
from dentos.services.subscription_service import SubscriptionService

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _service() -> SubscriptionService:
    db = get_db()
    return SubscriptionService(DentistProfileRepository(db), session=db, clock=get_clock())


def _profile_data(service: SubscriptionService, profile) -> dict:
    return entity_data(
        profile,
        is_entitled=service.is_entitled(profile),
        days_remaining=days_remaining(profile, service.now()),
    )


@admin_bp.route("/dentists", methods=["GET"])
@admin_required
def list_dentists():
    service = _service()
    profiles = service.list_dentists(get_current_identity())
    return api_response(True, "OK", [_profile_data(service, p) for p in profiles])


@admin_bp.route("/dentists/<uid>/activate", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@admin_required
def activate(uid):
    payload = get_json_body()
    service = _service()
    profile = service.activate(get_current_identity(), uid, str(payload.get("plan_type") or ""))
    return api_response(True, "Suscripción activada", _profile_data(service, profile))


@admin_bp.route("/dentists/<uid>/extend", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@admin_required
def extend(uid):
    payload = get_json_body()
    result = ValidationResult()
    months = BaseValidator.validate_integer(
        payload.get("months"), "months", result, min_value=1,
        message="La cantidad de meses debe ser un entero mayor o igual a 1",
    )
    if months is None:
        BaseValidator.validate_required_field(payload.get("months"), "months", result)
    result.raise_for_errors()
    service = _service()
    profile = service.extend(get_current_identity(), uid, months)
    return api_response(True, "Suscripción extendida", _profile_data(service, profile))


@admin_bp.route("/dentists/<uid>/cancel", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@admin_required
def cancel(uid):
    service = _service()
    profile = service.cancel(get_current_identity(), uid)
    return api_response(True, "Suscripción cancelada", _profile_data(service, profile))
