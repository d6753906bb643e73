"""
Authentication controller: registration, sign-in and the dentist profile.

Sessions are Flask-Login cookies. The auth provider notifies session changes
through ``on_auth_change``; the listener registered here turns them into
``login_user`` / ``logout_user`` calls.
"""

import logging
from typing import Optional

from flask import Blueprint, current_app
from flask_login import login_user, logout_user

from dentos.core.api_utils import api_response, entity_data, get_json_body
from dentos.core.auth_decorators import get_clock, get_db, get_dentist_context, require_dentist
from dentos.core.exceptions import ValidationError
from dentos.core.limiter_config import AUTH_LIMIT, WRITE_LIMIT, limiter
from dentos.core.validation import (
    BaseValidator,
    ProfileValidator,
    RegistrationValidator,
    ValidationResult,
    validate_payload,
)
from dentos.domain.entities import AuthIdentity
from dentos.domain.subscription import days_remaining
from dentos.repositories.auth_provider import LocalAuthProvider
from dentos.repositories.dentist_profile_repository import DentistProfileRepository
from dentos.services.auth_service import AuthService

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _session_listener(identity: Optional[AuthIdentity]) -> None:
    if identity is not None:
        login_user(identity)
    else:
        logout_user()


def _service() -> AuthService:
    db = get_db()
    provider = LocalAuthProvider(db, reset_sender=current_app.config.get("PASSWORD_RESET_SENDER"))
    provider.on_auth_change(_session_listener)
    return AuthService(provider, DentistProfileRepository(db), session=db, clock=get_clock())


def _identity_data(identity: AuthIdentity) -> dict:
    return {"uid": identity.uid, "email": identity.email, "display_name": identity.display_name}


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(AUTH_LIMIT)
def register():
    """Create the account and its 7-day trial profile, then sign in."""
    data = validate_payload(RegistrationValidator(), get_json_body())
    identity, profile = _service().register(data)
    return api_response(
        True,
        "Cuenta creada correctamente",
        {"user": _identity_data(identity), "profile": entity_data(profile)},
        201,
    )


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(AUTH_LIMIT)
def login():
    payload = get_json_body()
    result = ValidationResult()
    email = BaseValidator.validate_email(payload.get("email"), "email", result)
    BaseValidator.validate_required_field(
        payload.get("password"), "password", result, "La contraseña es requerida"
    )
    result.raise_for_errors()
    identity = _service().login(email, str(payload["password"]))
    return api_response(True, "Sesión iniciada", {"user": _identity_data(identity)})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    _service().logout()
    return api_response(True, "Sesión cerrada")


@auth_bp.route("/password-reset", methods=["POST"])
@limiter.limit(AUTH_LIMIT)
def request_password_reset():
    payload = get_json_body()
    result = ValidationResult()
    email = BaseValidator.validate_email(payload.get("email"), "email", result)
    result.raise_for_errors()
    _service().request_password_reset(email)
    # Same answer whether or not the email has an account
    return api_response(True, "Si el email está registrado, recibirás instrucciones para restablecer tu contraseña")


@auth_bp.route("/password-reset/confirm", methods=["POST"])
@limiter.limit(AUTH_LIMIT)
def confirm_password_reset():
    payload = get_json_body()
    token = payload.get("token")
    if not token:
        raise ValidationError("El token es requerido", "token")
    result = ValidationResult()
    password = BaseValidator.validate_password(payload.get("password"), "password", result)
    result.raise_for_errors()
    _service().confirm_password_reset(str(token), password)
    return api_response(True, "Contraseña actualizada")


@auth_bp.route("/me", methods=["GET"])
@require_dentist
def me():
    ctx = get_dentist_context()
    return api_response(
        True,
        "OK",
        {
            "user": _identity_data(ctx.identity),
            "profile": entity_data(ctx.profile),
            "days_remaining": days_remaining(ctx.profile, get_clock()()),
        },
    )


@auth_bp.route("/me", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@require_dentist
def update_me():
    ctx = get_dentist_context()
    changes = validate_payload(ProfileValidator(partial=True), get_json_body())
    profile = _service().update_profile(ctx.dentist_id, changes)
    return api_response(True, "Perfil actualizado", {"profile": entity_data(profile)})
