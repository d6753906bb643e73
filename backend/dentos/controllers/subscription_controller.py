"""
Landing endpoints targeted by the subscription gate redirects.

``/login`` and ``/register`` point clients to the auth API. The expired
notice reports the caller's subscription state so the client can show it.
"""

from flask import Blueprint

from dentos.core.api_utils import api_response
from dentos.core.auth_decorators import get_clock, get_dentist_context
from dentos.domain.subscription import EXPIRED_NOTICE_PATH, LOGIN_PATH, REGISTER_PATH, is_currently_entitled
from dentos.utils.date_utils import isoformat

subscription_bp = Blueprint("subscription", __name__)


@subscription_bp.route(LOGIN_PATH, methods=["GET"])
def login_page():
    return api_response(True, "Inicia sesión para continuar", {"endpoint": "/auth/login"})


@subscription_bp.route(REGISTER_PATH, methods=["GET"])
def register_page():
    return api_response(True, "Crea tu cuenta con 7 días de prueba", {"endpoint": "/auth/register"})


@subscription_bp.route(EXPIRED_NOTICE_PATH, methods=["GET"])
def subscription_expired():
    ctx = get_dentist_context()
    if ctx is None:
        return api_response(False, "Tu suscripción ha expirado", None, 200)
    profile = ctx.profile
    return api_response(
        True,
        "Tu suscripción ha expirado. Contacta al administrador para renovarla.",
        {
            "subscription_status": profile.subscription_status,
            "trial_ends_at": isoformat(profile.trial_ends_at),
            "subscription_ends_at": isoformat(profile.subscription_ends_at),
            "plan_type": profile.plan_type,
            "is_entitled": is_currently_entitled(profile, get_clock()()),
        },
    )
