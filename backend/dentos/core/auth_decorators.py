"""
Authentication helpers and the request-scoped dentist context.

Every request gets one SQLAlchemy session (``get_db``) that ``create_app``
closes on teardown. Controllers protected with ``@require_dentist`` can read
the caller's identity and profile from ``get_dentist_context()`` and pass
``ctx.dentist_id`` into the services explicitly.

DECORATOR GUIDE:
- @require_dentist: signed-in dentist with a profile (all tenant data routes)
- @admin_required: signed-in identity whose email is in ADMIN_EMAILS
"""

from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import current_app, g
from flask_login import current_user
from sqlalchemy.orm import Session

from dentos.core.api_utils import api_response
from dentos.core.config import APP_TZ, is_admin_email
from dentos.db.session import SessionLocal
from dentos.domain.entities import AuthIdentity, DentistProfile
from dentos.repositories.dentist_profile_repository import DentistProfileRepository
from dentos.utils.date_utils import utcnow


@dataclass
class DentistContext:
    identity: AuthIdentity
    profile: DentistProfile

    @property
    def dentist_id(self) -> str:
        return self.identity.uid


def get_db() -> Session:
    """Return the session of the current request, opening it on first use."""
    if "db" not in g:
        g.db = SessionLocal()
    return g.db


def close_db(exc=None) -> None:
    db = g.pop("db", None)
    if db is not None:
        db.close()


def get_clock():
    """Clock used by services; tests replace it through ``app.config['CLOCK']``."""
    return current_app.config.get("CLOCK") or utcnow


def get_app_tz():
    return current_app.config.get("APP_TZ") or APP_TZ


def get_current_identity() -> Optional[AuthIdentity]:
    if current_user and getattr(current_user, "is_authenticated", False):
        return current_user._get_current_object()
    return None


def get_dentist_context() -> Optional[DentistContext]:
    """Identity and profile of the signed-in dentist, cached on ``g``."""
    if "dentist" in g:
        return g.dentist
    identity = get_current_identity()
    context = None
    if identity is not None:
        profile = DentistProfileRepository(get_db()).get_by_uid(identity.uid)
        if profile is not None:
            context = DentistContext(identity=identity, profile=profile)
    g.dentist = context
    return context


def require_dentist(f):
    """Decorator for tenant routes.

    Returns:
        - 401 if there is no Flask-Login session
        - 403 if the account has no dentist profile
        - Proceeds to route otherwise
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if get_current_identity() is None:
            return api_response(False, "Debes iniciar sesión", None, 401)
        if get_dentist_context() is None:
            return api_response(False, "Perfil de dentista no encontrado", None, 403)
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    """Decorator for subscription administration routes."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = get_current_identity()
        if identity is None:
            return api_response(False, "Debes iniciar sesión", None, 401)
        if not is_admin_email(identity.email):
            return api_response(False, "No tienes permisos de administrador", None, 403)
        return f(*args, **kwargs)

    return decorated_function
