"""
Subscription lifecycle and access gating.

States are ``trial``, ``active``, ``expired`` and ``cancelled``. Stored
transitions are admin-driven only; the implicit expiry of a trial or an
active period is never written back and is derived on every access check by
comparing ``now`` with the stored end dates.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from dentos.core.exceptions import InvalidSubscriptionTransition, ValidationError
from dentos.domain.entities import PLAN_TYPES, AuthIdentity, DentistProfile
from dentos.utils.date_utils import ensure_utc

LOGIN_PATH = "/login"
REGISTER_PATH = "/register"
EXPIRED_NOTICE_PATH = "/subscription-expired"

# Pages reachable whatever the subscription state
UNGATED_PATHS = frozenset({LOGIN_PATH, REGISTER_PATH, EXPIRED_NOTICE_PATH})

PLAN_MONTHS = {"monthly": 1, "annual": 12}


class AccessDecision(str, Enum):
    REDIRECT_LOGIN = "redirect_login"
    ALLOW = "allow"
    BLOCK = "block"
    REDIRECT_EXPIRED = "redirect_expired"


def is_currently_entitled(profile: DentistProfile, now: datetime) -> bool:
    """Whether ``profile`` may use the application at ``now``.

    A trial or active profile without a stored end date is entitled.
    """
    status = profile.subscription_status
    if status == "trial":
        ends = ensure_utc(profile.trial_ends_at)
        return ends is None or not now > ends
    if status == "active":
        ends = ensure_utc(profile.subscription_ends_at)
        return ends is None or not now > ends
    return False


def evaluate_access(
    identity: Optional[AuthIdentity],
    profile: Optional[DentistProfile],
    path: str,
    now: datetime,
) -> AccessDecision:
    """Decide what the caller sees for ``path``.

    Order matters: authentication first, then the ungated pages, then the
    profile lookup, then entitlement.
    """
    if identity is None:
        return AccessDecision.REDIRECT_LOGIN

    normalized = path.rstrip("/") or "/"
    if normalized in UNGATED_PATHS:
        return AccessDecision.ALLOW

    if profile is None:
        return AccessDecision.BLOCK

    if not is_currently_entitled(profile, now):
        return AccessDecision.REDIRECT_EXPIRED

    return AccessDecision.ALLOW


def start_trial(profile: DentistProfile, now: datetime, trial_days: int) -> DentistProfile:
    """Initial state of a freshly registered dentist."""
    return replace(
        profile,
        subscription_status="trial",
        trial_ends_at=now + timedelta(days=trial_days),
        subscription_ends_at=None,
        plan_type=None,
        last_payment_date=None,
        created_at=now,
        updated_at=now,
    )


def activate(
    profile: DentistProfile, plan_type: str, now: datetime, period_days: int
) -> DentistProfile:
    """Start a paid period from ``now``.

    Accepted from ``trial``, ``expired`` and ``cancelled``; an ``active``
    profile must be extended instead.
    """
    if plan_type not in PLAN_TYPES:
        raise ValidationError(
            f"Tipo de plan inválido. Use: {', '.join(PLAN_TYPES)}", "plan_type"
        )
    if profile.subscription_status == "active":
        raise InvalidSubscriptionTransition(
            "La suscripción ya está activa. Usa la extensión para añadir meses."
        )

    months = PLAN_MONTHS[plan_type]
    return replace(
        profile,
        subscription_status="active",
        plan_type=plan_type,
        subscription_ends_at=now + timedelta(days=months * period_days),
        last_payment_date=now,
        updated_at=now,
    )


def extend(profile: DentistProfile, months: int, now: datetime, period_days: int) -> DentistProfile:
    """Add ``months`` billing periods to an active subscription.

    Additive when the current end is still in the future, otherwise the new
    period starts at ``now``.
    """
    if months < 1:
        raise ValidationError("La cantidad de meses debe ser al menos 1", "months")
    if profile.subscription_status != "active":
        raise InvalidSubscriptionTransition(
            "Solo se puede extender una suscripción activa."
        )

    current_end = ensure_utc(profile.subscription_ends_at)
    base = current_end if current_end is not None and current_end > now else now
    return replace(
        profile,
        subscription_status="active",
        subscription_ends_at=base + timedelta(days=months * period_days),
        last_payment_date=now,
        updated_at=now,
    )


def cancel(profile: DentistProfile, now: datetime) -> DentistProfile:
    """Mark the profile cancelled; end dates are kept for the record."""
    if profile.subscription_status == "cancelled":
        raise InvalidSubscriptionTransition("La suscripción ya está cancelada.")
    return replace(profile, subscription_status="cancelled", updated_at=now)


def days_remaining(profile: DentistProfile, now: datetime) -> Optional[int]:
    """Whole days left in the current trial or paid period, or None."""
    if profile.subscription_status == "trial":
        ends = ensure_utc(profile.trial_ends_at)
    elif profile.subscription_status == "active":
        ends = ensure_utc(profile.subscription_ends_at)
    else:
        return None
    if ends is None:
        return None
    return max(0, (ends - now).days)
