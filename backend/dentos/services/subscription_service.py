"""
Subscription administration and the per-request access check.

Only identities whose email is listed in ADMIN_EMAILS may run the admin
operations; every state change is logged with the acting admin.
"""

import logging
from typing import Callable, List, Optional

from dentos.core.config import get_subscription_period_days, is_admin_email
from dentos.core.exceptions import NotFoundError, PermissionDeniedError, gateway_operation
from dentos.domain import subscription
from dentos.domain.entities import AuthIdentity, DentistProfile
from dentos.domain.interfaces import IDentistProfileRepository
from dentos.domain.subscription import AccessDecision
from dentos.services.base_service import BaseService

logger = logging.getLogger(__name__)


class SubscriptionService(BaseService):
    def __init__(
        self,
        profile_repo: IDentistProfileRepository,
        session=None,
        clock=None,
        period_days: Optional[int] = None,
        is_admin: Callable[[str], bool] = is_admin_email,
    ):
        super().__init__(session, clock)
        self.profile_repo = profile_repo
        self.period_days = period_days if period_days is not None else get_subscription_period_days()
        self.is_admin = is_admin

    @gateway_operation("No se pudo verificar la suscripción")
    def check_access(self, identity: Optional[AuthIdentity], path: str) -> AccessDecision:
        profile = self.profile_repo.get_by_uid(identity.uid) if identity is not None else None
        decision = subscription.evaluate_access(identity, profile, path, self.now())
        if decision is not AccessDecision.ALLOW:
            logger.info(
                "Access gated",
                extra={
                    "context": {
                        "uid": identity.uid if identity else None,
                        "path": path,
                        "decision": decision.value,
                        "status": profile.subscription_status if profile else None,
                    }
                },
            )
        return decision

    def is_entitled(self, profile: DentistProfile) -> bool:
        return subscription.is_currently_entitled(profile, self.now())

    def require_admin(self, identity: Optional[AuthIdentity]) -> AuthIdentity:
        if identity is None or not self.is_admin(identity.email):
            raise PermissionDeniedError(
                "No tienes permisos de administrador",
                hint="Solicita acceso a un administrador del sistema.",
            )
        return identity

    @gateway_operation("No se pudieron cargar los dentistas")
    def list_dentists(self, admin: Optional[AuthIdentity]) -> List[DentistProfile]:
        self.require_admin(admin)
        return self.profile_repo.list_all()

    @gateway_operation("No se pudo activar la suscripción")
    def activate(self, admin: Optional[AuthIdentity], uid: str, plan_type: str) -> DentistProfile:
        self.require_admin(admin)
        profile = self._get_profile(uid)
        updated = subscription.activate(profile, plan_type, self.now(), self.period_days)
        saved = self.profile_repo.update(updated)
        self._log_change("Subscription activated", admin, profile, saved, plan_type=plan_type)
        return saved

    @gateway_operation("No se pudo extender la suscripción")
    def extend(self, admin: Optional[AuthIdentity], uid: str, months: int) -> DentistProfile:
        self.require_admin(admin)
        profile = self._get_profile(uid)
        updated = subscription.extend(profile, months, self.now(), self.period_days)
        saved = self.profile_repo.update(updated)
        self._log_change("Subscription extended", admin, profile, saved, months=months)
        return saved

    @gateway_operation("No se pudo cancelar la suscripción")
    def cancel(self, admin: Optional[AuthIdentity], uid: str) -> DentistProfile:
        self.require_admin(admin)
        profile = self._get_profile(uid)
        saved = self.profile_repo.update(subscription.cancel(profile, self.now()))
        self._log_change("Subscription cancelled", admin, profile, saved)
        return saved

    def _get_profile(self, uid: str) -> DentistProfile:
        profile = self.profile_repo.get_by_uid(uid)
        if profile is None:
            raise NotFoundError("Dentista no encontrado")
        return profile

    @staticmethod
    def _log_change(message, admin, before: DentistProfile, after: DentistProfile, **extra) -> None:
        context = {
            "admin": admin.email,
            "uid": after.uid,
            "from_status": before.subscription_status,
            "to_status": after.subscription_status,
            "subscription_ends_at": (
                after.subscription_ends_at.isoformat() if after.subscription_ends_at else None
            ),
        }
        context.update(extra)
        logger.info(message, extra={"context": context})
