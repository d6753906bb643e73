import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from dentos.core.config import get_trial_days
from dentos.core.exceptions import NotFoundError, gateway_operation
from dentos.domain.entities import AuthIdentity, DentistProfile
from dentos.domain.interfaces import IAuthProvider, IDentistProfileRepository
from dentos.domain.subscription import start_trial
from dentos.services.base_service import BaseService

logger = logging.getLogger(__name__)

EDITABLE_PROFILE_FIELDS = (
    "display_name",
    "license_number",
    "specialization",
    "phone",
    "clinic_name",
    "clinic_address",
)


class AuthService(BaseService):
    """Registration, sign-in and profile use-cases for dentists.

    Registration creates the credentials and the trial profile in one
    database transaction, then signs the new account in.
    """

    def __init__(
        self,
        auth_provider: IAuthProvider,
        profile_repo: IDentistProfileRepository,
        session=None,
        clock=None,
        trial_days: Optional[int] = None,
    ):
        super().__init__(session, clock)
        self.auth_provider = auth_provider
        self.profile_repo = profile_repo
        self.trial_days = trial_days if trial_days is not None else get_trial_days()

    @gateway_operation("No se pudo completar el registro")
    def register(self, data: Dict[str, Any]) -> Tuple[AuthIdentity, DentistProfile]:
        now = self.now()
        with self.transaction():
            identity = self.auth_provider.register(
                data["email"], data["password"], data["display_name"], commit=False
            )
            profile = start_trial(
                DentistProfile(
                    uid=identity.uid,
                    email=identity.email,
                    display_name=data["display_name"],
                    license_number=data["license_number"],
                    specialization=data.get("specialization"),
                    phone=data.get("phone"),
                    clinic_name=data.get("clinic_name"),
                    clinic_address=data.get("clinic_address"),
                ),
                now,
                self.trial_days,
            )
            profile = self.profile_repo.create(profile, commit=False)

        logger.info(
            "Dentist registered",
            extra={
                "context": {
                    "uid": identity.uid,
                    "trial_ends_at": profile.trial_ends_at.isoformat(),
                }
            },
        )
        self.auth_provider.sign_in(data["email"], data["password"])
        return identity, profile

    @gateway_operation("No se pudo iniciar sesión")
    def login(self, email: str, password: str) -> AuthIdentity:
        identity = self.auth_provider.sign_in(email, password)
        logger.info("Dentist signed in", extra={"context": {"uid": identity.uid}})
        return identity

    def logout(self) -> None:
        self.auth_provider.sign_out()

    @gateway_operation("No se pudo enviar el email de recuperación")
    def request_password_reset(self, email: str) -> None:
        self.auth_provider.send_password_reset(email)

    @gateway_operation("No se pudo restablecer la contraseña")
    def confirm_password_reset(self, token: str, new_password: str) -> AuthIdentity:
        return self.auth_provider.confirm_password_reset(token, new_password)

    @gateway_operation("No se pudo cargar la sesión")
    def get_identity(self, uid: str) -> Optional[AuthIdentity]:
        return self.auth_provider.get_identity(uid)

    @gateway_operation("No se pudo cargar el perfil")
    def get_profile(self, uid: str) -> Optional[DentistProfile]:
        return self.profile_repo.get_by_uid(uid)

    @gateway_operation("No se pudo actualizar el perfil")
    def update_profile(self, uid: str, changes: Dict[str, Any]) -> DentistProfile:
        """Update the dentist-editable fields; subscription fields are ignored."""
        profile = self.profile_repo.get_by_uid(uid)
        if profile is None:
            raise NotFoundError("Perfil de dentista no encontrado")
        allowed = {k: v for k, v in changes.items() if k in EDITABLE_PROFILE_FIELDS}
        updated = replace(profile, **allowed, updated_at=self.now())
        return self.profile_repo.update(updated)
