"""
Local email/password authentication provider.

Credentials live in the ``auth_accounts`` table, hashed with passlib/bcrypt.
Password reset tokens are signed JWTs handed to a ``ResetSender``; the
default sender only logs the token, which is how development environments
deliver it.
"""

import logging
from typing import Callable, List, Optional

from dentos.core.config import get_password_reset_token_minutes
from dentos.core.exceptions import AuthenticationError, ValidationError
from dentos.core.security import (
    create_password_reset_token,
    get_password_reset_subject,
    hash_password,
    verify_password,
)
from dentos.db.base import AuthAccount
from dentos.domain.entities import AuthIdentity
from dentos.domain.interfaces import AuthListener, IAuthProvider
from dentos.repositories.base_repository import SqlAlchemyRepository

logger = logging.getLogger(__name__)

ResetSender = Callable[[str, str], None]

INVALID_CREDENTIALS = "Email o contraseña incorrectos"


def logging_reset_sender(email: str, token: str) -> None:
    """Deliver a reset token by writing it to the application log."""
    logger.info(
        "Password reset token issued",
        extra={"context": {"email": email, "reset_token": token}},
    )


class LocalAuthProvider(SqlAlchemyRepository, IAuthProvider):
    model = AuthAccount

    def __init__(
        self,
        db_session,
        reset_sender: Optional[ResetSender] = None,
        token_minutes: Optional[int] = None,
    ):
        super().__init__(db_session)
        self.reset_sender = reset_sender or logging_reset_sender
        self.token_minutes = token_minutes or get_password_reset_token_minutes()
        self._listeners: List[AuthListener] = []

    def register(self, email: str, password: str, display_name: str, commit: bool = True) -> AuthIdentity:
        normalized = email.strip().lower()
        if self._get_by_email(normalized) is not None:
            raise ValidationError("El email ya está registrado", "email")

        account = AuthAccount(
            email=normalized,
            display_name=display_name,
            password_hash=hash_password(password),
        )
        self.db.add(account)
        self._save(account, commit)
        identity = self._to_identity(account)
        logger.info("Account registered", extra={"context": {"uid": identity.uid}})
        return identity

    def sign_in(self, email: str, password: str) -> AuthIdentity:
        account = self._get_by_email(email.strip().lower())
        if account is None or not verify_password(password, account.password_hash):
            logger.warning(
                "Failed sign-in attempt",
                extra={"context": {"email": email.strip().lower()}},
            )
            raise AuthenticationError(INVALID_CREDENTIALS)
        identity = self._to_identity(account)
        self._notify(identity)
        return identity

    def sign_out(self) -> None:
        self._notify(None)

    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def send_password_reset(self, email: str) -> None:
        account = self._get_by_email(email.strip().lower())
        if account is None:
            # Do not reveal which emails have accounts
            logger.info(
                "Password reset requested for unknown email",
                extra={"context": {"email": email.strip().lower()}},
            )
            return
        token = create_password_reset_token(account.uid, account.email, self.token_minutes)
        self.reset_sender(account.email, token)

    def confirm_password_reset(self, token: str, new_password: str) -> AuthIdentity:
        subject = get_password_reset_subject(token)
        account = self._get_row(subject["uid"]) if subject else None
        if account is None or account.email != subject["email"]:
            raise AuthenticationError("El enlace de recuperación es inválido o ha expirado")
        account.password_hash = hash_password(new_password)
        self._save(account, commit=True)
        logger.info("Password reset completed", extra={"context": {"uid": account.uid}})
        return self._to_identity(account)

    def get_identity(self, uid: str) -> Optional[AuthIdentity]:
        account = self._get_row(uid)
        return self._to_identity(account) if account else None

    def _get_by_email(self, email: str) -> Optional[AuthAccount]:
        return self.db.query(AuthAccount).filter(AuthAccount.email == email).first()

    def _notify(self, identity: Optional[AuthIdentity]) -> None:
        for listener in list(self._listeners):
            listener(identity)

    @staticmethod
    def _to_identity(account: AuthAccount) -> AuthIdentity:
        return AuthIdentity(uid=account.uid, email=account.email, display_name=account.display_name)
