import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

# Password hashing configuration
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

WEAK_SECRETS = ["dev-jwt-secret-change-me", "dev-secret-change-me", "secret123"]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash.

    Returns False when no hash is stored for the account.
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def _require_strong_secret(name: str, secret: str) -> str:
    if os.getenv("FLASK_ENV") == "production":
        if secret in WEAK_SECRETS or len(secret) < 32:
            raise ValueError(
                f"Production deployment requires strong {name} (min 32 chars). "
                f"Set {name} environment variable."
            )
    return secret


def get_jwt_secret_key() -> str:
    """Get JWT secret key with production validation.

    Raises:
        ValueError: If a production deployment uses a weak or missing secret
    """
    return _require_strong_secret(
        "JWT_SECRET_KEY", os.getenv("JWT_SECRET_KEY", "dev-jwt-secret-change-me")
    )


def get_flask_secret_key() -> str:
    """Get the Flask session secret with the same production validation."""
    return _require_strong_secret(
        "FLASK_SECRET_KEY", os.getenv("FLASK_SECRET_KEY", "dev-secret-change-me")
    )


JWT_ALGORITHM = "HS256"
PASSWORD_RESET_TOKEN_TYPE = "password_reset"


def create_access_token(
    data: Dict[str, Any], expires_delta: timedelta, now: Optional[datetime] = None
) -> str:
    """Create a signed JWT carrying ``data`` that expires after ``expires_delta``."""
    to_encode = data.copy()
    issued = now or datetime.now(timezone.utc)
    to_encode.update({"iat": issued, "exp": issued + expires_delta})
    return jwt.encode(to_encode, get_jwt_secret_key(), algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and validate a JWT.

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jwt.decode(token, get_jwt_secret_key(), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None


def create_password_reset_token(uid: str, email: str, minutes: int) -> str:
    """Create a short-lived token that allows ``uid`` to set a new password."""
    return create_access_token(
        {"sub": uid, "email": email, "type": PASSWORD_RESET_TOKEN_TYPE},
        timedelta(minutes=minutes),
    )


def get_password_reset_subject(token: str) -> Optional[Dict[str, str]]:
    """Extract ``{"uid", "email"}`` from a valid password reset token."""
    payload = decode_access_token(token)
    if payload is None or payload.get("type") != PASSWORD_RESET_TOKEN_TYPE:
        return None

    uid = payload.get("sub")
    email = payload.get("email")
    if not uid or not email:
        return None

    return {"uid": uid, "email": email}
