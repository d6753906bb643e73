"""
Centralized configuration module for application-wide settings.

Values are read from the environment once at import time and cached as
module-level constants. Each section exposes a ``get_*`` function (re-reads the
environment, useful in tests) and a ``log_*_config`` function called during
application startup.
"""

import logging
import os
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            "Invalid integer in environment, using default",
            extra={"context": {"variable": name, "value": raw, "default": default}},
        )
        return default


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from the ``TZ`` environment variable.

    Month and day boundaries (monthly balances, appointments of a day) are
    computed in this timezone. Defaults to UTC; an invalid name falls back to
    UTC with a warning.
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


APP_TZ = get_app_timezone()


def log_timezone_config():
    """Log the active timezone configuration."""
    logger.info(
        "Timezone configuration initialized",
        extra={
            "context": {
                "timezone": str(APP_TZ),
                "tz_env_var": os.getenv("TZ", "UTC"),
            }
        },
    )


# ===========================
# Subscription Configuration
# ===========================


def get_trial_days() -> int:
    """Length of the trial window granted at registration (TRIAL_DAYS, default 7)."""
    return _env_int("TRIAL_DAYS", 7)


def get_subscription_period_days() -> int:
    """Days counted as one billing month (SUBSCRIPTION_PERIOD_DAYS, default 30)."""
    return _env_int("SUBSCRIPTION_PERIOD_DAYS", 30)


TRIAL_DAYS = get_trial_days()
SUBSCRIPTION_PERIOD_DAYS = get_subscription_period_days()


def log_subscription_config():
    """Log the active subscription windows."""
    logger.info(
        "Subscription configuration initialized",
        extra={
            "context": {
                "trial_days": TRIAL_DAYS,
                "subscription_period_days": SUBSCRIPTION_PERIOD_DAYS,
            }
        },
    )


# ===========================
# Administration Configuration
# ===========================


def get_admin_emails() -> set[str]:
    """
    Get the set of administrator email addresses.

    Environment Variables:
        ADMIN_EMAILS: Comma-separated list of emails allowed to activate,
            extend and cancel subscriptions. Compared case-insensitively.

    Examples:
        >>> # ADMIN_EMAILS=admin@dentos.app,ops@dentos.app
        >>> get_admin_emails()
        {'admin@dentos.app', 'ops@dentos.app'}
    """
    emails_str = os.getenv("ADMIN_EMAILS", "")

    if not emails_str.strip():
        logger.warning(
            "ADMIN_EMAILS is not configured - subscription administration is disabled",
            extra={"context": {"environment": os.getenv("FLASK_ENV", "unknown")}},
        )
        return set()

    return {email.strip().lower() for email in emails_str.split(",") if email.strip()}


def is_admin_email(email: str) -> bool:
    """Check whether an email belongs to an administrator (case-insensitive)."""
    if not email:
        return False

    admins = get_admin_emails()
    if not admins:
        return False

    return email.strip().lower() in admins


def log_admin_config():
    """Log the administration settings without exposing the addresses."""
    logger.info(
        "Administration configuration initialized",
        extra={
            "context": {
                "admin_count": len(get_admin_emails()),
                "env_var_set": bool(os.getenv("ADMIN_EMAILS")),
            }
        },
    )


# ===========================
# Authentication Configuration
# ===========================


def get_password_reset_token_minutes() -> int:
    """Lifetime of password reset tokens in minutes (default 60)."""
    return _env_int("PASSWORD_RESET_TOKEN_MINUTES", 60)


PASSWORD_RESET_TOKEN_MINUTES = get_password_reset_token_minutes()


# ===========================
# Backup Configuration
# ===========================


def get_backup_product_name() -> str:
    """Product slug used in backup file names (BACKUP_PRODUCT_NAME, default 'dentos')."""
    return os.getenv("BACKUP_PRODUCT_NAME", "dentos").strip() or "dentos"


BACKUP_PRODUCT_NAME = get_backup_product_name()
BACKUP_FORMAT_VERSION = "1.0"


# ===========================
# Feature Flags Configuration
# ===========================


def is_rate_limit_enabled() -> bool:
    """Rate limiting is on unless RATE_LIMIT_ENABLED=0 is set."""
    return os.getenv("RATE_LIMIT_ENABLED", "1").strip() != "0"


def is_log_to_file_enabled() -> bool:
    """Write rotating log files unless LOG_TO_FILE=0 is set."""
    return _env_flag("LOG_TO_FILE", "1")
