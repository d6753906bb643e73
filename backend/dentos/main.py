import logging
import os

from dotenv import load_dotenv
from flask import Flask, redirect, request
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

# Load environment variables conditionally
# Only load from .env when DATABASE_URL is not already defined by the environment
if not os.getenv("DATABASE_URL"):
    load_dotenv()

from dentos.core.api_utils import api_response  # noqa: E402
from dentos.core.auth_decorators import close_db, get_clock, get_current_identity, get_db  # noqa: E402
from dentos.core.exceptions import DentosError  # noqa: E402

logger = logging.getLogger(__name__)

# Blueprints whose routes are never gated by the subscription check
UNGATED_BLUEPRINTS = frozenset({"auth", "admin", "health", "subscription"})


def _is_gated_request() -> bool:
    if request.endpoint is None or request.endpoint == "static":
        return False
    if request.path == "/metrics":
        return False
    return request.blueprint not in UNGATED_BLUEPRINTS


def create_app(config: dict = None):  # noqa: C901
    """Application factory.

    ``config`` is applied on top of the environment-derived settings; tests
    use it to inject ``CLOCK`` and ``PASSWORD_RESET_SENDER``.
    """
    env = os.getenv("FLASK_ENV", "development")
    is_production = env == "production"

    app = Flask(__name__)

    testing_env = os.getenv("TESTING", "").lower().strip()
    if testing_env in ("true", "1", "yes"):
        app.config["TESTING"] = True

    # Configure structured logging (after app creation so we can register hooks)
    from dentos.core.config import is_log_to_file_enabled
    from dentos.core.logging_config import setup_logging

    setup_logging(
        app=app,
        log_level=logging.INFO if is_production else logging.DEBUG,
        enable_sql_echo=os.getenv("SQL_ECHO", "0") == "1",
        log_to_file=is_log_to_file_enabled(),
        use_json_format=is_production,
    )

    from dentos.core.config import (
        APP_TZ,
        log_admin_config,
        log_subscription_config,
        log_timezone_config,
    )

    log_timezone_config()
    log_subscription_config()
    log_admin_config()

    # Sentry: error tracking when SENTRY_DSN is configured
    sentry_dsn = os.getenv("SENTRY_DSN")
    if sentry_dsn:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=env,
            release=os.getenv("GIT_SHA", "unknown"),
            integrations=[FlaskIntegration(), SqlalchemyIntegration()],
            traces_sample_rate=0.1,
            send_default_pii=False,
        )
        logger.info("Sentry initialized", extra={"context": {"environment": env}})
    else:
        logger.info(
            "Sentry not initialized (SENTRY_DSN not set)",
            extra={"context": {"environment": env}},
        )

    # Prometheus metrics on /metrics, registered before the limiter so the
    # scraper is never rate-limited. Each app gets its own registry.
    from prometheus_client import CollectorRegistry
    from prometheus_flask_exporter import PrometheusMetrics

    metrics = PrometheusMetrics(app, registry=CollectorRegistry())
    metrics.info(
        "app_info",
        "Application information",
        version=os.getenv("GIT_SHA", "unknown"),
        environment=env,
    )

    from dentos.core.security import get_flask_secret_key

    app.config["SECRET_KEY"] = get_flask_secret_key()
    app.config["APP_TZ"] = APP_TZ

    # Rate limiting
    from dentos.core.config import is_rate_limit_enabled
    from dentos.core.limiter_config import limiter

    app.config["RATELIMIT_ENABLED"] = is_rate_limit_enabled()
    app.config["RATELIMIT_STORAGE_URI"] = os.getenv("LIMITER_STORAGE_URI", "memory://")
    limiter.init_app(app)
    if not app.config["RATELIMIT_ENABLED"]:
        logger.info("Rate limiting disabled", extra={"context": {"env": env}})

    # Cookie and Session Hardening
    app.config.setdefault("SESSION_COOKIE_SECURE", is_production)
    app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")
    app.config.setdefault("REMEMBER_COOKIE_SECURE", is_production)
    app.config.setdefault("REMEMBER_COOKIE_HTTPONLY", True)

    if config:
        app.config.update(config)

    # Ensure database tables exist (idempotent on SQLite and PostgreSQL)
    from dentos.db.session import create_tables, get_engine

    create_tables()
    eng = get_engine()
    logger.info(
        "Database ready",
        extra={"context": {"driver": getattr(getattr(eng, "dialect", None), "name", "unknown")}},
    )

    app.teardown_appcontext(close_db)

    # Initialize Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(uid):
        from dentos.repositories.auth_provider import LocalAuthProvider

        return LocalAuthProvider(get_db()).get_identity(uid)

    @login_manager.unauthorized_handler
    def unauthorized():
        return api_response(False, "Debes iniciar sesión", None, 401)

    @app.before_request
    def subscription_gate():
        """Gate tenant routes on authentication and subscription state."""
        if not _is_gated_request():
            return None

        from dentos.domain.subscription import (
            EXPIRED_NOTICE_PATH,
            LOGIN_PATH,
            AccessDecision,
        )
        from dentos.repositories.dentist_profile_repository import DentistProfileRepository
        from dentos.services.subscription_service import SubscriptionService

        db = get_db()
        service = SubscriptionService(DentistProfileRepository(db), session=db, clock=get_clock())
        decision = service.check_access(get_current_identity(), request.path)

        if decision is AccessDecision.REDIRECT_LOGIN:
            return redirect(LOGIN_PATH)
        if decision is AccessDecision.REDIRECT_EXPIRED:
            return redirect(EXPIRED_NOTICE_PATH)
        if decision is AccessDecision.BLOCK:
            return "", 204
        return None

    @app.errorhandler(DentosError)
    def handle_app_error(e: DentosError):
        data = {}
        if getattr(e, "field", None):
            data["field"] = e.field
        if getattr(e, "hint", None):
            data["hint"] = e.hint
        if e.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"context": {"path": request.path, "error": e.message}},
            )
        return api_response(False, e.message, data or None, e.status_code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.error(
            "Unhandled exception",
            extra={"context": {"path": request.path, "error": str(e)}},
            exc_info=True,
        )
        return api_response(False, "Error interno del servidor", None, 500)

    from dentos.controllers.admin_controller import admin_bp
    from dentos.controllers.appointment_controller import appointments_bp
    from dentos.controllers.auth_controller import auth_bp
    from dentos.controllers.backup_controller import backup_bp
    from dentos.controllers.finance_controller import finances_bp
    from dentos.controllers.health_controller import health_bp
    from dentos.controllers.medical_history_controller import medical_history_bp
    from dentos.controllers.patient_controller import patients_bp
    from dentos.controllers.stock_controller import stock_bp
    from dentos.controllers.subscription_controller import subscription_bp
    from dentos.controllers.visit_controller import visits_bp

    for blueprint in (
        auth_bp,
        admin_bp,
        patients_bp,
        medical_history_bp,
        appointments_bp,
        finances_bp,
        stock_bp,
        visits_bp,
        backup_bp,
        subscription_bp,
        health_bp,
    ):
        app.register_blueprint(blueprint)

    logger.info(
        "Application created",
        extra={"context": {"environment": env, "blueprints": len(app.blueprints)}},
    )
    return app
