"""
Health controller - health check endpoint for monitoring.
"""

import logging

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from dentos.core.auth_decorators import get_db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/health")


@health_bp.route("", methods=["GET"])
def health_check():
    """
    Report whether the service can reach its database.

    Returns:
        200 {"status": "healthy", "database": "ok"}
        503 {"status": "unhealthy", "database": "error"}

    Note:
        - No authentication required (monitoring endpoint)
        - Not subject to the subscription gate
    """
    try:
        get_db().execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(
            "Health check: database unreachable",
            extra={"context": {"endpoint": "/health", "error": str(e)}},
            exc_info=True,
        )
        return jsonify({"status": "unhealthy", "database": "error"}), 503
    return jsonify({"status": "healthy", "database": "ok"}), 200
