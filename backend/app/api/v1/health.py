"""Health check endpoint."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import success_response, timing
from app.core.extensions import db

bp = Blueprint("health", __name__)

log = logging.getLogger(__name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return liveness plus database reachability."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        log.exception("healthcheck.db_error")
        db_status = "fail"
    payload = {
        "status": "ok",
        "db": db_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
        "commit": current_app.config.get("APP_COMMIT", "unknown"),
    }
    return success_response(payload)
