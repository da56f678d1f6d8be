"""Gameia application factory and bootstrap."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from flask import Flask

from gameia.config import config_by_name
from gameia.core.auth.csrf import CSRF_HEADER, csrf_token
from gameia.core.events.event_bus import event_bus
from gameia.extensions import init_extensions


def create_app(config_name: Optional[str] = None) -> Flask:
    """Build the API app for ``config_name`` (defaults to ``APP_ENV``)."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"
    instance_root.mkdir(parents=True, exist_ok=True)

    app = Flask(__name__, instance_path=str(instance_root), instance_relative_config=True)
    app.config.from_object(config_by_name.get(env_name, config_by_name["development"]))
    _configure_database(app, project_root)

    init_extensions(app)
    _register_blueprints(app)
    _register_error_handlers(app)
    # Listeners find the bus here rather than importing the module global.
    app.extensions["event_bus"] = event_bus
    _register_listeners()

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    @app.get("/api/csrf")
    def csrf_token_endpoint():
        """Session-bound token for browser clients, echoed back in the CSRF header."""
        return {"ok": True, "csrf_token": csrf_token(), "header": CSRF_HEADER}, 200

    return app


def _configure_database(app: Flask, project_root: Path) -> None:
    """Anchor relative sqlite paths at the project root and fix driver connect args."""
    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    is_sqlite = uri.startswith("sqlite:")
    if uri.startswith("sqlite:///") and not uri.startswith("sqlite:////"):
        db_file = project_root / uri[len("sqlite:///"):]
        db_file.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{db_file}"

    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(options.pop("connect_args", None) or {})
    if is_sqlite:
        # SQLAlchemy parses sqlite datetimes itself.
        connect_args.update(detect_types=0)
        connect_args.setdefault("timeout", 30)
    else:
        connect_args.pop("detect_types", None)
        timeout = connect_args.pop("timeout", None)
        if timeout is not None and uri.startswith("postgresql"):
            connect_args.setdefault("connect_timeout", timeout)
    if connect_args:
        options["connect_args"] = connect_args
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def _register_listeners() -> None:
    from gameia.domains.skills.listeners import register_listeners

    register_listeners(event_bus)


def _register_blueprints(app: Flask) -> None:
    """One blueprint per domain, mounted under /api/<domain>."""
    from gameia.domains.activity.controllers.activity_api import activity_api_bp
    from gameia.domains.assessments.controllers.assessment_api import assessment_api_bp
    from gameia.domains.pdi.controllers.pdi_api import pdi_api_bp
    from gameia.domains.rewards.controllers.reward_api import reward_api_bp
    from gameia.domains.skills.controllers.skill_api import skill_api_bp

    app.register_blueprint(activity_api_bp, url_prefix="/api/activity")
    app.register_blueprint(skill_api_bp, url_prefix="/api/skills")
    app.register_blueprint(pdi_api_bp, url_prefix="/api/pdi")
    app.register_blueprint(reward_api_bp, url_prefix="/api/rewards")
    app.register_blueprint(assessment_api_bp, url_prefix="/api/assessments")


def _register_error_handlers(app: Flask) -> None:
    """Every error leaves as the {"ok": false, "error": ...} envelope."""
    from werkzeug.exceptions import HTTPException

    from gameia.core.errors import GameiaError
    from gameia.core.utils.responses import error_response

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(GameiaError)
    def _domain_error(exc: GameiaError):
        return error_response(exc)

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # Internal details only leave the process in debug and test runs.
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500
