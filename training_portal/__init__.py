"""
Application factory for the family-services training portal.

This module provides a function to create and configure the Flask
application. All extensions (SQLAlchemy, Migrate, JWT) are initialised
here. Individual blueprints for different parts of the API are
registered inside the factory to allow for modular development and
unit testing.

Environment variables (optionally from a ``.env`` file) control the
database connection, the secret key and the reporting settings. In
production set ``DATABASE_URL`` and ``JWT_SECRET_KEY``. A default
configuration is provided for development, using SQLite when no
database URL is available.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager

# instantiate extensions without binding them to an app yet.  They will
# be bound in create_app().
from .db import db  # use shared db object from db.py
migrate = Migrate()
jwt = JWTManager()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def create_app(test_config: dict | None = None) -> Flask:
    """Create and configure a Flask application.

    Parameters
    ----------
    test_config: dict | None, optional
        Optional configuration overrides used when running tests.

    Returns
    -------
    Flask
        A configured Flask application instance.
    """
    load_dotenv()
    app = Flask(__name__)

    # The services package imports the models, which need ``db`` first.
    from .services.supervision_hours import DEFAULT_HOURLY_RATE

    app.config.update(
        SQLALCHEMY_DATABASE_URI=os.environ.get("DATABASE_URL", "sqlite:///training_portal.db"),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        JWT_SECRET_KEY=os.environ.get("JWT_SECRET_KEY", "please-change-this-secret-key"),
        JWT_ACCESS_TOKEN_EXPIRES=timedelta(days=1),
        SUPERVISION_HOURLY_RATE=float(os.environ.get("SUPERVISION_HOURLY_RATE", DEFAULT_HOURLY_RATE)),
        DISPLAY_TIMEZONE=os.environ.get("DISPLAY_TIMEZONE") or None,
        INVOICE_RESPECT_COUNTS_FLAG=_env_flag("INVOICE_RESPECT_COUNTS_FLAG"),
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
    )

    if test_config:
        app.config.update(test_config)

    logging.getLogger(__name__).setLevel(app.config["LOG_LEVEL"])

    # Initialise extensions with the app
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Register custom error handlers
    from .errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints. Importing here avoids circular imports.
    from .routes.auth import auth_bp
    from .routes.interns import interns_bp
    from .routes.supervisors import supervisors_bp
    from .routes.clients import clients_bp
    from .routes.supervision import supervision_bp
    from .routes.reports import reports_bp
    from .routes.pd import pd_bp

    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(interns_bp, url_prefix="/api")
    app.register_blueprint(supervisors_bp, url_prefix="/api")
    app.register_blueprint(clients_bp, url_prefix="/api")
    app.register_blueprint(supervision_bp, url_prefix="/api")
    app.register_blueprint(reports_bp, url_prefix="/api")
    app.register_blueprint(pd_bp, url_prefix="/api")

    @app.route("/api/health")
    def health_check() -> dict[str, str]:
        """Return a simple health check response.

        This endpoint can be used by deployment platforms to verify
        that the application has started correctly.
        """
        return {"status": "ok"}

    return app
