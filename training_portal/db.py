"""Database setup utilities.

This module owns the single ``SQLAlchemy`` extension object used by
every model in the portal. It is created unbound; the application
factory binds it to an app with ``db.init_app``. Sessions are scoped
to the Flask app context and are removed when the context tears down,
so nothing here holds a connection between requests.

Import ``db`` from ``training_portal`` rather than from this module
directly.
"""
from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
