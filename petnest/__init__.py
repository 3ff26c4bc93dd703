from __future__ import annotations

import logging
import os
import sqlite3

from flask import Flask, jsonify
from sqlalchemy import event
from sqlalchemy.engine import Engine

from .errors import register_error_handlers
from .extensions import db, jwt, login_manager, media, migrate


@event.listens_for(Engine, "connect")
def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    if isinstance(dbapi_connection, sqlite3.Connection):
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.execute("PRAGMA journal_mode=WAL")
        cur.execute("PRAGMA synchronous=NORMAL")
        cur.execute("PRAGMA busy_timeout=30000")
        cur.close()


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("petnest").setLevel(level)


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object("config.Config")
    if overrides:
        app.config.update(overrides)

    _configure_logging(app)
    os.makedirs(app.instance_path, exist_ok=True)

    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if uri.startswith("sqlite:"):
        opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS", {}))
        ca = dict(opts.get("connect_args", {}))
        ca.setdefault("check_same_thread", False)
        ca.setdefault("timeout", 30)
        opts["connect_args"] = ca
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = opts

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    jwt.init_app(app)
    media.init_app(app)

    # registers the bearer-token loader on login_manager
    from .auth import guards  # noqa: F401
    from .models import job, notification, post, social, store, user, vet  # noqa: F401

    from .auth.routes import auth_bp
    app.register_blueprint(auth_bp, url_prefix="/api")

    from .donations.routes import donations_bp
    app.register_blueprint(donations_bp, url_prefix="/api/users")

    from .missing.routes import missing_bp
    app.register_blueprint(missing_bp, url_prefix="/api/users")

    from .jobs.routes import jobs_bp
    app.register_blueprint(jobs_bp, url_prefix="/api")

    from .caregivers.routes import caregivers_bp
    app.register_blueprint(caregivers_bp, url_prefix="/api")

    from .notifications.routes import notifications_bp
    app.register_blueprint(notifications_bp, url_prefix="/api")

    from .store.routes import store_bp
    app.register_blueprint(store_bp, url_prefix="/api")

    from .vets.routes import vets_bp
    app.register_blueprint(vets_bp, url_prefix="/api")

    from .admin.routes import admin_bp
    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    register_error_handlers(app)

    from .cli import (
        create_admin_cmd,
        init_db_cmd,
        purge_data_cmd,
        reset_db_cmd,
        seed_demo_cmd,
    )

    app.cli.add_command(init_db_cmd)
    app.cli.add_command(reset_db_cmd)
    app.cli.add_command(purge_data_cmd)
    app.cli.add_command(seed_demo_cmd)
    app.cli.add_command(create_admin_cmd)

    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok"})

    @app.teardown_request
    def _teardown_request(_exc):
        try:
            if _exc is not None:
                db.session.rollback()
        finally:
            db.session.remove()

    return app
