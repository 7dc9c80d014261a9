import logging
import os
import uuid

from flask import Flask, g, jsonify, request
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect
from werkzeug.exceptions import HTTPException

from app.tmgr.config import load_config
from app.tmgr.db import init_db, teardown_db_session
from app.tmgr.routes import bp as routes_bp
from app.tmgr.storage import S3Storage, storage_from_config
from app.tmgr.modules.customer_data.admin import bp as customer_data_bp
from app.tmgr.modules.customer_data.snapshot import SnapshotStore
from app.tmgr.modules.customer_data.store import CustomerStore
from app.tmgr.modules.search.admin import bp as search_bp
from app.tmgr.modules.territory.admin import bp as territory_bp
from app.tmgr.modules.territory.analytics import TerritoryAnalytics


def create_app(store: CustomerStore | None = None) -> Flask:
    """
    App factory. The customer store is built from config unless one is passed in;
    either way it is reachable as app.extensions["customer_store"].
    """
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    storage = storage_from_config(app.config)
    if isinstance(storage, S3Storage):
        missing_s3 = [k for k in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY") if not app.config.get(k)]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    if store is None:
        store = CustomerStore(SnapshotStore(storage, prefix=app.config.get("SNAPSHOT_PREFIX") or "snapshots"))
    app.extensions["customer_store"] = store
    app.extensions["territory_analytics"] = TerritoryAnalytics(store)

    if app.config.get("LOAD_SNAPSHOT_ON_START"):
        if store.load_from_storage():
            app.logger.info("Restored %s customers from snapshot", len(store.customers))
        else:
            app.logger.info("No usable dataset snapshot; starting empty")

    app.register_blueprint(routes_bp)
    app.register_blueprint(customer_data_bp, url_prefix="/api")
    app.register_blueprint(territory_bp, url_prefix="/api")
    app.register_blueprint(search_bp, url_prefix="/api")

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    app.teardown_appcontext(teardown_db_session)

    # Schema health: the audit trail needs its table; say so loudly if missing.
    try:
        insp = sa_inspect(app.extensions["sqlalchemy_engine"])
        if not insp.has_table("audit_events"):
            app.logger.error("DB schema out of date; run `alembic upgrade head` (missing audit_events table).")
    except Exception as e:
        app.logger.exception("Schema health check failed: %s", e)

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):
        return jsonify({"error": e.description, "request_id": getattr(g, "request_id", None)}), e.code

    @app.errorhandler(413)
    def _err_413(e):
        return jsonify({"error": "File too large. Maximum size is 25MB.", "request_id": getattr(g, "request_id", None)}), 413

    @app.errorhandler(Exception)
    def _err_500(e: Exception):
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        return jsonify({"error": "Internal server error", "request_id": rid}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
