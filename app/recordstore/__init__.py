import logging

from flask import Flask, g, request
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.recordstore.config import check_production_config, load_config
from app.recordstore.db import init_db
from app.recordstore.errors import RecordStoreError
from app.recordstore.events import EventBus, LoggingSink
from app.recordstore.routes import bp as routes_bp
from app.recordstore.api import bp as api_bp
from app.recordstore.auth import load_current_principal
from app.recordstore.store import RecordStore


def create_app(config_overrides: dict | None = None) -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    if config_overrides:
        app.config.update(config_overrides)

    logging.getLogger("app.recordstore").setLevel(app.config.get("LOG_LEVEL") or "INFO")
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    # Production guardrails (fail fast with clear logs)
    check_production_config(app.config)

    admin = (app.config.get("ADMIN_PRINCIPAL") or "").strip()
    if not admin:
        raise RuntimeError("ADMIN_PRINCIPAL is required (the single principal allowed to write).")

    init_db(app)

    bus = EventBus([LoggingSink(app.logger)])
    app.extensions["record_store"] = RecordStore(
        app.extensions["sqlalchemy_sessionmaker"],
        administrator=admin,
        bus=bus,
    )

    app.register_blueprint(routes_bp)
    app.register_blueprint(api_bp, url_prefix="/api")

    app.before_request(load_current_principal)

    @app.errorhandler(RecordStoreError)
    def _err_store(e: RecordStoreError):
        app.logger.info(
            "Record store rejected %s %s: %s (request_id=%s)",
            request.method,
            request.path,
            e.code,
            getattr(g, "request_id", None),
        )
        return e.to_dict(), e.http_status

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):
        return {"ok": False, "error": (e.name or "error").lower().replace(" ", "_"), "message": e.description}, e.code

    @app.errorhandler(Exception)
    def _err_500(e: Exception):
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return {"ok": False, "error": "internal_server_error", "message": "Internal server error."}, 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
