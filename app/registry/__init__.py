import logging

from flask import Flask, g, request
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.registry.config import load_config
from app.registry.db import init_db, teardown_db_session
from app.registry.errors import RegistryError
from app.registry.routes import bp as routes_bp
from app.registry.auth import load_current_principal
from app.registry.modules.enterprises.routes import bp as enterprises_bp
from app.registry.modules.documents.routes import bp as documents_bp
from app.registry.modules.access.routes import bp as access_bp
from app.registry.service import DocumentService


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)
    app.extensions["document_service"] = DocumentService(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(enterprises_bp, url_prefix="/enterprises")
    app.register_blueprint(documents_bp, url_prefix="/enterprises")
    app.register_blueprint(access_bp, url_prefix="/enterprises")

    app.before_request(load_current_principal)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(RegistryError)
    def _err_registry(e: RegistryError):  # type: ignore[no-redef]
        app.logger.info(
            "%s %s -> %s: %s (request_id=%s)",
            request.method,
            request.path,
            e.kind,
            e,
            getattr(g, "request_id", None),
        )
        return {"error": e.kind, "message": str(e)}, e.status_code

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        if e.code == 401:
            return {"error": "unauthenticated", "message": "Caller principal missing."}, 401
        return {"error": (e.name or "error").lower().replace(" ", "_"), "message": e.description}, e.code

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.error(
            "Unhandled 500 (request_id=%s)",
            getattr(g, "request_id", None),
            exc_info=getattr(e, "original_exception", None) or e,
        )
        return {"error": "internal_error", "message": "Internal server error."}, 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
