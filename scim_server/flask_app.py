"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with its blueprints, store and configuration.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from flask import Flask

from scim_server.config import AppConfig, load_settings
from scim_server.storage import (
    SqlAlchemyUserRepository,
    UserRepository,
    create_db_engine,
    create_session_factory,
    init_db,
)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, repository: Optional[UserRepository] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings; loaded from the environment when omitted
        repository: User store; a SQLAlchemy repository on ``cfg.database_url`` when omitted
    """
    cfg = cfg or load_settings()
    configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config.setdefault(
        "OPENAPI_SPEC_PATH",
        str(Path(app.root_path).parent / "openapi" / "scim_openapi.yaml"),
    )

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg

    # Hard cap; the SCIM blueprint rejects bodies above 64 KB itself
    app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024

    if repository is None:
        engine = create_db_engine(cfg.database_url, echo=cfg.database_echo)
        init_db(engine)
        repository = SqlAlchemyUserRepository(create_session_factory(engine))
        app.config["DB_ENGINE"] = engine
    app.config["USER_REPOSITORY"] = repository

    # Register blueprints
    from scim_server.api import docs as docs_routes
    from scim_server.api import errors, health, scim

    app.register_blueprint(health.bp)
    app.register_blueprint(scim.bp)
    app.register_blueprint(docs_routes.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    logger.info("Mode=%s", mode_label)
    logger.info("SCIM 2.0 API registered at %s", scim.bp.url_prefix)

    if cfg.demo_mode:
        logger.warning("Demo mode active - do not deploy with demo settings")

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
