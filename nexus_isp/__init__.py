# nexus_isp/__init__.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask

from .logging import setup_logging

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _load_dev_env(root: Path = PROJECT_ROOT) -> bool:
    """
    .env is a local-dev convenience. Real environment variables always win,
    and a set DATABASE_URL (CI, migrations, hosting) skips the file entirely.
    """
    env_path = root / ".env"
    if os.getenv("DATABASE_URL") or not env_path.is_file():
        return False
    return load_dotenv(dotenv_path=env_path, override=False)


def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    # ---------------------------------------------------------
    # 1) Env first, then Config (it reads os.environ at import)
    # ---------------------------------------------------------
    _load_dev_env()

    from .config import Config, _env_bool

    # ---------------------------------------------------------
    # 2) App + config (test overrides last)
    # ---------------------------------------------------------
    app = Flask(__name__)
    app.config.from_object(Config)
    app.config["DEBUG"] = _env_bool("FLASK_DEBUG", app.config.get("DEBUG", False))
    if config_overrides:
        app.config.update(config_overrides)

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise RuntimeError("DATABASE_URL is not set")

    # ---------------------------------------------------------
    # 3) Logging
    # ---------------------------------------------------------
    setup_logging(debug=bool(app.config.get("DEBUG", False)))

    # ---------------------------------------------------------
    # 4) Extensions
    # ---------------------------------------------------------
    from .extensions import db, limiter, login_manager, migrate

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    login_manager.init_app(app)

    # ---------------------------------------------------------
    # 5) Backend gateway + change feed (one per app)
    # ---------------------------------------------------------
    from .backend import SqlBackend

    app.extensions["nexus_backend"] = SqlBackend(db)

    # ---------------------------------------------------------
    # 6) Blueprints
    # ---------------------------------------------------------
    from .api import api as api_bp

    app.register_blueprint(api_bp)  # /api/*

    # ---------------------------------------------------------
    # 7) CLI commands (billing/invoices/audit/categories)
    # ---------------------------------------------------------
    from . import cli as cli_module

    cli_module.init_app(app)

    # ---------------------------------------------------------
    # 8) Health check
    # ---------------------------------------------------------
    @app.get("/_ping")
    def ping():
        return {"service": "nexus-isp", "status": "running"}

    app.logger.info(
        "App ready (strict_transitions=%s, currency=%s).",
        bool(app.config.get("STRICT_TRANSITIONS", False)),
        app.config.get("DEFAULT_CURRENCY"),
    )
    return app
