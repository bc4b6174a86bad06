from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager


# =========================================================
# Database + Migrations
# =========================================================
db = SQLAlchemy()
migrate = Migrate()


# =========================================================
# Rate limiting
# (no global limits; apply per-route with @limiter.limit)
# =========================================================
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
)


# =========================================================
# Staff identity (Flask-Login)
# API requests carry X-Employee-Id; see api.load_employee_from_request
# =========================================================
login_manager = LoginManager()
