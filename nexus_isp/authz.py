from __future__ import annotations

from functools import wraps

from flask import abort
from flask_login import current_user, login_required


def roles_required(*roles: str):
    def decorator(fn):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not current_user.is_active:
                abort(403)
            if current_user.has_role(*roles):
                return fn(*args, **kwargs)
            abort(403)
        return wrapper
    return decorator


def current_actor() -> str | None:
    """Display name used on audit entries; None when nobody is signed in."""
    if current_user and current_user.is_authenticated:
        return current_user.name
    return None
