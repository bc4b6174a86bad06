from datetime import datetime, timedelta

import pytest
import sqlalchemy as sa
from flask import g

from nexus_isp import create_app
from nexus_isp.backend import get_backend
from nexus_isp.extensions import db
from nexus_isp.models import Employee


def _config(tmp_path, **overrides):
    config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "RATELIMIT_ENABLED": False,
        "STRICT_TRANSITIONS": False,
        "DEFAULT_CURRENCY": "USD",
        "COMPANY_NAME": "Nexus ISP",
    }
    config.update(overrides)
    return config


@pytest.fixture
def make_app(tmp_path):
    """Factory for apps with extra config (e.g. strict transitions)."""
    contexts = []

    def _make(**overrides):
        app = create_app(_config(tmp_path, **overrides))

        # test-client requests reuse the pushed app context (and its g);
        # drop the cached employee so each request resolves its own header
        @app.teardown_request
        def _forget_employee(exc):
            g.pop("_login_user", None)

        ctx = app.app_context()
        ctx.push()
        contexts.append(ctx)
        db.create_all()
        return app

    yield _make

    for ctx in reversed(contexts):
        db.session.remove()
        ctx.pop()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def backend(app):
    return get_backend()


@pytest.fixture
def drop_table(app):
    def _drop(name):
        db.session.execute(sa.text(f"DROP TABLE {name}"))
        db.session.commit()

    return _drop


def _employee(name, email, role):
    emp = Employee(name=name, email=email, role=role, status="active")
    db.session.add(emp)
    db.session.commit()
    return emp.id


@pytest.fixture
def admin_id(app):
    return _employee("Ada Admin", "ada@nexus.test", "admin")


@pytest.fixture
def support_id(app):
    return _employee("Sam Support", "sam@nexus.test", "support")


@pytest.fixture
def plan(backend):
    return backend.insert("plans", {"name": "Fiber 100", "price": 49.5, "download_speed": "100 Mbps"}, single=True)


@pytest.fixture
def customer(backend, plan):
    return backend.insert(
        "customers",
        {"name": "Alice Smith", "email": "alice@example.com", "account_status": "active", "plan_id": plan["id"]},
        single=True,
    )


@pytest.fixture
def due_date():
    return datetime(2026, 11, 1) + timedelta(days=14)
