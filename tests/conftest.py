"""
Shared pytest fixtures for the SLF/PBG workflow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_client / make_profile: ORM factories
    - admin, lead, inspector: common staff profiles
    - as_actor: X-Profile-Id header builder
"""

import pytest

from app import create_app
from app.models import db as _db
from app.models.profile import Client, Profile


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_client():
    def _make(name="PT Maju Jaya", created_by=None, **kwargs):
        c = Client(name=name, created_by=created_by, **kwargs)
        _db.session.add(c)
        _db.session.commit()
        return c
    return _make


@pytest.fixture()
def make_profile():
    counter = {"n": 0}

    def _make(role="client", client_id=None, full_name=None, **kwargs):
        counter["n"] += 1
        p = Profile(
            full_name=full_name or f"{role.title()} {counter['n']}",
            email=f"{role}{counter['n']}@example.test",
            role=role,
            client_id=client_id,
            **kwargs,
        )
        _db.session.add(p)
        _db.session.commit()
        return p
    return _make


@pytest.fixture()
def admin(make_profile):
    return make_profile("admin_lead", full_name="Admin Lead")


@pytest.fixture()
def lead(make_profile):
    return make_profile("project_lead", full_name="Project Lead")


@pytest.fixture()
def inspector(make_profile):
    return make_profile("inspector", full_name="Inspector", specialization="struktur")


@pytest.fixture()
def as_actor():
    """Return request headers acting as the given profile."""
    def _headers(profile):
        return {"X-Profile-Id": str(profile.id)}
    return _headers


@pytest.fixture()
def wizard_form(make_client, lead, inspector):
    """A complete, valid SLF_BARU wizard form."""
    c = make_client()
    return {
        "name": "Gedung Serbaguna",
        "application_type": "SLF_BARU",
        "location": "Jl. Merdeka No. 10",
        "city": "Bandung",
        "client_id": c.id,
        "priority": "high",
        "project_lead_id": lead.id,
        "inspector_ids": [inspector.id],
    }
