"""
Shared pytest fixtures for the EOMS Compliance Portal test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - org: two campuses and three units, one of them shared by both campuses
    - make_submission: transient Submission factory for engine tests
    - identity_headers: gateway identity headers for API tests
"""

import itertools
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from eoms_portal import create_app
from eoms_portal.models import db as _db
from eoms_portal.models.organization import Campus, Unit
from eoms_portal.models.submission import STATUS_SUBMITTED, Submission

YEAR = 2025
_BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


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


# ── Organisation fixtures ────────────────────────────────────────────────


@pytest.fixture()
def org():
    """Main and North campuses; Engineering (main), Registrar (main + north), Library (north).

    Engineering and Registrar are supervised by vice president ``vp-1``.
    """
    main = Campus(id="main", name="Main Campus")
    north = Campus(id="north", name="North Campus")
    engineering = Unit(id="eng", name="College of Engineering", vice_president_id="vp-1", campuses=[main])
    registrar = Unit(id="reg", name="Registrar", vice_president_id="vp-1", campuses=[main, north])
    library = Unit(id="lib", name="Library", campuses=[north])
    _db.session.add_all([main, north, engineering, registrar, library])
    _db.session.commit()
    return {
        "main": main, "north": north,
        "eng": engineering, "reg": registrar, "lib": library,
    }


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_submission():
    """Build a transient Submission with strictly increasing ``created_at``.

    Later calls are "more recent" unless ``created_at`` is given explicitly.
    """
    tick = itertools.count()

    def _make(report_type, status=STATUS_SUBMITTED, *, unit_id="eng", campus_id="main",
              year=YEAR, cycle_id="first", risk_rating=None, created_at=None, **kw):
        return Submission(
            id=kw.pop("id", str(uuid.uuid4())),
            unit_id=unit_id,
            campus_id=campus_id,
            year=year,
            cycle_id=cycle_id,
            report_type=report_type,
            status=status,
            link=kw.pop("link", "https://drive.example.edu/doc"),
            risk_rating=risk_rating,
            comments=[],
            created_at=created_at or _BASE_TIME + timedelta(minutes=next(tick)),
            **kw,
        )

    return _make


@pytest.fixture()
def identity_headers():
    def _headers(user_id="u-1", role="unit_coordinator", *, unit_id="eng", campus_id="main", name="Test User"):
        headers = {"X-User-Id": user_id, "X-User-Role": role, "X-User-Name": name}
        if unit_id:
            headers["X-Unit-Id"] = unit_id
        if campus_id:
            headers["X-Campus-Id"] = campus_id
        return headers

    return _headers
