import os
import itertools
from datetime import datetime, timedelta

# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import pytest
from studentlink import create_app
from studentlink.extensions import broadcaster, db
from studentlink.models import Concern, Department, User
from studentlink.models.user import ROLE_STUDENT
from studentlink.services import tokens

_seq = itertools.count(1)

@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
        MAIL_SUPPRESS_SEND=True,
        APP_BASE_URL="http://example.test",
        N8N_WEBHOOK_SECRET=None,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
        broadcaster.backend.clear()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


# ---- factories: each commits and returns the new row id ----

@pytest.fixture()
def make_department(app):
    def _make(name=None, code=None, **kw):
        n = next(_seq)
        with app.app_context():
            dept = Department(name=name or f"Department {n}", code=code or f"D{n}", **kw)
            db.session.add(dept)
            db.session.commit()
            return dept.id
    return _make

@pytest.fixture()
def make_user(app):
    def _make(role=ROLE_STUDENT, department_id=None, password="password", **kw):
        n = next(_seq)
        kw.setdefault("name", f"{role.title()} {n}")
        kw.setdefault("email", f"{role}{n}@example.test")
        kw.setdefault("is_active", True)
        with app.app_context():
            user = User(role=role, department_id=department_id, **kw)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make

@pytest.fixture()
def make_concern(app):
    def _make(department_id, student_id=None, assigned_to=None, age_hours=0, **kw):
        created = datetime.utcnow() - timedelta(hours=age_hours)
        kw.setdefault("subject", "Need help")
        kw.setdefault("description", "Details of the concern")
        with app.app_context():
            kw.setdefault("reference_number", Concern.next_reference_number())
            concern = Concern(
                department_id=department_id,
                student_id=student_id,
                created_at=created,
                **kw,
            )
            if assigned_to is not None:
                concern.assigned_to = assigned_to
                concern.assigned_at = kw.get("assigned_at") or created
            db.session.add(concern)
            db.session.commit()
            return concern.id
    return _make

@pytest.fixture()
def auth_headers(app):
    def _headers(user_id):
        with app.app_context():
            user = db.session.get(User, user_id)
            return {"Authorization": f"Bearer {tokens.issue(user)}"}
    return _headers
