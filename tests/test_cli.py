import json
import os
import stat

from studentlink.extensions import db
from studentlink.models import Concern, User
from studentlink.models.user import ROLE_ADMIN, ROLE_STAFF


def test_users_create_and_duplicate(app, make_department):
    make_department(code="BSIT")
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create", "--name", "Ana Santos", "--email", "Ana@Example.test",
        "--password", "pw", "--role", ROLE_STAFF, "--department-code", "BSIT",
    ])
    assert result.exit_code == 0, result.output
    assert "User created" in result.output
    with app.app_context():
        user = User.query.filter_by(email="ana@example.test").one()
        assert user.role == ROLE_STAFF and user.department_id is not None

    again = runner.invoke(args=["users", "create", "--name", "x", "--email", "ana@example.test", "--password", "pw"])
    assert again.exit_code != 0
    assert "User already exists" in again.output

def test_users_create_unknown_department(app):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--name", "x", "--email", "x@example.test", "--password", "pw",
        "--department-code", "NOPE",
    ])
    assert result.exit_code != 0

def test_db_check_lists_users(app, make_user):
    make_user(ROLE_ADMIN, name="Root Admin", email="root@example.test")
    result = app.test_cli_runner().invoke(args=["db-check"])
    assert result.exit_code == 0, result.output
    assert "  - users" in result.output
    assert "Found 1 users" in result.output
    assert "Root Admin (root@example.test) - admin" in result.output

def test_users_export_writes_json(app, make_user, tmp_path):
    make_user(ROLE_ADMIN, email="a@example.test")
    out = tmp_path / "users.json"
    result = app.test_cli_runner().invoke(args=["users", "export", "--output", str(out)])
    assert result.exit_code == 0, result.output
    rows = json.loads(out.read_text())
    assert rows[0]["email"] == "a@example.test"
    assert "password_hash" not in rows[0]

def test_users_export_empty_db_fails(app, tmp_path):
    result = app.test_cli_runner().invoke(args=["users", "export", "--output", str(tmp_path / "x.json")])
    assert result.exit_code != 0
    assert "No users found" in result.output

def test_users_report(app, make_department, make_user):
    dept = make_department(name="College of Nursing")
    make_user(ROLE_STAFF, department_id=dept, name="Nina")
    result = app.test_cli_runner().invoke(args=["users", "report"])
    assert "Nina" in result.output and "College of Nursing" in result.output

def test_storage_fix_permissions(app, tmp_path):
    root = tmp_path / "storage"
    app.config["STORAGE_ROOT"] = str(root)
    try:
        result = app.test_cli_runner().invoke(args=["storage", "fix-permissions", "--mode", "770"])
    finally:
        app.config["STORAGE_ROOT"] = "storage"
    assert result.exit_code == 0, result.output
    logs = root / "logs"
    assert logs.is_dir()
    assert stat.S_IMODE(os.stat(logs).st_mode) == 0o770

def test_escalation_check_command(app, make_department, make_user, make_concern):
    dept = make_department()
    staff = make_user(ROLE_STAFF, department_id=dept)
    cid = make_concern(dept, assigned_to=staff, priority="urgent", age_hours=3)
    result = app.test_cli_runner().invoke(args=["escalation", "check"])
    assert result.exit_code == 0, result.output
    assert "escalated=1" in result.output
    with app.app_context():
        assert db.session.get(Concern, cid).escalated_at is not None
