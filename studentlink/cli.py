import json
import os

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from studentlink.extensions import db
from studentlink.models import Department, User
from studentlink.models.user import ROLE_CHOICES, ROLE_STUDENT


@click.command("db-check")
@with_appcontext
def db_check():
    """Connection check plus a peek at the users table."""
    try:
        db.session.execute(text("SELECT 1"))
        tables = sorted(inspect(db.engine).get_table_names())
    except SQLAlchemyError as e:
        raise click.ClickException(f"Database connection failed: {e}")

    click.echo(f"Connected: {db.engine.url.render_as_string(hide_password=True)}")
    click.echo("Tables:")
    for name in tables:
        click.echo(f"  - {name}")

    if "users" not in tables:
        raise click.ClickException("Users table does not exist")

    click.echo(f"Found {User.query.count()} users in the database")
    for user in User.query.order_by(User.id).limit(5):
        click.echo(f"  - {user.name} ({user.email}) - {user.role}")

@click.group()
def users():
    """User management."""

def _export_row(user: User) -> dict:
    return {
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "employee_id": user.employee_id,
        "student_id": user.student_id,
        "department_id": user.department_id,
        "phone": user.phone,
        "is_active": user.is_active,
        "preferences": user.preferences,
        "created_at": user.created_at.strftime("%Y-%m-%d %H:%M:%S") if user.created_at else None,
    }

@users.command("list")
@with_appcontext
def users_list():
    """Print every user as a seed entry (passwords are never exported)."""
    rows = User.query.order_by(User.id).all()
    if not rows:
        raise click.ClickException("No users found in the database")
    for user in rows:
        row = _export_row(user)
        row.pop("created_at")
        row["password"] = "CHANGE_ME"
        click.echo(json.dumps(row, indent=2))

@users.command("report")
@with_appcontext
def users_report():
    """Users with their departments."""
    rows = User.query.order_by(User.role, User.name).all()
    click.echo(f"Total users: {len(rows)}")
    for user in rows:
        dept = user.department.name if user.department else "No department"
        status = "active" if user.is_active else "inactive"
        click.echo(f"  - [{user.role}] {user.name} <{user.email}> {dept} ({status})")

@users.command("export")
@click.option("--output", default="exported_users.json", show_default=True)
@with_appcontext
def users_export(output):
    rows = User.query.order_by(User.id).all()
    if not rows:
        raise click.ClickException("No users found in the database")
    path = output if os.path.isabs(output) else os.path.join(current_app.config.get("EXPORT_DIR", "."), output)
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump([_export_row(u) for u in rows], fh, indent=2)
    except OSError as e:
        raise click.ClickException(f"Could not write {path}: {e}")
    click.echo(f"Exported {len(rows)} users to {path}")

@users.command("create")
@click.option("--name", required=True)
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--role", type=click.Choice(ROLE_CHOICES), default=ROLE_STUDENT)
@click.option("--department-code", default=None, help="Existing department code")
@with_appcontext
def users_create(name, email, password, role, department_code):
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).count():
        raise click.ClickException("User already exists")

    department = None
    if department_code:
        department = Department.query.filter_by(code=department_code).one_or_none()
        if department is None:
            raise click.ClickException(f"Department {department_code} not found")

    user = User(name=name, email=email, role=role, is_active=True)
    user.set_password(password)
    user.department_id = department.id if department else None
    db.session.add(user)
    db.session.commit()

    click.echo(f"User created id={user.id} email={user.email} role={role}")

@click.group()
def storage():
    """Runtime storage directories."""

@storage.command("fix-permissions")
@click.option("--mode", default="775", show_default=True, help="Octal permission bits")
@with_appcontext
def storage_fix_permissions(mode):
    try:
        bits = int(mode, 8)
    except ValueError:
        raise click.ClickException(f"Invalid mode: {mode}")

    root = current_app.config.get("STORAGE_ROOT", "storage")
    dirs = [root] + [os.path.join(root, d) for d in current_app.config.get("STORAGE_DIRS", ())]
    for path in dirs:
        try:
            os.makedirs(path, exist_ok=True)
            os.chmod(path, bits)
        except OSError as e:
            raise click.ClickException(f"Could not prepare {path}: {e}")
        click.echo(f"  - {path}")
    click.echo("Storage permissions fixed")

@click.group()
def escalation():
    """Escalation maintenance."""

@escalation.command("check")
@with_appcontext
def escalation_check():
    """Cron entry point for the escalation sweep."""
    from studentlink.services.escalation import check_and_escalate
    results = check_and_escalate()
    click.echo(
        f"escalated={results['escalated']} overdue={results['overdue']} "
        f"notifications_sent={results['notifications_sent']}"
    )
    for err in results["errors"]:
        click.echo(f"  error: {err}", err=True)
    if results["errors"]:
        raise click.ClickException(f"{len(results['errors'])} concern(s) failed")

def register_cli(app):
    app.cli.add_command(db_check)
    app.cli.add_command(users)
    app.cli.add_command(storage)
    app.cli.add_command(escalation)
