import smtplib

from studentlink.extensions import db, mail
from studentlink.models import Concern
from studentlink.services import email as email_service
from studentlink.services.email import absolute_url, send_email
from studentlink.models.user import ROLE_STAFF


def test_concern_alert_templates_render(app, make_department, make_concern):
    dept = make_department()
    cid = make_concern(dept, subject="Enrollment hold", status="in_progress", priority="high")
    with app.app_context():
        concern = db.session.get(Concern, cid)
        ctx = dict(
            user_name="Rosa",
            title="Concern escalated",
            message="Please look at this today.",
            concern=concern,
            action_url="http://example.test/concerns/1",
        )
        html = app.jinja_env.get_template("email/concern_alert.html").render(**ctx)
        txt = app.jinja_env.get_template("email/concern_alert.txt").render(**ctx)
    for body in (html, txt):
        assert "http://example.test/concerns/1" in body
        assert "Enrollment hold" in body
        assert "In progress" in body
        assert "High" in body

def test_absolute_url_joins_base(app):
    with app.test_request_context():
        app.config["APP_BASE_URL"] = "https://help.example.edu/"
        try:
            assert absolute_url("/concerns/5") == "https://help.example.edu/concerns/5"
        finally:
            app.config["APP_BASE_URL"] = "http://localhost:5000"

def test_send_email_records_message(app, make_department, make_concern):
    dept = make_department()
    cid = make_concern(dept)
    with app.app_context():
        concern = db.session.get(Concern, cid)
        with mail.record_messages() as outbox:
            sent = send_email(
                "Staff@Example.test",
                "Heads up",
                "concern_alert",
                {"user_name": "Ana", "title": "t", "message": "m", "concern": concern, "action_url": "x"},
            )
    assert sent is True
    assert len(outbox) == 1
    assert outbox[0].recipients == ["Staff@Example.test"]
    assert outbox[0].subject == "Heads up"
    assert concern.reference_number in outbox[0].body

def test_send_email_smtp_failure_returns_false(app, make_department, make_concern, monkeypatch):
    dept = make_department()
    cid = make_concern(dept)

    def boom(msg):
        raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(email_service.mail, "send", boom)
    with app.app_context():
        concern = db.session.get(Concern, cid)
        sent = send_email("a@example.test", "s", "concern_alert", {"concern": concern})
    assert sent is False

def test_assignment_notification_emails_staff(app, make_department, make_user, make_concern):
    from studentlink.models import User
    from studentlink.services.notifications import notify

    dept = make_department()
    staff = make_user(ROLE_STAFF, department_id=dept, email="rosa@example.test")
    cid = make_concern(dept, assigned_to=staff)
    with app.app_context():
        with mail.record_messages() as outbox:
            note = notify(db.session.get(User, staff), db.session.get(Concern, cid), "New concern for you", "assignment")
            db.session.commit()
        assert note.title == "Concern assigned"
    assert outbox[0].recipients == ["rosa@example.test"]
    assert outbox[0].subject.startswith("[StudentLink] Concern assigned: ")
