from datetime import datetime, timedelta

from studentlink.extensions import db, mail
from studentlink.models import Concern, CrossDepartmentAssignment, EscalationLog, Notification
from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF
from studentlink.services import escalation


def test_thresholds_by_priority(app, make_department, make_user, make_concern):
    dept = make_department()
    staff = make_user(ROLE_STAFF, department_id=dept)
    fresh = make_concern(dept, assigned_to=staff, priority="urgent", age_hours=1)
    stale = make_concern(dept, assigned_to=staff, priority="urgent", age_hours=3)
    late = make_concern(dept, assigned_to=staff, priority="low", age_hours=80)
    with app.app_context():
        assert not escalation.needs_escalation(db.session.get(Concern, fresh))
        assert escalation.needs_escalation(db.session.get(Concern, stale))
        assert escalation.is_overdue(db.session.get(Concern, late))
        assert not escalation.is_overdue(db.session.get(Concern, stale))

def test_escalation_level_uses_time_since_assignment(app, make_department, make_user, make_concern):
    dept = make_department()
    staff = make_user(ROLE_STAFF, department_id=dept)
    now = datetime.utcnow()
    cid = make_concern(dept, assigned_to=staff, priority="urgent", assigned_at=now - timedelta(hours=13))
    with app.app_context():
        concern = db.session.get(Concern, cid)
        assert escalation.escalation_level(concern, now) == "department_head"
        assert escalation.escalation_level(concern, now + timedelta(hours=12)) == "admin"

def test_check_escalates_notifies_and_reassigns(app, make_department, make_user, make_concern):
    dept = make_department()
    head = make_user(ROLE_DEPARTMENT_HEAD, department_id=dept)
    slow = make_user(ROLE_STAFF, department_id=dept)
    spare = make_user(ROLE_STAFF, department_id=dept)
    cid = make_concern(dept, assigned_to=slow, priority="medium", age_hours=30)

    with app.app_context():
        with mail.record_messages() as outbox:
            results = escalation.check_and_escalate()
        assert results == {"escalated": 1, "overdue": 0, "notifications_sent": 1, "errors": []}

        concern = db.session.get(Concern, cid)
        assert concern.escalated_at is not None
        assert concern.escalated_by == "system"
        assert concern.assigned_to == spare

        log = EscalationLog.query.filter_by(concern_id=cid).one()
        assert log.escalation_type == "automated"
        assert (log.previous_assignee, log.new_assignee) == (slow, spare)

        note = Notification.query.filter_by(user_id=head).one()
        assert note.type == "escalated"
        assert len(outbox) == 1

def test_check_is_idempotent(app, make_department, make_user, make_concern):
    dept = make_department()
    staff = make_user(ROLE_STAFF, department_id=dept)
    make_concern(dept, assigned_to=staff, priority="high", age_hours=20)
    with app.app_context():
        first = escalation.check_and_escalate()
        second = escalation.check_and_escalate()
    assert (first["escalated"], first["overdue"]) == (1, 1)
    assert (second["escalated"], second["overdue"]) == (0, 0)

def test_overdue_hands_off_cross_department(app, make_department, make_user, make_concern):
    dept = make_department()
    other = make_department()
    owner = make_user(ROLE_STAFF, department_id=dept)
    helper = make_user(ROLE_STAFF, department_id=other, can_handle_cross_department=True)
    cid = make_concern(dept, assigned_to=owner, priority="low", age_hours=100, escalated_at=datetime.utcnow())

    with app.app_context():
        results = escalation.check_and_escalate()
        assert results["overdue"] == 1 and results["escalated"] == 0
        concern = db.session.get(Concern, cid)
        assert concern.overdue_at is not None
        assert concern.assigned_to == helper
        row = CrossDepartmentAssignment.query.filter_by(concern_id=cid).one()
        assert row.assignment_type == "overdue_escalation"

def test_closed_and_unassigned_concerns_are_skipped(app, make_department, make_user, make_concern):
    dept = make_department()
    staff = make_user(ROLE_STAFF, department_id=dept)
    make_concern(dept, assigned_to=staff, status="resolved", age_hours=200)
    make_concern(dept, age_hours=200)
    with app.app_context():
        results = escalation.check_and_escalate()
    assert results["escalated"] == 0 and results["overdue"] == 0

def test_check_endpoint_admin_only(client, make_department, make_user, auth_headers):
    dept = make_department()
    admin = make_user(ROLE_ADMIN)
    head = make_user(ROLE_DEPARTMENT_HEAD, department_id=dept)
    assert client.post("/api/escalation/check", headers=auth_headers(head)).status_code == 403
    r = client.post("/api/escalation/check", headers=auth_headers(admin))
    assert r.status_code == 200
    assert set(r.get_json()["data"]) == {"escalated", "overdue", "notifications_sent", "errors"}

def test_manual_escalation(app, client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    other = make_department()
    head = make_user(ROLE_DEPARTMENT_HEAD, department_id=dept, name="Dana Reyes")
    outsider = make_user(ROLE_DEPARTMENT_HEAD, department_id=other)
    staff = make_user(ROLE_STAFF, department_id=dept)
    cid = make_concern(dept, assigned_to=staff)

    r = client.post(f"/api/escalation/concerns/{cid}/escalate", json={"reason": "Student waited"}, headers=auth_headers(outsider))
    assert r.status_code == 403

    r = client.post(f"/api/escalation/concerns/{cid}/escalate", json={}, headers=auth_headers(head))
    assert r.status_code == 422

    r = client.post(f"/api/escalation/concerns/{cid}/escalate", json={"reason": "Student waited"}, headers=auth_headers(head))
    assert r.status_code == 200
    assert r.get_json()["data"] == {"concern_id": cid, "escalated_by": "Dana Reyes", "reason": "Student waited"}
    with app.app_context():
        assert EscalationLog.query.filter_by(concern_id=cid, escalation_type="manual").count() == 1

def test_stats(client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    admin = make_user(ROLE_ADMIN)
    make_concern(dept, escalated_at=datetime.utcnow())
    make_concern(dept, overdue_at=datetime.utcnow() - timedelta(days=3))
    data = client.get("/api/escalation/stats", headers=auth_headers(admin)).get_json()["data"]
    assert data["total_escalated"] == 1
    assert data["total_overdue"] == 1
    assert data["overdue_today"] == 0
    assert data["escalation_rate"] == 100

def test_check_endpoint_escalates_past_threshold(app, client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    admin = make_user(ROLE_ADMIN)
    staff = make_user(ROLE_STAFF, department_id=dept)
    cid = make_concern(dept, assigned_to=staff, priority="urgent", age_hours=3)

    r = client.post("/api/escalation/check", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.get_json()["data"]["escalated"] == 1
    with app.app_context():
        concern = db.session.get(Concern, cid)
        assert concern.escalated_at is not None
        assert concern.escalation_level == "staff"

def test_check_keeps_going_after_a_failing_concern(app, client, make_department, make_user, make_concern, auth_headers, monkeypatch):
    dept = make_department()
    admin = make_user(ROLE_ADMIN)
    staff = make_user(ROLE_STAFF, department_id=dept)
    broken = make_concern(dept, assigned_to=staff, priority="medium", age_hours=30)
    fine = make_concern(dept, assigned_to=staff, priority="medium", age_hours=30)

    real_notify = escalation.notify_department_head

    def flaky_notify(concern, overdue=False):
        if concern.id == broken:
            raise RuntimeError("template exploded")
        return real_notify(concern, overdue=overdue)

    monkeypatch.setattr(escalation, "notify_department_head", flaky_notify)
    r = client.post("/api/escalation/check", headers=auth_headers(admin))
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["escalated"] == 1
    assert data["errors"] == [f"Failed to escalate concern {broken}: template exploded"]
    with app.app_context():
        assert db.session.get(Concern, broken).escalated_at is None
        assert db.session.get(Concern, fine).escalated_at is not None
