import pytest

from studentlink.extensions import db
from studentlink.models import Concern, CrossDepartmentAssignment, Notification
from studentlink.models.user import ROLE_STAFF


@pytest.fixture()
def webhook_secret(app):
    app.config["N8N_WEBHOOK_SECRET"] = "hook-secret"
    yield "hook-secret"
    app.config["N8N_WEBHOOK_SECRET"] = None

@pytest.mark.parametrize("path", ["/api/concern-created", "/api/cross-department-request", "/api/n8n/concern-classification"])
def test_webhooks_reject_get(client, path):
    r = client.get(path)
    assert r.status_code == 405
    assert r.get_json()["success"] is False

def test_secret_is_enforced_when_configured(client, make_department, make_concern, webhook_secret):
    dept = make_department()
    cid = make_concern(dept)
    r = client.post("/api/concern-created", json={"concern_id": cid})
    assert r.status_code == 401
    r = client.post("/api/concern-created", json={"concern_id": cid}, headers={"X-Webhook-Secret": "nope"})
    assert r.status_code == 401
    r = client.post("/api/concern-created", json={"concern_id": cid}, headers={"X-Webhook-Secret": webhook_secret})
    assert r.status_code == 200
    assert r.get_json()["data"]["concern_id"] == cid

def test_disabled_automation_is_503(app, client):
    app.config["N8N_ENABLED"] = False
    try:
        r = client.post("/api/concern-created", json={})
    finally:
        app.config["N8N_ENABLED"] = True
    assert r.status_code == 503

def test_concern_created_unknown_concern(client):
    r = client.post("/api/concern-created", json={"concern_id": 424242})
    assert r.status_code == 422

def test_high_confidence_classification_updates_priority(app, client, make_department, make_user, make_concern):
    dept = make_department()
    staff = make_user(ROLE_STAFF, department_id=dept)
    cid = make_concern(dept, assigned_to=staff, priority="low")

    r = client.post("/api/n8n/concern-classification", json={
        "concern_id": cid,
        "urgency_level": "critical",
        "confidence_score": 0.92,
        "reasoning": "Mentions a safety threat",
    })
    assert r.status_code == 200
    assert r.get_json()["data"]["new_priority"] == "urgent"
    with app.app_context():
        concern = db.session.get(Concern, cid)
        assert concern.priority == "urgent"
        assert concern.ai_classification["external"]["ai_model"] == "n8n-ai-classifier"
        assert Notification.query.filter_by(user_id=staff, type="high_priority").count() == 1

def test_low_confidence_classification_flags_review(app, client, make_department, make_concern):
    dept = make_department()
    cid = make_concern(dept, priority="low")
    r = client.post("/api/n8n/concern-classification", json={
        "concern_id": cid,
        "urgency_level": "high",
        "confidence_score": 0.4,
    })
    assert r.status_code == 200
    assert r.get_json()["data"]["requires_manual_review"] is True
    with app.app_context():
        assert db.session.get(Concern, cid).priority == "low"

def test_classification_validation(client):
    r = client.post("/api/n8n/concern-classification", json={"urgency_level": "extreme", "confidence_score": 3})
    assert r.status_code == 422
    assert set(r.get_json()["errors"]) == {"concern_id", "urgency_level", "confidence_score"}

def test_cross_department_request_picks_least_loaded(app, client, make_department, make_user, make_concern):
    home = make_department()
    other = make_department()
    busy = make_user(ROLE_STAFF, department_id=other)
    free = make_user(ROLE_STAFF, department_id=other)
    make_concern(other, assigned_to=busy)
    cid = make_concern(home)

    r = client.post("/api/cross-department-request", json={"concern_id": cid})
    assert r.status_code == 201
    assert r.get_json()["data"]["staff_id"] == free
    with app.app_context():
        row = CrossDepartmentAssignment.query.filter_by(concern_id=cid).one()
        assert row.assigned_by == "n8n"
        assert row.requesting_department_id == home

def test_cross_department_request_without_staff(client, make_department, make_concern):
    dept = make_department()
    cid = make_concern(dept)
    r = client.post("/api/cross-department-request", json={"concern_id": cid})
    assert r.status_code == 404
