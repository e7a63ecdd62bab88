import hmac

from flask import current_app, request

from studentlink.responses import fail, ok
from studentlink.services import automation
from . import bp


def _valid_secret(sent: str) -> bool:
    secret = current_app.config.get("N8N_WEBHOOK_SECRET")
    if not secret:
        return True
    return hmac.compare_digest(secret.encode("utf-8"), (sent or "").encode("utf-8"))

@bp.before_request
def guard_webhooks():
    if not current_app.config.get("N8N_ENABLED", True):
        return fail("Automation webhooks are disabled", 503)
    if not _valid_secret(request.headers.get("X-Webhook-Secret", "")):
        return fail("Invalid webhook secret", 401)
    return None

@bp.post("/concern-created")
def concern_created():
    data = automation.acknowledge_concern(request.get_json(silent=True) or {})
    return ok(data, message="Concern event received")

@bp.post("/cross-department-request")
def cross_department_request():
    row = automation.request_cross_department(request.get_json(silent=True) or {})
    return ok(row.to_dict(), message="Cross-department assignment created", status=201)

@bp.post("/n8n/concern-classification")
def concern_classification():
    result = automation.apply_classification(request.get_json(silent=True) or {})
    if result.get("requires_manual_review"):
        return ok(result, message="Classification received but confidence too low for automatic update")
    return ok(result, message="Concern classified successfully")
