from flask import request
from flask_login import current_user

from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD
from studentlink.responses import ok
from studentlink.services import concerns as concern_service
from studentlink.services import escalation
from studentlink.services.errors import ValidationFailed
from studentlink.services.policy import role_required
from studentlink.utils.validators import require_str
from . import bp


@bp.post("/check")
@role_required(ROLE_ADMIN)
def check():
    results = escalation.check_and_escalate()
    return ok(results, message="Escalation check completed")

@bp.get("/stats")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def stats():
    return ok(escalation.stats())

@bp.post("/concerns/<int:concern_id>/escalate")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def manual_escalate(concern_id: int):
    errors = {}
    reason = require_str(request.get_json(silent=True) or {}, "reason", errors, max_len=500)
    if errors:
        raise ValidationFailed(errors)
    concern = concern_service.get_or_404(concern_id)
    escalation.manual_escalate(concern, current_user, reason)
    return ok(
        {"concern_id": concern.id, "escalated_by": current_user.name, "reason": reason},
        message="Concern escalated successfully",
    )
