from flask import request
from flask_login import current_user

from studentlink.extensions import db
from studentlink.models import Department
from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD
from studentlink.responses import fail, ok
from studentlink.services import assignment
from studentlink.services import concerns as concern_service
from studentlink.services.policy import role_required
from studentlink.utils.helpers import safe_int
from . import bp


@bp.get("/suggest-assignee")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def suggest_assignee():
    concern_id = safe_int(request.args.get("concern_id"))
    if concern_id is None:
        return fail("Validation failed", 422, errors={"concern_id": ["The concern_id field is required."]})
    concern = concern_service.get_or_404(concern_id)
    concern_service.ensure_department_access(current_user, concern, "Unauthorized to suggest assignee for this concern")

    staff = assignment.find_best_assignee(concern)
    if staff is None:
        return fail("No suitable assignee found", 404)

    return ok({
        "suggested_assignee": assignment.describe_assignee(staff),
        "concern": {
            "id": concern.id,
            "subject": concern.subject,
            "priority": concern.priority,
            "type": concern.type,
        },
    })

@bp.post("/rebalance")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def rebalance():
    data = request.get_json(silent=True) or {}
    department_id = safe_int(data.get("department_id"))
    if department_id is None or db.session.get(Department, department_id) is None:
        return fail("Validation failed", 422, errors={"department_id": ["The selected department_id is invalid."]})
    if current_user.role == ROLE_DEPARTMENT_HEAD and current_user.department_id != department_id:
        return fail("Unauthorized to rebalance workload for this department", 403)

    suggestions = assignment.rebalance_workload(department_id)
    return ok(
        {"suggestions": suggestions, "count": len(suggestions)},
        message="Workload rebalancing suggestions generated",
    )

@bp.get("/analytics")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def analytics():
    department_id = safe_int(request.args.get("department_id"))
    if current_user.role == ROLE_DEPARTMENT_HEAD:
        if department_id and department_id != current_user.department_id:
            return fail("Unauthorized to view analytics for this department", 403)
        department_id = current_user.department_id
    return ok(assignment.assignment_analytics(department_id))
