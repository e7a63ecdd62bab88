from flask import request
from flask_login import current_user

from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF
from studentlink.responses import ok
from studentlink.services import concerns as svc
from studentlink.services.policy import role_required
from studentlink.utils.helpers import safe_int
from . import bp


@bp.get("/my-concerns")
@role_required(ROLE_STAFF)
def my_concerns():
    rows = svc.my_concerns(current_user)
    return ok([c.to_dict() for c in rows], count=len(rows))

@bp.get("/my-archived-concerns")
@role_required(ROLE_STAFF)
def my_archived_concerns():
    rows = svc.my_archived_concerns(current_user)
    return ok([c.to_dict() for c in rows], count=len(rows))

@bp.get("/my-dashboard-stats")
@role_required(ROLE_STAFF)
def my_dashboard_stats():
    return ok(current_user.workload_metrics())

@bp.patch("/concerns/<int:concern_id>/status")
@role_required(ROLE_STAFF)
def update_concern_status(concern_id: int):
    concern = svc.update_status(current_user, concern_id, request.get_json(silent=True) or {})
    return ok(concern.to_dict(), message="Concern status updated successfully")

@bp.get("/available")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF)
def available():
    rows = svc.available_staff(
        safe_int(request.args.get("department_id")),
        safe_int(request.args.get("max_workload"), 10),
    )
    return ok(rows, count=len(rows))

@bp.get("/workload-stats")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def workload_stats():
    return ok(svc.workload_stats(current_user, safe_int(request.args.get("department_id"))))
