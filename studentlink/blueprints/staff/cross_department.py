from flask import request
from flask_login import current_user

from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF
from studentlink.responses import ok
from studentlink.services import cross_department as svc
from studentlink.services.policy import role_required
from studentlink.utils.helpers import safe_int
from . import bp


@bp.get("/cross-department/available")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def cross_department_available():
    department_id = safe_int(request.args.get("requesting_department_id")) or current_user.department_id
    max_workload = safe_int(request.args.get("max_workload"), svc.DEFAULT_MAX_WORKLOAD)
    rows = svc.available_staff(department_id, max_workload)
    return ok(rows, count=len(rows))

@bp.post("/cross-department/assign")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def cross_department_assign():
    row = svc.assign(request.get_json(silent=True) or {}, assigned_by=current_user.id)
    return ok(row.to_dict(), message="Cross-department staff assigned successfully")

@bp.get("/cross-department/assignments")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF)
def cross_department_assignments():
    rows = svc.list_assignments(current_user, request.args.get("status"))
    return ok([r.to_dict() for r in rows], count=len(rows))

@bp.patch("/cross-department/assignments/<int:assignment_id>/complete")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF)
def cross_department_complete(assignment_id: int):
    data = request.get_json(silent=True) or {}
    row = svc.complete(assignment_id, data.get("completion_notes"))
    return ok(row.to_dict(), message="Cross-department assignment completed successfully")

@bp.post("/cross-department/cleanup")
@role_required(ROLE_ADMIN)
def cross_department_cleanup():
    expired = svc.cleanup_expired()
    return ok({"expired": expired}, message=f"{expired} expired assignments cleaned up")
