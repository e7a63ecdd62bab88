from flask import request
from flask_login import current_user

from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD
from studentlink.responses import ok
from studentlink.services import analytics
from studentlink.services.policy import role_required
from studentlink.utils.helpers import safe_int
from . import bp


def _scoped_department():
    department_id = safe_int(request.args.get("department_id"))
    # heads default to their own department
    if current_user.role == ROLE_DEPARTMENT_HEAD and not department_id:
        department_id = current_user.department_id
    return department_id

@bp.get("/performance")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def performance():
    days = safe_int(request.args.get("date_range"), analytics.DEFAULT_RANGE_DAYS)
    if not days or days < 1:
        days = analytics.DEFAULT_RANGE_DAYS
    return ok(analytics.performance(_scoped_department(), days))

@bp.get("/workload-distribution")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def workload_distribution():
    return ok(analytics.workload_distribution(_scoped_department()))
