from flask import request
from flask_login import current_user

from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STUDENT
from studentlink.responses import ok
from studentlink.services import concerns as svc
from studentlink.services.policy import role_required
from . import bp


@bp.post("")
@role_required(ROLE_STUDENT)
def create():
    concern = svc.create_concern(current_user, request.get_json(silent=True) or {})
    return ok(concern.to_dict(), message="Concern submitted successfully", status=201)

@bp.get("")
def index():
    rows = svc.list_concerns(current_user, request.args)
    return ok([c.to_dict() for c in rows], count=len(rows))

@bp.get("/<int:concern_id>")
def show(concern_id: int):
    return ok(svc.get_visible(current_user, concern_id).to_dict())

@bp.post("/<int:concern_id>/ai-classify")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def ai_classify(concern_id: int):
    return ok(svc.reclassify(current_user, concern_id), message="Concern classified successfully")
