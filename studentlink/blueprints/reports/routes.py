from flask import make_response, request

from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD
from studentlink.services import reports
from studentlink.services.policy import role_required
from . import bp


@bp.get("/export")
@role_required(ROLE_ADMIN, ROLE_DEPARTMENT_HEAD)
def export():
    report_type, fmt, filters = reports.parse_request(request.args)
    body, content_type, filename = reports.export(report_type, fmt, filters)

    resp = make_response(body)
    resp.headers["Content-Type"] = content_type
    if fmt != "html":
        resp.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp
