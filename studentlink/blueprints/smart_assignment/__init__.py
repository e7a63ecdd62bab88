from flask import Blueprint

from studentlink.services.policy import require_token

bp = Blueprint("smart_assignment", __name__, url_prefix="/api/smart-assignment")
bp.before_request(require_token)

from . import routes  # noqa: E402,F401
