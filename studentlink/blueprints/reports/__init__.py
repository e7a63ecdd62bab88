from flask import Blueprint

from studentlink.services.policy import require_token

bp = Blueprint("reports", __name__, url_prefix="/api/reports")
bp.before_request(require_token)

from . import routes  # noqa: E402,F401
