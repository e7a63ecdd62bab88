from flask import Blueprint

from studentlink.services.policy import require_token

bp = Blueprint("ai", __name__, url_prefix="/api/ai")
bp.before_request(require_token)

from . import routes  # noqa: E402,F401
