from flask import Blueprint

from studentlink.services.policy import require_token

bp = Blueprint("concerns", __name__, url_prefix="/api/concerns")
bp.before_request(require_token)

from . import routes  # noqa: E402,F401
