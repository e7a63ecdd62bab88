from flask import Blueprint

from studentlink.services.policy import require_token

bp = Blueprint("staff", __name__, url_prefix="/api/staff")
bp.before_request(require_token)

from . import routes  # noqa: E402,F401
from . import cross_department  # noqa: E402,F401
