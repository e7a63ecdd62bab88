from flask import Blueprint

bp = Blueprint("departments", __name__, url_prefix="/api/departments")

from . import routes  # noqa: E402,F401
