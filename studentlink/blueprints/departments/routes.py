from studentlink.models import Department
from studentlink.responses import ok
from . import bp


@bp.get("")
def index():
    departments = Department.query.filter_by(is_active=True).order_by(Department.name).all()
    return ok([d.to_dict() for d in departments])
