from typing import List, Optional

from studentlink.extensions import db
from studentlink.models import Concern, CrossDepartmentAssignment, Department, User
from studentlink.models.user import ROLE_DEPARTMENT_HEAD, ROLE_STAFF
from studentlink.models.cross_department_assignment import STATUS_ACTIVE, STATUS_COMPLETED, STATUS_EXPIRED
from studentlink.observability import log_event
from studentlink.utils.helpers import safe_int, utcnow
from .errors import NotFound, ValidationFailed

DEFAULT_MAX_WORKLOAD = 5
ASSIGNMENT_TYPES = ("cross_department", "emergency", "temporary")

def available_staff(requesting_department_id: Optional[int], max_workload: int = DEFAULT_MAX_WORKLOAD) -> List[dict]:
    """Active staff outside the requesting department with room under `max_workload`."""
    q = User.query.filter_by(role=ROLE_STAFF, is_active=True)
    if requesting_department_id:
        q = q.filter(db.or_(User.department_id.is_(None), User.department_id != requesting_department_id))

    rows = []
    for staff in q.order_by(User.id).all():
        load = staff.active_workload()
        if load >= max_workload:
            continue
        rows.append({
            **staff.to_summary(),
            "email": staff.email,
            "employee_id": staff.employee_id,
            "department": staff.department.to_summary() if staff.department else None,
            "current_workload": load,
            "available_capacity": max_workload - load,
            "can_handle_cross_department": staff.can_handle_cross_department,
        })
    rows.sort(key=lambda r: (r["current_workload"], r["id"]))
    return rows

def assign(data: dict, assigned_by) -> CrossDepartmentAssignment:
    """Loan a staff member to another department's concern; commits."""
    errors = {}
    concern_id = safe_int(data.get("concern_id"))
    staff_id = safe_int(data.get("staff_id"))
    department_id = safe_int(data.get("requesting_department_id"))
    concern = db.session.get(Concern, concern_id) if concern_id else None
    staff = db.session.get(User, staff_id) if staff_id else None
    department = db.session.get(Department, department_id) if department_id else None
    if concern is None:
        errors.setdefault("concern_id", []).append("The selected concern_id is invalid.")
    if staff is None or staff.role != ROLE_STAFF:
        errors.setdefault("staff_id", []).append("The selected staff_id is invalid.")
    if department is None:
        errors.setdefault("requesting_department_id", []).append("The selected requesting_department_id is invalid.")
    assignment_type = data.get("assignment_type") or "cross_department"
    if assignment_type not in ASSIGNMENT_TYPES:
        errors.setdefault("assignment_type", []).append("The selected assignment_type is invalid.")
    try:
        hours = int(data.get("estimated_duration_hours") or 8)
        if hours < 1:
            raise ValueError
    except (TypeError, ValueError):
        errors.setdefault("estimated_duration_hours", []).append("The estimated_duration_hours must be at least 1.")
        hours = None
    if errors:
        raise ValidationFailed(errors)

    row = CrossDepartmentAssignment(
        concern_id=concern.id,
        staff_id=staff.id,
        requesting_department_id=department.id,
        assignment_type=assignment_type,
        estimated_duration_hours=hours,
        status=STATUS_ACTIVE,
        assigned_by=str(assigned_by),
    )
    db.session.add(row)
    concern.assign(staff)
    db.session.commit()
    log_event(
        "cross_department.assigned",
        assignment_id=row.id,
        concern_id=concern.id,
        staff_id=staff.id,
        requesting_department_id=department.id,
    )
    return row

def list_assignments(user, status: Optional[str] = None) -> List[CrossDepartmentAssignment]:
    q = CrossDepartmentAssignment.query
    if user.role == ROLE_STAFF:
        q = q.filter(CrossDepartmentAssignment.staff_id == user.id)
    elif user.role == ROLE_DEPARTMENT_HEAD:
        q = q.filter(db.or_(
            CrossDepartmentAssignment.requesting_department_id == user.department_id,
            CrossDepartmentAssignment.staff.has(User.department_id == user.department_id),
        ))
    if status:
        q = q.filter(CrossDepartmentAssignment.status == status)
    return q.order_by(CrossDepartmentAssignment.assigned_at.desc()).all()

def complete(assignment_id: int, notes: Optional[str] = None) -> CrossDepartmentAssignment:
    row = db.session.get(CrossDepartmentAssignment, assignment_id)
    if row is None:
        raise NotFound("Assignment not found")
    row.status = STATUS_COMPLETED
    row.completed_at = utcnow()
    row.completion_notes = notes
    db.session.commit()
    log_event("cross_department.completed", assignment_id=row.id, concern_id=row.concern_id, staff_id=row.staff_id)
    return row

def cleanup_expired(now=None) -> int:
    """Mark active loans past their estimated duration as expired; returns how many."""
    now = now or utcnow()
    expired = 0
    for row in CrossDepartmentAssignment.query.filter_by(status=STATUS_ACTIVE).all():
        if row.expires_at < now:
            row.status = STATUS_EXPIRED
            expired += 1
    db.session.commit()
    log_event("cross_department.cleanup", expired=expired)
    return expired

def stats() -> dict:
    q = CrossDepartmentAssignment.query
    return {
        "total": q.count(),
        "active": q.filter_by(status=STATUS_ACTIVE).count(),
        "completed": q.filter_by(status=STATUS_COMPLETED).count(),
        "expired": q.filter_by(status=STATUS_EXPIRED).count(),
    }
