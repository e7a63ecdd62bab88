import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from studentlink.extensions import broadcaster, db
from studentlink.broadcasting import ConcernUpdated
from studentlink.models import ChatRoom, Concern, Department, User
from studentlink.models.user import ROLE_DEPARTMENT_HEAD, ROLE_STAFF, ROLE_STUDENT
from studentlink.models.concern import (
    PRIORITY_CHOICES,
    PRIORITY_RANK,
    STATUS_CHOICES,
    STATUS_CLOSED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    STATUS_RESOLVED,
    STATUS_STUDENT_CONFIRMED,
    TYPE_CHOICES,
)
from studentlink.observability import log_event
from studentlink.utils.helpers import safe_int, utcnow
from studentlink.utils.validators import Errors, require_choice, require_int, require_str
from . import assignment
from .classification import classify_concern
from .errors import Forbidden, NotFound, ServiceError, ValidationFailed

STAFF_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_RESOLVED)
DESCRIPTION_MAX = 5000
REFERENCE_ATTEMPTS = 3


def _validate_new(data: dict) -> dict:
    errors: Errors = {}
    subject = require_str(data, "subject", errors, max_len=255)
    description = require_str(data, "description", errors, max_len=DESCRIPTION_MAX)
    department_id = require_int(data, "department_id", errors)
    concern_type = require_choice(data, "type", TYPE_CHOICES, errors, default="other")
    priority = require_choice(data, "priority", PRIORITY_CHOICES, errors, default="medium")

    department = db.session.get(Department, department_id) if department_id is not None else None
    if department_id is not None and (department is None or not department.is_active):
        errors.setdefault("department_id", []).append("The selected department_id is invalid.")
    if errors:
        raise ValidationFailed(errors)
    return {
        "subject": subject,
        "description": description,
        "department_id": department_id,
        "type": concern_type,
        "priority": priority,
    }

def apply_classification(concern: Concern) -> dict:
    """Store the keyword classification; priority only ever moves up."""
    result = classify_concern(concern.subject, concern.description)
    if PRIORITY_RANK.get(result["priority"], 0) > PRIORITY_RANK.get(concern.priority, 0):
        log_event("concern.priority_upgraded", concern_id=concern.id, old=concern.priority, new=result["priority"])
        concern.priority = result["priority"]
    concern.category = result["category"]
    concern.ai_classification = result
    return result

def open_chat_room(concern: Concern) -> ChatRoom:
    room = ChatRoom(concern_id=concern.id, participants={})
    if concern.student_id:
        room.add_participant(concern.student_id, ROLE_STUDENT)
    if concern.assigned_to:
        room.add_participant(concern.assigned_to, ROLE_STAFF)
    room.touch()
    db.session.add(room)
    return room

def _insert_with_reference(concern: Concern) -> None:
    """Commit the bare row, retrying when a concurrent submission took the number."""
    for _ in range(REFERENCE_ATTEMPTS):
        concern.reference_number = Concern.next_reference_number()
        db.session.add(concern)
        try:
            db.session.commit()
            return
        except IntegrityError:
            db.session.rollback()
            log_event("concern.reference_collision", logging.WARNING, reference_number=concern.reference_number)
    raise ServiceError("Could not allocate a reference number, please retry")

def create_concern(student: User, data: dict) -> Concern:
    if student.role != ROLE_STUDENT:
        raise Forbidden("Only students can submit concerns")
    fields = _validate_new(data)

    concern = Concern(student_id=student.id, status=STATUS_PENDING, **fields)
    _insert_with_reference(concern)

    apply_classification(concern)
    assignment.assign_concern(concern)
    open_chat_room(concern)
    db.session.commit()

    log_event(
        "concern.created",
        concern_id=concern.id,
        reference_number=concern.reference_number,
        priority=concern.priority,
        assigned_to=concern.assigned_to,
    )
    broadcaster.broadcast(ConcernUpdated(concern, action="created"))
    return concern

def visible_concerns(user: User):
    q = Concern.query
    if user.role == ROLE_STUDENT:
        return q.filter(Concern.student_id == user.id)
    if user.role == ROLE_STAFF:
        return q.filter(Concern.assigned_to == user.id)
    if user.role == ROLE_DEPARTMENT_HEAD:
        return q.filter(Concern.department_id == user.department_id)
    return q

def list_concerns(user: User, filters: dict) -> List[Concern]:
    q = visible_concerns(user)
    if filters.get("status") in STATUS_CHOICES:
        q = q.filter(Concern.status == filters["status"])
    if filters.get("priority") in PRIORITY_CHOICES:
        q = q.filter(Concern.priority == filters["priority"])
    department_id = safe_int(filters.get("department_id"))
    if department_id is not None:
        q = q.filter(Concern.department_id == department_id)
    return q.order_by(Concern.created_at.desc(), Concern.id.desc()).all()

def get_visible(user: User, concern_id: int) -> Concern:
    concern = visible_concerns(user).filter(Concern.id == concern_id).first()
    if concern is None:
        raise NotFound("Concern not found")
    return concern

def get_or_404(concern_id: int) -> Concern:
    concern = db.session.get(Concern, concern_id)
    if concern is None:
        raise NotFound("Concern not found")
    return concern

def ensure_department_access(user: User, concern: Concern, message: str = "Unauthorized to access this concern") -> None:
    if user.role == ROLE_DEPARTMENT_HEAD and user.department_id != concern.department_id:
        raise Forbidden(message)

def reclassify(user: User, concern_id: int) -> dict:
    concern = get_or_404(concern_id)
    ensure_department_access(user, concern)
    result = apply_classification(concern)
    db.session.commit()
    broadcaster.broadcast(ConcernUpdated(concern, action="classified"))
    return {"concern": concern.to_dict(), "classification": result}


# ---- staff views ----

def my_concerns(staff: User) -> List[Concern]:
    return (
        Concern.query
        .filter(
            Concern.assigned_to == staff.id,
            Concern.archived_at.is_(None),
            Concern.status.notin_((STATUS_STUDENT_CONFIRMED, STATUS_CLOSED)),
        )
        .order_by(Concern.created_at.desc(), Concern.id.desc())
        .all()
    )

def my_archived_concerns(staff: User) -> List[Concern]:
    return (
        Concern.query
        .filter(
            Concern.assigned_to == staff.id,
            db.or_(
                Concern.archived_at.isnot(None),
                Concern.status.in_((STATUS_STUDENT_CONFIRMED, STATUS_CLOSED)),
            ),
        )
        .order_by(Concern.updated_at.desc(), Concern.id.desc())
        .all()
    )

def update_status(staff: User, concern_id: int, data: dict) -> Concern:
    concern = get_or_404(concern_id)
    if concern.assigned_to != staff.id:
        raise Forbidden("You can only update concerns assigned to you")

    errors: Errors = {}
    status = require_choice(data, "status", STAFF_STATUSES, errors)
    notes = data.get("resolution_notes")
    if notes is not None and (not isinstance(notes, str) or len(notes) > DESCRIPTION_MAX):
        errors.setdefault("resolution_notes", []).append("The resolution_notes must be a string.")
    if errors:
        raise ValidationFailed(errors)

    previous = concern.status
    concern.status = status
    if notes is not None:
        concern.resolution_notes = notes
    if status == STATUS_RESOLVED:
        concern.resolved_at = utcnow()
        concern.resolved_by = staff.id
    else:
        concern.resolved_at = None
        concern.resolved_by = None
    db.session.commit()

    log_event("concern.status_updated", concern_id=concern.id, staff_id=staff.id, old=previous, new=status)
    broadcaster.broadcast(ConcernUpdated(concern, action="status_updated"))
    return concern

def available_staff(department_id: Optional[int], max_workload: int = 10) -> List[dict]:
    """Staff and heads with fewer than `max_workload` pending/in-progress concerns."""
    q = User.query.filter(
        User.role.in_((ROLE_STAFF, ROLE_DEPARTMENT_HEAD)),
        User.is_active.is_(True),
    )
    if department_id:
        q = q.filter(User.department_id == department_id)
    rows = []
    for member in q.order_by(User.id).all():
        load = Concern.query.filter(
            Concern.assigned_to == member.id,
            Concern.archived_at.is_(None),
            Concern.status.in_((STATUS_PENDING, STATUS_IN_PROGRESS)),
        ).count()
        if load < max_workload:
            rows.append({**member.to_dict(), "current_workload": load})
    return rows

def workload_stats(user: User, department_id: Optional[int] = None) -> List[dict]:
    if user.role == ROLE_DEPARTMENT_HEAD:
        department_id = user.department_id
    q = User.query.filter(User.role.in_((ROLE_STAFF, ROLE_DEPARTMENT_HEAD)), User.is_active.is_(True))
    if department_id:
        q = q.filter(User.department_id == department_id)
    return [
        {**member.to_summary(), "department_id": member.department_id, **member.workload_metrics()}
        for member in q.order_by(User.id).all()
    ]

