"""
Time-based escalation of assigned concerns.

A check pass walks every open, assigned, unarchived concern twice: once
against the escalation thresholds (hours since creation, by priority) and
once against the overdue thresholds. Each concern is committed on its own
so one bad row does not undo the rest of the pass.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from studentlink.extensions import db
from studentlink.models import Concern, CrossDepartmentAssignment, EscalationLog, User
from studentlink.models.user import ROLE_DEPARTMENT_HEAD, ROLE_STAFF
from studentlink.models.concern import INACTIVE_STATUSES, OPEN_STATUSES
from studentlink.observability import log_event
from studentlink.utils.helpers import hours_between, percent, utcnow
from .errors import Forbidden
from .notifications import notify_department_head

ESCALATION_HOURS = {"urgent": 2, "high": 8, "medium": 24, "low": 48}
OVERDUE_HOURS = {"urgent": 4, "high": 12, "medium": 48, "low": 72}

# hours since assignment before each level takes over
LEVEL_HOURS = {
    "urgent": {"staff": 6, "department_head": 12, "admin": 24},
    "high": {"staff": 24, "department_head": 48, "admin": 72},
}
DEFAULT_LEVEL_HOURS = {"staff": 72, "department_head": 120, "admin": 168}

REASSIGN_MAX_LOAD = 3
CROSS_DEPARTMENT_MAX_LOAD = 2
AUTOMATED_REASON = "Automated escalation due to response time threshold"


def _candidates() -> List[Concern]:
    return (
        Concern.query
        .filter(
            Concern.status.in_(OPEN_STATUSES),
            Concern.archived_at.is_(None),
            Concern.assigned_to.isnot(None),
        )
        .order_by(Concern.id)
        .all()
    )

def _past(concern: Concern, thresholds: dict, default: int, now: datetime) -> bool:
    hours = thresholds.get(concern.priority, default)
    return now > concern.created_at + timedelta(hours=hours)

def needs_escalation(concern: Concern, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return concern.escalated_at is None and _past(concern, ESCALATION_HOURS, 24, now)

def is_overdue(concern: Concern, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return concern.overdue_at is None and _past(concern, OVERDUE_HOURS, 48, now)

def escalation_level(concern: Concern, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    hours = hours_between(concern.assigned_at, now) or 0
    thresholds = LEVEL_HOURS.get(concern.priority, DEFAULT_LEVEL_HOURS)
    if hours >= thresholds["admin"]:
        return "admin"
    if hours >= thresholds["department_head"]:
        return "department_head"
    return "staff"

def _least_loaded(query, exclude_id: Optional[int]) -> Optional[tuple]:
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    loads = [(s.active_workload(), s.id, s) for s in query.all()]
    if not loads:
        return None
    load, _, staff = min(loads, key=lambda row: (row[0], row[1]))
    return staff, load

def _log(concern: Concern, kind: str, reason: str, by: str, previous: Optional[int]) -> None:
    db.session.add(EscalationLog(
        concern_id=concern.id,
        escalation_type=kind,
        escalation_reason=reason,
        escalated_by=by,
        previous_assignee=previous,
        new_assignee=concern.assigned_to,
    ))

def try_reassignment(concern: Concern) -> Optional[User]:
    """Hand the concern to a lightly loaded colleague in the same department."""
    pick = _least_loaded(
        User.query.filter_by(role=ROLE_STAFF, department_id=concern.department_id, is_active=True),
        concern.assigned_to,
    )
    if pick is None or pick[1] >= REASSIGN_MAX_LOAD:
        return None
    staff = pick[0]
    concern.assign(staff)
    log_event("escalation.reassigned", concern_id=concern.id, staff_id=staff.id)
    return staff

def try_cross_department(concern: Concern) -> Optional[User]:
    pick = _least_loaded(
        User.query.filter_by(role=ROLE_STAFF, is_active=True, can_handle_cross_department=True),
        concern.assigned_to,
    )
    if pick is None or pick[1] >= CROSS_DEPARTMENT_MAX_LOAD:
        return None
    staff = pick[0]
    concern.assign(staff)
    db.session.add(CrossDepartmentAssignment(
        concern_id=concern.id,
        staff_id=staff.id,
        requesting_department_id=concern.department_id,
        assignment_type="overdue_escalation",
        estimated_duration_hours=8,
        assigned_by="system",
    ))
    log_event("escalation.cross_department", concern_id=concern.id, staff_id=staff.id)
    return staff

def escalate(concern: Concern, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    previous = concern.assigned_to
    concern.escalated_at = now
    concern.escalated_by = "system"
    concern.escalation_reason = AUTOMATED_REASON
    concern.escalation_level = escalation_level(concern, now)
    log_event(
        "escalation.escalated",
        concern_id=concern.id,
        priority=concern.priority,
        assigned_to=previous,
        escalation_level=concern.escalation_level,
    )
    notify_department_head(concern)
    try_reassignment(concern)
    _log(concern, "automated", "Response time threshold exceeded", "system", previous)

def mark_overdue(concern: Concern, now: Optional[datetime] = None) -> None:
    previous = concern.assigned_to
    concern.overdue_at = now or utcnow()
    log_event("escalation.overdue", logging.WARNING, concern_id=concern.id, priority=concern.priority)
    notify_department_head(concern, overdue=True)
    try_cross_department(concern)
    _log(concern, "overdue", "Resolution time threshold exceeded", "system", previous)

def check_and_escalate(now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    results = {"escalated": 0, "overdue": 0, "notifications_sent": 0, "errors": []}
    log_event("escalation.check_started")

    passes = (
        ("escalated", needs_escalation, escalate, "Failed to escalate concern"),
        ("overdue", is_overdue, mark_overdue, "Failed to handle overdue concern"),
    )
    for key, wanted, handle, failure in passes:
        for concern in _candidates():
            if not wanted(concern, now):
                continue
            concern_id = concern.id
            try:
                handle(concern, now)
                db.session.commit()
            except Exception as exc:
                db.session.rollback()
                results["errors"].append(f"{failure} {concern_id}: {exc}")
                log_event("escalation.failed", logging.ERROR, concern_id=concern_id, error=str(exc))
                continue
            results[key] += 1
            results["notifications_sent"] += 1

    log_event("escalation.check_completed", **{k: v for k, v in results.items() if k != "errors"},
              errors=len(results["errors"]))
    return results

def manual_escalate(concern: Concern, user: User, reason: str) -> Concern:
    if user.role == ROLE_DEPARTMENT_HEAD and user.department_id != concern.department_id:
        raise Forbidden("Unauthorized to escalate this concern")
    now = utcnow()
    concern.escalated_at = now
    concern.escalated_by = str(user.id)
    concern.escalation_reason = reason
    concern.escalation_level = escalation_level(concern, now)
    _log(concern, "manual", reason, str(user.id), concern.assigned_to)
    notify_department_head(concern)
    db.session.commit()
    log_event("escalation.manual", concern_id=concern.id, user_id=user.id)
    return concern

def stats(now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    day_start = datetime(now.year, now.month, now.day)
    escalated = Concern.query.filter(Concern.escalated_at.isnot(None))
    overdue = Concern.query.filter(Concern.overdue_at.isnot(None))
    total_escalated = escalated.count()
    total_overdue = overdue.count()
    escalated_today = escalated.filter(Concern.escalated_at >= day_start).count()
    overdue_today = overdue.filter(Concern.overdue_at >= day_start).count()
    return {
        "total_escalated": total_escalated,
        "total_overdue": total_overdue,
        "escalated_today": escalated_today,
        "overdue_today": overdue_today,
        "escalation_rate": percent(escalated_today, total_escalated),
        "overdue_rate": percent(overdue_today, total_overdue),
        "open_escalated": escalated.filter(Concern.status.notin_(INACTIVE_STATUSES)).count(),
    }
