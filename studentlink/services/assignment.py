"""
Smart assignment: pick a staff member for a concern.

Each candidate gets a weighted score from current load, title/role skill
match and recent resolution speed. The best in-department candidate wins
when it clears MIN_SCORE; otherwise staff flagged for cross-department
work are considered against the lower CROSS_DEPARTMENT_MIN_SCORE, and a
CrossDepartmentAssignment row records the loan.
"""
import logging
from datetime import timedelta
from typing import List, Optional

from studentlink.extensions import db
from studentlink.models import Concern, CrossDepartmentAssignment, User
from studentlink.models.user import ROLE_STAFF
from studentlink.models.concern import INACTIVE_STATUSES, STATUS_RESOLVED
from studentlink.observability import log_event
from studentlink.utils.helpers import hours_between, percent, utcnow

WORKLOAD_THRESHOLD = 5
WORKLOAD_WEIGHT = 0.4
SKILL_WEIGHT = 0.3
RESPONSE_WEIGHT = 0.3
MIN_SCORE = 0.5
CROSS_DEPARTMENT_MIN_SCORE = 0.4
RESPONSE_WINDOW_DAYS = 30
DEFAULT_RESPONSE_HOURS = 12

SKILL_KEYWORDS = {
    "academic": ("academic_advisor", "registrar", "faculty"),
    "technical": ("it_support", "technical_support", "system_admin"),
    "administrative": ("admin_staff", "secretary", "coordinator"),
    "health": ("health_services", "counselor", "nurse"),
    "safety": ("security", "safety_officer", "emergency_response"),
}
GENERAL_SKILLS = ("support", "assistant", "coordinator", "specialist")

BASE_HOURS = {"urgent": 2, "high": 4, "medium": 8, "low": 24}
TYPE_MULTIPLIER = {
    "academic": 1.0,
    "technical": 1.5,
    "administrative": 0.8,
    "health": 0.5,
    "safety": 0.3,
}

DEPARTMENT_SKILLS = {
    "BSIT": ["Technical Support", "System Administration", "Programming", "Database", "Networking"],
    "BSBA": ["Business Analysis", "Project Management", "Customer Service", "Marketing", "Finance"],
    "BSED": ["Academic Support", "Student Counseling", "Educational Planning", "Curriculum", "Assessment"],
    "BSN": ["Health Support", "Emergency Response", "Student Wellness", "Medical", "Counseling"],
    "BSA": ["Financial Analysis", "Administrative Support", "Documentation", "Accounting", "Audit"],
}
DEFAULT_SKILLS = ["General Support", "Administrative", "Customer Service"]


# ---- scoring ----

def workload_score(active: int) -> float:
    if active <= 0:
        return 1.0
    if active >= WORKLOAD_THRESHOLD:
        return 0.0
    return 1.0 - active / WORKLOAD_THRESHOLD

def skill_score(concern: Concern, staff: User) -> float:
    title = (staff.title or "").lower()
    role = (staff.role or "").lower()
    for skill in SKILL_KEYWORDS.get((concern.type or "").lower(), ()):
        if skill in title or skill in role:
            return 1.0
    for skill in GENERAL_SKILLS:
        if skill in title or skill in role:
            return 0.6
    return 0.3

def average_resolution_seconds(staff: User) -> Optional[float]:
    """created_at -> resolved_at over concerns created in the last 30 days."""
    since = utcnow() - timedelta(days=RESPONSE_WINDOW_DAYS)
    rows = (
        Concern.query
        .filter(
            Concern.assigned_to == staff.id,
            Concern.resolved_at.isnot(None),
            Concern.created_at >= since,
        )
        .all()
    )
    if not rows:
        return None
    return sum((c.resolved_at - c.created_at).total_seconds() for c in rows) / len(rows)

def response_score(staff: User) -> float:
    seconds = average_resolution_seconds(staff)
    if seconds is None:
        return 0.8
    hours = seconds / 3600
    if hours <= 1:
        return 1.0
    if hours <= 2:
        return 0.8
    if hours <= 4:
        return 0.6
    if hours <= 8:
        return 0.4
    return 0.2

def score_candidate(concern: Concern, staff: User) -> dict:
    w = workload_score(staff.active_workload())
    s = skill_score(concern, staff)
    r = response_score(staff)
    reasons = []
    if w > 0.7:
        reasons.append("Low workload")
    if s > 0.7:
        reasons.append("Skill match")
    if r > 0.7:
        reasons.append("Fast response time")
    return {
        "staff": staff,
        "score": w * WORKLOAD_WEIGHT + s * SKILL_WEIGHT + r * RESPONSE_WEIGHT,
        "workload_score": w,
        "skill_score": s,
        "response_time_score": r,
        "reasons": reasons,
    }

def _best(concern: Concern, candidates: List[User]) -> Optional[dict]:
    scored = [score_candidate(concern, s) for s in candidates]
    # stable sort keeps id order among equal scores
    scored.sort(key=lambda row: row["score"], reverse=True)
    return scored[0] if scored else None


# ---- candidate pools ----

def department_staff(department_id: int) -> List[User]:
    return (
        User.query
        .filter_by(role=ROLE_STAFF, department_id=department_id, is_active=True)
        .order_by(User.id)
        .all()
    )

def cross_department_staff() -> List[User]:
    return (
        User.query
        .filter_by(role=ROLE_STAFF, is_active=True, can_handle_cross_department=True)
        .order_by(User.id)
        .all()
    )


# ---- decisions ----

def estimate_resolution_hours(concern: Concern) -> int:
    base = BASE_HOURS.get(concern.priority, 8)
    return int(base * TYPE_MULTIPLIER.get(concern.type, 1.0))

def find_best_assignee(concern: Concern) -> Optional[User]:
    """In-department pick only; no side effects."""
    best = _best(concern, department_staff(concern.department_id))
    if best and best["score"] > MIN_SCORE:
        return best["staff"]
    return None

def find_cross_department_assignee(concern: Concern) -> Optional[User]:
    best = _best(concern, cross_department_staff())
    if best and best["score"] > CROSS_DEPARTMENT_MIN_SCORE:
        return best["staff"]
    return None

def assign_concern(concern: Concern) -> Optional[User]:
    """
    Pick and record an assignee for `concern` (flushes, caller commits).
    Falls back to cross-department staff; returns None when nobody qualifies.
    """
    log_event(
        "assignment.start",
        concern_id=concern.id,
        department_id=concern.department_id,
        priority=concern.priority,
        type=concern.type,
    )
    staff = find_best_assignee(concern)
    if staff is not None:
        concern.assign(staff)
        log_event("assignment.assigned", concern_id=concern.id, staff_id=staff.id, cross_department=False)
        return staff

    staff = find_cross_department_assignee(concern)
    if staff is None:
        log_event("assignment.unassigned", logging.WARNING, concern_id=concern.id)
        return None

    concern.assign(staff)
    db.session.add(CrossDepartmentAssignment(
        concern_id=concern.id,
        staff_id=staff.id,
        requesting_department_id=concern.department_id,
        assignment_type="cross_department",
        estimated_duration_hours=estimate_resolution_hours(concern),
        assigned_by="system",
    ))
    db.session.flush()
    log_event(
        "assignment.assigned",
        concern_id=concern.id,
        staff_id=staff.id,
        staff_department_id=staff.department_id,
        cross_department=True,
    )
    return staff


# ---- reporting helpers ----

def staff_skills(staff: User) -> List[str]:
    name = staff.department.name if staff.department else ""
    for code, skills in DEPARTMENT_SKILLS.items():
        if code in name:
            return list(skills)
    return list(DEFAULT_SKILLS)

def average_response_hours(staff: User) -> float:
    """assigned_at -> resolved_at over resolved concerns; 12h when there is no history."""
    rows = (
        Concern.query
        .filter(
            Concern.assigned_to == staff.id,
            Concern.status == STATUS_RESOLVED,
            Concern.resolved_at.isnot(None),
        )
        .all()
    )
    hours = [hours_between(c.assigned_at, c.resolved_at) for c in rows if c.assigned_at]
    if not hours:
        return DEFAULT_RESPONSE_HOURS
    return round(sum(hours) / len(hours), 2)

def open_workload(staff: User) -> int:
    """pending + in_progress, the count shown next to suggestions."""
    return Concern.query.filter(
        Concern.assigned_to == staff.id,
        Concern.status.in_(("pending", "in_progress")),
    ).count()

def describe_assignee(staff: User) -> dict:
    return {
        "id": staff.id,
        "name": staff.name,
        "email": staff.email,
        "employee_id": staff.employee_id,
        "department": staff.department.to_dict() if staff.department else None,
        "current_workload": open_workload(staff),
        "average_response_time_hours": average_response_hours(staff),
        "skills": staff_skills(staff),
    }

def rebalance_workload(department_id: int) -> List[dict]:
    """
    Suggest moves from overloaded staff to the least-loaded colleague.

    A staff member is overloaded when their active load exceeds both
    WORKLOAD_THRESHOLD and the department average. Nothing is written;
    the caller decides which suggestions to apply.
    """
    staff = department_staff(department_id)
    if len(staff) < 2:
        return []

    loads = {s.id: s.active_workload() for s in staff}
    average = sum(loads.values()) / len(loads)
    by_id = {s.id: s for s in staff}
    suggestions: List[dict] = []

    for source in staff:
        if loads[source.id] <= WORKLOAD_THRESHOLD or loads[source.id] <= average:
            continue
        concerns = (
            source.active_concerns_query()
            .order_by(Concern.created_at.desc(), Concern.id.desc())
            .all()
        )
        for concern in concerns:
            target_id = min((sid for sid in loads if sid != source.id), key=lambda sid: (loads[sid], sid))
            # stop once moving would not narrow the gap
            if loads[target_id] + 1 >= loads[source.id]:
                break
            target = by_id[target_id]
            suggestions.append({
                "concern_id": concern.id,
                "reference_number": concern.reference_number,
                "priority": concern.priority,
                "from_staff": source.to_summary(),
                "to_staff": target.to_summary(),
                "reason": f"{source.name} has {loads[source.id]} active concerns (threshold {WORKLOAD_THRESHOLD})",
            })
            loads[source.id] -= 1
            loads[target_id] += 1

    log_event("assignment.rebalance", department_id=department_id, suggestions=len(suggestions))
    return suggestions

def assignment_analytics(department_id: Optional[int] = None) -> dict:
    concerns = Concern.query
    assignments = CrossDepartmentAssignment.query
    if department_id:
        concerns = concerns.filter(Concern.department_id == department_id)
        assignments = assignments.filter(CrossDepartmentAssignment.requesting_department_id == department_id)

    total = concerns.filter(Concern.assigned_to.isnot(None)).count()
    cross = assignments.count()

    since = utcnow() - timedelta(days=RESPONSE_WINDOW_DAYS)
    resolved = concerns.filter(Concern.resolved_at.isnot(None), Concern.created_at >= since).all()
    avg_hours = (
        round(sum(hours_between(c.created_at, c.resolved_at) for c in resolved) / len(resolved), 2)
        if resolved else 0
    )

    staff_q = User.query.filter_by(role=ROLE_STAFF, is_active=True)
    if department_id:
        staff_q = staff_q.filter_by(department_id=department_id)
    workloads = []
    for s in staff_q.order_by(User.id).all():
        active = s.active_workload()
        workloads.append({
            **s.to_summary(),
            "department_id": s.department_id,
            "active_concerns": active,
            "overloaded": active >= WORKLOAD_THRESHOLD,
        })

    return {
        "total_assignments": total,
        "cross_department_assignments": cross,
        "cross_department_percentage": percent(cross, total),
        "average_response_time_hours": avg_hours,
        "workload_threshold": WORKLOAD_THRESHOLD,
        "unassigned_open": concerns.filter(
            Concern.assigned_to.is_(None),
            Concern.status.notin_(INACTIVE_STATUSES),
        ).count(),
        "staff_workloads": workloads,
    }
