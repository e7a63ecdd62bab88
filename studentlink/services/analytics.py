from collections import Counter
from datetime import timedelta
from typing import Iterable, List, Optional

from studentlink.models import Concern, CrossDepartmentAssignment, Department, User
from studentlink.models.user import ROLE_STAFF
from studentlink.models.concern import STATUS_IN_PROGRESS, STATUS_PENDING, STATUS_RESOLVED
from studentlink.models.cross_department_assignment import STATUS_ACTIVE, STATUS_COMPLETED
from studentlink.utils.helpers import hours_between, percent, utcnow

DEFAULT_RANGE_DAYS = 30
MAX_TREND_DAYS = 30

def _window(days: int):
    return utcnow() - timedelta(days=days)

def _concerns(department_id: Optional[int], days: int) -> List[Concern]:
    q = Concern.query.filter(Concern.created_at >= _window(days))
    if department_id:
        q = q.filter(Concern.department_id == department_id)
    return q.all()

def average_resolution_hours(concerns: Iterable[Concern]) -> float:
    """Mean assigned_at -> resolved_at, 0 when nothing qualifies."""
    hours = [hours_between(c.assigned_at, c.resolved_at) for c in concerns if c.assigned_at and c.resolved_at]
    return round(sum(hours) / len(hours), 2) if hours else 0

def _average_escalation_hours(concerns: Iterable[Concern]) -> float:
    hours = [hours_between(c.assigned_at, c.escalated_at) for c in concerns if c.assigned_at and c.escalated_at]
    return round(sum(hours) / len(hours), 2) if hours else 0

def _count(concerns, status):
    return sum(1 for c in concerns if c.status == status)

def overview(concerns: List[Concern]) -> dict:
    total = len(concerns)
    resolved = _count(concerns, STATUS_RESOLVED)
    escalated = sum(1 for c in concerns if c.escalated_at)
    return {
        "total_concerns": total,
        "resolved_concerns": resolved,
        "pending_concerns": _count(concerns, STATUS_PENDING),
        "in_progress_concerns": _count(concerns, STATUS_IN_PROGRESS),
        "resolution_rate": percent(resolved, total),
        "average_resolution_time_hours": average_resolution_hours(concerns),
        "escalation_rate": percent(escalated, total),
    }

def staff_performance(department_id: Optional[int], days: int) -> List[dict]:
    q = User.query.filter_by(role=ROLE_STAFF, is_active=True)
    if department_id:
        q = q.filter_by(department_id=department_id)

    since = _window(days)
    rows = []
    for member in q.order_by(User.id).all():
        concerns = Concern.query.filter(Concern.assigned_to == member.id, Concern.created_at >= since).all()
        resolved = [c for c in concerns if c.status == STATUS_RESOLVED]
        escalated = sum(1 for c in concerns if c.escalated_at)
        rows.append({
            "staff_id": member.id,
            "name": member.name,
            "employee_id": member.employee_id,
            "department": member.department.to_summary() if member.department else None,
            "total_assigned": len(concerns),
            "resolved": len(resolved),
            "pending": _count(concerns, STATUS_PENDING),
            "in_progress": _count(concerns, STATUS_IN_PROGRESS),
            "resolution_rate": percent(len(resolved), len(concerns)),
            "average_resolution_time_hours": average_resolution_hours(resolved),
            "escalated_concerns": escalated,
            "escalation_rate": percent(escalated, len(concerns)),
            "current_workload": sum(1 for c in concerns if c.status in (STATUS_PENDING, STATUS_IN_PROGRESS)),
            "last_active": member.last_login_at.isoformat() if member.last_login_at else None,
        })
    rows.sort(key=lambda r: r["resolution_rate"], reverse=True)
    return rows

def department_performance(department_id: Optional[int], days: int) -> List[dict]:
    q = Department.query
    if department_id:
        q = q.filter_by(id=department_id)

    rows = []
    for dept in q.order_by(Department.id).all():
        concerns = _concerns(dept.id, days)
        resolved = [c for c in concerns if c.status == STATUS_RESOLVED]
        staff = User.query.filter_by(department_id=dept.id, role=ROLE_STAFF, is_active=True).count()
        rows.append({
            "department_id": dept.id,
            "department_name": dept.name,
            "total_concerns": len(concerns),
            "resolved_concerns": len(resolved),
            "resolution_rate": percent(len(resolved), len(concerns)),
            "average_resolution_time_hours": average_resolution_hours(resolved),
            "escalation_rate": percent(sum(1 for c in concerns if c.escalated_at), len(concerns)),
            "staff_count": staff,
            "concerns_per_staff": round(len(concerns) / staff, 2) if staff else 0,
        })
    rows.sort(key=lambda r: r["resolution_rate"], reverse=True)
    return rows

def resolution_time_distribution(concerns: Iterable[Concern]) -> dict:
    buckets = {
        "under_1_hour": 0,
        "1_to_6_hours": 0,
        "6_to_24_hours": 0,
        "1_to_3_days": 0,
        "over_3_days": 0,
    }
    for c in concerns:
        hours = hours_between(c.assigned_at, c.resolved_at)
        if hours is None:
            continue
        if hours < 1:
            buckets["under_1_hour"] += 1
        elif hours <= 6:
            buckets["1_to_6_hours"] += 1
        elif hours <= 24:
            buckets["6_to_24_hours"] += 1
        elif hours <= 72:
            buckets["1_to_3_days"] += 1
        else:
            buckets["over_3_days"] += 1
    return buckets

def concern_analytics(concerns: List[Concern]) -> dict:
    resolved = [c for c in concerns if c.status == STATUS_RESOLVED]
    classified = sum(1 for c in concerns if c.ai_classification)
    return {
        "by_priority": dict(Counter(c.priority for c in concerns)),
        "by_type": dict(Counter(c.type for c in concerns)),
        "by_status": dict(Counter(c.status for c in concerns)),
        "resolution_time_distribution": resolution_time_distribution(resolved),
        "ai_classification": {
            "total_classified": classified,
            "classification_rate": percent(classified, len(concerns)),
        },
    }

def escalation_analytics(concerns: List[Concern]) -> dict:
    escalated = [c for c in concerns if c.escalated_at]
    levels = Counter(c.escalation_level for c in escalated)
    return {
        "total_escalated": len(escalated),
        "escalation_rate": percent(len(escalated), len(concerns)),
        "by_level": {level: levels.get(level, 0) for level in ("staff", "department_head", "admin")},
        "average_escalation_time_hours": _average_escalation_hours(escalated),
        "escalation_reasons": dict(Counter(c.escalation_reason for c in escalated if c.escalation_reason)),
    }

def cross_department_analytics(department_id: Optional[int], days: int) -> dict:
    q = CrossDepartmentAssignment.query.filter(CrossDepartmentAssignment.assigned_at >= _window(days))
    if department_id:
        q = q.filter(CrossDepartmentAssignment.requesting_department_id == department_id)
    rows = q.all()
    completed = [r for r in rows if r.status == STATUS_COMPLETED]
    durations = [hours_between(r.assigned_at, r.completed_at) for r in completed if r.completed_at]
    return {
        "total_assignments": len(rows),
        "completed_assignments": len(completed),
        "active_assignments": sum(1 for r in rows if r.status == STATUS_ACTIVE),
        "completion_rate": percent(len(completed), len(rows)),
        "average_duration_hours": round(sum(durations) / len(durations), 2) if durations else 0,
        "by_type": dict(Counter(r.assignment_type for r in rows)),
    }

def trends(concerns: List[Concern], days: int) -> List[dict]:
    days = min(days, MAX_TREND_DAYS)
    today = utcnow().date()
    rows = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        rows.append({
            "date": day.isoformat(),
            "concerns_created": sum(1 for c in concerns if c.created_at.date() == day),
            "concerns_resolved": sum(1 for c in concerns if c.resolved_at and c.resolved_at.date() == day),
            "escalations": sum(1 for c in concerns if c.escalated_at and c.escalated_at.date() == day),
        })
    return rows

def performance(department_id: Optional[int] = None, days: int = DEFAULT_RANGE_DAYS) -> dict:
    concerns = _concerns(department_id, days)
    return {
        "overview": overview(concerns),
        "staff_performance": staff_performance(department_id, days),
        "department_performance": department_performance(department_id, days),
        "concern_analytics": concern_analytics(concerns),
        "escalation_analytics": escalation_analytics(concerns),
        "cross_department_analytics": cross_department_analytics(department_id, days),
        "trends": trends(concerns, days),
    }

def workload_distribution(department_id: Optional[int] = None) -> dict:
    q = User.query.filter_by(role=ROLE_STAFF, is_active=True)
    if department_id:
        q = q.filter_by(department_id=department_id)

    dist = {"light_workload": 0, "moderate_workload": 0, "heavy_workload": 0, "overloaded": 0}
    for member in q.all():
        load = Concern.query.filter(
            Concern.assigned_to == member.id,
            Concern.status.in_((STATUS_PENDING, STATUS_IN_PROGRESS)),
        ).count()
        if load <= 3:
            dist["light_workload"] += 1
        elif load <= 7:
            dist["moderate_workload"] += 1
        elif load <= 10:
            dist["heavy_workload"] += 1
        else:
            dist["overloaded"] += 1
    return dist
