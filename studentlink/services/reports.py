"""
Administrative report exports.

Each report type has a query (with the shared date/status/department
filters), a summary block of counts for the HTML/PDF header, and a CSV
column layout. Rendering is a plain Jinja template; PDFs are the same
HTML run through WeasyPrint.
"""
import csv
import io
from collections import Counter
from datetime import datetime, timedelta
from typing import List, Tuple

from flask import current_app, render_template, request
from weasyprint import HTML

from studentlink.extensions import db
from studentlink.models import Announcement, Concern, Department, User
from studentlink.models.concern import STATUS_PENDING, STATUS_RESOLVED
from studentlink.observability import log_event
from studentlink.utils.helpers import parse_date, percent, safe_int, utcnow
from .errors import ValidationFailed

REPORT_TYPES = ("concerns", "users", "announcements", "departments")
FORMATS = ("html", "pdf", "csv", "excel")
FILTER_KEYS = ("date_from", "date_to", "status", "department_id")

STAMP = "%Y-%m-%d %H:%M:%S"

TITLES = {
    "concerns": "Concerns",
    "users": "Users",
    "announcements": "Announcements",
    "departments": "Departments",
}


def parse_request(args) -> Tuple[str, str, dict]:
    """(type, format, filters) from query args; 422 on bad input."""
    errors = {}
    report_type = args.get("type")
    fmt = (args.get("format") or "html").lower()
    if report_type not in REPORT_TYPES:
        errors.setdefault("type", []).append("The selected type is invalid.")
    if fmt not in FORMATS:
        errors.setdefault("format", []).append("The selected format is invalid.")

    filters = {}
    for key in ("date_from", "date_to"):
        raw = args.get(key)
        if raw:
            value = parse_date(raw)
            if value is None:
                errors.setdefault(key, []).append(f"The {key} is not a valid date.")
            else:
                filters[key] = value
    if filters.get("date_from") and filters.get("date_to") and filters["date_to"] < filters["date_from"]:
        errors.setdefault("date_to", []).append("The date_to must be a date after or equal to date_from.")
    if args.get("status"):
        filters["status"] = args.get("status")
    if args.get("department_id"):
        department_id = safe_int(args.get("department_id"))
        if department_id is None or db.session.get(Department, department_id) is None:
            errors.setdefault("department_id", []).append("The selected department_id is invalid.")
        else:
            filters["department_id"] = department_id

    if errors:
        raise ValidationFailed(errors)
    return report_type, fmt, filters


def _date_window(q, column, filters: dict):
    if filters.get("date_from"):
        q = q.filter(column >= datetime.combine(filters["date_from"], datetime.min.time()))
    if filters.get("date_to"):
        # date_to covers the whole day
        q = q.filter(column < datetime.combine(filters["date_to"] + timedelta(days=1), datetime.min.time()))
    return q


# ---- record collection ----

def collect_concerns(filters: dict) -> List[Concern]:
    q = _date_window(Concern.query, Concern.created_at, filters)
    if filters.get("department_id"):
        q = q.filter(Concern.department_id == filters["department_id"])
    if filters.get("status"):
        q = q.filter(Concern.status == filters["status"])
    return q.order_by(Concern.created_at.desc(), Concern.id.desc()).all()

def collect_users(filters: dict) -> List[User]:
    q = _date_window(User.query, User.created_at, filters)
    if filters.get("department_id"):
        q = q.filter(User.department_id == filters["department_id"])
    if filters.get("status"):
        q = q.filter(User.is_active.is_(filters["status"] == "active"))
    return q.order_by(User.created_at.desc(), User.id.desc()).all()

def collect_announcements(filters: dict) -> List[Announcement]:
    q = _date_window(Announcement.query, Announcement.created_at, filters)
    if filters.get("status"):
        q = q.filter(Announcement.status == filters["status"])
    return q.order_by(Announcement.created_at.desc(), Announcement.id.desc()).all()

def rate_class(rate: float) -> str:
    if rate >= 80:
        return "high"
    if rate >= 60:
        return "medium"
    return "low"

def collect_departments(filters: dict) -> List[dict]:
    """Departments with user and concern counts attached."""
    q = Department.query
    if filters.get("department_id"):
        q = q.filter(Department.id == filters["department_id"])

    rows = []
    for dept in q.order_by(Department.name).all():
        statuses = Counter(s for (s,) in db.session.query(Concern.status).filter(Concern.department_id == dept.id))
        total = sum(statuses.values())
        rate = percent(statuses[STATUS_RESOLVED], total, digits=1)
        rows.append({
            "department": dept,
            "users_count": User.query.filter_by(department_id=dept.id).count(),
            "concerns_count": total,
            "pending_concerns_count": statuses[STATUS_PENDING],
            "resolved_concerns_count": statuses[STATUS_RESOLVED],
            "resolution_rate": rate,
            "rate_class": rate_class(rate),
        })
    return rows

COLLECTORS = {
    "concerns": collect_concerns,
    "users": collect_users,
    "announcements": collect_announcements,
    "departments": collect_departments,
}


# ---- summary blocks ----

def summarize(report_type: str, records: list) -> List[Tuple[str, int]]:
    """(label, value) pairs for the summary strip."""
    if report_type == "concerns":
        statuses = Counter(c.status for c in records)
        return [
            ("Pending", statuses["pending"]),
            ("In Progress", statuses["in_progress"]),
            ("Resolved", statuses["resolved"]),
            ("Closed", statuses["closed"]),
        ]
    if report_type == "users":
        roles = Counter(u.role for u in records)
        return [
            ("Admins", roles["admin"]),
            ("Department Heads", roles["department_head"]),
            ("Staff", roles["staff"]),
            ("Students", roles["student"]),
            ("Active Users", sum(1 for u in records if u.is_active)),
        ]
    if report_type == "announcements":
        statuses = Counter(a.status for a in records)
        return [
            ("Drafts", statuses["draft"]),
            ("Published", statuses["published"]),
            ("Archived", statuses["archived"]),
            ("Total Views", sum(a.view_count or 0 for a in records)),
        ]
    types = Counter(r["department"].type for r in records)
    return [
        ("Academic Departments", types["academic"]),
        ("Administrative Departments", types["administrative"]),
        ("Total Users", sum(r["users_count"] for r in records)),
        ("Total Concerns", sum(r["concerns_count"] for r in records)),
    ]

def describe_filters(report_type: str, filters: dict) -> List[Tuple[str, str]]:
    """Human-readable filter lines for the report header."""
    lines = []
    if report_type == "departments":
        if filters:
            lines.append(("Report Type", "Department Performance Analysis"))
        return lines
    if filters.get("date_from"):
        lines.append(("From Date", f"{filters['date_from']:%B} {filters['date_from'].day}, {filters['date_from']:%Y}"))
    if filters.get("date_to"):
        lines.append(("To Date", f"{filters['date_to']:%B} {filters['date_to'].day}, {filters['date_to']:%Y}"))
    if filters.get("department_id") and report_type != "announcements":
        dept = db.session.get(Department, filters["department_id"])
        lines.append(("Department", dept.name if dept else "N/A"))
    if filters.get("status"):
        lines.append(("Status", filters["status"].replace("_", " ").capitalize()))
    return lines


# ---- renderers ----

def render_html(report_type: str, records: list, filters: dict) -> str:
    return render_template(
        f"reports/{report_type}.html",
        title=TITLES[report_type],
        records=records,
        filters=describe_filters(report_type, filters),
        summary=summarize(report_type, records),
        generated_at=utcnow(),
        total_count=len(records),
        site_name=current_app.config.get("SITE_NAME", "StudentLink"),
        institution=current_app.config.get("INSTITUTION_NAME", ""),
    )

def render_pdf(html: str) -> bytes:
    return HTML(string=html, base_url=request.host_url).write_pdf()

def _stamp(value) -> str:
    return value.strftime(STAMP) if value else "N/A"

CSV_LAYOUTS = {
    "concerns": (
        ["Reference Number", "Subject", "Description", "Type", "Priority", "Status",
         "Student Name", "Student ID", "Department", "Assigned To",
         "Created At", "Updated At", "Resolved At"],
        lambda c: [
            c.reference_number, c.subject, c.description, c.type, c.priority, c.status,
            c.student.name if c.student else "N/A",
            c.student.display_id if c.student else "N/A",
            c.department.name if c.department else "N/A",
            c.assignee.name if c.assignee else "Unassigned",
            _stamp(c.created_at), _stamp(c.updated_at), _stamp(c.resolved_at),
        ],
    ),
    "users": (
        ["Name", "Email", "Display ID", "Role", "Department", "Phone", "Status",
         "Last Login", "Created At", "Updated At"],
        lambda u: [
            u.name, u.email, u.display_id, u.role,
            u.department.name if u.department else "N/A",
            u.phone or "N/A",
            "Active" if u.is_active else "Inactive",
            u.last_login_at.strftime(STAMP) if u.last_login_at else "Never",
            _stamp(u.created_at), _stamp(u.updated_at),
        ],
    ),
    "announcements": (
        ["Title", "Content", "Type", "Priority", "Status", "Author", "View Count",
         "Bookmark Count", "Published At", "Expires At", "Created At", "Updated At"],
        lambda a: [
            a.title, a.content, a.type, a.priority, a.status,
            a.author.name if a.author else "N/A",
            a.view_count, a.bookmark_count,
            _stamp(a.published_at), _stamp(a.expires_at),
            _stamp(a.created_at), _stamp(a.updated_at),
        ],
    ),
    "departments": (
        ["Name", "Code", "Description", "Type", "Status", "Total Users", "Total Concerns",
         "Pending Concerns", "Resolved Concerns", "Resolution Rate (%)", "Created At", "Updated At"],
        lambda r: [
            r["department"].name, r["department"].code, r["department"].description or "N/A",
            r["department"].type, "Active" if r["department"].is_active else "Inactive",
            r["users_count"], r["concerns_count"], r["pending_concerns_count"],
            r["resolved_concerns_count"],
            percent(r["resolved_concerns_count"], r["concerns_count"]),
            _stamp(r["department"].created_at), _stamp(r["department"].updated_at),
        ],
    ),
}

def render_csv(report_type: str, records: list) -> str:
    header, row = CSV_LAYOUTS[report_type]
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(header)
    for record in records:
        w.writerow(row(record))
    out = buf.getvalue()
    buf.close()
    return out

def export(report_type: str, fmt: str, filters: dict) -> Tuple[object, str, str]:
    """(body, content_type, filename) ready for a response."""
    records = COLLECTORS[report_type](filters)
    stamp = utcnow().strftime("%Y-%m-%d_%H-%M-%S")
    base = f"{report_type}_report_{stamp}"
    log_event("report.export", type=report_type, format=fmt, records=len(records))

    if fmt in ("csv", "excel"):
        return render_csv(report_type, records), "text/csv; charset=utf-8", f"{base}.csv"
    html = render_html(report_type, records, filters)
    if fmt == "pdf":
        return render_pdf(html), "application/pdf", f"{base}.pdf"
    return html, "text/html; charset=utf-8", f"{base}.html"
