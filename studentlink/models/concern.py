from datetime import datetime
from sqlalchemy import CheckConstraint
from studentlink.extensions import db

TYPE_CHOICES = ("academic", "administrative", "technical", "health", "safety", "other")
PRIORITY_CHOICES = ("low", "medium", "high", "urgent")
PRIORITY_RANK = {p: i for i, p in enumerate(PRIORITY_CHOICES)}

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_IN_PROGRESS = "in_progress"
STATUS_RESOLVED = "resolved"
STATUS_STUDENT_CONFIRMED = "student_confirmed"
STATUS_CLOSED = "closed"
STATUS_REJECTED = "rejected"
STATUS_CHOICES = (
    STATUS_PENDING, STATUS_APPROVED, STATUS_IN_PROGRESS, STATUS_RESOLVED,
    STATUS_STUDENT_CONFIRMED, STATUS_CLOSED, STATUS_REJECTED,
)

# Still waiting on staff action
OPEN_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_IN_PROGRESS)
# Do not count toward anyone's workload
INACTIVE_STATUSES = (STATUS_RESOLVED, STATUS_STUDENT_CONFIRMED, STATUS_CLOSED, STATUS_REJECTED)

REFERENCE_PREFIX = "CNR"

class Concern(db.Model):
    __tablename__ = "concerns"

    id = db.Column(db.Integer, primary_key=True)
    reference_number = db.Column(db.String(20), nullable=False, unique=True)
    subject = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default="other")
    category = db.Column(db.String(30), nullable=True)
    priority = db.Column(db.String(10), nullable=False, default="medium")
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)

    department_id = db.Column(db.Integer, db.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    assigned_at = db.Column(db.DateTime, nullable=True)

    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolution_notes = db.Column(db.Text, nullable=True)
    archived_at = db.Column(db.DateTime, nullable=True)

    escalated_at = db.Column(db.DateTime, nullable=True)
    escalated_by = db.Column(db.String(50), nullable=True)  # 'system' or a user id
    escalation_reason = db.Column(db.Text, nullable=True)
    escalation_level = db.Column(db.String(20), nullable=True)  # staff|department_head|admin
    overdue_at = db.Column(db.DateTime, nullable=True)

    ai_classification = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    department = db.relationship("Department")
    student = db.relationship("User", foreign_keys=[student_id])
    assignee = db.relationship("User", foreign_keys=[assigned_to])

    __table_args__ = (
        CheckConstraint("priority IN ('low','medium','high','urgent')", name="ck_concerns_priority_valid"),
    )

    @staticmethod
    def next_reference_number(now: datetime | None = None) -> str:
        """CNR + YYYYMM + 4-digit sequence that restarts every month."""
        now = now or datetime.utcnow()
        prefix = f"{REFERENCE_PREFIX}{now:%Y%m}"
        # longer suffix sorts first so ...10000 beats ...9999
        last = (
            db.session.query(Concern.reference_number)
            .filter(Concern.reference_number.like(f"{prefix}%"))
            .order_by(db.func.length(Concern.reference_number).desc(), Concern.reference_number.desc())
            .limit(1)
            .scalar()
        )
        seq = int(last[len(prefix):]) + 1 if last else 1
        return f"{prefix}{seq:04d}"

    def assign(self, staff, when: datetime | None = None) -> None:
        self.assigned_to = staff.id if staff is not None else None
        self.assigned_at = (when or datetime.utcnow()) if staff is not None else None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES and self.archived_at is None

    def to_dict(self) -> dict:
        def _iso(v):
            return v.isoformat() if v else None
        return {
            "id": self.id,
            "reference_number": self.reference_number,
            "subject": self.subject,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "department_id": self.department_id,
            "department": self.department.to_summary() if self.department else None,
            "student_id": self.student_id,
            "student": self.student.to_summary() if self.student else None,
            "assigned_to": self.assigned_to,
            "assignee": self.assignee.to_summary() if self.assignee else None,
            "assigned_at": _iso(self.assigned_at),
            "resolved_at": _iso(self.resolved_at),
            "resolution_notes": self.resolution_notes,
            "archived_at": _iso(self.archived_at),
            "escalated_at": _iso(self.escalated_at),
            "escalation_level": self.escalation_level,
            "escalation_reason": self.escalation_reason,
            "overdue_at": _iso(self.overdue_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Concern id={self.id} ref={self.reference_number} status={self.status}>"
