from datetime import datetime, timedelta
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import CheckConstraint
from studentlink.extensions import db

# Keep simple text+CHECK for evolvable roles (no DB enum migration pain)
ROLE_ADMIN = "admin"
ROLE_DEPARTMENT_HEAD = "department_head"
ROLE_STAFF = "staff"
ROLE_STUDENT = "student"
ROLE_CHOICES = (ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF, ROLE_STUDENT)
CONCERN_HANDLER_ROLES = (ROLE_STAFF, ROLE_DEPARTMENT_HEAD, ROLE_ADMIN)

class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_STUDENT)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id", ondelete="SET NULL"), index=True, nullable=True)
    employee_id = db.Column(db.String(50), nullable=True, unique=True)
    student_id = db.Column(db.String(50), nullable=True, unique=True)
    phone = db.Column(db.String(30), nullable=True)
    title = db.Column(db.String(120), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    can_handle_cross_department = db.Column(db.Boolean, nullable=False, default=False)
    preferences = db.Column(db.JSON, nullable=True)
    last_login_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    department = db.relationship("Department", back_populates="users")

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin','department_head','staff','student')",
            name="ck_users_role_valid",
        ),
    )

    # helpers
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def get_id(self) -> str:
        return str(self.id)

    def has_role(self, role: str) -> bool:
        return self.role == role

    def has_any_role(self, roles) -> bool:
        return self.role in tuple(roles)

    @property
    def display_id(self) -> str:
        return self.student_id or self.employee_id or "N/A"

    @property
    def can_handle_concerns(self) -> bool:
        return self.role in CONCERN_HANDLER_ROLES

    def active_concerns_query(self):
        """Assigned, not archived and still open: the load used for balancing."""
        from .concern import Concern, INACTIVE_STATUSES
        return Concern.query.filter(
            Concern.assigned_to == self.id,
            Concern.archived_at.is_(None),
            Concern.status.notin_(INACTIVE_STATUSES),
        )

    def active_workload(self) -> int:
        return self.active_concerns_query().count()

    def workload_metrics(self) -> dict:
        if not self.can_handle_concerns:
            return {}
        from .concern import Concern

        assigned = Concern.query.filter(Concern.assigned_to == self.id).all()
        active = [c for c in assigned if c.archived_at is None]
        now = datetime.utcnow()
        return {
            "total_assigned": len(active),
            "newly_assigned": sum(1 for c in active if c.created_at >= now - timedelta(days=1)),
            "pending": sum(1 for c in active if c.status == "pending"),
            "in_progress": sum(1 for c in active if c.status == "in_progress"),
            "resolved": sum(1 for c in active if c.status == "resolved"),
            "total_resolved": sum(1 for c in assigned if c.status in ("resolved", "closed")),
            "overdue": sum(1 for c in active if c.created_at < now - timedelta(days=7)),
            "archived": len(assigned) - len(active),
            "total_all_time": len(assigned),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "department_id": self.department_id,
            "department": self.department.to_summary() if self.department else None,
            "employee_id": self.employee_id,
            "student_id": self.student_id,
            "display_id": self.display_id,
            "phone": self.phone,
            "title": self.title,
            "is_active": self.is_active,
            "can_handle_cross_department": self.can_handle_cross_department,
            "preferences": self.preferences or {},
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
