from datetime import datetime, timedelta
from sqlalchemy import CheckConstraint
from studentlink.extensions import db

STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_EXPIRED = "expired"

class CrossDepartmentAssignment(db.Model):
    __tablename__ = "cross_department_assignments"

    id = db.Column(db.Integer, primary_key=True)
    concern_id = db.Column(db.Integer, db.ForeignKey("concerns.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    requesting_department_id = db.Column(db.Integer, db.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True)
    assignment_type = db.Column(db.String(30), nullable=False, default="cross_department")
    estimated_duration_hours = db.Column(db.Integer, nullable=False, default=8)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE, index=True)
    assigned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)
    assigned_by = db.Column(db.String(50), nullable=True)  # 'system' or a user id
    completion_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    concern = db.relationship("Concern")
    staff = db.relationship("User")
    requesting_department = db.relationship("Department")

    __table_args__ = (
        CheckConstraint("status IN ('active','completed','expired')", name="ck_cda_status_valid"),
    )

    @property
    def expires_at(self) -> datetime:
        return self.assigned_at + timedelta(hours=self.estimated_duration_hours or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "concern_id": self.concern_id,
            "staff_id": self.staff_id,
            "staff": self.staff.to_summary() if self.staff else None,
            "requesting_department_id": self.requesting_department_id,
            "assignment_type": self.assignment_type,
            "estimated_duration_hours": self.estimated_duration_hours,
            "status": self.status,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "assigned_by": self.assigned_by,
            "completion_notes": self.completion_notes,
        }
