from datetime import datetime
from sqlalchemy import CheckConstraint
from studentlink.extensions import db

TYPE_ACADEMIC = "academic"
TYPE_ADMINISTRATIVE = "administrative"

class Department(db.Model):
    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(20), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(20), nullable=False, default=TYPE_ACADEMIC)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    users = db.relationship("User", back_populates="department")

    __table_args__ = (
        CheckConstraint("type IN ('academic','administrative')", name="ck_departments_type_valid"),
    )

    def head(self):
        from .user import User, ROLE_DEPARTMENT_HEAD
        return User.query.filter_by(department_id=self.id, role=ROLE_DEPARTMENT_HEAD, is_active=True).first()

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "code": self.code}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "type": self.type,
            "is_active": self.is_active,
        }
