from datetime import datetime
from studentlink.extensions import db

class EscalationLog(db.Model):
    __tablename__ = "escalation_logs"

    id = db.Column(db.Integer, primary_key=True)
    concern_id = db.Column(db.Integer, db.ForeignKey("concerns.id", ondelete="CASCADE"), nullable=False, index=True)
    escalation_type = db.Column(db.String(20), nullable=False)  # automated|manual|overdue
    escalation_reason = db.Column(db.Text, nullable=True)
    escalated_by = db.Column(db.String(50), nullable=False)
    previous_assignee = db.Column(db.Integer, nullable=True)
    new_assignee = db.Column(db.Integer, nullable=True)
    escalated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<EscalationLog concern={self.concern_id} type={self.escalation_type}>"
