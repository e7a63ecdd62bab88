from datetime import datetime
from typing import List
from studentlink.extensions import db

STATUS_ACTIVE = "active"
STATUS_CLOSED = "closed"

class ChatRoom(db.Model):
    __tablename__ = "chat_rooms"

    id = db.Column(db.Integer, primary_key=True)
    concern_id = db.Column(db.Integer, db.ForeignKey("concerns.id", ondelete="CASCADE"), nullable=False, unique=True)
    # {"<user_id>": {"user_id": int, "role": str, "joined_at": iso}}
    participants = db.Column(db.JSON, nullable=False, default=dict)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)
    last_activity_at = db.Column(db.DateTime, nullable=True)
    closed_at = db.Column(db.DateTime, nullable=True)
    closed_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    concern = db.relationship("Concern", backref=db.backref("chat_room", uselist=False))

    def participant_ids(self) -> List[int]:
        return sorted(int(p["user_id"]) for p in (self.participants or {}).values())

    def has_participant(self, user_id: int) -> bool:
        return str(user_id) in (self.participants or {})

    # JSON columns only persist on reassignment, so every mutation copies the map
    def add_participant(self, user_id: int, role: str = "participant") -> None:
        participants = dict(self.participants or {})
        participants[str(user_id)] = {
            "user_id": user_id,
            "role": role,
            "joined_at": datetime.utcnow().isoformat(),
        }
        self.participants = participants

    def remove_participant(self, user_id: int) -> None:
        participants = dict(self.participants or {})
        if participants.pop(str(user_id), None) is not None:
            self.participants = participants

    def touch(self) -> None:
        self.last_activity_at = datetime.utcnow()

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def close(self, closed_by: int) -> None:
        self.status = STATUS_CLOSED
        self.closed_at = datetime.utcnow()
        self.closed_by = closed_by

    def reopen(self) -> None:
        self.status = STATUS_ACTIVE
        self.closed_at = None
        self.closed_by = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "concern_id": self.concern_id,
            "participants": list((self.participants or {}).values()),
            "status": self.status,
            "last_activity_at": self.last_activity_at.isoformat() if self.last_activity_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
        }
