from datetime import datetime
from studentlink.extensions import db

class ConcernMessage(db.Model):
    __tablename__ = "concern_messages"

    id = db.Column(db.Integer, primary_key=True)
    concern_id = db.Column(db.Integer, db.ForeignKey("concerns.id", ondelete="CASCADE"), nullable=False, index=True)
    chat_room_id = db.Column(db.Integer, db.ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=True, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    message = db.Column(db.Text, nullable=False)
    message_type = db.Column(db.String(20), nullable=False, default="text")  # text|system|attachment
    reply_to_id = db.Column(db.Integer, db.ForeignKey("concern_messages.id", ondelete="SET NULL"), nullable=True)
    is_internal = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = db.relationship("User")
    reply_to = db.relationship("ConcernMessage", remote_side=[id])

    def to_dict(self) -> dict:
        reply_to = None
        if self.reply_to is not None:
            reply_to = {
                "id": self.reply_to.id,
                "message": self.reply_to.message,
                "author_id": self.reply_to.author_id,
                "author": self.reply_to.author.to_summary() if self.reply_to.author else None,
                "created_at": self.reply_to.created_at.isoformat() if self.reply_to.created_at else None,
            }
        return {
            "id": self.id,
            "concern_id": self.concern_id,
            "chat_room_id": self.chat_room_id,
            "author_id": self.author_id,
            "author": self.author.to_summary() if self.author else None,
            "message": self.message,
            "message_type": self.message_type,
            "reply_to_id": self.reply_to_id,
            "reply_to": reply_to,
            "is_internal": self.is_internal,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
