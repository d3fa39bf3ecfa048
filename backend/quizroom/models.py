from datetime import datetime, timezone

from quizroom import db


def _utcnow():
    return datetime.now(timezone.utc)


class ChatMessage(db.Model):
    __tablename__ = 'chat_message'
    id = db.Column(db.Integer, primary_key=True)
    topic = db.Column(db.String(128), nullable=False, index=True)
    sender_id = db.Column(db.String(128), nullable=False)
    sender_nickname = db.Column(db.String(64), nullable=False)
    message = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'senderId': self.sender_id,
            'senderNickname': self.sender_nickname,
            'message': self.message,
            'topic': self.topic,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
