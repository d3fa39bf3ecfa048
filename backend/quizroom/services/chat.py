import re
from typing import List, Optional

from markupsafe import Markup, escape

from quizroom import db
from quizroom.models import ChatMessage


_TAG_RE = re.compile(r'<!--.*?-->|<[^>]*>', re.DOTALL)


def topic_room(topic: str) -> str:
    return f"topic_{topic}"


def sanitize_message(message, max_length: int = 500) -> str:
    """Strip every HTML tag and escape what is left.

    Line breaks are kept. ``max_length`` bounds the escaped result, and an
    entity is never cut in half. Returns an empty string for anything that is
    not text.
    """
    if not isinstance(message, str):
        return ''
    text = Markup(_TAG_RE.sub('', message)).unescape().strip()
    pieces = []
    size = 0
    for char in text:
        piece = str(escape(char))
        if size + len(piece) > max_length:
            break
        pieces.append(piece)
        size += len(piece)
    return ''.join(pieces).rstrip()


def save_message(topic: str, sender_id: str, sender_nickname: str, message: str) -> ChatMessage:
    entry = ChatMessage(
        topic=topic,
        sender_id=sender_id,
        sender_nickname=sender_nickname,
        message=message,
    )
    db.session.add(entry)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return entry


def recent_history(topic: str, limit: Optional[int] = 50) -> List[ChatMessage]:
    """The newest ``limit`` messages for a topic, oldest first."""
    query = ChatMessage.query.filter_by(topic=topic).order_by(ChatMessage.timestamp.desc(), ChatMessage.id.desc())
    if limit:
        query = query.limit(limit)
    return list(reversed(query.all()))
