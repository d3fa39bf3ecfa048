from flask import current_app, request
from flask_socketio import disconnect, emit, join_room, leave_room
from sqlalchemy.exc import SQLAlchemyError
from typing import Any, Dict, Optional

from quizroom import socketio
from quizroom.services.chat import recent_history, sanitize_message, save_message, topic_room
from quizroom.services.identity import AuthenticationError

NAMESPACE = '/ws'

# Per-connection identity: uid and nickname once known
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


class SocketIOEmitter:
    """Transport side of the dispatcher: rooms are Socket.IO rooms."""

    def __init__(self, sio, namespace: str):
        self.sio = sio
        self.namespace = namespace

    def emit(self, event: str, payload: Any, to: str, skip_sid: Optional[str] = None) -> None:
        self.sio.emit(event, payload, to=to, skip_sid=skip_sid, namespace=self.namespace)

    def enter(self, sid: str, room: str) -> None:
        self.sio.server.enter_room(sid, room, namespace=self.namespace)

    def leave(self, sid: str, room: str) -> None:
        self.sio.server.leave_room(sid, room, namespace=self.namespace)

    def close(self, room: str) -> None:
        self.sio.close_room(room, namespace=self.namespace)


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _ctx() -> Dict[str, Any]:
    return _sid_to_ctx.setdefault(_get_sid(), {})


def _dispatcher():
    return current_app.extensions['room_dispatcher']


def _room_code(data) -> Optional[str]:
    # Host commands arrive either as {'roomCode': ...} or as the bare code
    if isinstance(data, dict):
        data = data.get('roomCode')
    if data is None:
        return None
    return str(data).strip()


def _nickname(value, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()[:64]
    return fallback


def handle_connect(auth=None):
    _sid_to_ctx[_get_sid()] = {}
    emit('connected', {'message': f'Connected to {NAMESPACE}', 'sid': _get_sid()})


def handle_disconnect(reason=None):
    sid = _get_sid()
    _sid_to_ctx.pop(sid, None)
    current_app.logger.info(f"[disconnect] sid={sid} reason={reason}")
    _dispatcher().disconnect(sid)


def handle_ping(data=None):
    emit('pong', data or {})


# ---- identity ----

def handle_authenticate(token):
    verifier = current_app.extensions['identity_verifier']
    try:
        identity = verifier.verify(token)
    except AuthenticationError as exc:
        current_app.logger.info(f"[auth-failed] sid={_get_sid()} reason={exc}")
        emit('auth:error', {'message': str(exc)})
        disconnect()
        return
    ctx = _ctx()
    ctx['uid'] = identity.uid
    ctx['nickname'] = identity.name
    current_app.logger.info(f"[auth] sid={_get_sid()} uid={identity.uid} nickname={identity.name!r}")
    emit('auth:success', {'uid': identity.uid, 'nickname': identity.name})


def handle_set_nickname(nickname):
    if isinstance(nickname, str) and nickname.strip():
        _ctx()['nickname'] = nickname.strip()[:64]


# ---- rooms ----

def handle_create_room(data=None):
    data = data if isinstance(data, dict) else {}
    ctx = _ctx()
    nickname = _nickname(data.get('nickname'), ctx.get('nickname') or 'Anonymous Host')
    _dispatcher().create_room(
        _get_sid(),
        nickname,
        options=data.get('gameOptions'),
        questions=data.get('questions'),
        user_id=ctx.get('uid'),
    )


def handle_join_room(data=None):
    ctx = _ctx()
    nickname = ctx.get('nickname') or 'Anonymous Player'
    if isinstance(data, dict):
        nickname = _nickname(data.get('nickname'), nickname)
    _dispatcher().join_room(_get_sid(), _room_code(data), nickname, user_id=ctx.get('uid'))


def handle_leave_room(data=None):
    _dispatcher().leave_room(_get_sid(), _room_code(data))


def handle_start_game(data=None):
    _dispatcher().start_game(_get_sid(), _room_code(data))


def handle_next_question(data=None):
    _dispatcher().next_question(_get_sid(), _room_code(data))


def handle_skip_wait(data=None):
    _dispatcher().skip_wait(_get_sid(), _room_code(data))


def handle_kick_player(data=None):
    if not isinstance(data, dict):
        return
    _dispatcher().kick_player(_get_sid(), _room_code(data), data.get('playerIdToKick'))


def handle_submit_answer(data=None):
    if not isinstance(data, dict):
        return
    _dispatcher().submit_answer(_get_sid(), _room_code(data), data.get('answerIndex'))


# ---- chat ----

def handle_chat_join_topic(topic):
    if not _ctx().get('uid') or not isinstance(topic, str) or not topic:
        return
    join_room(topic_room(topic))
    current_app.logger.info(f"[chat] sid={_get_sid()} joined topic={topic}")
    try:
        history = recent_history(topic, current_app.config.get('CHAT_HISTORY_LIMIT', 50))
    except SQLAlchemyError as exc:
        current_app.logger.error(f"[chat-history-error] topic={topic} error={exc}")
        return
    emit('chat:history', [m.to_dict() for m in history])


def handle_chat_leave_topic(topic):
    if not _ctx().get('uid') or not isinstance(topic, str) or not topic:
        return
    leave_room(topic_room(topic))


def handle_chat_send_message(data=None):
    ctx = _ctx()
    if not ctx.get('uid') or not isinstance(data, dict):
        return
    topic = data.get('topic')
    if not isinstance(topic, str) or not topic:
        return
    text = sanitize_message(data.get('message'), current_app.config.get('CHAT_MAX_LENGTH', 500))
    if not text:
        return
    try:
        entry = save_message(topic, ctx['uid'], ctx.get('nickname') or 'Anonymous', text)
    except SQLAlchemyError as exc:
        current_app.logger.error(f"[chat-save-error] topic={topic} error={exc}")
        return
    socketio.emit('server:newMessage', entry.to_dict(), to=topic_room(topic), namespace=NAMESPACE)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
    socketio.on_event('user:authenticate', handle_authenticate, namespace=NAMESPACE)
    socketio.on_event('user:setNickname', handle_set_nickname, namespace=NAMESPACE)
    socketio.on_event('createRoom', handle_create_room, namespace=NAMESPACE)
    socketio.on_event('joinRoom', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('leaveRoom', handle_leave_room, namespace=NAMESPACE)
    socketio.on_event('host:startGame', handle_start_game, namespace=NAMESPACE)
    socketio.on_event('host:nextQuestion', handle_next_question, namespace=NAMESPACE)
    socketio.on_event('host:skipWait', handle_skip_wait, namespace=NAMESPACE)
    socketio.on_event('host:kickPlayer', handle_kick_player, namespace=NAMESPACE)
    socketio.on_event('guest:submitAnswer', handle_submit_answer, namespace=NAMESPACE)
    socketio.on_event('chat:joinTopic', handle_chat_join_topic, namespace=NAMESPACE)
    socketio.on_event('chat:leaveTopic', handle_chat_leave_topic, namespace=NAMESPACE)
    socketio.on_event('chat:sendMessage', handle_chat_send_message, namespace=NAMESPACE)
