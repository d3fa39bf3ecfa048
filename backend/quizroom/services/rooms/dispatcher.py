import logging
from typing import Any, Callable, Iterable, List, Optional

from .entities import GameOptions, parse_questions
from .errors import NotFoundError, RoomError
from .payloads import Outbound
from .registry import RoomRegistry
from .room import Room
from .scheduler import TimerHandle

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Route client commands to rooms and hand the results to the transport.

    Every command runs with the target room's lock held, from validation
    through delivery, so a room sees one command or timer at a time.
    Rejected commands are dropped quietly; only joins report failure.

    ``emitter`` needs ``emit(event, payload, to, skip_sid)``,
    ``enter(sid, room)``, ``leave(sid, room)`` and ``close(room)``.
    """

    def __init__(self, registry: RoomRegistry, emitter):
        self.registry = registry
        self.emitter = emitter
        registry.scheduler.bind(self.handle_timeout)

    def deliver(self, messages: Iterable[Outbound]) -> None:
        for m in messages:
            self.emitter.emit(m.event, m.payload, m.to, m.skip_sid)

    def _drop(self, command: str, caller_id: Optional[str], exc: RoomError) -> None:
        logger.debug(f"[drop] command={command} caller={caller_id} reason={type(exc).__name__}: {exc.message}")

    def _run(self, command: str, code: Optional[str], caller_id: str, action: Callable[[Room], List[Outbound]]) -> bool:
        room = self.registry.get(code)
        if room is None:
            self._drop(command, caller_id, NotFoundError(f"room {code}"))
            return False
        with room.lock:
            try:
                messages = action(room)
            except RoomError as exc:
                self._drop(command, caller_id, exc)
                return False
            self.deliver(messages)
        return True

    # ---- lobby ----

    def create_room(
        self,
        caller_id: str,
        nickname: str,
        options: Any = None,
        questions: Any = None,
        user_id: Optional[str] = None,
    ) -> Optional[str]:
        try:
            parsed_options = GameOptions.from_dict(options)
            parsed_questions = parse_questions(questions)
        except RoomError as exc:
            self._drop('createRoom', caller_id, exc)
            return None
        code = self.registry.create(caller_id, nickname, parsed_options, parsed_questions, user_id=user_id)
        room = self.registry.get(code)
        with room.lock:
            self.emitter.enter(caller_id, code)
            self.deliver([Outbound('roomCreated', {
                'roomCode': code,
                'players': room.roster(),
                'hostId': room.host_id,
                'gameOptions': room.game_options.to_dict(),
            }, to=caller_id)])
        return code

    def join_room(self, caller_id: str, code: Optional[str], nickname: str, user_id: Optional[str] = None) -> bool:
        room = self.registry.get(code)
        if room is None:
            self._reject_join(caller_id, 'Invalid room code.')
            return False
        with room.lock:
            try:
                messages = room.add_player(caller_id, nickname, user_id=user_id)
            except NotFoundError:
                self._reject_join(caller_id, 'Invalid room code.')
                return False
            except RoomError as exc:
                self._reject_join(caller_id, exc.message)
                return False
            self.emitter.enter(caller_id, room.code)
            self.deliver(messages)
        return True

    def _reject_join(self, caller_id: str, message: str) -> None:
        logger.info(f"[join-error] caller={caller_id} message={message!r}")
        self.emitter.emit('joinError', {'message': message}, caller_id, None)

    def kick_player(self, caller_id: str, code: Optional[str], target_id: Any) -> bool:
        def action(room: Room) -> List[Outbound]:
            messages = room.kick(caller_id, target_id)
            self.deliver(messages[:1])
            self.emitter.leave(target_id, room.code)
            return messages[1:]
        return self._run('host:kickPlayer', code, caller_id, action)

    def leave_room(self, caller_id: str, code: Optional[str]) -> bool:
        room = self.registry.get(code)
        if room is None or not room.is_member(caller_id):
            return False
        if caller_id == room.host_id:
            self._close(room)
            return True
        return self._depart(room, caller_id)

    def disconnect(self, caller_id: str) -> None:
        for room in self.registry.rooms_with_member(caller_id):
            if caller_id == room.host_id:
                self._close(room)
            else:
                self._depart(room, caller_id)

    def _depart(self, room: Room, caller_id: str) -> bool:
        with room.lock:
            try:
                messages = room.remove_player(caller_id)
            except RoomError as exc:
                self._drop('leave', caller_id, exc)
                return False
            self.emitter.leave(caller_id, room.code)
            self.deliver(messages)
        return True

    def _close(self, room: Room) -> None:
        with room.lock:
            messages = room.close()
            self.deliver(messages)
            self.registry.destroy(room.code)
            self.emitter.close(room.code)

    # ---- gameplay ----

    def start_game(self, caller_id: str, code: Optional[str]) -> bool:
        return self._run('host:startGame', code, caller_id, lambda room: room.start(caller_id))

    def next_question(self, caller_id: str, code: Optional[str]) -> bool:
        return self._run('host:nextQuestion', code, caller_id, lambda room: room.advance(caller_id))

    def skip_wait(self, caller_id: str, code: Optional[str]) -> bool:
        return self._run('host:skipWait', code, caller_id, lambda room: room.skip(caller_id))

    def submit_answer(self, caller_id: str, code: Optional[str], answer_index: Any) -> bool:
        return self._run('guest:submitAnswer', code, caller_id, lambda room: room.submit_answer(caller_id, answer_index))

    def handle_timeout(self, handle: TimerHandle) -> None:
        room = self.registry.get(handle.code)
        if room is None:
            logger.info(f"[timer-abort] room={handle.code} phase={handle.phase} room gone")
            return
        with room.lock:
            self.deliver(room.on_timer(handle))

    def shutdown(self) -> None:
        for code in self.registry.codes():
            room = self.registry.get(code)
            if room is not None:
                self._close(room)
