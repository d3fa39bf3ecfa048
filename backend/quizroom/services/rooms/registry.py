import logging
import random
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from .entities import GameOptions, Question
from .room import Room
from .scheduler import Scheduler
from .scoring import ScoringRules

logger = logging.getLogger(__name__)


def generate_room_code() -> str:
    """A random 6-digit numeric code (100000-999999)."""
    return str(random.randint(100000, 999999))


class RoomRegistry:
    """Owns every live room, keyed by code.

    The registry lock only guards the mapping; it is never held while a
    room lock is taken.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        rules: Optional[ScoringRules] = None,
        max_code_attempts: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self.scheduler = scheduler
        self.rules = rules or ScoringRules()
        self.max_code_attempts = max_code_attempts
        self._clock = clock
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def create(
        self,
        host_id: str,
        nickname: str,
        options: GameOptions,
        questions: Sequence[Question],
        user_id: Optional[str] = None,
    ) -> str:
        with self._lock:
            for _ in range(self.max_code_attempts):
                code = generate_room_code()
                if code not in self._rooms:
                    break
            else:
                raise RuntimeError('could not find a free room code')
            self._rooms[code] = Room(
                code=code,
                host_id=host_id,
                host_nickname=nickname,
                questions=questions,
                options=options,
                scheduler=self.scheduler,
                rules=self.rules,
                host_user_id=user_id,
                clock=self._clock,
            )
        logger.info(f"[room-create] room={code} host={host_id} questions={len(questions)}")
        return code

    def get(self, code: Optional[str]) -> Optional[Room]:
        if code is None:
            return None
        with self._lock:
            return self._rooms.get(code)

    def destroy(self, code: str) -> Optional[Room]:
        with self._lock:
            room = self._rooms.pop(code, None)
        self.scheduler.forget(code)
        if room is not None:
            logger.info(f"[room-destroy] room={code}")
        return room

    def rooms_with_member(self, player_id: str) -> List[Room]:
        with self._lock:
            rooms = list(self._rooms.values())
        return [r for r in rooms if r.is_member(player_id)]

    def codes(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        with self._lock:
            return code in self._rooms
