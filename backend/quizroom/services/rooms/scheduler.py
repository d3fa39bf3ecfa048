import logging
import threading
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """One armed phase timeout for a room.

    The handle only records intent; whoever acts on it when it fires must
    still check that the room is alive and in ``phase``.
    """

    def __init__(self, code: str, phase: str, round_index: int, delay: float, deadline: float):
        self.code = code
        self.phase = phase
        self.round_index = round_index
        self.delay = delay
        self.deadline = deadline
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if self.active:
            logger.info(f"[timer-cancel] room={self.code} phase={self.phase} round={self.round_index}")
        self.cancelled = True

    def __repr__(self) -> str:
        return f"<TimerHandle room={self.code} phase={self.phase} round={self.round_index} active={self.active}>"


class Scheduler:
    """Issue cancellable delayed phase transitions.

    - Workers run via ``start_task`` (``socketio.start_background_task``)
      and wait with ``sleep`` (``socketio.sleep``) so they cooperate with
      whichever async mode the server picked
    - With ``autostart`` off (tests) handles are armed but nothing runs
      until ``fire`` is called
    - A fired, uncancelled handle is passed to the bound callback
    """

    def __init__(
        self,
        start_task: Optional[Callable] = None,
        sleep: Optional[Callable[[float], None]] = None,
        autostart: bool = True,
        heartbeat: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        self._start_task = start_task
        self._sleep = sleep or time.sleep
        self.autostart = autostart
        self.heartbeat = heartbeat
        self._clock = clock
        self._callback: Optional[Callable[[TimerHandle], None]] = None
        self._latest: Dict[str, TimerHandle] = {}
        self._lock = threading.Lock()

    def bind(self, callback: Callable[[TimerHandle], None]) -> None:
        self._callback = callback

    def schedule(self, code: str, phase: str, round_index: int, delay: float) -> TimerHandle:
        handle = TimerHandle(code, phase, round_index, delay, self._clock() + delay)
        with self._lock:
            self._latest[code] = handle
        logger.info(
            f"[timer-set] room={code} phase={phase} round={round_index} duration={delay}s deadline={handle.deadline}"
        )
        if self.autostart:
            if self._start_task is not None:
                self._start_task(self._worker, handle)
            else:
                threading.Thread(target=self._worker, args=(handle,), daemon=True).start()
        return handle

    def pending(self, code: str) -> Optional[TimerHandle]:
        """The room's outstanding timer, if any."""
        with self._lock:
            handle = self._latest.get(code)
        if handle is not None and handle.active:
            return handle
        return None

    def forget(self, code: str) -> None:
        with self._lock:
            handle = self._latest.pop(code, None)
        if handle is not None:
            handle.cancel()

    def fire(self, handle: TimerHandle) -> None:
        if handle.fired:
            return
        handle.fired = True
        with self._lock:
            if self._latest.get(handle.code) is handle:
                del self._latest[handle.code]
        if handle.cancelled:
            logger.info(f"[timer-abort] room={handle.code} phase={handle.phase} round={handle.round_index} cancelled")
            return
        logger.info(f"[timer-fire] room={handle.code} phase={handle.phase} round={handle.round_index}")
        if self._callback is not None:
            self._callback(handle)

    def _worker(self, handle: TimerHandle) -> None:
        delay = handle.delay
        if self.heartbeat and self.heartbeat > 0:
            slept = 0.0
            while slept < delay and not handle.cancelled:
                step = min(self.heartbeat, delay - slept)
                self._sleep(step)
                slept += step
                logger.info(
                    f"[timer-heartbeat] room={handle.code} phase={handle.phase} remaining={max(0, delay - slept)}s"
                )
        else:
            self._sleep(delay)
        try:
            self.fire(handle)
        except Exception:
            logger.exception(f"[timer-error] room={handle.code} phase={handle.phase} round={handle.round_index}")
