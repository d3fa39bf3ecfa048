"""Room session engine: state machine, scoring, timers and command routing.

This package contains the in-memory game domain. Socket handlers in
``quizroom.socketio_events`` translate transport events into dispatcher
calls, keeping transport concerns separated from core game mechanics.
"""

from .errors import (
    RoomError,
    AuthorizationError,
    NotFoundError,
    PhaseConflictError,
    DuplicateSubmissionError,
    MalformedCommandError,
)
from .registry import RoomRegistry
from .scheduler import Scheduler, TimerHandle
from .dispatcher import CommandDispatcher
