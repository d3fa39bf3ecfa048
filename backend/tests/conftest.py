import os
import sys
import pytest

# Ensure the backend root (containing the `quizroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizroom import create_app, db, socketio
from quizroom.services.rooms import RoomRegistry, Scheduler
from quizroom.services.rooms.entities import GameOptions, Question
from quizroom.services.rooms.scoring import ScoringRules

NAMESPACE = '/ws'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PREPARE_SECONDS = 5
    ANSWER_SECONDS = 30
    MAX_POINTS = 1000
    STREAK_BONUS = 20
    CHAT_HISTORY_LIMIT = 50
    CHAT_MAX_LENGTH = 500


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


QUESTIONS = [
    Question(text='2 + 2?', options=['3', '4', '5'], correct_answer_index=1, explanation='Basic sums.'),
    Question(text='Capital of France?', options=['Paris', 'Rome'], correct_answer_index=0),
]


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['room_registry']


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients on /ws, disconnected at teardown."""
    clients = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
        )
        test_client.get_received(NAMESPACE)  # drop the 'connected' greeting
        clients.append(test_client)
        return test_client

    yield _connect
    for c in clients:
        try:
            if c.is_connected(NAMESPACE):
                c.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


def received(test_client, name=None):
    """(name, payload) pairs received since the last call, optionally filtered."""
    packets = test_client.get_received(NAMESPACE)
    events = [(p['name'], p['args'][0] if p['args'] else None) for p in packets]
    if name is None:
        return events
    return [payload for event, payload in events if event == name]


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler(clock):
    return Scheduler(autostart=False, clock=clock)


@pytest.fixture()
def rules():
    return ScoringRules(max_points=1000, streak_bonus=20, prepare_seconds=5, answer_seconds=30)


@pytest.fixture()
def make_room(scheduler, rules, clock):
    """Build a lobby room hosted by 'host' with the given guests."""
    local_registry = RoomRegistry(scheduler, rules=rules, clock=clock)

    def _make(guests=('alice', 'bob'), options=None, questions=QUESTIONS):
        code = local_registry.create('host', 'Host', options or GameOptions(), questions)
        room = local_registry.get(code)
        for guest in guests:
            room.add_player(guest, guest.title())
        return room

    _make.registry = local_registry
    return _make
