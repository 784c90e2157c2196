import os
import random
import sys
import pytest

# Ensure the backend root (containing the `werewolf` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from werewolf import create_app, socketio
from werewolf.controller import GameController
from werewolf.services.games.registry import SessionRegistry


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['*']
    SOCKETIO_NAMESPACE = '/'
    MIN_PLAYERS = 4
    MAX_SESSIONS = 0
    SESSION_IDLE_TIMEOUT_SEC = 0
    SESSION_SWEEP_INTERVAL_SEC = 0
    ROLE_SEED = 7
    LOG_LEVEL = 'INFO'


class RecordingChannel:
    """In-memory Channel that records every outbound message."""

    def __init__(self):
        self.sent = []          # (target, event, payload)
        self.broadcasts = []    # (game_code, event, payload, skip)
        self.rooms = {}         # target -> game_code
        self.disconnected = []

    def deliver(self, target, event, payload=None):
        self.sent.append((target, event, payload))

    def broadcast(self, game_code, event, payload=None, skip=None):
        self.broadcasts.append((game_code, event, payload, skip))

    def join(self, target, game_code):
        self.rooms[target] = game_code

    def disconnect(self, target):
        self.disconnected.append(target)

    def to(self, target, event=None):
        return [p for t, e, p in self.sent if t == target and (event is None or e == event)]

    def room_events(self, event=None):
        return [p for _, e, p, _ in self.broadcasts if event is None or e == event]

    def clear(self):
        self.sent.clear()
        self.broadcasts.clear()


@pytest.fixture()
def channel():
    return RecordingChannel()


@pytest.fixture()
def controller(channel):
    return GameController(channel, SessionRegistry(rng=random.Random(1)), rng=random.Random(42))


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        greeting = [p for p in test_client.get_received() if p['name'] == 'connected']
        test_client.player_id = greeting[0]['args'][0]['playerId']
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
