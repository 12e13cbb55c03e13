import os
import sys
import pytest

# Ensure the backend root (containing the `playroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from playroom import create_app, socketio
from playroom.config import Config
from playroom.services.scheduler import ScheduledTask


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    LOG_LEVEL = 'DEBUG'
    SHUTDOWN_FLUSH_SEC = 0


class ManualClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ManualScheduler:
    """Collects delayed calls and fires them when the test moves time on."""

    def __init__(self, clock):
        self.clock = clock
        self.tasks = []

    def call_later(self, delay, fn, *args, name=None):
        task = ScheduledTask(name or fn.__name__, self.clock() + delay)
        self.tasks.append((task, fn, args))
        return task

    def pending(self, prefix=''):
        return [t for t, _, _ in self.tasks if t.pending and t.name.startswith(prefix)]

    def advance(self, seconds):
        target = self.clock.now + seconds
        while True:
            due = [e for e in self.tasks if e[0].pending and e[0].deadline <= target]
            if not due:
                break
            entry = min(due, key=lambda e: e[0].deadline)
            self.tasks.remove(entry)
            task, fn, args = entry
            self.clock.now = max(self.clock.now, task.deadline)
            task.fired = True
            fn(*args)
        self.clock.now = target
        self.tasks = [e for e in self.tasks if e[0].pending]


class RecordingBroadcaster:
    def __init__(self):
        self.sent = []

    def to_room(self, code, event, data=None, skip=None):
        self.sent.append({'to': code, 'event': event, 'data': data, 'skip': skip})

    def to_connection(self, sid, event, data=None):
        self.sent.append({'to': sid, 'event': event, 'data': data, 'skip': None})

    def events(self, name=None):
        return [m for m in self.sent if name is None or m['event'] == name]


@pytest.fixture()
def config():
    return {key: getattr(TestConfig, key) for key in dir(TestConfig) if key.isupper()}


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def flask_app(clock, scheduler):
    application = create_app(TestConfig, clock=clock, scheduler=scheduler)
    with application.app_context():
        yield application


@pytest.fixture()
def services(flask_app):
    return flask_app.extensions['playroom']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients; each gets a `player_id` attribute."""
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        received = test_client.get_received()
        test_client.player_id = next(p['args'][0]['id'] for p in received if p['name'] == 'connected')
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
