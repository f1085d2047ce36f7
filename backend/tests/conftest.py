import os
import sys
import pytest

# Ensure the backend root (containing the `minigame` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from minigame import create_app, db, socketio
from minigame.errors import NotConnectedError
from minigame.sync.transport import ChannelTransport


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    SOCKETIO_NAMESPACE = '/ws'
    SCORE_PUSH_TIMEOUT_SEC = 5
    GAMEPLAY_PAGE_SIZE = 20


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import minigame.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def seeded(flask_app):
    """Game 1 'platformer' plus players 1..3 (player1..player3, password 'password')."""
    from minigame.models import Game, Player
    players = []
    for username in ['player1', 'player2', 'player3']:
        p = Player(username=username, display_name=username.title())
        p.set_password('password')
        db.session.add(p)
        players.append(p)
    game = Game(title='Platform Game', slug='platformer', featured=True)
    db.session.add(game)
    db.session.commit()
    return {'game': game, 'players': players}


def login(http_client, username, password='password'):
    res = http_client.post('/login', json={'username': username, 'password': password})
    assert res.status_code == 200, res.get_json()
    return res.get_json()['player']


@pytest.fixture()
def socket_for(flask_app):
    """Factory: a /ws test client, optionally logged in as ``username``."""
    opened = []

    def _make(username=None):
        http_client = flask_app.test_client()
        if username:
            login(http_client, username)
        sio_client = socketio.test_client(flask_app, flask_test_client=http_client, namespace='/ws')
        opened.append(sio_client)
        sio_client.get_received('/ws')  # flush 'connected'
        return sio_client

    yield _make
    for c in opened:
        try:
            c.disconnect(namespace='/ws')
        except Exception:
            pass


class FakeTransport(ChannelTransport):
    """Records calls; replies are delivered by the test."""

    def __init__(self):
        self.joins = []
        self.leaves = []
        self.pushes = []
        self.subscriptions = {}
        self.connected = True

    def join(self, topic, reply):
        self.joins.append((topic, reply))

    def leave(self, topic):
        self.leaves.append(topic)

    def push(self, topic, event, payload, reply):
        if not self.connected:
            raise NotConnectedError('link down')
        self.pushes.append((topic, event, payload, reply))

    def subscribe(self, topic, event, handler):
        self.subscriptions[(topic, event)] = handler


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def fake_clock():
    return FakeClock()
