import pytest

from minigame import db
from minigame.errors import WriteError
from minigame.messages import BROADCAST_SCORE, SAVE_SCORE
from minigame.models import Gameplay, Player
from minigame.services.scores.broadcast import ConnectionContext, on_broadcast_score, on_save_score
from minigame.services.scores.recording import create_gameplay_record, recent_gameplays

TOPIC = 'game:platformer'


class Recorder:
    def __init__(self, fail=False):
        self.fail = fail
        self.persisted = []
        self.published = []

    def persist(self, game_id, player_id, score):
        if self.fail:
            raise WriteError('boom')
        self.persisted.append((game_id, player_id, score))
        return type('Row', (), {'id': len(self.persisted)})()

    def publish(self, topic, event, payload):
        self.published.append((topic, event, payload))


def test_save_score_persists_then_publishes(flask_app):
    rec = Recorder()
    ctx = ConnectionContext(TOPIC, game_id=1, player_id=3)
    ack = on_save_score(TOPIC, {'player_score': 300}, ctx, rec.persist, rec.publish)
    assert ack == {'status': 'ok', 'response': {'gameplay_id': 1, 'player_score': 300}}
    assert rec.persisted == [(1, 3, 300)]
    assert rec.published == [(TOPIC, SAVE_SCORE, {'game_id': 1, 'player_id': 3, 'player_score': 300})]


@pytest.mark.parametrize('ctx', [
    None,
    ConnectionContext(TOPIC, game_id=1, player_id=None),
    ConnectionContext(TOPIC, game_id=None, player_id=3),
    ConnectionContext('game:other', game_id=1, player_id=3),
])
def test_missing_identity_fails_closed(flask_app, ctx):
    rec = Recorder()
    ack = on_save_score(TOPIC, {'player_score': 300}, ctx, rec.persist, rec.publish)
    assert ack['status'] == 'error'
    assert ack['response']['reason'] == 'unauthorized'
    assert rec.persisted == []
    assert rec.published == []


def test_write_error_is_acked_without_broadcast(flask_app):
    rec = Recorder(fail=True)
    ctx = ConnectionContext(TOPIC, game_id=1, player_id=3)
    ack = on_save_score(TOPIC, {'player_score': 300}, ctx, rec.persist, rec.publish)
    assert ack['response']['reason'] == 'write_failed'
    assert rec.published == []


def test_broadcast_score_skips_persistence(flask_app):
    rec = Recorder()
    ctx = ConnectionContext(TOPIC, game_id=1, player_id=3)
    ack = on_broadcast_score(TOPIC, {'player_score': 50}, ctx, rec.publish)
    assert ack['status'] == 'ok'
    assert rec.published == [(TOPIC, BROADCAST_SCORE, {'game_id': 1, 'player_id': 3, 'player_score': 50})]


def test_create_gameplay_record(seeded):
    row = create_gameplay_record(1, 3, 300)
    assert row.id is not None
    assert Gameplay.query.count() == 1
    assert db.session.get(Player, 3).score == 300


def test_create_gameplay_record_for_unknown_player(seeded):
    with pytest.raises(WriteError):
        create_gameplay_record(1, 42, 300)
    assert Gameplay.query.count() == 0


def test_recent_gameplays_newest_first(seeded):
    for score in (100, 200, 300):
        create_gameplay_record(1, 1, score)
    rows = recent_gameplays(1, limit=2)
    assert [r.player_score for r in rows] == [300, 200]
