import pytest

from minigame.engine.session import GameSession
from minigame.engine.state import LevelConfig, Phase
from minigame.errors import NotConnectedError
from minigame.messages import ok_ack, error_ack
from minigame.sync.client import ScoreSyncClient


def started_session(**kwargs):
    session = GameSession(**kwargs)
    session.tick(0)
    session.key_down(' ')
    assert session.state.phase is Phase.PLAYING
    return session


def test_confirm_key_starts_the_game():
    session = GameSession()
    assert session.state.phase is Phase.START
    session.key_down('Enter')
    assert session.state.phase is Phase.PLAYING


def test_right_press_and_release_stops_exactly():
    session = started_session()
    session.key_down('ArrowRight')
    assert session.state.character_velocity_x > 0
    session.key_up('ArrowRight')
    assert session.state.character_velocity_x == 0


def test_unknown_keys_change_nothing():
    session = started_session()
    before = session.state
    session.key_down('F5')
    session.key_up('Escape')
    assert session.state == before


def test_ticks_drive_movement_capture_and_countdown():
    session = started_session(level=LevelConfig(duration_sec=10))
    session.key_down('ArrowRight')
    # 50 + 0.25 * 1800 = 500: lands on the first item
    state = session.tick(1800)
    assert state.items_collected == 1
    assert state.player_score == 100
    assert state.time_remaining == 9


def test_countdown_restarts_when_play_begins():
    session = GameSession(level=LevelConfig(duration_sec=10))
    session.tick(0)
    session.tick(900)
    session.key_down(' ')
    session.tick(1100)
    # only 200ms of play so far
    assert session.state.time_remaining == 10
    session.tick(1900)
    assert session.state.time_remaining == 9


def test_running_out_of_time_ends_the_game():
    session = started_session(level=LevelConfig(duration_sec=3))
    for now in (1000, 2000, 3000):
        session.tick(now)
    assert session.state.phase is Phase.GAME_OVER
    score = session.state.player_score
    session.key_down('ArrowLeft')
    session.tick(5000)
    assert session.state.player_score == score


def test_render_handlers_receive_each_frame():
    session = started_session()
    frames = []
    session.on_render(frames.append)
    session.tick(16)
    session.tick(32)
    assert len(frames) == 2
    assert frames[-1] is session.state


def test_save_score_without_channel_raises():
    session = started_session()
    with pytest.raises(NotConnectedError):
        session.save_score()


def test_save_score_while_disconnected_sends_nothing(transport, fake_clock):
    sync = ScoreSyncClient(transport, clock=fake_clock)
    session = started_session(sync=sync)
    with pytest.raises(NotConnectedError):
        session.save_score()
    assert transport.pushes == []


def test_save_score_pushes_current_score_and_tracks_sync(transport, fake_clock):
    sync = ScoreSyncClient(transport, clock=fake_clock)
    sync.join('game:platformer')
    transport.joins[0][1](ok_ack())
    session = started_session(sync=sync)
    session.key_down('ArrowRight')
    session.tick(1800)
    assert session.state.player_score == 100
    assert not session.score_synced

    session.save_score()
    assert transport.pushes[0][2] == {'player_score': 100}
    transport.pushes[0][3](ok_ack(gameplay_id=1, player_score=100))
    session.tick(1816)
    assert session.score_synced


def test_failed_push_leaves_score_unsynced(transport, fake_clock):
    sync = ScoreSyncClient(transport, clock=fake_clock)
    sync.join('game:platformer')
    transport.joins[0][1](ok_ack())
    session = started_session(sync=sync)
    session.tick(10)
    session.save_score()
    transport.pushes[0][3](error_ack('write_failed'))
    session.tick(20)
    assert not session.score_synced
    # game keeps running while a push is outstanding or failed
    assert session.state.phase is Phase.PLAYING


def test_teardown_closes_channel_and_ignores_input(transport, fake_clock):
    sync = ScoreSyncClient(transport, clock=fake_clock)
    sync.join('game:platformer')
    transport.joins[0][1](ok_ack())
    session = started_session(sync=sync)
    session.save_score()
    session.teardown()
    assert transport.leaves == ['game:platformer']

    before = session.state
    session.key_down('ArrowRight')
    session.tick(5000)
    transport.pushes[0][3](ok_ack())
    assert session.state == before
    assert sync.last_synced_score is None
    with pytest.raises(NotConnectedError):
        session.save_score()
