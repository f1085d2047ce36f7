from typing import Any, Dict

from flask import current_app, request, session
from flask_socketio import emit, join_room, leave_room

from minigame import db, socketio
from minigame.messages import (
    BROADCAST_SCORE,
    JOIN_GAME,
    LEAVE_GAME,
    SAVE_SCORE,
    error_ack,
    ok_ack,
    slug_from_topic,
)
from minigame.models import Game, Player
from minigame.services.scores import broadcast, recording
from minigame.services.scores.broadcast import ConnectionContext

# sid -> topic -> identity bound at join time
_sid_to_ctx: Dict[str, Dict[str, ConnectionContext]] = {}


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _namespace() -> str:
    return current_app.config.get('SOCKETIO_NAMESPACE', '/ws')


def _current_player_id():
    # Read this socket's own Flask-Login session; current_user is cached on g,
    # which handlers under one app context share.
    user_id = session.get('_user_id')
    if user_id is None:
        return None
    player = db.session.get(Player, int(user_id))
    return player.id if player else None


def _publish(topic: str, event: str, payload: Dict[str, Any]) -> None:
    emit(event, (topic, payload), to=topic, include_self=False, namespace=_namespace())


def handle_connect(auth=None):
    emit('connected', {'message': f'Connected to {_namespace()}', 'player_id': _current_player_id()})


def handle_disconnect(reason=None):
    ctxs = _sid_to_ctx.pop(_get_sid(), None)
    if ctxs:
        current_app.logger.info(f"[disconnect] topics={sorted(ctxs)} reason={reason}")


def handle_join_game(data):
    topic = (data or {}).get('topic') if isinstance(data, dict) else None
    slug = slug_from_topic(topic)
    if not slug:
        return error_ack('invalid_topic')
    game = Game.query.filter_by(slug=slug).first()
    if not game:
        return error_ack('unknown_topic')

    player_id = _current_player_id()
    join_room(topic)
    _sid_to_ctx.setdefault(_get_sid(), {})[topic] = ConnectionContext(topic, game.id, player_id)
    current_app.logger.info(f"[join] topic={topic} game={game.id} player={player_id}")
    return ok_ack(topic=topic, game_id=game.id, player_id=player_id)


def handle_leave_game(data):
    topic = (data or {}).get('topic') if isinstance(data, dict) else None
    if not topic:
        return error_ack('invalid_topic')
    leave_room(topic)
    ctxs = _sid_to_ctx.get(_get_sid())
    if ctxs:
        ctxs.pop(topic, None)
    return ok_ack(topic=topic)


def _context_for(topic):
    return _sid_to_ctx.get(_get_sid(), {}).get(topic) if isinstance(topic, str) else None


def handle_save_score(topic=None, payload=None):
    return broadcast.on_save_score(
        topic, payload, _context_for(topic),
        persist=recording.create_gameplay_record,
        publish=_publish,
    )


def handle_broadcast_score(topic=None, payload=None):
    return broadcast.on_broadcast_score(topic, payload, _context_for(topic), publish=_publish)


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event(JOIN_GAME, handle_join_game, namespace=namespace)
    socketio.on_event(LEAVE_GAME, handle_leave_game, namespace=namespace)
    socketio.on_event(SAVE_SCORE, handle_save_score, namespace=namespace)
    socketio.on_event(BROADCAST_SCORE, handle_broadcast_score, namespace=namespace)
