from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from flask import current_app

from minigame.errors import AuthContextMissing, InvalidPayload, WriteError
from minigame.messages import (
    BROADCAST_SCORE,
    SAVE_SCORE,
    ScoreEvent,
    error_ack,
    ok_ack,
    parse_player_score,
)

Persist = Callable[[int, int, int], Any]
Publish = Callable[[str, str, Dict[str, Any]], None]


@dataclass(frozen=True)
class ConnectionContext:
    """Identity bound to a socket when it joined ``topic``."""

    topic: str
    game_id: Optional[int] = None
    player_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.game_id is not None and self.player_id is not None


def _score_event(topic: str, payload: Any, context: Optional[ConnectionContext]) -> ScoreEvent:
    # Identity comes from the join context only; payload ids are ignored.
    if context is None or context.topic != topic or not context.is_authenticated:
        raise AuthContextMissing(f"no identity bound for topic={topic}")
    return ScoreEvent(context.game_id, context.player_id, parse_player_score(payload))


def on_save_score(topic: str, payload: Any, context: Optional[ConnectionContext],
                  persist: Persist, publish: Publish) -> Dict[str, Any]:
    """Record a pushed score and fan it out to the rest of the topic.

    Returns the ack sent back to the pushing socket. Nothing is persisted
    or broadcast unless the join context carries both ids.
    """
    try:
        event = _score_event(topic, payload, context)
    except (AuthContextMissing, InvalidPayload) as exc:
        current_app.logger.warning(f"[save-score-rejected] topic={topic} reason={exc.reason} detail={exc}")
        return error_ack(exc.reason)

    try:
        record = persist(event.game_id, event.player_id, event.score)
    except WriteError as exc:
        current_app.logger.error(
            f"[save-score-failed] topic={topic} game={event.game_id} player={event.player_id} detail={exc}"
        )
        return error_ack(exc.reason)

    publish(topic, SAVE_SCORE, event.to_wire())
    current_app.logger.info(
        f"[save-score] topic={topic} game={event.game_id} player={event.player_id} score={event.score}"
    )
    return ok_ack(gameplay_id=record.id, player_score=event.score)


def on_broadcast_score(topic: str, payload: Any, context: Optional[ConnectionContext],
                       publish: Publish) -> Dict[str, Any]:
    """Relay a live score without persisting it."""
    try:
        event = _score_event(topic, payload, context)
    except (AuthContextMissing, InvalidPayload) as exc:
        current_app.logger.warning(f"[broadcast-rejected] topic={topic} reason={exc.reason}")
        return error_ack(exc.reason)
    publish(topic, BROADCAST_SCORE, event.to_wire())
    return ok_ack(player_score=event.score)
