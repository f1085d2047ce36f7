"""Wire shapes for the score channel.

Socket.IO carries ``(topic, payload)`` as the event arguments. The payloads
below are the only fields either side reads.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from minigame.errors import InvalidPayload

SAVE_SCORE = 'save_score'
BROADCAST_SCORE = 'broadcast_score'
JOIN_GAME = 'join_game'
LEAVE_GAME = 'leave_game'

TOPIC_PREFIX = 'game:'

STATUS_OK = 'ok'
STATUS_ERROR = 'error'


def topic_for(slug: str) -> str:
    return f"{TOPIC_PREFIX}{slug}"


def slug_from_topic(topic: Any) -> Optional[str]:
    if not isinstance(topic, str) or not topic.startswith(TOPIC_PREFIX):
        return None
    slug = topic[len(TOPIC_PREFIX):].strip()
    return slug or None


@dataclass(frozen=True)
class ScoreEvent:
    game_id: int
    player_id: int
    score: int

    def to_wire(self) -> Dict[str, int]:
        return {
            'game_id': self.game_id,
            'player_id': self.player_id,
            'player_score': self.score,
        }

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> 'ScoreEvent':
        try:
            return cls(
                game_id=int(payload['game_id']),
                player_id=int(payload['player_id']),
                score=parse_player_score(payload),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidPayload(f"malformed score broadcast: {payload!r}") from exc


def score_payload(score: int) -> Dict[str, int]:
    return {'player_score': int(score)}


def parse_player_score(payload: Any) -> int:
    """Return the integer score from a push payload.

    Booleans, floats and negative values are rejected.
    """
    if not isinstance(payload, dict):
        raise InvalidPayload('payload must be an object')
    score = payload.get('player_score')
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidPayload('player_score must be an integer')
    if score < 0:
        raise InvalidPayload('player_score must not be negative')
    return score


def ok_ack(**response) -> Dict[str, Any]:
    return {'status': STATUS_OK, 'response': response}


def error_ack(reason: str, **response) -> Dict[str, Any]:
    response['reason'] = reason
    return {'status': STATUS_ERROR, 'response': response}
