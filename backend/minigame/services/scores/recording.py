from typing import List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from minigame import db
from minigame.errors import WriteError
from minigame.models import Game, Gameplay, Player


def create_gameplay_record(game_id: int, player_id: int, score: int) -> Gameplay:
    """Insert a gameplay row and raise the player's best score if beaten.

    Raises WriteError (after rolling back) when the row cannot be stored.
    """
    try:
        player = db.session.get(Player, player_id)
        game = db.session.get(Game, game_id)
        if player is None or game is None:
            raise WriteError(f"unknown game={game_id} or player={player_id}")
        record = Gameplay(game_id=game.id, player_id=player.id, player_score=int(score))
        db.session.add(record)
        if score > (player.score or 0):
            player.score = score
            db.session.add(player)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[write-error] game={game_id} player={player_id} score={score} err={exc}")
        raise WriteError(str(exc)) from exc
    current_app.logger.info(f"[gameplay] id={record.id} game={game_id} player={player_id} score={score}")
    return record


def recent_gameplays(game_id: int, limit: int = 20) -> List[Gameplay]:
    return (
        Gameplay.query.filter_by(game_id=game_id)
        .order_by(Gameplay.inserted_at.desc(), Gameplay.id.desc())
        .limit(limit)
        .all()
    )
