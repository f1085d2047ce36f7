from flask import Blueprint, jsonify, request, current_app
from minigame.engine.state import LevelConfig
from minigame.models import Game
from minigame.messages import topic_for
from minigame.services.scores.recording import recent_gameplays


games = Blueprint('games', __name__)


def _game_payload(game: Game):
    payload = game.to_dict()
    payload['topic'] = topic_for(game.slug)
    return payload


@games.route('', methods=['GET'])
def list_games():
    rows = Game.query.order_by(Game.title.asc()).all()
    return jsonify([_game_payload(g) for g in rows])


@games.route('/featured', methods=['GET'])
def featured_game():
    game = Game.query.filter_by(featured=True).order_by(Game.id.asc()).first()
    if not game:
        return jsonify({'error': 'No featured game'}), 404
    return jsonify(_game_payload(game))


@games.route('/<string:slug>', methods=['GET'])
def get_game(slug):
    game = Game.query.filter_by(slug=slug).first_or_404()
    payload = _game_payload(game)
    # Level tuning so clients build the same LevelConfig the server is configured with
    try:
        payload['level'] = LevelConfig.from_object(current_app.config).to_dict()
    except ValueError as exc:
        current_app.logger.error(f"[level-config] invalid level settings: {exc}")
        return jsonify({'error': 'Level configuration is invalid'}), 500
    return jsonify(payload)


@games.route('/<string:slug>/gameplays', methods=['GET'])
def list_gameplays(slug):
    game = Game.query.filter_by(slug=slug).first_or_404()
    default_limit = int(current_app.config.get('GAMEPLAY_PAGE_SIZE', 20))
    try:
        limit = int(request.args.get('limit', default_limit))
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400
    limit = max(1, min(limit, 100))
    return jsonify([g.to_dict() for g in recent_gameplays(game.id, limit=limit)])
