from flask import Blueprint, current_app, jsonify

from werewolf.errors import NotFound

games = Blueprint('games', __name__)


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    """Public view of a room: phase, day and players, roles hidden."""
    try:
        payload = current_app.extensions['werewolf'].public_state(game_code)
    except NotFound as exc:
        return jsonify({'error': exc.message}), 404
    return jsonify(payload)
