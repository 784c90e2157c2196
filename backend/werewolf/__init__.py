import random

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def _allowed_origins(config):
    origins = config.get('CORS_ORIGINS') or ['*']
    if isinstance(origins, str):
        origins = [origins]
    return '*' if '*' in origins else list(origins)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = _allowed_origins(flask_app.config)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from werewolf.channel import SocketIOChannel
    from werewolf.controller import GameController
    from werewolf.services.games.registry import SessionRegistry

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')
    seed = flask_app.config.get('ROLE_SEED')
    rng = random.Random(seed) if seed is not None else random.Random()
    flask_app.extensions['werewolf'] = GameController(
        SocketIOChannel(socketio, namespace),
        SessionRegistry(max_sessions=int(flask_app.config.get('MAX_SESSIONS', 0))),
        rng=rng,
        min_players=int(flask_app.config.get('MIN_PLAYERS', 4)),
    )

    # Import and register blueprints here
    from werewolf.main import main
    flask_app.register_blueprint(main)

    from werewolf.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers on the initialized socketio instance
    from werewolf.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    from werewolf.services.games.sweeper import start_session_sweeper
    start_session_sweeper(flask_app)

    return flask_app
