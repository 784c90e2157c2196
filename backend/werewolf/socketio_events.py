from flask import current_app, request
from flask_socketio import emit
from pydantic import ValidationError

from werewolf import messages, socketio


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _controller():
    return current_app.extensions['werewolf']


def handle_connect(auth=None):
    emit('connected', {'playerId': _get_sid()})


def handle_disconnect(reason=None):
    _controller().disconnect(_get_sid())


# client event -> (payload model, controller operation)
GAME_EVENTS = {
    'createGame': (messages.CreateGame, 'create_game'),
    'joinGame': (messages.JoinGame, 'join_game'),
    'startGame': (messages.StartGame, 'start_game'),
    'cancelGame': (messages.CancelGame, 'cancel_game'),
    'restoreSession': (messages.RestoreSession, 'restore_session'),
    'updateHostChannel': (messages.UpdateHostChannel, 'update_host_channel'),
    'flipCard': (messages.FlipCard, 'flip_card'),
    'updatePlayerStatus': (messages.UpdatePlayerStatus, 'update_player_status'),
    'showPlayerRole': (messages.ShowPlayerRole, 'show_player_role'),
    'requestPlayers': (messages.RequestPlayers, 'request_players'),
    'dayVote': (messages.DayVote, 'day_vote'),
    'advancePhase': (messages.AdvancePhase, 'advance_phase'),
    'kickPlayer': (messages.KickPlayer, 'kick_player'),
    'playAgain': (messages.PlayAgain, 'play_again'),
}


def _game_handler(event: str, model, operation: str):
    def handler(data=None):
        try:
            message = messages.parse(model, data)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = '.'.join(str(part) for part in first.get('loc', ())) or 'payload'
            current_app.logger.info(f"[invalid] event={event} sid={_get_sid()} field={field}")
            emit('error', {'message': f"Invalid {event} request: {field} {first.get('msg', '')}".strip(),
                           'type': 'invalidPayload'})
            return
        getattr(_controller(), operation)(_get_sid(), message)

    handler.__name__ = f'handle_{operation}'
    return handler


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for event, (model, operation) in GAME_EVENTS.items():
        socketio.on_event(event, _game_handler(event, model, operation), namespace=namespace)
