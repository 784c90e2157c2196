"""Transport seam between the game controller and connected devices."""
from typing import Any, Optional, Protocol


def room_name(game_code: str) -> str:
    return f"game:{game_code}"


class Channel(Protocol):
    def deliver(self, target: str, event: str, payload: Any = None) -> None:
        ...

    def broadcast(self, game_code: str, event: str, payload: Any = None, skip: Optional[str] = None) -> None:
        ...

    def join(self, target: str, game_code: str) -> None:
        ...

    def disconnect(self, target: str) -> None:
        ...


class SocketIOChannel:
    """Channel backed by a Flask-SocketIO server.

    Uses the underlying python-socketio server for room membership and
    disconnects so it works both inside and outside a request context.
    """

    def __init__(self, socketio, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def deliver(self, target: str, event: str, payload: Any = None) -> None:
        self.socketio.emit(event, payload, to=target, namespace=self.namespace)

    def broadcast(self, game_code: str, event: str, payload: Any = None, skip: Optional[str] = None) -> None:
        self.socketio.emit(event, payload, to=room_name(game_code), skip_sid=skip, namespace=self.namespace)

    def join(self, target: str, game_code: str) -> None:
        self.socketio.server.enter_room(target, room_name(game_code), namespace=self.namespace)

    def disconnect(self, target: str) -> None:
        self.socketio.server.disconnect(target, namespace=self.namespace)

