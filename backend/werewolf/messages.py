"""Inbound Socket.IO payloads.

One model per client event. Payloads keep the camelCase keys the clients
send; a handful of events carry a bare string instead of an object, which
``parse`` wraps into the model's ``bare_field``.
"""
from typing import Any, ClassVar, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    bare_field: ClassVar[Optional[str]] = None


class RoomMessage(Message):
    game_id: str = Field(alias='gameId', min_length=1)

    bare_field: ClassVar[Optional[str]] = 'gameId'

    @field_validator('game_id', mode='before')
    @classmethod
    def _normalize_code(cls, value: Any) -> Any:
        if isinstance(value, int):
            value = str(value)
        if isinstance(value, str):
            return value.strip().upper()
        return value


class CreateGame(Message):
    host_name: str = Field(alias='hostName', min_length=1, max_length=32)

    bare_field: ClassVar[Optional[str]] = 'hostName'


class JoinGame(RoomMessage):
    player_name: str = Field(alias='playerName', min_length=1, max_length=32)


class StartGame(RoomMessage):
    pass


class CancelGame(RoomMessage):
    pass


class RestoreSession(RoomMessage):
    player_id: str = Field(alias='playerId', min_length=1)


class UpdateHostChannel(RoomMessage):
    player_id: str = Field(alias='playerId', min_length=1)


class FlipCard(RoomMessage):
    player_id: str = Field(alias='playerId', min_length=1)


class UpdatePlayerStatus(RoomMessage):
    player_id: str = Field(alias='playerId', min_length=1)
    alive: bool


class ShowPlayerRole(RoomMessage):
    player_id: str = Field(alias='playerId', min_length=1)


class RequestPlayers(RoomMessage):
    pass


class DayVote(RoomMessage):
    target_id: str = Field(alias='targetId', min_length=1)


class AdvancePhase(RoomMessage):
    pass


class KickPlayer(RoomMessage):
    target_id: str = Field(alias='targetId', min_length=1)


class PlayAgain(RoomMessage):
    pass


M = TypeVar('M', bound=Message)


def parse(model: Type[M], data: Any) -> M:
    """Validate a raw Socket.IO payload; raises pydantic.ValidationError."""
    if model.bare_field and isinstance(data, (str, int)):
        data = {model.bare_field: data}
    return model.model_validate(data if data is not None else {})
