"""Recoverable game errors.

Every error leaves the session untouched and is reported back to the
requester as a single ``error`` notice with a human readable message and a
machine-checkable ``type`` tag.
"""
from typing import Any, Dict, Optional


class GameError(Exception):
    default_type = 'error'

    def __init__(self, message: str, type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.type = type or self.default_type

    def to_payload(self) -> Dict[str, Any]:
        return {'message': self.message, 'type': self.type}


class NotFound(GameError):
    """Unknown room code or player reference."""
    default_type = 'notFound'


class Forbidden(GameError):
    """Caller is not the host, or the room is in the wrong state."""
    default_type = 'forbidden'


class PreconditionFailed(GameError):
    """A game rule was violated."""
    default_type = 'preconditionFailed'
