import logging
from typing import Optional

from werewolf.errors import NotFound, PreconditionFailed
from werewolf.models import Player, Session

logger = logging.getLogger(__name__)


def find_player(session: Session, old_ref: str) -> Optional[Player]:
    """Locate the player a stale reference points at.

    Tried in order: the roster key, the player's stable ``ref``, then a
    disconnected player carrying the name last seen on that retired id.
    """
    player = session.roster.get(old_ref)
    if player is not None:
        return player
    for candidate in session.roster.values():
        if candidate.ref == old_ref:
            return candidate
    name = session.retired_ids.get(old_ref)
    if name is None:
        return None
    for candidate in session.roster.values():
        if candidate.disconnected and candidate.name == name:
            return candidate
    return None


def rekey_player(session: Session, player: Player, new_id: str) -> None:
    """Move ``player`` and everything keyed by its old id onto ``new_id``.

    Caller must hold ``session.lock``.
    """
    old_id = player.id
    player.disconnected = False
    if old_id == new_id:
        return

    # Rebuild in place so join order survives the key change
    roster = {}
    for key, value in session.roster.items():
        roster[new_id if key == old_id else key] = value
    session.roster = roster
    player.id = new_id
    if player.is_host:
        session.host_id = new_id

    session.votes = {
        (new_id if voter == old_id else voter): (new_id if target == old_id else target)
        for voter, target in session.votes.items()
    }
    for entry in session.previous_alive:
        if entry.id == old_id:
            entry.id = new_id
    session.retired_ids[old_id] = player.name


def reconcile(session: Session, old_ref: str, new_id: str) -> Player:
    """Rebind a returning player onto a new transport id.

    Raises NotFound, leaving the session untouched, when nobody matches.
    Raises PreconditionFailed when ``new_id`` already belongs to someone else.
    """
    with session.lock:
        player = find_player(session, old_ref)
        if player is None:
            raise NotFound('Invalid session or player not found')
        occupant = session.roster.get(new_id)
        if occupant is not None and occupant is not player:
            raise PreconditionFailed('This connection already belongs to another player', 'alreadyJoined')
        old_id = player.id
        rekey_player(session, player, new_id)
        logger.info(f"[reconnect] game={session.code} player={player.name} {old_id} -> {new_id} host={player.is_host}")
        return player
