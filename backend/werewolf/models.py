import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from werewolf.errors import PreconditionFailed


class Role(str, Enum):
    SEER = 'seer'
    WEREWOLF = 'werewolf'
    DOCTOR = 'doctor'
    VILLAGER = 'villager'
    WITCH = 'witch'
    HUNTER = 'hunter'
    GIRL = 'girl'
    CUPID = 'cupid'
    FOX = 'fox'


class GameState(str, Enum):
    LOBBY = 'lobby'
    PLAYING = 'playing'


class Phase(str, Enum):
    DAY = 'day'
    NIGHT = 'night'


class Winner(str, Enum):
    WEREWOLVES = 'werewolves'
    VILLAGERS = 'villagers'


def _new_ref() -> str:
    return uuid.uuid4().hex


@dataclass
class Player:
    id: str
    name: str
    is_host: bool = False
    role: Optional[Role] = None
    alive: bool = True
    disconnected: bool = False
    # Stable across reconnects, unlike ``id``
    ref: str = field(default_factory=_new_ref)

    def to_dict(self, include_role: bool = False) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role.value if (include_role and self.role) else None,
            'alive': self.alive,
            'isHost': self.is_host,
            'disconnected': self.disconnected,
        }


@dataclass
class SnapshotEntry:
    id: str
    name: str
    alive: bool


@dataclass
class Session:
    """One room: roster, phase, votes and verdict.

    ``roster`` is keyed by each player's current transport id and keeps join
    order. All reads and writes happen under ``lock``.
    """
    code: str
    host_id: str
    state: GameState = GameState.LOBBY
    phase: Phase = Phase.DAY
    day: int = 0
    roster: Dict[str, Player] = field(default_factory=dict)
    votes: Dict[str, str] = field(default_factory=dict)
    previous_alive: List[SnapshotEntry] = field(default_factory=list)
    game_over: bool = False
    winner: Optional[Winner] = None
    # old transport id -> player name
    retired_ids: Dict[str, str] = field(default_factory=dict)
    closed: bool = False
    last_activity: float = field(default_factory=time.monotonic)
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    # ---- roster queries ----

    @property
    def host(self) -> Player:
        return self.roster[self.host_id]

    def is_host(self, player_id: Optional[str]) -> bool:
        return player_id is not None and player_id == self.host_id

    def non_host_players(self) -> List[Player]:
        return [p for p in self.roster.values() if not p.is_host]

    def active_players(self) -> List[Player]:
        return [p for p in self.non_host_players() if not p.disconnected]

    def living_players(self) -> List[Player]:
        return [p for p in self.non_host_players() if p.alive]

    def player(self, player_id: Optional[str]) -> Optional[Player]:
        if player_id is None:
            return None
        return self.roster.get(player_id)

    def touch(self, now: Optional[float] = None) -> None:
        self.last_activity = time.monotonic() if now is None else now

    # ---- mutations ----

    def add_player(self, player_id: str, name: str, is_host: bool = False) -> Player:
        player = Player(id=player_id, name=name, is_host=is_host)
        self.roster[player_id] = player
        return player

    def remove_player(self, player_id: str) -> Player:
        player = self.roster.pop(player_id)
        self.votes.pop(player_id, None)
        return player

    def take_snapshot(self) -> None:
        self.previous_alive = [
            SnapshotEntry(id=p.id, name=p.name, alive=p.alive)
            for p in self.non_host_players()
        ]

    def set_alive(self, player_id: str, alive: bool) -> None:
        self.roster[player_id].alive = alive
        if not alive:
            self.votes.pop(player_id, None)

    def begin(self, assignments: Dict[str, Role]) -> None:
        self.state = GameState.PLAYING
        self.phase = Phase.NIGHT
        self.day = 1
        self.votes = {}
        self.game_over = False
        self.winner = None
        self.take_snapshot()
        for player_id, role in assignments.items():
            self.roster[player_id].role = role

    def end_night(self) -> List[str]:
        """Switch to day and return the names of players who died overnight."""
        alive_now = {p.id for p in self.living_players()}
        dead = [e.name for e in self.previous_alive if e.alive and e.id not in alive_now]
        self.phase = Phase.DAY
        self.take_snapshot()
        return dead

    def end_day(self, eliminated_id: Optional[str]) -> None:
        if eliminated_id is not None:
            self.roster[eliminated_id].alive = False
        self.phase = Phase.NIGHT
        self.day += 1
        self.votes = {}
        self.take_snapshot()

    def cast_vote(self, voter_id: str, target_id: str) -> None:
        if voter_id in self.votes:
            raise PreconditionFailed('You have already voted this round. You cannot change your vote.', 'alreadyVoted')
        target = self.roster.get(target_id)
        if target is None or target.is_host or not target.alive:
            raise PreconditionFailed('Invalid target or target is not alive', 'invalidTarget')
        self.votes[voter_id] = target_id

    def finish(self, winner: Winner) -> None:
        self.game_over = True
        self.winner = winner

    def reset(self) -> None:
        """Back to the lobby, keeping the roster and host."""
        self.state = GameState.LOBBY
        self.phase = Phase.DAY
        self.day = 0
        self.votes = {}
        self.previous_alive = []
        self.game_over = False
        self.winner = None
        for p in self.non_host_players():
            p.role = None
            p.alive = True
            p.disconnected = False

    # ---- views ----

    def players_view(self, include_roles: bool = False) -> List[Dict[str, Any]]:
        return [p.to_dict(include_role=include_roles) for p in self.roster.values()]

    def to_dict(self, include_roles: bool = False) -> Dict[str, Any]:
        return {
            'gameId': self.code,
            'state': self.state.value,
            'day': self.day,
            'time': self.phase.value,
            'gameOver': self.game_over,
            'winner': self.winner.value if self.winner else None,
            'players': self.players_view(include_roles=include_roles),
        }
