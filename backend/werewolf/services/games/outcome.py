from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from werewolf.models import Player, Role, Winner


@dataclass(frozen=True)
class Verdict:
    over: bool = False
    winner: Optional[Winner] = None


def evaluate(roster: Mapping[str, Player]) -> Verdict:
    """Werewolves win once they match the rest of the living players; the
    village wins once no werewolf is left. Equality goes to the werewolves.
    """
    living: Iterable[Player] = [
        p for p in roster.values() if p.alive and not p.is_host and p.role is not None
    ]
    wolves = sum(1 for p in living if p.role == Role.WEREWOLF)
    others = sum(1 for p in living if p.role != Role.WEREWOLF)

    if wolves == 0:
        return Verdict(over=True, winner=Winner.VILLAGERS)
    if wolves >= others:
        return Verdict(over=True, winner=Winner.WEREWOLVES)
    return Verdict()
