from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from werewolf.models import Player


@dataclass
class VoteResult:
    eliminated_id: Optional[str] = None
    tally: Dict[str, int] = field(default_factory=dict)

    @property
    def tied(self) -> bool:
        return self.eliminated_id is None and bool(self.tally)


def resolve_votes(votes: Mapping[str, str], roster: Mapping[str, Player]) -> VoteResult:
    """Decide the day's elimination without touching any state.

    Votes for anyone who is not a living non-host player are dropped. A single
    leader is eliminated; a tie at the top protects everyone.
    """
    tally: Dict[str, int] = {}
    for target_id in votes.values():
        target = roster.get(target_id)
        if target is None or target.is_host or not target.alive:
            continue
        tally[target_id] = tally.get(target_id, 0) + 1

    if not tally:
        return VoteResult()
    top = max(tally.values())
    leaders = [pid for pid, count in tally.items() if count == top]
    if len(leaders) > 1:
        return VoteResult(tally=tally)
    return VoteResult(eliminated_id=leaders[0], tally=tally)
