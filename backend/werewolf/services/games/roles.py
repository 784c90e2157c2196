import random
from typing import Dict, List, Optional, Sequence

from werewolf.models import Role


MIN_ROLE_PLAYERS = 4

# (player count threshold, roles unlocked at that count)
ROLE_TIERS = (
    (4, (Role.SEER, Role.WEREWOLF, Role.DOCTOR, Role.VILLAGER)),
    (5, (Role.WITCH,)),
    (6, (Role.HUNTER,)),
    (7, (Role.GIRL,)),
    (8, (Role.WEREWOLF,)),
    (9, (Role.VILLAGER,)),
    (10, (Role.CUPID,)),
    (11, (Role.FOX,)),
    (12, (Role.WEREWOLF,)),
)
TIER_CAP = 12
OVERFLOW_GROUP = (Role.VILLAGER, Role.VILLAGER, Role.VILLAGER, Role.WEREWOLF)


def build_role_list(player_count: int) -> List[Role]:
    """Unshuffled roles for ``player_count`` non-host players.

    Below the minimum this is empty. Above the tier cap the extra players
    come in groups of four (three villagers and a werewolf) with any
    remainder made villagers.
    """
    roles: List[Role] = []
    for threshold, unlocked in ROLE_TIERS:
        if player_count >= threshold:
            roles.extend(unlocked)
    if player_count > TIER_CAP:
        overflow = player_count - TIER_CAP
        groups, leftovers = divmod(overflow, len(OVERFLOW_GROUP))
        for _ in range(groups):
            roles.extend(OVERFLOW_GROUP)
        roles.extend([Role.VILLAGER] * leftovers)
    return roles


def assign_roles(player_ids: Sequence[str], rng: Optional[random.Random] = None) -> Dict[str, Role]:
    """Shuffle the role list and hand it out in roster order."""
    rng = rng or random.Random()
    roles = build_role_list(len(player_ids))
    rng.shuffle(roles)
    return dict(zip(player_ids, roles))
