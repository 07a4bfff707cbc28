import random
from typing import Sequence

from livefeed.schemas import ActivityItem

RECENT_SELECTIONS = 3
# Up to two actors (primary + secondary) per selection
RECENT_ACTORS_CAP = RECENT_SELECTIONS * 2


def fairness_shuffle(
    items: Sequence[ActivityItem],
    rng: random.Random | None = None,
) -> list[ActivityItem]:
    """
    Random permutation of `items` that avoids showing the same actor twice
    within a window of three picks.

    Greedy and non-backtracking: when every remaining item involves a recent
    actor, the whole remaining pool becomes eligible again, so the result is
    always a full permutation even when one actor dominates.
    """
    if len(items) <= RECENT_SELECTIONS:
        return list(items)

    rng = rng or random.Random()
    remaining = list(items)
    result: list[ActivityItem] = []
    recent_actors: list[str] = []

    while remaining:
        candidates = [
            item for item in remaining
            if not any(name in recent_actors for name in item.actor_names())
        ]
        if not candidates:
            candidates = remaining

        selected = candidates[rng.randrange(len(candidates))]
        result.append(selected)
        remaining.pop(next(i for i, item in enumerate(remaining) if item is selected))

        recent_actors.extend(selected.actor_names())
        del recent_actors[:-RECENT_ACTORS_CAP]

    return result
