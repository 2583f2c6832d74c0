from __future__ import annotations

import random
from typing import List

from apps.payables.domain import Allocation, ProbabilitySnapshot
from apps.payables.services.lottery import draw
from apps.payables.services.probability import take_snapshot


def simulate(
    dollars: int,
    snapshot: ProbabilitySnapshot | None = None,
    rng: random.Random | None = None,
    include_zero: bool = False,
) -> List[Allocation]:
    """Run the lottery without persisting anything."""
    snapshot = snapshot or take_snapshot()
    awards = draw(snapshot.probabilities, dollars, rng=rng)
    if not awards:
        return []
    user_ids = snapshot.probabilities.keys() if include_zero else awards.keys()
    allocations = [
        Allocation(user_id=user_id, username=snapshot.usernames.get(user_id, ""), dollars=awards.get(user_id, 0))
        for user_id in user_ids
    ]
    allocations.sort(key=lambda row: (-row.dollars, row.user_id))
    return allocations
