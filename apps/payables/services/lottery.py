from __future__ import annotations

import random
from collections import Counter
from typing import Dict, Mapping

from apps.payables.exceptions import InvalidAmount


def draw(probabilities: Mapping[int, float], dollars: int, rng: random.Random | None = None) -> Dict[int, int]:
    """
    Award ``dollars`` one at a time by independent weighted draws with replacement.

    The same user can win several dollars. The returned counts always sum to
    ``dollars``; zero dollars or an empty pool returns an empty mapping.
    """
    if isinstance(dollars, bool) or not isinstance(dollars, int):
        raise InvalidAmount("Dollar amount must be a whole number.")
    if dollars < 0:
        raise InvalidAmount("Dollar amount cannot be negative.")
    population = sorted(user_id for user_id, weight in probabilities.items() if weight > 0)
    if dollars == 0 or not population:
        return {}
    rng = rng or random.Random()
    weights = [probabilities[user_id] for user_id in population]
    winners = Counter(rng.choices(population, weights=weights, k=dollars))
    return dict(winners)
