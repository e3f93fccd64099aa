"""Randomized trial ordering."""

import random
from typing import Iterable, Optional


def shuffle_profiles(ids: Iterable[str], rng: Optional[random.Random] = None) -> list[str]:
    """
    Return a uniformly random permutation of the given condition ids.

    The input is copied before shuffling (Fisher-Yates via
    ``random.Random.shuffle``), so the caller's sequence is left intact.

    Args:
        ids: Condition ids, usually ``catalog.ids``.
        rng: Random source. Pass ``random.Random(seed)`` for a
            reproducible order.

    Returns:
        New list containing every id exactly once.
    """
    order = list(ids)
    (rng or random.Random()).shuffle(order)
    return order
