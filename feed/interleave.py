"""Weighted interleave of per-signal album buckets."""

from __future__ import annotations

import random
from typing import Hashable, Mapping, Sequence

from catalog.models import Album


def weighted_interleave(
    buckets: Mapping[Hashable, Sequence[Album]],
    weights: Mapping[Hashable, float],
    rng: random.Random | None = None,
) -> list[Album]:
    """Merge buckets into one list so heavier signals appear more often without clustering.

    Each bucket is shuffled once, then albums are drawn one at a time: a signal
    is picked with probability proportional to its weight among the signals
    that still hold albums, and its next album is emitted. Exhausted signals
    drop out of the draw so their share spreads over the rest. Active signals
    are walked in the bucket mapping's order.

    Every input album appears exactly once in the result. If all remaining
    signals carry zero weight the pick is uniform among them.
    """
    rng = rng or random.Random()
    queues: dict[Hashable, list[Album]] = {}
    for signal, albums in buckets.items():
        queue = list(albums)
        rng.shuffle(queue)
        # Reversed so pop() takes the head in O(1).
        queue.reverse()
        queues[signal] = queue

    result: list[Album] = []
    active = [signal for signal, queue in queues.items() if queue]
    while active:
        total_weight = sum(max(0.0, float(weights.get(signal, 0.0))) for signal in active)
        if total_weight > 0:
            roll = rng.random() * total_weight
            chosen = [signal for signal in active if weights.get(signal, 0.0) > 0][-1]
            cumulative = 0.0
            for signal in active:
                cumulative += max(0.0, float(weights.get(signal, 0.0)))
                if roll < cumulative:
                    chosen = signal
                    break
        else:
            chosen = active[rng.randrange(len(active))]

        result.append(queues[chosen].pop())
        if not queues[chosen]:
            active.remove(chosen)
    return result
