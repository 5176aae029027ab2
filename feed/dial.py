"""Exploration dial positions, feed signals and per-position weight tables.

Lower dial positions lean on the listener's own history; higher positions
explore further from it. Each position maps to a weight table whose fractions
sum to 1.0 and describe the share of feed slots each signal should fill.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Hashable, Mapping, TypeVar

Key = TypeVar("Key", bound=Hashable)


class ExplorationPosition(IntEnum):
    MY_CRATE = 1
    CURATED = 2
    MIXED_CRATE = 3
    DEEP_DIG = 4
    MYSTERY_CRATE = 5

    @property
    def label(self) -> str:
        return _POSITION_LABELS[self]

    @property
    def description(self) -> str:
        return _POSITION_DESCRIPTIONS[self]

    @classmethod
    def from_value(cls, value, default: "ExplorationPosition | None" = None) -> "ExplorationPosition":
        """Coerce a raw stored value, falling back to ``default`` (mixed crate) when invalid."""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return default if default is not None else DEFAULT_POSITION


DEFAULT_POSITION = ExplorationPosition.MIXED_CRATE

_POSITION_LABELS = {
    ExplorationPosition.MY_CRATE: "My Crate",
    ExplorationPosition.CURATED: "Curated",
    ExplorationPosition.MIXED_CRATE: "Mixed Crate",
    ExplorationPosition.DEEP_DIG: "Deep Dig",
    ExplorationPosition.MYSTERY_CRATE: "Mystery Crate",
}

_POSITION_DESCRIPTIONS = {
    ExplorationPosition.MY_CRATE: "Albums based almost entirely on what you already listen to.",
    ExplorationPosition.CURATED: "Mostly familiar territory with a few curated picks mixed in.",
    ExplorationPosition.MIXED_CRATE: "A balanced mix of your taste, recommendations, and popular albums.",
    ExplorationPosition.DEEP_DIG: "Leans toward discovery: new releases, deep cuts, and surprises.",
    ExplorationPosition.MYSTERY_CRATE: "Almost entirely random. You never know what you're going to get.",
}


class WallSignal(Enum):
    """Signal sources of the home wall, in deduplication priority order."""

    LISTENING_HISTORY = "listening_history"
    RECOMMENDATIONS = "recommendations"
    POPULAR_CHARTS = "popular_charts"
    NEW_RELEASES = "new_releases"
    WILD_CARD = "wild_card"


class GenreFeedSignal(Enum):
    """Signal sources of a genre feed, in deduplication priority order."""

    PERSONAL_HISTORY = "personal_history"
    RECOMMENDATIONS = "recommendations"
    TRENDING = "trending"
    NEW_RELEASES = "new_releases"
    SUBCATEGORY_ROTATION = "subcategory_rotation"
    SEED_EXPANSION = "seed_expansion"


@dataclass(frozen=True)
class WeightTable:
    """Signal -> fraction mapping for one dial position."""

    values: Mapping

    def weight(self, signal) -> float:
        return float(self.values.get(signal, 0.0))

    @property
    def total(self) -> float:
        return sum(self.values.values())

    def album_counts(self, total: int) -> dict:
        return distribute_by_weight(self.values, total)


def distribute_by_weight(weights: Mapping[Key, float], total: int) -> dict[Key, int]:
    """Convert fractional weights into integer counts that sum to ``total``.

    Largest-remainder apportionment: every key gets the floor of its share,
    then the leftover units go one at a time to the keys with the largest
    fractional remainders. Equal remainders keep the mapping's order.
    """
    if total <= 0 or not weights:
        return {key: 0 for key in weights}

    # Rounded first so products like 0.29 * 100 do not floor to 28.
    raw = {key: round(float(fraction) * total, 9) for key, fraction in weights.items()}
    counts = {key: int(math.floor(value)) for key, value in raw.items()}
    remainder = total - sum(counts.values())

    # Remainders are rounded too so float noise cannot reorder equal remainders.
    fractional = {key: round(value - math.floor(value), 9) for key, value in raw.items()}
    ranked = sorted(raw, key=lambda key: fractional[key], reverse=True)
    while remainder > 0:
        for key in ranked:
            if remainder <= 0:
                break
            counts[key] += 1
            remainder -= 1
    return counts


_WALL_TABLES = {
    ExplorationPosition.MY_CRATE: (0.45, 0.30, 0.15, 0.05, 0.05),
    ExplorationPosition.CURATED: (0.30, 0.30, 0.20, 0.10, 0.10),
    ExplorationPosition.MIXED_CRATE: (0.20, 0.20, 0.25, 0.20, 0.15),
    ExplorationPosition.DEEP_DIG: (0.10, 0.15, 0.20, 0.30, 0.25),
    ExplorationPosition.MYSTERY_CRATE: (0.05, 0.05, 0.15, 0.25, 0.50),
}

_GENRE_FEED_TABLES = {
    ExplorationPosition.MY_CRATE: (0.30, 0.25, 0.10, 0.05, 0.10, 0.20),
    ExplorationPosition.CURATED: (0.20, 0.20, 0.15, 0.10, 0.15, 0.20),
    ExplorationPosition.MIXED_CRATE: (0.10, 0.15, 0.20, 0.20, 0.20, 0.15),
    ExplorationPosition.DEEP_DIG: (0.05, 0.10, 0.15, 0.25, 0.35, 0.10),
    ExplorationPosition.MYSTERY_CRATE: (0.00, 0.05, 0.10, 0.20, 0.55, 0.10),
}


def wall_weights(position: ExplorationPosition) -> WeightTable:
    fractions = _WALL_TABLES[ExplorationPosition(position)]
    return WeightTable(values=dict(zip(WallSignal, fractions)))


def genre_feed_weights(position: ExplorationPosition) -> WeightTable:
    fractions = _GENRE_FEED_TABLES[ExplorationPosition(position)]
    return WeightTable(values=dict(zip(GenreFeedSignal, fractions)))
