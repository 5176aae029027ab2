"""Album feed generation: dial weights, signal fan-out and weighted interleave."""

from feed.dial import (
    DEFAULT_POSITION,
    ExplorationPosition,
    GenreFeedSignal,
    WallSignal,
    WeightTable,
    distribute_by_weight,
    genre_feed_weights,
    wall_weights,
)
from feed.genre_feed import GenreFeedService
from feed.interleave import weighted_interleave
from feed.wall import CrateWallService

__all__ = [
    "CrateWallService",
    "DEFAULT_POSITION",
    "ExplorationPosition",
    "GenreFeedService",
    "GenreFeedSignal",
    "WallSignal",
    "WeightTable",
    "distribute_by_weight",
    "genre_feed_weights",
    "wall_weights",
    "weighted_interleave",
]
