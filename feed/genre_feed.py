"""Per-genre album feeds built from six signals.

Same fan-out, dedupe and weighted-interleave pipeline as the home wall, but
scoped to one genre category and seeded by the listener's favorites.
"""

from __future__ import annotations

import logging
import random
from typing import Iterable

from catalog.models import Album, SeedAlbum
from config import settings
from feed.dial import GenreFeedSignal, genre_feed_weights
from feed.genres import GenreCategory
from feed.interleave import weighted_interleave
from feed.signals import (
    SignalFetch,
    bind_fetch,
    dedupe_buckets,
    fetch_safe,
    filter_to_genre,
    gather_signals,
    trim_buckets,
)

logger = logging.getLogger(__name__)

# Extra albums requested beyond quota for signals that are filtered after fetch.
FILTERED_OVERFETCH = 10
CHART_OVERFETCH = 5
TRENDING_MAX_OFFSET = 50
MAX_SUBCATEGORIES = 3
MAX_SEEDS = 3
MIN_PER_SUBCATEGORY_LIMIT = 5
PERSONAL_SOURCE_LIMIT = 25
ARTIST_ALBUMS_LIMIT = 10


class GenreFeedService:
    def __init__(
        self,
        genre: GenreCategory,
        catalog,
        dial_store,
        *,
        excluded_album_ids: Iterable[str] = (),
        seed_albums: Iterable[SeedAlbum] = (),
        rng: random.Random | None = None,
    ) -> None:
        self.genre = genre
        self.catalog = catalog
        self.dial_store = dial_store
        self.excluded_album_ids = frozenset(excluded_album_ids)
        self.seed_albums = tuple(seed_albums)
        self._rng = rng or random.Random()

    async def generate_feed(self, total: int = settings.GENRE_FEED_TOTAL, excluding: Iterable[str] = ()) -> list[Album]:
        """Generate a batch of genre-scoped albums; ``[]`` means retry later."""
        if total <= 0:
            return []
        position = self.dial_store.position
        weights = genre_feed_weights(position)
        counts = weights.album_counts(total)

        if not self.seed_albums:
            seed_count = counts[GenreFeedSignal.SEED_EXPANSION]
            counts[GenreFeedSignal.SEED_EXPANSION] = 0
            counts[GenreFeedSignal.SUBCATEGORY_ROTATION] += seed_count // 2
            counts[GenreFeedSignal.TRENDING] += seed_count - seed_count // 2

        fetches = self._plan_fetches(counts)
        buckets = await gather_signals(fetches)
        buckets = dedupe_buckets(buckets, list(GenreFeedSignal), set(excluding) | self.excluded_album_ids)

        history_quota = counts[GenreFeedSignal.PERSONAL_HISTORY]
        shortfall = history_quota - len(buckets[GenreFeedSignal.PERSONAL_HISTORY])
        if history_quota > 0 and shortfall > 0:
            counts[GenreFeedSignal.PERSONAL_HISTORY] -= shortfall
            counts[GenreFeedSignal.RECOMMENDATIONS] += shortfall
            logger.info(
                "[FEED] genre=%s sparse personal history moved=%s to=recommendations",
                self.genre.id,
                shortfall,
            )

        buckets = trim_buckets(buckets, counts, self._rng)
        albums = weighted_interleave(buckets, weights.values, rng=self._rng)

        if not albums:
            logger.warning("[FEED] genre=%s empty position=%s requested=%s", self.genre.id, int(position), total)
        else:
            logger.info(
                "[FEED] genre=%s position=%s requested=%s returned=%s fetches=%s",
                self.genre.id,
                int(position),
                total,
                len(albums),
                len(fetches),
            )
        return albums

    def _plan_fetches(self, counts: dict) -> list[SignalFetch]:
        genre_id = self.genre.apple_music_id
        fetches: list[SignalFetch] = []

        history_count = counts.get(GenreFeedSignal.PERSONAL_HISTORY, 0)
        if history_count > 0:
            fetches.append(
                SignalFetch(
                    signal=GenreFeedSignal.PERSONAL_HISTORY,
                    label="personal_history",
                    fetch=lambda: self._fetch_personal_history(history_count + FILTERED_OVERFETCH),
                )
            )

        recs_count = counts.get(GenreFeedSignal.RECOMMENDATIONS, 0)
        if recs_count > 0:
            fetches.append(
                SignalFetch(
                    signal=GenreFeedSignal.RECOMMENDATIONS,
                    label="recommendations",
                    fetch=lambda: self._fetch_recommendations(recs_count + FILTERED_OVERFETCH),
                )
            )

        trending_count = counts.get(GenreFeedSignal.TRENDING, 0)
        if trending_count > 0:
            offset = self._rng.randint(0, TRENDING_MAX_OFFSET)
            fetches.append(
                SignalFetch(
                    signal=GenreFeedSignal.TRENDING,
                    label=f"trending:{genre_id}",
                    fetch=lambda: self.catalog.fetch_chart_albums(
                        genre_id=genre_id, limit=trending_count + CHART_OVERFETCH, offset=offset
                    ),
                )
            )

        new_count = counts.get(GenreFeedSignal.NEW_RELEASES, 0)
        if new_count > 0:
            fetches.append(
                SignalFetch(
                    signal=GenreFeedSignal.NEW_RELEASES,
                    label=f"new_releases:{genre_id}",
                    fetch=lambda: self.catalog.fetch_new_release_chart_albums(
                        genre_id=genre_id, limit=new_count + CHART_OVERFETCH, offset=0
                    ),
                )
            )

        subcat_count = counts.get(GenreFeedSignal.SUBCATEGORY_ROTATION, 0)
        if subcat_count > 0 and self.genre.subcategories:
            subcats = self._rng.sample(
                list(self.genre.subcategories), min(MAX_SUBCATEGORIES, len(self.genre.subcategories))
            )
            per_subcat = max(subcat_count // len(subcats), MIN_PER_SUBCATEGORY_LIMIT)
            for sub in subcats:
                fetches.append(
                    SignalFetch(
                        signal=GenreFeedSignal.SUBCATEGORY_ROTATION,
                        label=f"subcategory:{sub.apple_music_id}",
                        fetch=bind_fetch(
                            self.catalog.fetch_chart_albums,
                            genre_id=sub.apple_music_id,
                            limit=per_subcat,
                            offset=0,
                        ),
                    )
                )

        seed_count = counts.get(GenreFeedSignal.SEED_EXPANSION, 0)
        if seed_count > 0 and self.seed_albums:
            seeds = self._rng.sample(list(self.seed_albums), min(MAX_SEEDS, len(self.seed_albums)))
            for seed in seeds:
                fetches.append(
                    SignalFetch(
                        signal=GenreFeedSignal.SEED_EXPANSION,
                        label=f"seed:{seed.album_id}",
                        fetch=bind_fetch(self._fetch_seed_expansion, seed=seed),
                    )
                )
        return fetches

    async def _fetch_personal_history(self, limit: int) -> list[Album]:
        """Heavy rotation plus library albums in this genre, topped up with recent plays when sparse."""
        albums: list[Album] = []
        heavy = await fetch_safe(
            "heavy_rotation", lambda: self.catalog.fetch_heavy_rotation(limit=PERSONAL_SOURCE_LIMIT)
        )
        albums.extend(filter_to_genre(heavy, self.genre))
        library = await fetch_safe(
            "library_albums", lambda: self.catalog.fetch_library_albums(limit=PERSONAL_SOURCE_LIMIT, offset=0)
        )
        albums.extend(filter_to_genre(library, self.genre))
        if len(albums) < limit // 2:
            recent = await fetch_safe(
                "recently_played", lambda: self.catalog.fetch_recently_played(limit=PERSONAL_SOURCE_LIMIT)
            )
            albums.extend(filter_to_genre(recent, self.genre))
        return albums

    async def _fetch_recommendations(self, limit: int) -> list[Album]:
        recs = await self.catalog.fetch_recommendations(limit=limit)
        return filter_to_genre(recs, self.genre)

    async def _fetch_seed_expansion(self, seed: SeedAlbum) -> list[Album]:
        """Related albums plus the seed artist's other albums; either half may fail alone."""
        related = await fetch_safe(
            f"related:{seed.album_id}", lambda: self.catalog.fetch_related_albums(album_id=seed.album_id)
        )
        by_artist = await fetch_safe(
            f"artist:{seed.artist_name}",
            lambda: self.catalog.fetch_albums_by_artist(name=seed.artist_name, limit=ARTIST_ALBUMS_LIMIT),
        )
        return related + by_artist
