"""Home wall generation from the five wall signals.

Algorithm summary:
1. Read the dial once and compute per-signal album counts.
2. Fetch recently played albums to find the listener's genres; when history
   is sparse its quota moves to recommendations.
3. Fire every signal fetch concurrently and wait for all of them.
4. Deduplicate across signals in priority order, then trim to quota.
5. Weighted-interleave the buckets.
"""

from __future__ import annotations

import logging
import random
from typing import Iterable

from catalog.models import Album
from config import settings
from feed.dial import WallSignal, wall_weights
from feed.genres import ALL_GENRES, GenreCategory
from feed.interleave import weighted_interleave
from feed.signals import (
    SignalFetch,
    bind_fetch,
    dedupe_buckets,
    extract_genre_ids,
    fetch_safe,
    gather_signals,
    trim_buckets,
)

logger = logging.getLogger(__name__)

# Smallest per-genre chart request, so small quotas still leave room after dedupe.
MIN_PER_GENRE_LIMIT = 5


class CrateWallService:
    def __init__(
        self,
        catalog,
        dial_store,
        *,
        excluded_album_ids: Iterable[str] = (),
        genres: Iterable[GenreCategory] = ALL_GENRES,
        rng: random.Random | None = None,
    ) -> None:
        self.catalog = catalog
        self.dial_store = dial_store
        self.excluded_album_ids = frozenset(excluded_album_ids)
        self.genres = tuple(genres)
        self._rng = rng or random.Random()

    async def generate_wall(self) -> list[Album]:
        """Generate the initial wall."""
        return await self.generate_feed(settings.WALL_INITIAL_TOTAL)

    async def fetch_more(self, excluding: Iterable[str]) -> list[Album]:
        """Fetch another page for infinite scroll, skipping albums already shown."""
        return await self.generate_feed(settings.WALL_FETCH_MORE_TOTAL, excluding)

    async def generate_feed(self, total: int, excluding: Iterable[str] = ()) -> list[Album]:
        if total <= 0:
            return []
        position = self.dial_store.position
        weights = wall_weights(position)
        counts = weights.album_counts(total)

        recently_played: list[Album] = []
        if counts[WallSignal.LISTENING_HISTORY] > 0:
            recently_played = await fetch_safe(
                "recently_played",
                lambda: self.catalog.fetch_recently_played(limit=settings.RECENTLY_PLAYED_LIMIT),
            )
            if len(recently_played) < settings.MIN_RECENTLY_PLAYED:
                moved = counts[WallSignal.LISTENING_HISTORY]
                counts[WallSignal.LISTENING_HISTORY] = 0
                counts[WallSignal.RECOMMENDATIONS] += moved
                logger.info(
                    "[FEED] wall sparse history recently_played=%s moved=%s to=recommendations",
                    len(recently_played),
                    moved,
                )

        fetches = self._plan_fetches(counts, extract_genre_ids(recently_played))
        buckets = await gather_signals(fetches)
        buckets = dedupe_buckets(buckets, list(WallSignal), set(excluding) | self.excluded_album_ids)
        buckets = trim_buckets(buckets, counts, self._rng)
        albums = weighted_interleave(buckets, weights.values, rng=self._rng)

        if not albums:
            logger.warning("[FEED] wall empty position=%s requested=%s", int(position), total)
        else:
            logger.info(
                "[FEED] wall position=%s requested=%s returned=%s fetches=%s",
                int(position),
                total,
                len(albums),
                len(fetches),
            )
        return albums

    def _plan_fetches(self, counts: dict, user_genre_ids: set[str]) -> list[SignalFetch]:
        user_genres = [genre for genre in self.genres if genre.apple_music_id in user_genre_ids]
        if user_genres:
            history_genres = self._pick(user_genres, 3)
        else:
            history_genres = self._pick(self.genres, 2)
        chart_genres = self._pick(self.genres, 3)
        new_release_genres = self._pick(self.genres, 2)

        used_ids = {genre.id for genre in history_genres + chart_genres + new_release_genres}
        wild_pool = [genre for genre in self.genres if genre.id not in used_ids]
        wild_genres = self._pick(wild_pool or self.genres, 2)

        fetches: list[SignalFetch] = []
        history_count = counts.get(WallSignal.LISTENING_HISTORY, 0)
        if history_count > 0:
            fetches.extend(self._chart_fetches(WallSignal.LISTENING_HISTORY, history_genres, history_count))

        recs_count = counts.get(WallSignal.RECOMMENDATIONS, 0)
        if recs_count > 0:
            fetches.append(
                SignalFetch(
                    signal=WallSignal.RECOMMENDATIONS,
                    label="recommendations",
                    fetch=lambda: self.catalog.fetch_recommendations(limit=recs_count),
                )
            )

        charts_count = counts.get(WallSignal.POPULAR_CHARTS, 0)
        if charts_count > 0:
            fetches.extend(self._chart_fetches(WallSignal.POPULAR_CHARTS, chart_genres, charts_count))

        new_count = counts.get(WallSignal.NEW_RELEASES, 0)
        if new_count > 0:
            per_genre = _per_genre_limit(new_count, len(new_release_genres))
            for genre in new_release_genres:
                fetches.append(
                    SignalFetch(
                        signal=WallSignal.NEW_RELEASES,
                        label=f"new_releases:{genre.apple_music_id}",
                        fetch=bind_fetch(
                            self.catalog.fetch_new_release_chart_albums,
                            genre_id=genre.apple_music_id,
                            limit=per_genre,
                            offset=0,
                        ),
                    )
                )

        wild_count = counts.get(WallSignal.WILD_CARD, 0)
        if wild_count > 0:
            fetches.extend(self._chart_fetches(WallSignal.WILD_CARD, wild_genres, wild_count))
        return fetches

    def _chart_fetches(self, signal: WallSignal, genres: list[GenreCategory], count: int) -> list[SignalFetch]:
        per_genre = _per_genre_limit(count, len(genres))
        return [
            SignalFetch(
                signal=signal,
                label=f"{signal.value}:{genre.apple_music_id}",
                fetch=bind_fetch(self.catalog.fetch_chart_albums, genre_id=genre.apple_music_id, limit=per_genre, offset=0),
            )
            for genre in genres
        ]

    def _pick(self, genres, k: int) -> list[GenreCategory]:
        pool = list(genres)
        return self._rng.sample(pool, min(k, len(pool)))


def _per_genre_limit(count: int, genre_count: int) -> int:
    return max(count // max(genre_count, 1), MIN_PER_GENRE_LIMIT)
