"""Fault-isolated signal fetchers and genre helpers shared by the feed services."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Hashable, Iterable

from catalog.models import Album
from feed.genres import ALL_GENRES, GenreCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalFetch:
    """One dispatched fetch: the signal it fills and a factory for the catalog call."""

    signal: Hashable
    label: str
    fetch: Callable[[], Awaitable[list[Album]]]


def bind_fetch(method: Callable[..., Awaitable[list[Album]]], **kwargs) -> Callable[[], Awaitable[list[Album]]]:
    """Freeze keyword arguments now so loop variables are not captured late."""
    return lambda: method(**kwargs)


async def fetch_safe(label: str, fetch: Callable[[], Awaitable[list[Album]]]) -> list[Album]:
    """Await a catalog call, returning ``[]`` instead of raising on failure."""
    try:
        albums = await fetch()
    except Exception:
        logger.exception("[FEED] fetch failed source=%s", label)
        return []
    if not isinstance(albums, list):
        return []
    return [album for album in albums if isinstance(album, Album)]


async def gather_signals(fetches: Iterable[SignalFetch]) -> dict[Hashable, list[Album]]:
    """Run every fetch concurrently and wait for all of them.

    Results are merged per signal in dispatch order, so bucket contents do not
    depend on which request finished first. A failing fetch contributes nothing.
    """
    planned = list(fetches)
    if not planned:
        return {}
    results = await asyncio.gather(*(fetch_safe(item.label, item.fetch) for item in planned))
    buckets: dict[Hashable, list[Album]] = {}
    for item, albums in zip(planned, results):
        logger.debug("[FEED] source=%s signal=%s count=%s", item.label, item.signal, len(albums))
        buckets.setdefault(item.signal, []).extend(albums)
    return buckets


def dedupe_buckets(
    buckets: dict[Hashable, list[Album]],
    priority: Iterable[Hashable],
    excluded_ids: Iterable[str],
) -> dict[Hashable, list[Album]]:
    """Drop excluded and repeated albums; earlier signals in ``priority`` keep shared albums."""
    seen = set(excluded_ids)
    deduped: dict[Hashable, list[Album]] = {}
    for signal in priority:
        kept: list[Album] = []
        for album in buckets.get(signal, []):
            if album.id in seen:
                continue
            seen.add(album.id)
            kept.append(album)
        deduped[signal] = kept
    return deduped


def trim_buckets(buckets: dict[Hashable, list[Album]], counts: dict, rng) -> dict[Hashable, list[Album]]:
    """Cut each over-quota bucket down to a random subset of its quota size."""
    trimmed: dict[Hashable, list[Album]] = {}
    for signal, albums in buckets.items():
        target = max(0, int(counts.get(signal, 0)))
        if len(albums) > target:
            trimmed[signal] = rng.sample(albums, target)
        else:
            trimmed[signal] = list(albums)
    return trimmed


def extract_genre_ids(albums: Iterable[Album]) -> set[str]:
    """Map the genre names of ``albums`` onto top-level taxonomy Apple Music IDs."""
    names = [name for album in albums for name in album.genre_names]
    ids: set[str] = set()
    for genre in ALL_GENRES:
        if any(genre.matches(name) for name in names):
            ids.add(genre.apple_music_id)
    return ids


def filter_to_genre(albums: Iterable[Album], genre: GenreCategory) -> list[Album]:
    """Keep albums tagged with ``genre`` or one of its subcategories."""
    known = {genre.name.casefold()} | {sub.name.casefold() for sub in genre.subcategories}
    wanted = genre.name.casefold()
    kept = []
    for album in albums:
        if any(name.casefold() in known or wanted in name.casefold() for name in album.genre_names):
            kept.append(album)
    return kept
