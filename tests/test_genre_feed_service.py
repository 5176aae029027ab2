from __future__ import annotations

import asyncio
import random

from catalog.models import Album, SeedAlbum
from feed import genres
from feed.dial import ExplorationPosition
from feed.genre_feed import GenreFeedService


def _album(album_id: str, *genre_names: str) -> Album:
    return Album(id=album_id, title=f"Title {album_id}", artist_name="Artist", genre_names=tuple(genre_names))


class FakeDialStore:
    def __init__(self, position: ExplorationPosition) -> None:
        self.position = position


class FakeCatalog:
    def __init__(self, *, personal: bool = True, fail: tuple[str, ...] = ()) -> None:
        self.personal = personal
        self.fail = set(fail)
        self.calls: list[tuple[str, dict]] = []

    def _record(self, name: str, /, **kwargs) -> None:
        self.calls.append((name, kwargs))
        if name in self.fail:
            raise RuntimeError(f"{name} unavailable")

    def called(self, name: str) -> list[dict]:
        return [kwargs for call, kwargs in self.calls if call == name]

    async def fetch_heavy_rotation(self, limit: int) -> list[Album]:
        self._record("heavy_rotation", limit=limit)
        if not self.personal:
            return []
        return [_album("heavy-rock", "Rock"), _album("heavy-jazz", "Jazz")]

    async def fetch_library_albums(self, limit: int, offset: int = 0) -> list[Album]:
        self._record("library_albums", limit=limit, offset=offset)
        if not self.personal:
            return []
        return [_album(f"library-{i}", "Alternative") for i in range(limit)]

    async def fetch_recently_played(self, limit: int) -> list[Album]:
        self._record("recently_played", limit=limit)
        return []

    async def fetch_recommendations(self, limit: int) -> list[Album]:
        self._record("recommendations", limit=limit)
        return [_album(f"rec-{i}", "Rock") for i in range(limit)] + [_album("rec-country", "Country")]

    async def fetch_chart_albums(self, genre_id: str, limit: int, offset: int = 0) -> list[Album]:
        self._record("charts", genre_id=genre_id, limit=limit, offset=offset)
        return [_album(f"chart-{genre_id}-{offset + i}") for i in range(limit)]

    async def fetch_new_release_chart_albums(self, genre_id: str, limit: int, offset: int = 0) -> list[Album]:
        self._record("new_releases", genre_id=genre_id, limit=limit, offset=offset)
        return [_album(f"new-{genre_id}-{i}") for i in range(limit)]

    async def fetch_related_albums(self, album_id: str) -> list[Album]:
        self._record("related", album_id=album_id)
        return [_album(f"related-{album_id}-{i}") for i in range(5)]

    async def fetch_albums_by_artist(self, name: str, limit: int) -> list[Album]:
        self._record("by_artist", name=name, limit=limit)
        return [_album(f"artist-{name}-{i}") for i in range(3)]


def _service(catalog, position=ExplorationPosition.MIXED_CRATE, **kwargs) -> GenreFeedService:
    return GenreFeedService(
        genres.ROCK,
        catalog,
        FakeDialStore(position),
        rng=random.Random(99),
        **kwargs,
    )


def test_genre_feed_has_no_duplicates_and_respects_total() -> None:
    service = _service(FakeCatalog(), seed_albums=[SeedAlbum(album_id="seed-1", artist_name="Band")])

    albums = asyncio.run(service.generate_feed(50))

    ids = [album.id for album in albums]
    assert 0 < len(ids) <= 50
    assert len(ids) == len(set(ids))


def test_personal_and_recommendation_albums_are_filtered_to_genre() -> None:
    service = _service(FakeCatalog(), position=ExplorationPosition.MY_CRATE)

    albums = asyncio.run(service.generate_feed(50))

    ids = {album.id for album in albums}
    assert "heavy-jazz" not in ids
    assert "rec-country" not in ids
    assert any(album_id.startswith("library-") for album_id in ids)


def test_without_seeds_seed_expansion_is_not_dispatched() -> None:
    catalog = FakeCatalog()
    service = _service(catalog)

    asyncio.run(service.generate_feed(50))

    assert catalog.called("related") == []
    assert catalog.called("by_artist") == []
    # Mixed crate: 10 trending + 4 of the 7 seed albums moved to trending, plus overfetch.
    trending = [call for call in catalog.called("charts") if call["genre_id"] == "21"]
    assert trending == [{"genre_id": "21", "limit": 19, "offset": trending[0]["offset"]}]
    assert 0 <= trending[0]["offset"] <= 50


def test_seed_expansion_uses_related_and_artist_albums() -> None:
    catalog = FakeCatalog()
    seeds = [SeedAlbum(album_id=f"seed-{i}", artist_name=f"Band {i}") for i in range(5)]
    service = _service(catalog, position=ExplorationPosition.MY_CRATE, seed_albums=seeds)

    albums = asyncio.run(service.generate_feed(50))

    assert len(catalog.called("related")) == 3
    assert len(catalog.called("by_artist")) == 3
    assert any(album.id.startswith(("related-", "artist-")) for album in albums)


def test_sparse_personal_history_moves_quota_to_recommendations() -> None:
    catalog = FakeCatalog(personal=False)
    service = _service(catalog, position=ExplorationPosition.MY_CRATE)

    albums = asyncio.run(service.generate_feed(50))

    # Recommendation quota at my crate is 13 of 50; the empty history share tops it up.
    recs = [album for album in albums if album.id.startswith("rec-")]
    assert len(recs) > 13
    assert catalog.called("recently_played")


def test_failing_trending_fetch_is_isolated() -> None:
    catalog = FakeCatalog(fail=("charts",))
    service = _service(catalog)

    albums = asyncio.run(service.generate_feed(50))

    assert albums
    assert not any(album.id.startswith("chart-") for album in albums)


def test_zero_weight_personal_history_is_not_fetched() -> None:
    catalog = FakeCatalog()
    service = _service(catalog, position=ExplorationPosition.MYSTERY_CRATE)

    asyncio.run(service.generate_feed(50))

    assert catalog.called("heavy_rotation") == []
    assert catalog.called("library_albums") == []


def test_exclusions_apply_to_genre_feed() -> None:
    service = _service(FakeCatalog(), position=ExplorationPosition.MY_CRATE, excluded_album_ids={"rec-0"})

    albums = asyncio.run(service.generate_feed(50, excluding=["rec-1"]))

    ids = {album.id for album in albums}
    assert "rec-0" not in ids
    assert "rec-1" not in ids
