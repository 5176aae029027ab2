"""Apple Music API client returning normalized album records."""

from __future__ import annotations

import asyncio
import logging
import urllib.parse
from datetime import date, timedelta
from typing import Any

import requests

from catalog.errors import CatalogConfigError, CatalogRequestError
from catalog.models import Album, album_from_resource
from config import settings

logger = logging.getLogger(__name__)

# Album releases newer than this count as "new" when filtering chart results.
NEW_RELEASE_WINDOW_DAYS = 180

# Apple Music caps most personal endpoints at 10 items per page.
_PERSONAL_PAGE_LIMIT = 10
_CATALOG_PAGE_LIMIT = 25


class AppleMusicCatalogClient:
    """Thin wrapper over the Apple Music REST API.

    Every public method is a coroutine; the blocking HTTP call runs in a worker
    thread. Failures raise ``CatalogRequestError`` and are never retried here;
    callers decide how to degrade.
    """

    def __init__(
        self,
        *,
        developer_token: str | None = None,
        user_token: str | None = None,
        storefront: str | None = None,
        base_url: str | None = None,
        timeout_sec: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.developer_token = (developer_token or settings.APPLE_MUSIC_DEVELOPER_TOKEN or "").strip() or None
        self.user_token = (user_token or settings.APPLE_MUSIC_USER_TOKEN or "").strip() or None
        self.storefront = (storefront or settings.STOREFRONT or "us").strip().lower()
        self.base_url = (base_url or settings.APPLE_MUSIC_BASE_URL).rstrip("/")
        self.timeout_sec = timeout_sec if timeout_sec is not None else settings.HTTP_TIMEOUT_SECONDS
        self._session = session or requests.Session()

    def _headers(self, *, personal: bool) -> dict[str, str]:
        if not self.developer_token:
            raise CatalogConfigError("Apple Music developer token is required")
        headers = {"Authorization": f"Bearer {self.developer_token}"}
        if personal:
            if not self.user_token:
                raise CatalogConfigError("Apple Music user token is required for personal endpoints")
            headers["Music-User-Token"] = self.user_token
        return headers

    def _request_json(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        personal: bool = False,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = self._headers(personal=personal)
        response = self._session.get(url, params=params, headers=headers, timeout=self.timeout_sec)
        status = int(response.status_code)
        logger.debug("[CATALOG] request=%s status=%s", endpoint, status)
        if status != 200:
            raise CatalogRequestError(endpoint, status)
        payload = response.json() if response.content else {}
        if not isinstance(payload, dict):
            raise CatalogRequestError(endpoint, status)
        return payload

    async def _get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        personal: bool = False,
    ) -> dict[str, Any]:
        return await asyncio.to_thread(self._request_json, endpoint, params, personal=personal)

    def _catalog_path(self, suffix: str) -> str:
        storefront = urllib.parse.quote(self.storefront, safe="")
        return f"/v1/catalog/{storefront}/{suffix.lstrip('/')}"

    async def fetch_chart_albums(self, genre_id: str, limit: int, offset: int = 0) -> list[Album]:
        """Fetch most-played chart albums for an Apple Music genre ID."""
        payload = await self._get(
            self._catalog_path("charts"),
            params={
                "types": "albums",
                "genre": genre_id,
                "limit": max(1, int(limit)),
                "offset": max(0, int(offset)),
                "chart": "most-played",
            },
        )
        return _albums_from_chart(payload)

    async def fetch_new_release_chart_albums(self, genre_id: str, limit: int, offset: int = 0) -> list[Album]:
        """Fetch chart albums for a genre, keeping only recent releases.

        The chart is over-fetched so that filtering by release date still has
        room to fill ``limit``.
        """
        payload = await self._get(
            self._catalog_path("charts"),
            params={
                "types": "albums",
                "genre": genre_id,
                "limit": min(200, max(1, int(limit)) * 4),
                "offset": max(0, int(offset)),
                "chart": "most-played",
            },
        )
        cutoff = date.today() - timedelta(days=NEW_RELEASE_WINDOW_DAYS)
        recent = [album for album in _albums_from_chart(payload) if album.release_date and album.release_date >= cutoff]
        recent.sort(key=lambda album: album.release_date, reverse=True)
        return recent[: max(0, int(limit))]

    async def fetch_recently_played(self, limit: int) -> list[Album]:
        resources = await self._fetch_personal_pages("/v1/me/recent/played", limit)
        return _albums_from_resources(resources)[:limit]

    async def fetch_recommendations(self, limit: int) -> list[Album]:
        """Flatten personal recommendation groups into their album contents."""
        payload = await self._get(
            "/v1/me/recommendations",
            params={"limit": _PERSONAL_PAGE_LIMIT},
            personal=True,
        )
        resources: list[dict] = []
        for recommendation in payload.get("data") or []:
            if not isinstance(recommendation, dict):
                continue
            contents = ((recommendation.get("relationships") or {}).get("contents") or {}).get("data") or []
            resources.extend(contents)
        return _albums_from_resources(resources)[: max(0, int(limit))]

    async def fetch_heavy_rotation(self, limit: int) -> list[Album]:
        resources = await self._fetch_personal_pages("/v1/me/history/heavy-rotation", limit)
        return _albums_from_resources(resources)[:limit]

    async def fetch_library_albums(self, limit: int, offset: int = 0) -> list[Album]:
        payload = await self._get(
            "/v1/me/library/albums",
            params={"limit": min(100, max(1, int(limit))), "offset": max(0, int(offset))},
            personal=True,
        )
        return _albums_from_resources(payload.get("data") or [])[:limit]

    async def fetch_related_albums(self, album_id: str) -> list[Album]:
        encoded_id = urllib.parse.quote(str(album_id), safe="")
        payload = await self._get(
            self._catalog_path(f"albums/{encoded_id}"),
            params={"views": "related-albums"},
        )
        resources: list[dict] = []
        for album in payload.get("data") or []:
            if not isinstance(album, dict):
                continue
            view = ((album.get("views") or {}).get("related-albums") or {}).get("data") or []
            resources.extend(view)
        return _albums_from_resources(resources)

    async def fetch_albums_by_artist(self, name: str, limit: int) -> list[Album]:
        """Search albums by artist name, keeping exact (case-insensitive) artist matches."""
        wanted = _normalize_text(name)
        if not wanted:
            return []
        results = await self.search_albums(name, limit=_CATALOG_PAGE_LIMIT, offset=0)
        matched = [album for album in results if _normalize_text(album.artist_name) == wanted]
        return matched[: max(0, int(limit))]

    async def search_albums(self, term: str, limit: int, offset: int = 0) -> list[Album]:
        cleaned = (term or "").strip()
        if not cleaned:
            return []
        payload = await self._get(
            self._catalog_path("search"),
            params={
                "term": cleaned,
                "types": "albums",
                "limit": min(_CATALOG_PAGE_LIMIT, max(1, int(limit))),
                "offset": max(0, int(offset)),
            },
        )
        albums = ((payload.get("results") or {}).get("albums") or {}).get("data") or []
        return _albums_from_resources(albums)

    async def fetch_album_tracks(self, album_id: str) -> list[str]:
        """Return the album's track titles in playback order, following pagination."""
        encoded_id = urllib.parse.quote(str(album_id), safe="")
        payload = await self._get(self._catalog_path(f"albums/{encoded_id}/tracks"), params={"limit": 100})
        titles: list[str] = []
        while True:
            for track in payload.get("data") or []:
                if not isinstance(track, dict):
                    continue
                name = (track.get("attributes") or {}).get("name")
                if isinstance(name, str) and name:
                    titles.append(name)
            next_path = payload.get("next")
            if not next_path:
                break
            payload = await self._get(str(next_path))
        return titles

    async def _fetch_personal_pages(self, endpoint: str, limit: int) -> list[dict]:
        resources: list[dict] = []
        offset = 0
        wanted = max(0, int(limit))
        while len(resources) < wanted:
            payload = await self._get(
                endpoint,
                params={"limit": _PERSONAL_PAGE_LIMIT, "offset": offset},
                personal=True,
            )
            page = payload.get("data") or []
            resources.extend(item for item in page if isinstance(item, dict))
            if not payload.get("next") or not page:
                break
            offset += _PERSONAL_PAGE_LIMIT
        return resources


def _albums_from_chart(payload: dict[str, Any]) -> list[Album]:
    charts = (payload.get("results") or {}).get("albums") or []
    if not charts or not isinstance(charts[0], dict):
        return []
    return _albums_from_resources(charts[0].get("data") or [])


def _albums_from_resources(resources: list) -> list[Album]:
    """Normalize album resources, skipping non-album items and duplicates."""
    albums: list[Album] = []
    seen: set[str] = set()
    for resource in resources:
        if not isinstance(resource, dict):
            continue
        kind = resource.get("type")
        if kind and kind not in ("albums", "library-albums"):
            continue
        album = album_from_resource(resource)
        if album is None or album.id in seen:
            continue
        seen.add(album.id)
        albums.append(album)
    return albums


def _normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).casefold().strip().split())
