"""Value types for catalog albums."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True, eq=False)
class Album:
    """Lightweight album record holding only the fields needed for display and identity.

    Two albums are equal when their ``id`` matches; every other field is
    informational and may differ between catalog endpoints.
    """

    id: str
    title: str
    artist_name: str
    artwork_url: str | None = None
    release_date: date | None = None
    genre_names: tuple[str, ...] = field(default_factory=tuple)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Album):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "artist_name": self.artist_name,
            "artwork_url": self.artwork_url,
            "release_date": self.release_date.isoformat() if self.release_date else None,
            "genre_names": list(self.genre_names),
        }


@dataclass(frozen=True)
class SeedAlbum:
    """Favorited album used to expand a genre feed."""

    album_id: str
    artist_name: str


def album_from_resource(resource: dict) -> Album | None:
    """Build an ``Album`` from an Apple Music album resource; ``None`` when unusable."""
    if not isinstance(resource, dict):
        return None
    album_id = str(resource.get("id") or "").strip()
    if not album_id:
        return None
    attributes = resource.get("attributes") or {}
    title = str(attributes.get("name") or "").strip()
    if not title:
        return None
    artwork = attributes.get("artwork") or {}
    genre_names = attributes.get("genreNames") or []
    return Album(
        id=album_id,
        title=title,
        artist_name=str(attributes.get("artistName") or "").strip(),
        artwork_url=artwork.get("url") if isinstance(artwork, dict) else None,
        release_date=_parse_release_date(attributes.get("releaseDate")),
        genre_names=tuple(str(name) for name in genre_names if isinstance(name, str) and name.strip()),
    )


def _parse_release_date(value) -> date | None:
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    # Catalog dates may be year-only or year-month.
    if len(text) == 4 and text.isdigit():
        text = f"{text}-01-01"
    elif len(text) == 7:
        text = f"{text}-01"
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
