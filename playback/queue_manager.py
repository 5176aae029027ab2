"""Auto-advance album queue state for grid playback.

The manager keeps track of which albums are in the current batch, maps track
titles back to their albums, and decides when to prefetch and swap in the next
batch. It never talks to a player: the playback controller reports the
current track title and acts on the returned values and flags.

All methods must be called from a single caller context. Nothing here raises
for steady-state conditions (out-of-range seeks, advancing with nothing
staged, unknown track titles); those are signalled through return values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Sequence

from catalog.models import Album
from config import settings

logger = logging.getLogger(__name__)


class TrackMapEntry(NamedTuple):
    title: str
    album_id: str


class TrackChange(NamedTuple):
    """Outcome of ``AlbumQueueManager.track_did_change``.

    ``found=False`` while ``is_at_last_track`` is true means the player wrapped
    back to the start of its queue and the batch is finished.
    """

    found: bool
    album_changed: bool = False
    new_album: Album | None = None


class AnchorSplit(NamedTuple):
    anchor: Album
    remaining: list[Album]


@dataclass(frozen=True)
class StagedBatch:
    albums: tuple[Album, ...]
    track_map: tuple[TrackMapEntry, ...]


@dataclass(frozen=True)
class TrackQueueEntry:
    position: int
    track_title: str
    album_title: str
    is_current: bool


@dataclass(frozen=True)
class QueueDiagnostics:
    """Read-only snapshot for developer inspection."""

    is_active: bool
    grid_album_count: int
    current_batch_albums: list[str]
    current_album_title: str | None
    track_position: int
    track_count: int
    should_prefetch: bool
    next_batch_ready: bool
    batch_exhausted: bool
    track_queue: list[TrackQueueEntry]

    def to_dict(self) -> dict:
        return {
            "is_active": self.is_active,
            "grid_album_count": self.grid_album_count,
            "current_batch_albums": list(self.current_batch_albums),
            "current_album_title": self.current_album_title,
            "track_position": self.track_position,
            "track_count": self.track_count,
            "should_prefetch": self.should_prefetch,
            "next_batch_ready": self.next_batch_ready,
            "batch_exhausted": self.batch_exhausted,
            "track_queue": [
                {
                    "position": entry.position,
                    "track_title": entry.track_title,
                    "album_title": entry.album_title,
                    "is_current": entry.is_current,
                }
                for entry in self.track_queue
            ],
        }


TracksByAlbum = Iterable[tuple["Album | str", Sequence[str]]]


class AlbumQueueManager:
    # Albums queued after the anchor in each batch.
    BATCH_SIZE = settings.QUEUE_BATCH_SIZE

    def __init__(self) -> None:
        self.reset()

    # Read-only state

    @property
    def grid_albums(self) -> list[Album]:
        return list(self._grid_albums)

    @property
    def anchor_index(self) -> int:
        return self._anchor_index

    @property
    def current_batch(self) -> list[Album]:
        return list(self._current_batch)

    @property
    def track_map(self) -> list[TrackMapEntry]:
        return list(self._track_map)

    @property
    def current_track_position(self) -> int:
        """Forward-search cursor into the track map."""
        return self._current_track_position

    @property
    def current_album(self) -> Album | None:
        return self._current_album

    @property
    def next_batch(self) -> StagedBatch | None:
        return self._next_batch

    @property
    def has_pending_queue(self) -> bool:
        return self._has_pending_queue

    @property
    def should_prefetch(self) -> bool:
        """True while the current album is the last album of the current batch."""
        return self._should_prefetch

    @property
    def batch_exhausted(self) -> bool:
        return self._batch_exhausted

    @property
    def is_at_last_track(self) -> bool:
        return bool(self._track_map) and self._current_track_position >= len(self._track_map) - 1

    # Batch setup

    def set_pending_queue(self, grid_albums: Sequence[Album], tapped_index: int) -> None:
        """Store the grid context of a tap; playback start consumes it."""
        self.reset()
        self._grid_albums = list(grid_albums)
        self._anchor_index = int(tapped_index)
        self._has_pending_queue = True
        logger.debug("[QUEUE] pending grid=%s anchor=%s", len(self._grid_albums), self._anchor_index)

    def compute_batch(self) -> list[Album]:
        """Return the anchor album plus up to ``BATCH_SIZE`` following grid albums."""
        self._has_pending_queue = False
        self._current_batch = self._window(self._anchor_index)
        return list(self._current_batch)

    def consume_pending_queue(self) -> AnchorSplit | None:
        """Start anchor-first playback.

        The current batch becomes just the anchor so it can play immediately;
        the rest of the window is returned for background track fetching and
        later ``append_to_batch``. ``None`` when the anchor is out of range.
        """
        self._has_pending_queue = False
        window = self._window(self._anchor_index)
        if not window:
            return None
        self._current_batch = [window[0]]
        return AnchorSplit(anchor=window[0], remaining=window[1:])

    def append_to_batch(self, albums: Sequence[Album], tracks_by_album: TracksByAlbum) -> None:
        """Add background-fetched albums and tracks without moving the cursor."""
        self._current_batch.extend(albums)
        self._track_map.extend(_build_track_map(tracks_by_album))
        self._update_should_prefetch()

    def register_batch_tracks(self, tracks_by_album: TracksByAlbum) -> None:
        """Build the track map from ``(album, titles)`` pairs given in album order."""
        pairs = list(tracks_by_album)
        self._track_map = _build_track_map(pairs)
        self._current_track_position = 0
        self._batch_exhausted = False
        if self._track_map:
            self._current_album = self._find_batch_album(self._track_map[0].album_id)
        elif pairs:
            self._current_album = self._find_batch_album(_album_key(pairs[0][0]))
        self._update_should_prefetch()
        logger.debug(
            "[QUEUE] registered batch albums=%s tracks=%s", len(self._current_batch), len(self._track_map)
        )

    # Playback position

    def track_did_change(self, title: str, check_backward: bool = False) -> TrackChange:
        """Move the cursor to the player's current track.

        Searches forward from the cursor so repeated titles (every album's
        "Intro") resolve to the occurrence that is actually playing. With
        ``check_backward`` a miss also checks exactly one position back, which
        covers skip-backward. A queue wrap jumps from the last entry to the
        first, more than one step, so it still reports ``found=False``.
        """
        if not self._track_map:
            return TrackChange(found=False)

        found_at = None
        for index in range(self._current_track_position, len(self._track_map)):
            if self._track_map[index].title == title:
                found_at = index
                break

        if found_at is None and check_backward:
            one_back = self._current_track_position - 1
            if one_back >= 0 and self._track_map[one_back].title == title:
                found_at = one_back

        if found_at is None:
            return TrackChange(found=False)

        self._current_track_position = found_at
        previous = self._current_album
        new_album = self._find_batch_album(self._track_map[found_at].album_id)
        self._current_album = new_album
        self._update_should_prefetch()

        previous_id = previous.id if previous is not None else None
        new_id = new_album.id if new_album is not None else None
        album_changed = previous_id != new_id
        if album_changed:
            logger.info(
                "[QUEUE] album changed position=%s album=%s",
                found_at,
                new_album.title if new_album is not None else None,
            )
        return TrackChange(found=True, album_changed=album_changed, new_album=new_album if album_changed else None)

    def seek_to_track(self, index: int) -> bool:
        """Jump the cursor to an absolute track-map position; out of range is a no-op."""
        if index < 0 or index >= len(self._track_map):
            return False
        self._current_track_position = index
        self._current_album = self._find_batch_album(self._track_map[index].album_id)
        self._update_should_prefetch()
        return True

    def mark_batch_exhausted(self) -> None:
        """Record that the current batch finished playing."""
        self._batch_exhausted = True
        logger.info("[QUEUE] batch exhausted tracks=%s next_ready=%s", len(self._track_map), self._next_batch is not None)

    # Next batch

    def compute_next_batch(self) -> list[Album] | None:
        """Return the grid window following the current batch, or ``None`` when the grid is exhausted."""
        if not self._current_batch:
            return None
        last_album = self._current_batch[-1]
        last_index = next(
            (index for index, album in enumerate(self._grid_albums) if album.id == last_album.id),
            None,
        )
        if last_index is None:
            return None
        next_start = last_index + 1
        if next_start >= len(self._grid_albums):
            return None
        return self._window(next_start)

    def register_next_batch(self, albums: Sequence[Album], tracks_by_album: TracksByAlbum) -> None:
        """Stage a prefetched batch until the current one runs out."""
        self._next_batch = StagedBatch(albums=tuple(albums), track_map=tuple(_build_track_map(tracks_by_album)))

    def advance_to_next_batch(self) -> bool:
        """Swap the staged batch in; ``False`` with no state change when nothing is staged."""
        staged = self._next_batch
        if staged is None:
            return False
        self._current_batch = list(staged.albums)
        self._track_map = list(staged.track_map)
        self._current_track_position = 0
        self._batch_exhausted = False
        self._next_batch = None
        if self._track_map:
            self._current_album = self._find_batch_album(self._track_map[0].album_id)
        self._update_should_prefetch()
        logger.info("[QUEUE] advanced albums=%s tracks=%s", len(self._current_batch), len(self._track_map))
        return True

    def reset(self) -> None:
        """Clear all state."""
        self._grid_albums: list[Album] = []
        self._anchor_index = 0
        self._current_batch: list[Album] = []
        self._track_map: list[TrackMapEntry] = []
        self._current_track_position = 0
        self._current_album: Album | None = None
        self._should_prefetch = False
        self._next_batch: StagedBatch | None = None
        self._has_pending_queue = False
        self._batch_exhausted = False

    def diagnostics(self) -> QueueDiagnostics:
        titles = {album.id: album.title for album in self._current_batch}
        queue = [
            TrackQueueEntry(
                position=index,
                track_title=entry.title,
                album_title=titles.get(entry.album_id, "Unknown"),
                is_current=index == self._current_track_position,
            )
            for index, entry in enumerate(self._track_map)
        ]
        return QueueDiagnostics(
            is_active=bool(self._current_batch),
            grid_album_count=len(self._grid_albums),
            current_batch_albums=[album.title for album in self._current_batch],
            current_album_title=self._current_album.title if self._current_album is not None else None,
            track_position=self._current_track_position,
            track_count=len(self._track_map),
            should_prefetch=self._should_prefetch,
            next_batch_ready=self._next_batch is not None,
            batch_exhausted=self._batch_exhausted,
            track_queue=queue,
        )

    def _window(self, start: int) -> list[Album]:
        if start < 0 or start >= len(self._grid_albums):
            return []
        end = min(start + self.BATCH_SIZE + 1, len(self._grid_albums))
        return self._grid_albums[start:end]

    def _find_batch_album(self, album_id: str) -> Album | None:
        return next((album for album in self._current_batch if album.id == album_id), None)

    def _update_should_prefetch(self) -> None:
        if not self._current_batch or self._current_album is None:
            self._should_prefetch = False
            return
        self._should_prefetch = self._current_album.id == self._current_batch[-1].id


def _album_key(album_or_id) -> str:
    if isinstance(album_or_id, Album):
        return album_or_id.id
    return str(album_or_id)


def _build_track_map(tracks_by_album: TracksByAlbum) -> list[TrackMapEntry]:
    return [
        TrackMapEntry(title=title, album_id=_album_key(album))
        for album, titles in tracks_by_album
        for title in titles
    ]
