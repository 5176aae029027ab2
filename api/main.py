#!/usr/bin/env python3
import logging
import os
from datetime import date

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from catalog.client import AppleMusicCatalogClient
from catalog.models import Album, SeedAlbum
from config import settings
from db.dial_store import CrateDialStore
from feed import genres
from feed.dial import genre_feed_weights, wall_weights
from feed.genre_feed import GenreFeedService
from feed.wall import CrateWallService
from playback.queue_manager import AlbumQueueManager

APP_NAME = "Crate API"

logger = logging.getLogger(__name__)


def _env_or_default(name, default):
    value = os.environ.get(name)
    return value if value else default


def _setup_logging(log_dir):
    os.makedirs(log_dir, exist_ok=True)
    root = logging.getLogger("")
    log_path = os.path.join(log_dir, "crate.log")
    root.setLevel(logging.INFO)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            if os.path.abspath(getattr(handler, "baseFilename", "")) == os.path.abspath(log_path):
                return
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    file_handler.setLevel(logging.INFO)
    root.addHandler(file_handler)


class AlbumPayload(BaseModel):
    id: str
    title: str
    artist_name: str = ""
    artwork_url: str | None = None
    release_date: date | None = None
    genre_names: list[str] = Field(default_factory=list)

    def to_album(self) -> Album:
        return Album(
            id=self.id,
            title=self.title,
            artist_name=self.artist_name,
            artwork_url=self.artwork_url,
            release_date=self.release_date,
            genre_names=tuple(self.genre_names),
        )


class SeedAlbumPayload(BaseModel):
    album_id: str
    artist_name: str


class DialRequest(BaseModel):
    position: int


class FeedRequest(BaseModel):
    total: int | None = None
    excluding: list[str] = Field(default_factory=list)
    excluded_album_ids: list[str] = Field(default_factory=list)
    seed_albums: list[SeedAlbumPayload] = Field(default_factory=list)


class AlbumTracksPayload(BaseModel):
    album_id: str
    titles: list[str] = Field(default_factory=list)


class PendingQueueRequest(BaseModel):
    grid: list[AlbumPayload]
    tapped_index: int


class BatchTracksRequest(BaseModel):
    tracks: list[AlbumTracksPayload]


class StagedBatchRequest(BaseModel):
    albums: list[AlbumPayload]
    tracks: list[AlbumTracksPayload]


class TrackChangedRequest(BaseModel):
    title: str
    check_backward: bool = False


class SeekRequest(BaseModel):
    index: int


app = FastAPI(
    title=APP_NAME,
    description="Crate API for blended album feeds and auto-advancing album queues.",
)


@app.on_event("startup")
async def startup():
    _setup_logging(str(settings.LOG_DIR))
    store = _dial_store()
    _catalog()
    _queue()
    logger.info("[API] started db=%s position=%s", store.db_path, int(store.position))


def _dial_store() -> CrateDialStore:
    store = getattr(app.state, "dial_store", None)
    if store is None:
        store = CrateDialStore(settings.DB_PATH)
        app.state.dial_store = store
    return store


def _catalog():
    catalog = getattr(app.state, "catalog", None)
    if catalog is None:
        catalog = AppleMusicCatalogClient()
        app.state.catalog = catalog
    return catalog


def _queue() -> AlbumQueueManager:
    queue = getattr(app.state, "queue", None)
    if queue is None:
        queue = AlbumQueueManager()
        app.state.queue = queue
    return queue


def _tracks_by_album(tracks: list[AlbumTracksPayload]) -> list[tuple[str, list[str]]]:
    return [(entry.album_id, list(entry.titles)) for entry in tracks]


def _albums_response(albums) -> list[dict]:
    return [album.to_dict() for album in albums]


@app.get("/api/dial")
async def api_get_dial():
    position = _dial_store().position
    return {
        "position": int(position),
        "label": position.label,
        "description": position.description,
        "wall_weights": {signal.value: weight for signal, weight in wall_weights(position).values.items()},
        "genre_feed_weights": {
            signal.value: weight for signal, weight in genre_feed_weights(position).values.items()
        },
    }


@app.put("/api/dial")
async def api_put_dial(payload: DialRequest):
    try:
        position = _dial_store().set_position(payload.position)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"position": int(position), "label": position.label}


@app.post("/api/feed/wall")
async def api_feed_wall(payload: FeedRequest | None = None):
    payload = payload or FeedRequest()
    total = payload.total if payload.total is not None else settings.WALL_INITIAL_TOTAL
    service = CrateWallService(
        _catalog(),
        _dial_store(),
        excluded_album_ids=payload.excluded_album_ids,
    )
    albums = await service.generate_feed(total, payload.excluding)
    return {"albums": _albums_response(albums), "count": len(albums), "retry": not albums}


@app.post("/api/feed/genre/{genre_id}")
async def api_feed_genre(genre_id: str, payload: FeedRequest | None = None):
    payload = payload or FeedRequest()
    total = payload.total if payload.total is not None else settings.GENRE_FEED_TOTAL
    category = genres.category(genre_id)
    if category is None:
        raise HTTPException(status_code=404, detail=f"Unknown genre: {genre_id}")
    service = GenreFeedService(
        category,
        _catalog(),
        _dial_store(),
        excluded_album_ids=payload.excluded_album_ids,
        seed_albums=[SeedAlbum(album_id=seed.album_id, artist_name=seed.artist_name) for seed in payload.seed_albums],
    )
    albums = await service.generate_feed(total, payload.excluding)
    return {"albums": _albums_response(albums), "count": len(albums), "retry": not albums}


@app.get("/api/genres")
async def api_genres():
    return [
        {
            "id": genre.id,
            "name": genre.name,
            "apple_music_id": genre.apple_music_id,
            "subcategories": [
                {"id": sub.id, "name": sub.name, "apple_music_id": sub.apple_music_id}
                for sub in genre.subcategories
            ],
        }
        for genre in genres.ALL_GENRES
    ]


@app.post("/api/queue/pending")
async def api_queue_pending(payload: PendingQueueRequest):
    queue = _queue()
    queue.set_pending_queue([album.to_album() for album in payload.grid], payload.tapped_index)
    return {"has_pending_queue": queue.has_pending_queue, "grid_album_count": len(payload.grid)}


@app.post("/api/queue/batch")
async def api_queue_batch():
    return {"albums": _albums_response(_queue().compute_batch())}


@app.post("/api/queue/anchor")
async def api_queue_anchor():
    split = _queue().consume_pending_queue()
    if split is None:
        raise HTTPException(status_code=409, detail="No album at the tapped position")
    return {"anchor": split.anchor.to_dict(), "remaining": _albums_response(split.remaining)}


@app.post("/api/queue/tracks")
async def api_queue_tracks(payload: BatchTracksRequest):
    queue = _queue()
    queue.register_batch_tracks(_tracks_by_album(payload.tracks))
    return queue.diagnostics().to_dict()


@app.post("/api/queue/append")
async def api_queue_append(payload: StagedBatchRequest):
    queue = _queue()
    queue.append_to_batch([album.to_album() for album in payload.albums], _tracks_by_album(payload.tracks))
    return queue.diagnostics().to_dict()


@app.post("/api/queue/track-changed")
async def api_queue_track_changed(payload: TrackChangedRequest):
    queue = _queue()
    result = queue.track_did_change(payload.title, check_backward=payload.check_backward)
    wrapped = not result.found and queue.is_at_last_track
    if wrapped:
        queue.mark_batch_exhausted()
    return {
        "found": result.found,
        "album_changed": result.album_changed,
        "new_album": result.new_album.to_dict() if result.new_album is not None else None,
        "wrapped": wrapped,
        "should_prefetch": queue.should_prefetch,
    }


@app.post("/api/queue/seek")
async def api_queue_seek(payload: SeekRequest):
    moved = _queue().seek_to_track(payload.index)
    return {"moved": moved, "position": _queue().current_track_position}


@app.get("/api/queue/next-batch")
async def api_queue_next_batch():
    albums = _queue().compute_next_batch()
    return {"albums": _albums_response(albums) if albums is not None else None}


@app.post("/api/queue/next-batch")
async def api_queue_register_next_batch(payload: StagedBatchRequest):
    queue = _queue()
    queue.register_next_batch([album.to_album() for album in payload.albums], _tracks_by_album(payload.tracks))
    return {"next_batch_ready": queue.next_batch is not None}


@app.post("/api/queue/advance")
async def api_queue_advance():
    advanced = _queue().advance_to_next_batch()
    return {"advanced": advanced}


@app.post("/api/queue/reset")
async def api_queue_reset():
    _queue().reset()
    return {"status": "ok"}


@app.get("/api/queue/diagnostics")
async def api_queue_diagnostics():
    return _queue().diagnostics().to_dict()


if __name__ == "__main__":
    import uvicorn

    host = _env_or_default("CRATE_HOST", "127.0.0.1")
    port = int(_env_or_default("CRATE_PORT", "8000"))
    uvicorn.run("api.main:app", host=host, port=port, reload=False)
