from __future__ import annotations

from catalog.models import Album
from playback.queue_manager import AlbumQueueManager, TrackMapEntry


def _grid(count: int) -> list[Album]:
    return [Album(id=f"album-{i}", title=f"Album {i}", artist_name="Artist") for i in range(count)]


def _tracks(albums: list[Album], per_album: int = 2) -> list[tuple[Album, list[str]]]:
    return [(album, [f"{album.title} Track {n}" for n in range(1, per_album + 1)]) for album in albums]


def _started(grid_size: int = 12, tapped: int = 0, per_album: int = 2) -> AlbumQueueManager:
    manager = AlbumQueueManager()
    manager.set_pending_queue(_grid(grid_size), tapped)
    batch = manager.compute_batch()
    manager.register_batch_tracks(_tracks(batch, per_album))
    return manager


def test_compute_batch_window_sizes() -> None:
    manager = AlbumQueueManager()

    manager.set_pending_queue(_grid(10), 2)
    assert [album.id for album in manager.compute_batch()] == ["album-2", "album-3", "album-4", "album-5", "album-6"]

    manager.set_pending_queue(_grid(10), 8)
    assert [album.id for album in manager.compute_batch()] == ["album-8", "album-9"]

    manager.set_pending_queue(_grid(10), 10)
    assert manager.compute_batch() == []


def test_set_pending_queue_resets_previous_state() -> None:
    manager = _started()
    manager.set_pending_queue(_grid(3), 1)

    assert manager.has_pending_queue
    assert manager.track_map == []
    assert manager.current_batch == []
    assert manager.anchor_index == 1


def test_register_batch_tracks_builds_map_in_album_order() -> None:
    manager = _started(grid_size=3)

    assert manager.track_map[:3] == [
        TrackMapEntry("Album 0 Track 1", "album-0"),
        TrackMapEntry("Album 0 Track 2", "album-0"),
        TrackMapEntry("Album 1 Track 1", "album-1"),
    ]
    assert manager.current_track_position == 0
    assert manager.current_album.id == "album-0"


def test_album_change_reported_once_per_album() -> None:
    manager = _started()

    first = manager.track_did_change("Album 0 Track 2")
    assert first.found and not first.album_changed

    second = manager.track_did_change("Album 1 Track 1")
    assert second.found and second.album_changed
    assert second.new_album.id == "album-1"

    third = manager.track_did_change("Album 1 Track 2")
    assert third.found and not third.album_changed
    assert third.new_album is None


def test_duplicate_titles_resolve_forward() -> None:
    grid = _grid(3)
    manager = AlbumQueueManager()
    manager.set_pending_queue(grid, 0)
    batch = manager.compute_batch()
    manager.register_batch_tracks([(album, ["Intro", f"{album.title} Song"]) for album in batch])

    manager.track_did_change("Album 0 Song")
    change = manager.track_did_change("Intro")

    assert change.found and change.album_changed
    assert change.new_album.id == "album-1"
    assert manager.current_track_position == 2


def test_backward_check_is_one_position_only() -> None:
    manager = _started()
    manager.track_did_change("Album 1 Track 1")
    assert manager.current_track_position == 2

    back = manager.track_did_change("Album 0 Track 2", check_backward=True)
    assert back.found and back.album_changed
    assert back.new_album.id == "album-0"
    assert manager.current_track_position == 1

    manager.track_did_change("Album 1 Track 2")
    far_back = manager.track_did_change("Album 0 Track 1", check_backward=True)
    assert not far_back.found
    assert manager.current_track_position == 3


def test_wrap_from_last_track_is_not_found() -> None:
    manager = _started(grid_size=2)
    last = manager.track_map[-1].title
    manager.track_did_change(last)
    assert manager.is_at_last_track

    wrapped = manager.track_did_change("Album 0 Track 1", check_backward=True)

    assert not wrapped.found
    manager.mark_batch_exhausted()
    assert manager.batch_exhausted


def test_unknown_title_leaves_state_untouched() -> None:
    manager = _started()
    before = manager.current_track_position

    change = manager.track_did_change("Not In Batch")

    assert not change.found
    assert manager.current_track_position == before


def test_should_prefetch_tracks_last_album_of_batch() -> None:
    manager = _started()
    assert not manager.should_prefetch

    manager.track_did_change("Album 3 Track 1")
    assert not manager.should_prefetch

    manager.track_did_change("Album 4 Track 1")
    assert manager.should_prefetch

    assert manager.seek_to_track(0)
    assert not manager.should_prefetch


def test_seek_out_of_range_is_a_no_op() -> None:
    manager = _started()
    manager.track_did_change("Album 1 Track 1")

    assert not manager.seek_to_track(-1)
    assert not manager.seek_to_track(len(manager.track_map))
    assert manager.current_track_position == 2


def test_consume_pending_queue_splits_anchor() -> None:
    manager = AlbumQueueManager()
    manager.set_pending_queue(_grid(10), 3)

    split = manager.consume_pending_queue()

    assert split.anchor.id == "album-3"
    assert [album.id for album in split.remaining] == ["album-4", "album-5", "album-6", "album-7"]
    assert manager.current_batch == [split.anchor]
    assert not manager.has_pending_queue


def test_consume_pending_queue_out_of_range_returns_none() -> None:
    manager = AlbumQueueManager()
    manager.set_pending_queue(_grid(2), 5)

    assert manager.consume_pending_queue() is None


def test_append_to_batch_keeps_cursor() -> None:
    manager = AlbumQueueManager()
    manager.set_pending_queue(_grid(10), 0)
    split = manager.consume_pending_queue()
    manager.register_batch_tracks(_tracks([split.anchor]))
    manager.track_did_change("Album 0 Track 2")
    assert manager.should_prefetch

    manager.append_to_batch(split.remaining, _tracks(split.remaining))

    assert manager.current_track_position == 1
    assert len(manager.current_batch) == 5
    assert len(manager.track_map) == 10
    assert not manager.should_prefetch


def test_next_batch_follows_current_batch() -> None:
    manager = _started(grid_size=12)

    assert [album.id for album in manager.compute_next_batch()] == [
        "album-5",
        "album-6",
        "album-7",
        "album-8",
        "album-9",
    ]


def test_next_batch_none_when_grid_exhausted() -> None:
    manager = _started(grid_size=5)

    assert manager.compute_next_batch() is None


def test_advance_swaps_staged_batch() -> None:
    manager = _started(grid_size=12)
    next_albums = manager.compute_next_batch()
    manager.register_next_batch(next_albums, _tracks(next_albums))
    manager.track_did_change(manager.track_map[-1].title)
    manager.mark_batch_exhausted()

    assert manager.advance_to_next_batch()

    assert manager.current_batch == next_albums
    assert manager.current_track_position == 0
    assert manager.current_album.id == "album-5"
    assert not manager.should_prefetch
    assert manager.next_batch is None
    assert not manager.batch_exhausted
    assert manager.track_map[0] == TrackMapEntry("Album 5 Track 1", "album-5")


def test_advance_without_staged_batch_changes_nothing() -> None:
    manager = _started()
    manager.track_did_change("Album 2 Track 1")
    before = manager.diagnostics()

    assert not manager.advance_to_next_batch()
    assert manager.diagnostics() == before


def test_reset_clears_everything() -> None:
    manager = _started()
    next_albums = manager.compute_next_batch()
    manager.register_next_batch(next_albums, _tracks(next_albums))

    manager.reset()

    assert manager.grid_albums == []
    assert manager.anchor_index == 0
    assert manager.current_track_position == 0
    assert manager.current_batch == []
    assert manager.track_map == []
    assert manager.current_album is None
    assert manager.next_batch is None
    assert not manager.should_prefetch
    assert not manager.has_pending_queue
    assert not manager.batch_exhausted
    assert manager.compute_next_batch() is None


def test_diagnostics_snapshot() -> None:
    manager = _started(grid_size=8)
    manager.track_did_change("Album 1 Track 1")

    diag = manager.diagnostics()

    assert diag.is_active
    assert diag.grid_album_count == 8
    assert diag.current_batch_albums == ["Album 0", "Album 1", "Album 2", "Album 3", "Album 4"]
    assert diag.current_album_title == "Album 1"
    assert diag.track_position == 2
    assert diag.track_count == 10
    assert not diag.next_batch_ready
    assert [entry.is_current for entry in diag.track_queue].index(True) == 2
    assert diag.track_queue[2].album_title == "Album 1"
    assert diag.to_dict()["track_queue"][0]["track_title"] == "Album 0 Track 1"


def test_batch_from_middle_of_ten_album_grid() -> None:
    grid = _grid(10)
    manager = AlbumQueueManager()
    manager.set_pending_queue(grid, 3)

    batch = manager.compute_batch()

    assert len(batch) == 5
    assert batch[0] == grid[3]
    assert batch[-1] == grid[7]
    assert not manager.has_pending_queue


def test_batch_at_grid_end_has_one_album() -> None:
    manager = AlbumQueueManager()
    manager.set_pending_queue(_grid(5), 4)

    assert len(manager.compute_batch()) == 1


def test_track_change_cursor_and_album_change() -> None:
    album1, album2 = _grid(2)
    manager = AlbumQueueManager()
    manager.set_pending_queue([album1, album2], 0)
    manager.compute_batch()
    manager.register_batch_tracks([(album1, ["A", "B"]), (album2, ["C"])])

    change = manager.track_did_change("B")
    assert (change.found, change.album_changed, manager.current_track_position) == (True, False, 1)

    change = manager.track_did_change("C")
    assert change.found and change.album_changed
    assert change.new_album == album2


def test_repeated_intro_title_resolves_by_position() -> None:
    album1, album2 = _grid(2)
    manager = AlbumQueueManager()
    manager.set_pending_queue([album1, album2], 0)
    manager.compute_batch()
    manager.register_batch_tracks([(album1, ["Intro", "Song A"]), (album2, ["Intro", "Song B"])])

    first = manager.track_did_change("Intro")
    assert first.found
    assert manager.current_track_position == 0
    assert manager.current_album == album1

    manager.track_did_change("Song A")
    second = manager.track_did_change("Intro")
    assert second.found and second.new_album == album2
    assert manager.current_track_position == 2


def test_wrap_keeps_cursor_at_last_track() -> None:
    manager = _started(grid_size=3)
    first_title = manager.track_map[0].title
    manager.seek_to_track(len(manager.track_map) - 1)

    change = manager.track_did_change(first_title)

    assert not change.found
    assert manager.is_at_last_track


def test_advance_to_single_album_batch_sets_prefetch() -> None:
    grid = _grid(6)
    manager = AlbumQueueManager()
    manager.set_pending_queue(grid, 0)
    manager.register_batch_tracks(_tracks(manager.compute_batch()))
    next_albums = manager.compute_next_batch()
    assert next_albums == [grid[5]]
    manager.register_next_batch(next_albums, _tracks(next_albums))

    assert manager.advance_to_next_batch()

    assert manager.current_album == grid[5]
    assert manager.should_prefetch
