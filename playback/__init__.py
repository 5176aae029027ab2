"""Playback queue management."""

from playback.queue_manager import (
    AlbumQueueManager,
    QueueDiagnostics,
    TrackChange,
    TrackMapEntry,
    TrackQueueEntry,
)

__all__ = [
    "AlbumQueueManager",
    "QueueDiagnostics",
    "TrackChange",
    "TrackMapEntry",
    "TrackQueueEntry",
]
