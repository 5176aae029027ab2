"""Database helpers for Crate."""

from db.dial_store import CrateDialStore

__all__ = ["CrateDialStore"]
