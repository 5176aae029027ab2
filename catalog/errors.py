"""Exceptions raised by the catalog client."""

from __future__ import annotations


class CatalogError(RuntimeError):
    """Base error for catalog access failures."""


class CatalogConfigError(CatalogError):
    """Raised when required catalog credentials are missing."""


class CatalogRequestError(CatalogError):
    """Raised when a catalog request returns a non-success status."""

    def __init__(self, endpoint: str, status_code: int | None) -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(f"Catalog request failed ({status_code}) endpoint={endpoint}")
