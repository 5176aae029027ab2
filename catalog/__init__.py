"""Apple Music catalog access and album value types."""

from catalog.client import AppleMusicCatalogClient
from catalog.errors import CatalogConfigError, CatalogError, CatalogRequestError
from catalog.models import Album, SeedAlbum

__all__ = [
    "Album",
    "AppleMusicCatalogClient",
    "CatalogConfigError",
    "CatalogError",
    "CatalogRequestError",
    "SeedAlbum",
]
