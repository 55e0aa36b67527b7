"""In-memory caches shared across backend services."""

from .catalog_cache import CatalogCache, catalog_cache

__all__ = ["catalog_cache", "CatalogCache"]
