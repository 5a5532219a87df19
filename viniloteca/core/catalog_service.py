"""Catalog lookups through the metadata caches; the network is only hit on a miss."""
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Protocol

from viniloteca.config import (
    DETAIL_CACHE_MAX,
    DETAIL_CACHE_TTL_SEC,
    SEARCH_CACHE_MAX,
    SEARCH_CACHE_TTL_SEC,
    SEARCH_PER_PAGE,
)
from viniloteca.core.metadata_cache import MetadataCache, search_cache_key
from viniloteca.models.catalog import CatalogMetadata, CatalogSearchResult

logger = logging.getLogger(__name__)


class CatalogClient(Protocol):
    async def search(self, query: str, *, page: int = 1, per_page: int = SEARCH_PER_PAGE) -> list[CatalogSearchResult]:
        ...

    async def get_metadata(self, release_id: int) -> CatalogMetadata:
        ...


def new_search_cache(**kwargs) -> MetadataCache[str, list[CatalogSearchResult]]:
    """In-memory only: rankings churn and a search is cheap to repeat."""
    kwargs.setdefault("max_entries", SEARCH_CACHE_MAX)
    return MetadataCache(SEARCH_CACHE_TTL_SEC, name="search", **kwargs)


def new_detail_cache(path: Optional[Path] = None, **kwargs) -> MetadataCache[int, CatalogMetadata]:
    """Release metadata, persisted to `path` when given."""
    kwargs.setdefault("max_entries", DETAIL_CACHE_MAX)
    return MetadataCache(
        DETAIL_CACHE_TTL_SEC,
        path=path,
        encode=asdict,
        decode=lambda d: CatalogMetadata(**d),
        name="detail",
        **kwargs,
    )


class CatalogService:
    def __init__(
        self,
        client: CatalogClient,
        search_cache: MetadataCache[str, list[CatalogSearchResult]],
        detail_cache: MetadataCache[int, CatalogMetadata],
    ) -> None:
        self._client = client
        self.search_cache = search_cache
        self.detail_cache = detail_cache

    async def search(
        self, query: str, page: int = 1, per_page: int = SEARCH_PER_PAGE
    ) -> list[CatalogSearchResult]:
        """Cached release search. Blank queries return [] without a request."""
        trimmed = query.strip()
        if not trimmed:
            return []
        key = search_cache_key(trimmed, page, per_page)
        return await self.search_cache.get_or_fetch(
            key, lambda: self._client.search(trimmed, page=page, per_page=per_page)
        )

    async def get_metadata(self, catalog_item_id: int) -> CatalogMetadata:
        """Cached title and cover; CatalogError subclasses propagate."""
        return await self.detail_cache.get_or_fetch(
            catalog_item_id, lambda: self._client.get_metadata(catalog_item_id)
        )
