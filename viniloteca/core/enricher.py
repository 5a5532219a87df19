"""Attach catalog metadata (title, cover) to rental records.

Distinct catalog ids are looked up in the detail cache; misses are fetched with
at most `concurrency` requests in flight. Each fetch has its own timeout and can
be cancelled on its own. A failed, timed-out or cancelled fetch yields None for
that id only; the rest of the batch is unaffected. Results are cached in memory
as each fetch completes, so an overlapping batch sees them straight away; the
persisted copy is written once when the batch ends.
"""
import asyncio
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from viniloteca.config import CATALOG_TIMEOUT_SEC, ENRICH_CONCURRENCY
from viniloteca.core.cancellation import CancelToken
from viniloteca.core.catalog_service import CatalogClient
from viniloteca.core.errors import CatalogError, CatalogNotFound
from viniloteca.core.metadata_cache import MetadataCache
from viniloteca.core.rental_lifecycle import derive_status, returned_late
from viniloteca.models.catalog import CatalogMetadata
from viniloteca.models.rental import EnrichedRental, RentalRecord

logger = logging.getLogger(__name__)


def distinct_catalog_ids(records: Iterable[RentalRecord]) -> List[int]:
    """Catalog ids in first-seen order, each once."""
    return list(dict.fromkeys(r.catalog_item_id for r in records))


class BatchEnricher:
    def __init__(
        self,
        client: CatalogClient,
        cache: MetadataCache[int, CatalogMetadata],
        *,
        concurrency: int = ENRICH_CONCURRENCY,
        fetch_timeout_sec: float = CATALOG_TIMEOUT_SEC,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._client = client
        self._cache = cache
        self._concurrency = concurrency
        self._fetch_timeout = fetch_timeout_sec

    async def fetch_metadata(
        self, catalog_item_id: int, cancel: Optional[CancelToken] = None
    ) -> Optional[CatalogMetadata]:
        """Fetch one id from the catalog and cache it. None on any failure or cancellation."""
        metadata = await self._fetch_one(catalog_item_id, cancel)
        await self._cache.aflush()
        return metadata

    async def _fetch_one(
        self, catalog_item_id: int, cancel: Optional[CancelToken]
    ) -> Optional[CatalogMetadata]:
        if cancel is not None and cancel.cancelled:
            return None
        task = asyncio.ensure_future(
            asyncio.wait_for(self._client.get_metadata(catalog_item_id), self._fetch_timeout)
        )
        try:
            if cancel is None:
                await asyncio.wait({task})
            else:
                waiter = asyncio.ensure_future(cancel.wait())
                try:
                    await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    waiter.cancel()
                if not task.done():
                    task.cancel()
                    await asyncio.wait({task})
        finally:
            # Our own caller was cancelled; take the in-flight request down with us
            if not task.done():
                task.cancel()

        if task.cancelled():
            logger.info("Catalog fetch for %s cancelled", catalog_item_id)
            return None
        exc = task.exception()
        if exc is None:
            metadata = task.result()
            self._cache.put(catalog_item_id, metadata)
            return metadata
        if isinstance(exc, CatalogNotFound):
            logger.info("Catalog item %s not found", catalog_item_id)
        elif isinstance(exc, asyncio.TimeoutError):
            logger.warning("Catalog fetch for %s timed out after %.1fs", catalog_item_id, self._fetch_timeout)
        elif isinstance(exc, CatalogError):
            logger.warning("Catalog fetch for %s failed: %s", catalog_item_id, exc)
        else:
            logger.warning("Catalog fetch for %s failed unexpectedly", catalog_item_id, exc_info=exc)
        return None

    async def enrich(
        self,
        records: Iterable[RentalRecord],
        concurrency: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Dict[int, Optional[CatalogMetadata]]:
        """Map every distinct catalog id in `records` to its metadata, or None if unavailable."""
        ids = distinct_catalog_ids(records)
        result: Dict[int, Optional[CatalogMetadata]] = {}
        missing = []
        for catalog_item_id in ids:
            cached = self._cache.get(catalog_item_id)
            if cached is not None:
                result[catalog_item_id] = cached
            else:
                missing.append(catalog_item_id)
        if not missing:
            return result

        limit = asyncio.Semaphore(concurrency or self._concurrency)

        async def _fetch(catalog_item_id: int) -> None:
            async with limit:
                result[catalog_item_id] = await self._fetch_one(catalog_item_id, cancel)

        logger.debug("Enriching %d ids: %d cached, %d to fetch", len(ids), len(result), len(missing))
        await asyncio.gather(*(_fetch(i) for i in missing))
        # One write per batch; fetches above only touch memory
        await self._cache.aflush()
        unavailable = sum(1 for i in missing if result[i] is None)
        if unavailable:
            logger.info("Enrichment finished with %d of %d ids unavailable", unavailable, len(ids))
        return result

    async def enrich_rentals(
        self,
        records: List[RentalRecord],
        now: datetime,
        concurrency: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[EnrichedRental]:
        """Records with status and metadata attached, in input order."""
        metadata = await self.enrich(records, concurrency=concurrency, cancel=cancel)
        return [
            EnrichedRental(
                record=r,
                status=derive_status(r, now),
                returned_late=returned_late(r),
                metadata=metadata.get(r.catalog_item_id),
            )
            for r in records
        ]
