"""Shared application state (injected into routes)."""
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from viniloteca.config import CATALOG_CACHE_PATH, ENRICH_CONCURRENCY, MAX_RENTAL_DAYS, RENTALS_PATH
from viniloteca.core.catalog_service import (
    CatalogClient,
    CatalogService,
    new_detail_cache,
    new_search_cache,
)
from viniloteca.core.clock import Clock, utc_now
from viniloteca.core.discogs_client import DiscogsClient
from viniloteca.core.enricher import BatchEnricher
from viniloteca.core.rental_store import (
    create_rental,
    get_rental_by_id,
    list_rentals_by_user,
    load_rentals,
    mark_rental_returned,
)
from viniloteca.models.rental import RentalRecord


class AppState:
    def __init__(
        self,
        *,
        catalog_client: Optional[CatalogClient] = None,
        rentals_path: Path = RENTALS_PATH,
        catalog_cache_path: Optional[Path] = CATALOG_CACHE_PATH,
        clock: Clock = utc_now,
        max_rental_days: int = MAX_RENTAL_DAYS,
        enrich_concurrency: int = ENRICH_CONCURRENCY,
    ) -> None:
        self.clock = clock
        self.max_rental_days = max_rental_days
        self._rentals_path = rentals_path
        self._catalog_cache_path = catalog_cache_path
        self._enrich_concurrency = enrich_concurrency
        self._rentals: List[RentalRecord] = []
        self._lock = threading.Lock()
        self._catalog_client = catalog_client
        self._catalog: CatalogService | None = None
        self._enricher: BatchEnricher | None = None

    def now(self) -> datetime:
        return self.clock()

    def load_rentals(self) -> int:
        with self._lock:
            self._rentals = load_rentals(self._rentals_path)
            return len(self._rentals)

    def list_rentals_by_user(self, user_id: str) -> List[RentalRecord]:
        with self._lock:
            return list_rentals_by_user(self._rentals, user_id)

    def get_rental_by_id(self, rental_id: str) -> RentalRecord | None:
        with self._lock:
            return get_rental_by_id(self._rentals, rental_id)

    def create_rental(
        self,
        catalog_item_id: int,
        user_id: str,
        rented_at: datetime,
        due_at: datetime,
        operator_id: str | None = None,
    ) -> RentalRecord:
        with self._lock:
            return create_rental(
                self._rentals,
                catalog_item_id,
                user_id,
                rented_at,
                due_at,
                now=self.now(),
                operator_id=operator_id,
                max_duration_days=self.max_rental_days,
                path=self._rentals_path,
            )

    def mark_rental_returned(self, rental_id: str) -> RentalRecord | None:
        with self._lock:
            return mark_rental_returned(self._rentals, rental_id, self.now(), path=self._rentals_path)

    @property
    def catalog_client(self) -> CatalogClient:
        if self._catalog_client is None:
            self._catalog_client = DiscogsClient()
        return self._catalog_client

    @property
    def catalog(self) -> CatalogService:
        if self._catalog is None:
            self._catalog = CatalogService(
                self.catalog_client,
                search_cache=new_search_cache(),
                detail_cache=new_detail_cache(self._catalog_cache_path),
            )
        return self._catalog

    @property
    def enricher(self) -> BatchEnricher:
        if self._enricher is None:
            # Shares the detail cache with single-item lookups
            self._enricher = BatchEnricher(
                self.catalog_client,
                self.catalog.detail_cache,
                concurrency=self._enrich_concurrency,
            )
        return self._enricher

    async def close(self) -> None:
        if self._catalog is not None:
            await self._catalog.detail_cache.aflush()
        if isinstance(self._catalog_client, DiscogsClient):
            await self._catalog_client.close()


_state = AppState()


def get_state() -> AppState:
    return _state
