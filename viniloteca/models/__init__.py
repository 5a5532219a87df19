"""Data models for rentals and catalog metadata."""
from viniloteca.models.catalog import (
    CatalogImage,
    CatalogMetadata,
    CatalogRelease,
    CatalogSearchResult,
)
from viniloteca.models.rental import EnrichedRental, OrderSummary, RentalRecord, RentalStatus

__all__ = [
    "CatalogImage",
    "CatalogMetadata",
    "CatalogRelease",
    "CatalogSearchResult",
    "EnrichedRental",
    "OrderSummary",
    "RentalRecord",
    "RentalStatus",
]
