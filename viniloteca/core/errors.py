"""Error taxonomy shared by rental lifecycle, catalog client and enrichment."""
import math
from typing import Optional


class RentalValidationError(ValueError):
    """A proposed rental is invalid; the caller must correct it."""


class InvalidRange(RentalValidationError):
    """Due date is before the rental start."""


class DurationExceeded(RentalValidationError):
    """Rental period is longer than the allowed maximum."""

    def __init__(self, message: str, max_days: int) -> None:
        super().__init__(message)
        self.max_days = max_days


class InvalidCatalogItemId(RentalValidationError):
    """Catalog item id is not a positive integer."""


class AlreadyReturned(Exception):
    """Return was requested for a rental that is already returned.

    Recoverable: carries the unchanged record so callers can treat the
    duplicate request as success.
    """

    def __init__(self, record) -> None:
        super().__init__(f"Rental {record.id} was already returned at {record.returned_at.isoformat()}")
        self.record = record


class CatalogError(Exception):
    """Base for catalog API failures."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CatalogNotFound(CatalogError):
    """The catalog has no item with the requested id."""


class CatalogRateLimited(CatalogError):
    """The catalog answered 429."""

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message, status_code=429)
        # Only a finite, non-negative delay is usable as a Retry-After value
        if retry_after is not None and not (math.isfinite(retry_after) and retry_after >= 0):
            retry_after = None
        self.retry_after = retry_after


class CatalogTransientError(CatalogError):
    """Network error, timeout, server error or unusable response."""
