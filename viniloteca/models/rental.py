"""Rental records and their derived views."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from viniloteca.models.catalog import CatalogMetadata


class RentalStatus(str, Enum):
    """Derived from timestamps; never stored."""
    ACTIVE = "active"
    OVERDUE = "overdue"
    RETURNED = "returned"


@dataclass(frozen=True)
class RentalRecord:
    """One loan of a catalog item to a user."""
    id: str
    catalog_item_id: int
    user_id: str
    rented_at: datetime
    due_at: datetime
    created_at: datetime
    operator_id: Optional[str] = None  # staff member who booked it for the user
    returned_at: Optional[datetime] = None


@dataclass(frozen=True)
class EnrichedRental:
    """Rental plus resolved status and catalog metadata (None when unavailable)."""
    record: RentalRecord
    status: RentalStatus
    returned_late: bool
    metadata: Optional[CatalogMetadata]


@dataclass(frozen=True)
class OrderSummary:
    """Compact per-client view used by staff screens."""
    id: str
    client_id: str
    code: str  # "DISC-<catalog_item_id>"
    start_date: str
    end_date: str
    status: RentalStatus
