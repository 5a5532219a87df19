"""Rental rules: period validation, status derivation, return transition.

Status is never stored. It is always recomputed from (rented_at, due_at,
returned_at, now), so a stored record can never disagree with its dates:

    ACTIVE --(now passes due_at)--> OVERDUE
    ACTIVE | OVERDUE --(mark_returned)--> RETURNED  (terminal)
"""
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from viniloteca.config import MAX_RENTAL_DAYS
from viniloteca.core.errors import (
    AlreadyReturned,
    DurationExceeded,
    InvalidCatalogItemId,
    InvalidRange,
)
from viniloteca.models.rental import RentalRecord, RentalStatus


def validate_rental_period(
    rented_at: datetime,
    due_at: datetime,
    max_duration_days: int = MAX_RENTAL_DAYS,
) -> None:
    """Raise InvalidRange or DurationExceeded; a period of exactly the maximum is allowed."""
    if due_at < rented_at:
        raise InvalidRange("Due date cannot be before the rental start.")
    if due_at - rented_at > timedelta(days=max_duration_days):
        raise DurationExceeded(
            f"Rentals cannot last more than {max_duration_days} days.",
            max_days=max_duration_days,
        )


def validate_catalog_item_id(catalog_item_id: int) -> None:
    # bool is an int subclass; True must not pass as item 1
    if isinstance(catalog_item_id, bool) or not isinstance(catalog_item_id, int) or catalog_item_id <= 0:
        raise InvalidCatalogItemId(f"Invalid catalog item id: {catalog_item_id!r}")


def new_rental(
    catalog_item_id: int,
    user_id: str,
    rented_at: datetime,
    due_at: datetime,
    *,
    now: datetime,
    operator_id: Optional[str] = None,
    max_duration_days: int = MAX_RENTAL_DAYS,
) -> RentalRecord:
    """Validate a candidate rental and build the record (not persisted)."""
    validate_catalog_item_id(catalog_item_id)
    validate_rental_period(rented_at, due_at, max_duration_days)
    return RentalRecord(
        id=str(uuid.uuid4()),
        catalog_item_id=catalog_item_id,
        user_id=user_id,
        operator_id=operator_id,
        rented_at=rented_at,
        due_at=due_at,
        created_at=now,
    )


def derive_status(record: RentalRecord, now: datetime) -> RentalStatus:
    if record.returned_at is not None:
        return RentalStatus.RETURNED
    if record.due_at < now:
        return RentalStatus.OVERDUE
    return RentalStatus.ACTIVE


def is_overdue(record: RentalRecord, now: datetime) -> bool:
    """Currently unreturned and past due."""
    return derive_status(record, now) is RentalStatus.OVERDUE


def returned_late(record: RentalRecord) -> bool:
    """Was returned after the due date. Distinct from overdue."""
    return record.returned_at is not None and record.returned_at > record.due_at


def mark_returned(record: RentalRecord, now: datetime) -> RentalRecord:
    """Return a copy with returned_at = now.

    Raises AlreadyReturned (holding the unchanged record) if it was returned before.
    """
    if record.returned_at is not None:
        raise AlreadyReturned(record)
    return replace(record, returned_at=now)
