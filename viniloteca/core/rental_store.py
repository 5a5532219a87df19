"""Persist and load rental records (JSON)."""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from viniloteca.config import MAX_RENTAL_DAYS, RENTALS_PATH, ensure_data_dir
from viniloteca.core.clock import parse_instant
from viniloteca.core.errors import AlreadyReturned
from viniloteca.core.rental_lifecycle import mark_returned, new_rental
from viniloteca.models.rental import RentalRecord

logger = logging.getLogger(__name__)


def _path(path: Optional[Path] = None) -> Path:
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
    ensure_data_dir()
    return RENTALS_PATH


def _optional_instant(value: Optional[str]) -> Optional[datetime]:
    return parse_instant(value) if value else None


def _rental_from_dict(item: dict) -> RentalRecord:
    return RentalRecord(
        id=item["id"],
        catalog_item_id=int(item["catalog_item_id"]),
        user_id=item["user_id"],
        operator_id=item.get("operator_id"),
        rented_at=parse_instant(item["rented_at"]),
        # Legacy rows without a due date fall back to the start date
        due_at=parse_instant(item.get("due_at") or item["rented_at"]),
        returned_at=_optional_instant(item.get("returned_at")),
        created_at=parse_instant(item.get("created_at") or item["rented_at"]),
    )


def _rental_to_dict(r: RentalRecord) -> dict:
    return {
        "id": r.id,
        "catalog_item_id": r.catalog_item_id,
        "user_id": r.user_id,
        "operator_id": r.operator_id,
        "rented_at": r.rented_at.isoformat(),
        "due_at": r.due_at.isoformat(),
        "returned_at": r.returned_at.isoformat() if r.returned_at else None,
        "created_at": r.created_at.isoformat(),
    }


def load_rentals(path: Optional[Path] = None) -> List[RentalRecord]:
    """Load all rentals from disk."""
    p = _path(path)
    if not p.exists():
        return []
    try:
        data = json.loads(p.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Could not read rentals from %s: %s", p, e)
        return []
    out = []
    for item in data.get("rentals", []):
        try:
            out.append(_rental_from_dict(item))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed rental row: %r", item)
            continue
    return out


def save_rentals(rentals: List[RentalRecord], path: Optional[Path] = None) -> None:
    """Save all rentals to disk."""
    p = _path(path)
    data = {"rentals": [_rental_to_dict(r) for r in rentals]}
    p.write_text(json.dumps(data, indent=2))


def get_rental_by_id(rentals: List[RentalRecord], rental_id: str) -> Optional[RentalRecord]:
    """Return rental by id or None."""
    for r in rentals:
        if r.id == rental_id:
            return r
    return None


def list_rentals_by_user(rentals: List[RentalRecord], user_id: str) -> List[RentalRecord]:
    """Rentals of one user, newest first."""
    mine = [r for r in rentals if r.user_id == user_id]
    return sorted(mine, key=lambda r: r.rented_at, reverse=True)


def create_rental(
    rentals: List[RentalRecord],
    catalog_item_id: int,
    user_id: str,
    rented_at: datetime,
    due_at: datetime,
    *,
    now: datetime,
    operator_id: Optional[str] = None,
    max_duration_days: int = MAX_RENTAL_DAYS,
    path: Optional[Path] = None,
) -> RentalRecord:
    """Validate, append and save. Raises RentalValidationError subclasses."""
    rental = new_rental(
        catalog_item_id,
        user_id,
        rented_at,
        due_at,
        now=now,
        operator_id=operator_id,
        max_duration_days=max_duration_days,
    )
    rentals.append(rental)
    save_rentals(rentals, path)
    logger.info(
        "Rental %s created: item %s for user %s until %s",
        rental.id,
        catalog_item_id,
        user_id,
        due_at.isoformat(),
    )
    return rental


def mark_rental_returned(
    rentals: List[RentalRecord],
    rental_id: str,
    now: datetime,
    path: Optional[Path] = None,
) -> Optional[RentalRecord]:
    """Set returned_at and save. Returns None if not found.

    A second return of the same rental is a no-op that returns the stored record.
    """
    for i, r in enumerate(rentals):
        if r.id == rental_id:
            try:
                updated = mark_returned(r, now)
            except AlreadyReturned as e:
                logger.info("Rental %s already returned; keeping %s", rental_id, r.returned_at)
                return e.record
            rentals[i] = updated
            save_rentals(rentals, path)
            return updated
    return None
