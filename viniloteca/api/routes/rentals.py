"""Rentals: create, list with catalog metadata, mark returned."""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from viniloteca.api.routes.catalog import metadata_to_dict
from viniloteca.api.state import AppState, get_state
from viniloteca.core.errors import RentalValidationError
from viniloteca.core.rental_lifecycle import derive_status, returned_late
from viniloteca.models.rental import EnrichedRental, OrderSummary, RentalRecord, RentalStatus

router = APIRouter()


class CreateRentalBody(BaseModel):
    catalog_item_id: int
    user_id: str
    due_at: datetime
    rented_at: Optional[datetime] = None  # defaults to now
    operator_id: Optional[str] = None


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _rental_to_dict(r: RentalRecord, now: datetime) -> dict:
    status = derive_status(r, now)
    return {
        "id": r.id,
        "catalog_item_id": r.catalog_item_id,
        "user_id": r.user_id,
        "operator_id": r.operator_id,
        "rented_at": r.rented_at.isoformat(),
        "due_at": r.due_at.isoformat(),
        "returned_at": r.returned_at.isoformat() if r.returned_at else None,
        "created_at": r.created_at.isoformat(),
        "status": status.value,
        "is_overdue": status is RentalStatus.OVERDUE,
        "returned_late": returned_late(r),
    }


def _enriched_to_dict(e: EnrichedRental, now: datetime) -> dict:
    d = _rental_to_dict(e.record, now)
    d["metadata"] = metadata_to_dict(e.metadata)
    return d


def _order_summary(r: RentalRecord, now: datetime) -> OrderSummary:
    return OrderSummary(
        id=r.id,
        client_id=r.user_id,
        code=f"DISC-{r.catalog_item_id}",
        start_date=r.rented_at.date().isoformat(),
        end_date=r.due_at.date().isoformat(),
        status=derive_status(r, now),
    )


@router.get("/")
async def list_rentals(
    user_id: str,
    status: Optional[RentalStatus] = None,
    state: AppState = Depends(get_state),
):
    """A user's rentals, newest first, with title and cover where the catalog answered."""
    now = state.now()
    rentals = state.list_rentals_by_user(user_id)
    if status is not None:
        rentals = [r for r in rentals if derive_status(r, now) is status]
    enriched = await state.enricher.enrich_rentals(rentals, now)
    return [_enriched_to_dict(e, now) for e in enriched]


@router.post("/", status_code=201)
def create_rental(body: CreateRentalBody, state: AppState = Depends(get_state)):
    """Create a rental. The period must not be reversed or exceed the maximum length."""
    now = state.now()
    rented_at = _as_utc(body.rented_at) if body.rented_at else now
    try:
        rental = state.create_rental(
            body.catalog_item_id,
            body.user_id,
            rented_at,
            _as_utc(body.due_at),
            operator_id=body.operator_id,
        )
    except RentalValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _rental_to_dict(rental, now)


@router.get("/orders")
def list_orders(client_id: str, state: AppState = Depends(get_state)):
    """Compact order list for one client (staff view)."""
    now = state.now()
    orders = [_order_summary(r, now) for r in state.list_rentals_by_user(client_id)]
    return [
        {
            "id": o.id,
            "client_id": o.client_id,
            "code": o.code,
            "start_date": o.start_date,
            "end_date": o.end_date,
            "status": o.status.value,
        }
        for o in orders
    ]


@router.get("/{rental_id}")
async def get_rental(rental_id: str, state: AppState = Depends(get_state)):
    rental = state.get_rental_by_id(rental_id)
    if rental is None:
        raise HTTPException(status_code=404, detail="Rental not found")
    now = state.now()
    [enriched] = await state.enricher.enrich_rentals([rental], now)
    return _enriched_to_dict(enriched, now)


@router.post("/{rental_id}/return")
def return_rental(rental_id: str, state: AppState = Depends(get_state)):
    """Mark a rental returned. Repeating the call keeps the first return time."""
    rental = state.mark_rental_returned(rental_id)
    if rental is None:
        raise HTTPException(status_code=404, detail="Rental not found")
    return _rental_to_dict(rental, state.now())
