"""Discogs catalog search and release metadata, served from the metadata caches."""
from dataclasses import asdict
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from viniloteca.api.state import AppState, get_state
from viniloteca.core.errors import CatalogError, CatalogNotFound, CatalogRateLimited
from viniloteca.models.catalog import CatalogMetadata, CatalogSearchResult

router = APIRouter()


def metadata_to_dict(m: Optional[CatalogMetadata]) -> Optional[dict]:
    return asdict(m) if m is not None else None


def _result_to_dict(r: CatalogSearchResult) -> dict:
    d = asdict(r)
    d["artist"] = r.artist
    d["album"] = r.album
    return d


def _raise_catalog_error(e: CatalogError) -> NoReturn:
    if isinstance(e, CatalogNotFound):
        raise HTTPException(status_code=404, detail="Catalog item not found") from e
    if isinstance(e, CatalogRateLimited):
        headers = {"Retry-After": str(int(e.retry_after))} if e.retry_after is not None else None
        raise HTTPException(
            status_code=429,
            detail="Discogs rate limit reached, try again shortly",
            headers=headers,
        ) from e
    raise HTTPException(status_code=502, detail=f"Catalog unavailable: {e}") from e


@router.get("/search")
async def search(
    q: str = "",
    page: int = Query(1, ge=1),
    state: AppState = Depends(get_state),
):
    """Search releases by text. Identical searches within the TTL are served from cache."""
    if not q.strip():
        raise HTTPException(status_code=400, detail="Provide a search text in 'q'")
    try:
        results = await state.catalog.search(q, page=page)
    except CatalogError as e:
        _raise_catalog_error(e)
    return [_result_to_dict(r) for r in results]


@router.get("/items/{item_id}")
async def get_item(item_id: int, state: AppState = Depends(get_state)):
    """Title and cover for one release."""
    if item_id <= 0:
        raise HTTPException(status_code=400, detail="Invalid catalog item id")
    try:
        metadata = await state.catalog.get_metadata(item_id)
    except CatalogError as e:
        _raise_catalog_error(e)
    return metadata_to_dict(metadata)
