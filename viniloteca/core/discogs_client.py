"""Discogs API client over httpx: release search and release details.

Only builds requests, attaches credentials, enforces the per-request timeout and
classifies responses. No caching and no retries; callers decide what to do
with CatalogNotFound / CatalogRateLimited / CatalogTransientError.
"""
import logging
from typing import Any, Optional

import httpx

from viniloteca.config import (
    CATALOG_TIMEOUT_SEC,
    DISCOGS_API_BASE_URL,
    DISCOGS_TOKEN,
    DISCOGS_USER_AGENT,
    SEARCH_PER_PAGE,
)
from viniloteca.core.errors import (
    CatalogNotFound,
    CatalogRateLimited,
    CatalogTransientError,
)
from viniloteca.models.catalog import (
    CatalogImage,
    CatalogMetadata,
    CatalogRelease,
    CatalogSearchResult,
)

logger = logging.getLogger(__name__)

SEARCH_PATH = "/database/search"
RELEASE_PATH = "/releases/{release_id}"


def _as_int(value: Any) -> Optional[int]:
    """Discogs sends years as int in details and as str in search rows; 0 means unknown."""
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n or None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


def _parse_search_result(item: dict) -> Optional[CatalogSearchResult]:
    release_id = _as_int(item.get("id"))
    if release_id is None:
        return None
    return CatalogSearchResult(
        id=release_id,
        title=item.get("title") or "",
        year=_as_int(item.get("year")),
        thumbnail_url=item.get("thumb") or None,
        cover_image_url=item.get("cover_image") or None,
        formats=_str_list(item.get("format")),
        country=item.get("country") or None,
        genres=_str_list(item.get("genre")),
        styles=_str_list(item.get("style")),
    )


def _parse_release(data: dict, release_id: int) -> CatalogRelease:
    images = [
        CatalogImage(type=img.get("type") or "", uri=img["uri"])
        for img in (data.get("images") or [])
        if isinstance(img, dict) and img.get("uri")
    ]
    artists = [a["name"] for a in (data.get("artists") or []) if isinstance(a, dict) and a.get("name")]
    return CatalogRelease(
        id=_as_int(data.get("id")) or release_id,
        title=data.get("title") or "",
        year=_as_int(data.get("year")),
        artists=artists,
        images=images,
        cover_image=data.get("cover_image") or None,
    )


class DiscogsClient:
    """Async client for the two read-only Discogs endpoints the app uses."""

    def __init__(
        self,
        token: str = DISCOGS_TOKEN,
        *,
        base_url: str = DISCOGS_API_BASE_URL,
        user_agent: str = DISCOGS_USER_AGENT,
        timeout_sec: float = CATALOG_TIMEOUT_SEC,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_sec),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )
        self._timeout = httpx.Timeout(timeout_sec)
        self.rate_limit_remaining: Optional[int] = None

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _headers(self) -> dict:
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "application/json",
        }
        if self._token:
            # Discogs wants this exact scheme, not "Bearer"
            headers["Authorization"] = f"Discogs token={self._token}"
        return headers

    async def _get(self, path: str, params: Optional[dict] = None, what: str = "request") -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.get(
                url, params=params, headers=self._headers(), timeout=self._timeout
            )
        except httpx.TimeoutException as e:
            raise CatalogTransientError(f"Discogs {what} timed out") from e
        except httpx.HTTPError as e:
            raise CatalogTransientError(f"Discogs {what} failed: {e}") from e
        return self._handle_response(response, what)

    def _handle_response(self, response: httpx.Response, what: str) -> Any:
        """Parse a successful response or raise the matching CatalogError."""
        remaining = response.headers.get("X-Discogs-Ratelimit-Remaining")
        if remaining is not None and remaining.isdigit():
            self.rate_limit_remaining = int(remaining)
            logger.debug("Discogs %s: %s, rate limit remaining %s", what, response.status_code, remaining)

        status = response.status_code
        if status == 404:
            raise CatalogNotFound(f"Discogs {what}: not found", status_code=404)
        if status == 429:
            retry_after = None
            try:
                retry_after = float(response.headers.get("Retry-After", ""))
            except ValueError:
                pass
            raise CatalogRateLimited(f"Discogs {what}: rate limited", retry_after=retry_after)
        if not response.is_success:
            raise CatalogTransientError(f"Discogs {what}: HTTP {status}", status_code=status)
        try:
            return response.json()
        except ValueError as e:
            raise CatalogTransientError(f"Discogs {what}: invalid JSON", status_code=status) from e

    async def search(
        self,
        query: str,
        *,
        page: int = 1,
        per_page: int = SEARCH_PER_PAGE,
    ) -> list[CatalogSearchResult]:
        """Search releases by free text."""
        data = await self._get(
            SEARCH_PATH,
            params={"q": query, "type": "release", "page": page, "per_page": per_page},
            what="search",
        )
        results = data.get("results") if isinstance(data, dict) else None
        out = []
        for item in results or []:
            if not isinstance(item, dict):
                continue
            parsed = _parse_search_result(item)
            if parsed is not None:
                out.append(parsed)
        return out

    async def get_release(self, release_id: int) -> CatalogRelease:
        data = await self._get(
            RELEASE_PATH.format(release_id=release_id),
            what=f"release {release_id}",
        )
        if not isinstance(data, dict):
            raise CatalogTransientError(f"Discogs release {release_id}: unexpected payload")
        return _parse_release(data, release_id)

    async def get_metadata(self, release_id: int) -> CatalogMetadata:
        """Title and cover for a release."""
        # Merged releases answer with their new id; keep the one we were asked for
        return CatalogMetadata.from_release(await self.get_release(release_id), catalog_item_id=release_id)
