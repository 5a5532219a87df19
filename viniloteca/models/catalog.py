"""Catalog (Discogs) search results, release details and display metadata."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class CatalogImage:
    type: str  # "primary" | "secondary"
    uri: str


@dataclass(frozen=True)
class CatalogSearchResult:
    """Summary row from a release search."""
    id: int
    title: str
    year: Optional[int] = None
    thumbnail_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    formats: List[str] = field(default_factory=list)
    country: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)

    @property
    def artist(self) -> str:
        """Discogs titles read "Artist - Album"; empty when there is no separator."""
        parts = self.title.split(" - ", 1)
        return parts[0] if len(parts) > 1 else ""

    @property
    def album(self) -> str:
        parts = self.title.split(" - ", 1)
        return parts[1] if len(parts) > 1 else self.title


@dataclass(frozen=True)
class CatalogRelease:
    """Release detail."""
    id: int
    title: str
    year: Optional[int] = None
    artists: List[str] = field(default_factory=list)
    images: List[CatalogImage] = field(default_factory=list)
    cover_image: Optional[str] = None


@dataclass(frozen=True)
class CatalogMetadata:
    """What a rental needs for display: title and cover."""
    catalog_item_id: int
    title: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_release(cls, release: CatalogRelease, catalog_item_id: Optional[int] = None) -> "CatalogMetadata":
        """Metadata for `release`, keyed by the id it was requested under when given."""
        image_url = release.images[0].uri if release.images else release.cover_image
        return cls(
            catalog_item_id=release.id if catalog_item_id is None else catalog_item_id,
            title=release.title or None,
            image_url=image_url or None,
        )
