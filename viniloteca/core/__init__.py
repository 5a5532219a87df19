"""Core services: rental rules, Discogs client, metadata caches, enrichment."""
from viniloteca.core.catalog_service import CatalogService
from viniloteca.core.discogs_client import DiscogsClient
from viniloteca.core.enricher import BatchEnricher
from viniloteca.core.metadata_cache import MetadataCache

__all__ = ["BatchEnricher", "CatalogService", "DiscogsClient", "MetadataCache"]
