"""Configuration: env, data paths, Discogs credentials, cache and rental policy."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Base paths (project root = parent of viniloteca package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so DISCOGS_TOKEN etc. are set
load_dotenv(BASE_DIR / ".env")

DATA_DIR = Path(os.getenv("VINILOTECA_DATA_DIR", str(BASE_DIR / "data")))
RENTALS_PATH = DATA_DIR / "rentals.json"
CATALOG_CACHE_PATH = DATA_DIR / "catalog_cache.json"

# API
API_HOST = os.getenv("VINILOTECA_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("VINILOTECA_API_PORT", "8000"))
LOG_LEVEL = os.getenv("VINILOTECA_LOG_LEVEL", "INFO").upper()

# Discogs (personal access token; anonymous access works with a lower rate limit)
DISCOGS_TOKEN = os.getenv("DISCOGS_TOKEN", "").strip()
DISCOGS_API_BASE_URL = os.getenv("DISCOGS_API_BASE_URL", "https://api.discogs.com")
# Discogs rejects requests without a descriptive User-Agent
DISCOGS_USER_AGENT = os.getenv("DISCOGS_USER_AGENT", "viniloteca/1.0")
CATALOG_TIMEOUT_SEC = float(os.getenv("VINILOTECA_CATALOG_TIMEOUT_SEC", "10"))
SEARCH_PER_PAGE = int(os.getenv("VINILOTECA_SEARCH_PER_PAGE", "25"))

# Requests per minute Discogs allows with and without a token
DISCOGS_RATE_LIMIT_AUTH = 60
DISCOGS_RATE_LIMIT_ANON = 25

# Metadata caches: search rankings churn, release details barely change
SEARCH_CACHE_TTL_SEC = float(os.getenv("VINILOTECA_SEARCH_CACHE_TTL_SEC", "600"))
DETAIL_CACHE_TTL_SEC = float(os.getenv("VINILOTECA_DETAIL_CACHE_TTL_SEC", "86400"))
SEARCH_CACHE_MAX = int(os.getenv("VINILOTECA_SEARCH_CACHE_MAX", "256"))
DETAIL_CACHE_MAX = int(os.getenv("VINILOTECA_DETAIL_CACHE_MAX", "2048"))


def default_enrich_concurrency(has_token: bool) -> int:
    """Fetches in flight per batch: 35% of the per-minute budget, at least 5."""
    limit = DISCOGS_RATE_LIMIT_AUTH if has_token else DISCOGS_RATE_LIMIT_ANON
    return max(5, int(limit * 0.35))


ENRICH_CONCURRENCY = int(
    os.getenv(
        "VINILOTECA_ENRICH_CONCURRENCY",
        str(default_enrich_concurrency(bool(DISCOGS_TOKEN))),
    )
)

# Rentals
MAX_RENTAL_DAYS = int(os.getenv("VINILOTECA_MAX_RENTAL_DAYS", "15"))


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
