"""FastAPI app, CORS, and route registration."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from viniloteca.config import LOG_LEVEL

# Configure logging in the worker process (so enricher etc. INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(levelname)s: %(name)s: %(message)s",
)

from viniloteca.api.state import AppState, get_state
from viniloteca.config import ensure_data_dir

# Import routes after state to avoid circular imports
from viniloteca.api.routes import catalog, rentals

__all__ = ["app", "AppState", "get_state"]

logger = logging.getLogger(__name__)

_state = get_state()


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_data_dir()
    count = _state.load_rentals()
    logger.info("Loaded %d rentals", count)

    yield

    await _state.close()


app = FastAPI(
    title="Viniloteca API",
    description="Vinyl rentals with Discogs metadata",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health():
    return {"ok": True}


app.include_router(rentals.router, prefix="/api/rentals", tags=["rentals"])
app.include_router(catalog.router, prefix="/api/catalog", tags=["catalog"])
