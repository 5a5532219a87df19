"""Entry: start API server."""
import logging
import uvicorn

from viniloteca.config import API_HOST, API_PORT, LOG_LEVEL

if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s: %(message)s")
    uvicorn.run(
        "viniloteca.api.app:app",
        host=API_HOST,
        port=API_PORT,
        reload=True,
    )
