import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from layoutrag.api.documents import router as documents_router
from layoutrag.logging_config import configure_logging

configure_logging()

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Layout RAG Chunking API")
app.include_router(documents_router)


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe used by container orchestrators."""
    return "ok"
