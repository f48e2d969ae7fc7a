"""homekeep - recurring household chores with a daily time budget."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from homekeep import __version__
from homekeep.core.config import constants, settings
from homekeep.core.db_client import close_connection
from homekeep.core.logging import configure_logfire, instrument_fastapi
from homekeep.core.schema import init_db
from homekeep.interface.router import router as tasks_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Open the store on startup and release its connection on shutdown."""
    configure_logfire()

    await init_db()
    logger.info("Store ready", extra={"db_path": settings.sqlite_db_path})

    yield

    await close_connection()


app = FastAPI(
    title="homekeep",
    description="Recurring household chores with a daily time budget",
    version=__version__,
    lifespan=lifespan,
)

instrument_fastapi(app)

app.include_router(tasks_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Liveness probe."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)
