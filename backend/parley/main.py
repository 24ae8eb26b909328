"""Parley API server."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from . import __version__
from .config import settings
from .core.autoplay import stop_all_drivers
from .core.exceptions import InvalidTransition, SessionNotFound
from .db.database import init_db
from .providers.factory import get_available_providers
from .api.routes import sessions, archives, config
from .api.websocket import events

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Domain errors that map straight onto an HTTP status
ERROR_STATUS = {
    SessionNotFound: 404,
    InvalidTransition: 409,
    ValueError: 400,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    configured = [p.value for p in get_available_providers()]
    if configured:
        logger.info(f"Parley {__version__} up; providers: {', '.join(configured)}")
    else:
        logger.warning("No model provider has an API key; every turn will fail until one is set")

    yield

    stopped = stop_all_drivers()
    logger.info(f"Shutdown: stopped {stopped} auto-play driver(s)")


app = FastAPI(
    title="Parley",
    description="Facilitated two-expert debates with private user whispers",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def domain_error_handler(request: Request, exc: Exception):
    status_code = next(code for exc_type, code in ERROR_STATUS.items() if isinstance(exc, exc_type))
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


for exc_type in ERROR_STATUS:
    app.add_exception_handler(exc_type, domain_error_handler)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])
app.include_router(archives.router, prefix="/api/archives", tags=["archives"])
app.include_router(config.router, prefix="/api/config", tags=["config"])
app.include_router(events.router, prefix="/ws", tags=["websocket"])


@app.get("/")
async def root():
    return {"name": "Parley", "version": __version__, "status": "running"}


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "available_providers": [p.value for p in get_available_providers()],
    }


def start():
    """Entry point for the ``parley`` console script."""
    uvicorn.run("parley.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    start()
