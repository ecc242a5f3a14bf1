"""HTTP entry point: ``uvicorn api.main:app``."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taleloop.config import Config
from taleloop.logging_config import setup_logging

from .routes import game

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(Config.LOG_LEVEL)
    for issue in Config.validate():
        logger.warning(f"Config: {issue}")
    logger.info(f"taleloop API {API_VERSION} ready")
    yield
    # Each cached orchestrator holds a database session
    game.reset_orchestrators()
    logger.info("taleloop API stopped")


app = FastAPI(
    title="taleloop API",
    description="Turn engine for persistent-world interactive fiction",
    version=API_VERSION,
    lifespan=lifespan,
)

# Browser front ends are served from other origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(game.router, prefix="/api/game", tags=["Game"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "version": API_VERSION}


@app.get("/api/providers")
async def list_providers():
    """Narrator backends with keys configured, and the one used by default."""
    return {
        "available": Config.get_available_providers(),
        "primary": Config.get_primary_provider(),
    }
