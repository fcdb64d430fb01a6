"""
portal.api.main — FastAPI application entry point
==================================================

Run with::

    uvicorn portal.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from portal import __version__  # noqa: E402
from portal.api.auth import router as auth_router  # noqa: E402
from portal.api.deps import get_config, get_engine  # noqa: E402
from portal.api.rate_limit import configure_rate_limiter  # noqa: E402
from portal.api.routes.admin import router as admin_router  # noqa: E402
from portal.api.routes.feature_settings import router as feature_settings_router  # noqa: E402
from portal.api.routes.gamification import router as gamification_router  # noqa: E402
from portal.database.engine import init_db  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: verify schema and warm the engine."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    engine = get_engine()
    init_db(engine)
    configure_rate_limiter(engine=engine)
    logger.info("Portal API started, engine ready (%s)", engine.url.database)
    yield
    logger.info("Portal API shutting down")


app = FastAPI(
    title="Portal API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/api")
app.include_router(feature_settings_router, prefix="/api")
app.include_router(gamification_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    try:
        port = get_config().dashboard_port
    except FileNotFoundError:
        port = 8000
    uvicorn.run("portal.api.main:app", host=os.getenv("HOST", "0.0.0.0"), port=port)
