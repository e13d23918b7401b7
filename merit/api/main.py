"""
merit.api.main — FastAPI application entry point
=================================================

Run with::

    uvicorn merit.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from merit.api.auth import router as auth_router  # noqa: E402
from merit.api.deps import get_config, get_engine  # noqa: E402
from merit.api.routes.actions import router as actions_router  # noqa: E402
from merit.api.routes.events import router as events_router  # noqa: E402
from merit.api.routes.leaderboard import router as leaderboard_router  # noqa: E402
from merit.api.routes.missions import router as missions_router  # noqa: E402
from merit.api.routes.organizations import router as organizations_router  # noqa: E402
from merit.api.routes.users import router as users_router  # noqa: E402
from merit.database.engine import init_db  # noqa: E402
from merit.errors import MeritError  # noqa: E402

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
    """Startup/shutdown lifecycle — configure logging, verify schema, seed."""
    cfg = get_config()
    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    engine = get_engine()
    init_db(engine, seed=cfg.seed_default_catalog)
    logger.info("%s API started — engine ready (%s)", cfg.app_name, engine.url.database)
    yield
    logger.info("%s API shutting down", cfg.app_name)


app = FastAPI(
    title="Merit API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Domain errors → HTTP
# ---------------------------------------------------------------------------
@app.exception_handler(MeritError)
async def merit_error_handler(request: Request, exc: MeritError) -> JSONResponse:
    """NotFound→404, Conflict/InvalidState→409, Forbidden→403, Validation→422."""
    if exc.status_code >= 500:
        logger.error("Unhandled domain error on %s: %s", request.url.path, exc)
    else:
        logger.debug("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(organizations_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(actions_router, prefix="/api")
app.include_router(missions_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")
app.include_router(events_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
