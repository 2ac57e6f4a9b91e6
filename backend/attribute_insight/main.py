"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from attribute_insight.config import get_settings
from attribute_insight.db.session import SessionLocal
from attribute_insight.routers import analysis, approvals, merges, migrations

logger = logging.getLogger(__name__)


def _warm_backend_state() -> None:
    """Prime the DB connection at process start."""

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Backend warm-up failed; continuing without startup pre-warm.")


@asynccontextmanager
async def lifespan(_: FastAPI):
    _warm_backend_state()
    yield


settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.module_enabled:
    app.include_router(analysis.router, tags=["analysis"])
    app.include_router(merges.router, tags=["merges"])
    app.include_router(migrations.router, tags=["migrations"])
    app.include_router(approvals.router, tags=["approvals"])
else:
    logger.warning("Attribute insight module disabled; only /health is served.")


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok", "module_enabled": str(settings.module_enabled).lower()}
