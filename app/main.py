from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import get_api_settings

logger = logging.getLogger(__name__)


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every problem so the operator can fix them
    in one restart cycle.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not (database_url or cloud_database_url or local_database_url):
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL "
            "or LOCAL_DATABASE_URL."
        )

    raw_max_upload = os.getenv("INGEST_MAX_UPLOAD_BYTES")
    if raw_max_upload is not None and not raw_max_upload.strip().isdigit():
        errors.append("INGEST_MAX_UPLOAD_BYTES must be a positive integer.")

    if errors:
        raise RuntimeError(
            "Startup validation failed - missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = get_api_settings().log_level
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Refuse to start unless every ORM table exists and raw_events carries the
    (org_id, dedupe_hash) unique constraint that makes resubmission idempotent.
    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 - registers all ORM models on Base.metadata
    from db.base import Base
    from db.models.raw_event import DEDUPE_CONSTRAINT, RawEvent
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    problems: list[str] = []

    missing = sorted(set(Base.metadata.tables) - set(inspector.get_table_names()))
    if missing:
        problems.append("missing tables: " + ", ".join(missing))
    else:
        constraints = {item["name"] for item in inspector.get_unique_constraints(RawEvent.__tablename__)}
        if DEDUPE_CONSTRAINT not in constraints:
            problems.append(f"raw_events lacks unique constraint {DEDUPE_CONSTRAINT}")

    if problems:
        logger.critical(
            "Schema mismatch: %s. Run 'alembic upgrade head' and restart.",
            "; ".join(problems),
        )
        raise RuntimeError("Schema mismatch: " + "; ".join(problems) + ". Run migrations and restart.")


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _check_db()
    logger.info("Database connectivity confirmed")
    _check_schema()
    logger.info("Database schema validated")
    yield


def create_app(*, check_environment: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    if check_environment:
        _validate_env()
    _configure_logging()

    application = FastAPI(
        title=get_api_settings().title,
        version="1.0.0",
        lifespan=_lifespan if check_environment else None,
    )

    from app.api.routers import ingestion_router, mappings_router

    application.include_router(ingestion_router)
    application.include_router(mappings_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
