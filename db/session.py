"""
db/session.py

Lazily created SQLAlchemy engine and session factory.

Ingestion commits once per stored row, so sessions are built with
``expire_on_commit=False`` and no autoflush; nothing is loaded back between
row writes.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from dataclasses import dataclass
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


@dataclass(frozen=True)
class EngineSettings:
    """
    Pool and connection options read from ``DB_*`` environment variables.
    """

    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    statement_timeout_ms: int = 0
    application_name: str = "metric-ingestion"

    @classmethod
    def from_env(cls) -> EngineSettings:
        return cls(
            echo=_env_flag("SQL_ECHO"),
            pool_size=_env_int("DB_POOL_SIZE", cls.pool_size),
            max_overflow=_env_int("DB_MAX_OVERFLOW", cls.max_overflow),
            pool_timeout=_env_int("DB_POOL_TIMEOUT", cls.pool_timeout),
            pool_recycle=_env_int("DB_POOL_RECYCLE", cls.pool_recycle),
            statement_timeout_ms=_env_int("DB_STATEMENT_TIMEOUT_MS", cls.statement_timeout_ms),
            application_name=os.getenv("DB_APPLICATION_NAME", "").strip() or cls.application_name,
        )

    def connect_args(self) -> dict[str, Any]:
        args: dict[str, Any] = {"application_name": self.application_name}
        if self.statement_timeout_ms > 0:
            args["options"] = f"-c statement_timeout={self.statement_timeout_ms}"
        return args


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def create_db_engine(settings: EngineSettings | None = None) -> Engine:
    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    settings = settings or EngineSettings.from_env()
    return create_engine(
        database_url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_recycle=settings.pool_recycle,
        connect_args=settings.connect_args(),
    )


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    return get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency: one session per request, always closed.
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
