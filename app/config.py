"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class IngestionSettings:
    """
    Runtime settings for CSV and webhook ingestion.
    """

    max_upload_bytes: int = 2 * 1024 * 1024
    csv_event_type: str = "csv_row"
    default_webhook_event_type: str = "metric"
    log_row_errors: bool = True
    preview_limit: int = 20


@dataclass(frozen=True)
class APISettings:
    """
    HTTP surface settings.
    """

    title: str = "Metric Ingestion API"
    org_header: str = "X-Organization-Id"
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return IngestionSettings(
        max_upload_bytes=max(1, _get_int_env("INGEST_MAX_UPLOAD_BYTES", 2 * 1024 * 1024)),
        csv_event_type=_get_str_env("INGEST_CSV_EVENT_TYPE", "csv_row"),
        default_webhook_event_type=_get_str_env("INGEST_WEBHOOK_DEFAULT_EVENT_TYPE", "metric"),
        log_row_errors=_get_bool_env("INGEST_LOG_ROW_ERRORS", True),
        preview_limit=max(1, _get_int_env("MAPPING_PREVIEW_LIMIT", 20)),
    )


@lru_cache(maxsize=1)
def get_api_settings() -> APISettings:
    """
    Return cached HTTP settings from environment variables.
    """

    return APISettings(
        title=_get_str_env("API_TITLE", "Metric Ingestion API"),
        org_header=_get_str_env("API_ORG_HEADER", "X-Organization-Id"),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
    )
