"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and repository wiring.
"""

from __future__ import annotations

import re
from uuid import UUID

from fastapi import Depends, File, Header, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from app.config import get_api_settings
from app.repositories.source_connection_repository import SourceConnectionRepository
from db.repositories.ingestion_repository import SQLAlchemyIngestionRepository
from db.session import get_db

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}

_BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    if not filename.endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_org_id(request: Request) -> UUID:
    """
    Organization id forwarded by the upstream gateway after tenant resolution.
    """

    header_name = get_api_settings().org_header
    raw = (request.headers.get(header_name) or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {header_name} header.",
        )
    try:
        return UUID(raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name} header.",
        ) from exc


def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    match = _BEARER_PATTERN.match((authorization or "").strip())
    if not match or not match.group(1).strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token.",
        )
    return match.group(1).strip()


def get_ingestion_repository(db: Session = Depends(get_db)) -> SQLAlchemyIngestionRepository:
    return SQLAlchemyIngestionRepository(db)


def get_source_connection_repository(db: Session = Depends(get_db)) -> SourceConnectionRepository:
    return SourceConnectionRepository(db)
