"""
app/api/routers/ingestion.py

CSV upload and webhook ingestion endpoints.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Form, HTTPException, UploadFile, status

from app.api.dependencies import (
    get_bearer_token,
    get_csv_upload,
    get_ingestion_repository,
    get_org_id,
    get_source_connection_repository,
)
from app.config import get_ingestion_settings
from app.domain.ingestion import IngestionRunSummary
from app.hashing.dedupe_hash import sha256_hex
from app.repositories.base import IngestionRepository, RepositoryUnavailableError
from app.repositories.source_connection_repository import SourceConnectionRepository
from app.schemas.ingestion import IngestionRunResponse
from app.services.ingestion_run_service import IngestionRunService, get_ingestion_run_service
from db.models.source_connection import SourceConnectionType

router = APIRouter(tags=["ingestion"])


@router.post("/ingest/csv", response_model=IngestionRunResponse)
def ingest_csv(
    file: UploadFile = Depends(get_csv_upload),
    source_connection_id: UUID = Form(...),
    org_id: UUID = Depends(get_org_id),
    connections: SourceConnectionRepository = Depends(get_source_connection_repository),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    ingestion_service: IngestionRunService = Depends(get_ingestion_run_service),
) -> IngestionRunResponse:
    """
    Ingest one CSV upload into raw events and normalized metric values.
    """

    max_bytes = get_ingestion_settings().max_upload_bytes
    try:
        connection = connections.get_for_org(org_id=org_id, connection_id=source_connection_id)
        if connection is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found.")
        if connection.type != SourceConnectionType.CSV:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not a CSV connection.")

        content = file.file.read(max_bytes + 1)
    finally:
        file.file.close()

    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large (max {max_bytes} bytes).",
        )

    try:
        summary = ingestion_service.ingest_csv(
            repository=repository,
            org_id=org_id,
            connection_id=connection.id,
            content=content,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ingestion storage unavailable.",
        ) from exc

    return _to_response(summary)


@router.post("/ingest/webhook", response_model=IngestionRunResponse)
def ingest_webhook(
    body: Any = Body(default=None),
    token: str = Depends(get_bearer_token),
    connections: SourceConnectionRepository = Depends(get_source_connection_repository),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    ingestion_service: IngestionRunService = Depends(get_ingestion_run_service),
) -> IngestionRunResponse:
    """
    Ingest one webhook delivery authenticated by the connection's bearer token.
    """

    connection = connections.get_active_webhook_by_token_hash(sha256_hex(token))
    if connection is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token.")

    try:
        summary = ingestion_service.ingest_webhook(
            repository=repository,
            org_id=connection.org_id,
            connection_id=connection.id,
            body=body,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ingestion storage unavailable.",
        ) from exc

    return _to_response(summary)


def _to_response(summary: IngestionRunSummary) -> IngestionRunResponse:
    if not summary.succeeded:
        raise HTTPException(
            status_code=(
                status.HTTP_503_SERVICE_UNAVAILABLE
                if summary.storage_unavailable
                else status.HTTP_400_BAD_REQUEST
            ),
            detail={"message": summary.error, "run_id": str(summary.run_id)},
        )
    return IngestionRunResponse.from_summary(summary)
