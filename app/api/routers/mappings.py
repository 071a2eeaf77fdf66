"""
app/api/routers/mappings.py

Mapping definition administration endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import (
    get_ingestion_repository,
    get_org_id,
    get_source_connection_repository,
)
from app.repositories.base import MappingRepository
from app.repositories.source_connection_repository import SourceConnectionRepository
from app.schemas.mappings import (
    MappingPreviewRequest,
    MappingPreviewResponse,
    MappingSaveRequest,
    MappingSaveResponse,
    NormalizedMetricValueResponse,
    SourceFieldsResponse,
)
from app.services.mapping_service import (
    MappingNotConfiguredError,
    MappingService,
    get_mapping_service,
)
from app.validators.mapping_validator import MappingDefinitionError

router = APIRouter(prefix="/mappings", tags=["mappings"])


@router.post("", response_model=MappingSaveResponse)
def save_mapping(
    request: MappingSaveRequest,
    org_id: UUID = Depends(get_org_id),
    connections: SourceConnectionRepository = Depends(get_source_connection_repository),
    repository: MappingRepository = Depends(get_ingestion_repository),
    mapping_service: MappingService = Depends(get_mapping_service),
) -> MappingSaveResponse:
    if connections.get_for_org(org_id=org_id, connection_id=request.source_connection_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found.")

    try:
        mapping = mapping_service.save_mapping(
            repository=repository,
            org_id=org_id,
            connection_id=request.source_connection_id,
            raw_mapping=request.mapping,
        )
    except MappingDefinitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc

    return MappingSaveResponse(
        source_connection_id=request.source_connection_id,
        mapping=mapping.to_document(),
    )


@router.post("/test", response_model=MappingPreviewResponse)
def preview_mapping(
    request: MappingPreviewRequest,
    org_id: UUID = Depends(get_org_id),
    repository: MappingRepository = Depends(get_ingestion_repository),
    mapping_service: MappingService = Depends(get_mapping_service),
) -> MappingPreviewResponse:
    """
    Dry-run the stored mapping over the most recent raw events.
    """

    try:
        result = mapping_service.preview_mapping(
            repository=repository,
            org_id=org_id,
            connection_id=request.source_connection_id,
            limit=request.limit,
        )
    except MappingNotConfiguredError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except MappingDefinitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.to_dict()) from exc

    return MappingPreviewResponse(
        preview=[
            NormalizedMetricValueResponse(**value.to_dict())
            for value in result.preview.accepted
        ],
        null_count=result.preview.rejected_count,
        sampled=result.sampled,
    )


@router.get("/fields", response_model=SourceFieldsResponse)
def list_fields(
    connection: UUID = Query(..., description="Source connection id"),
    org_id: UUID = Depends(get_org_id),
    repository: MappingRepository = Depends(get_ingestion_repository),
    mapping_service: MappingService = Depends(get_mapping_service),
) -> SourceFieldsResponse:
    fields = mapping_service.list_source_fields(
        repository=repository,
        org_id=org_id,
        connection_id=connection,
    )
    return SourceFieldsResponse(fields=fields)
