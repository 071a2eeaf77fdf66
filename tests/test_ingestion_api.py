"""
tests/test_ingestion_api.py

HTTP-level tests for the ingestion and mapping routers.

Database-backed dependencies are overridden with in-memory fakes, so these
tests need neither PostgreSQL nor environment configuration.
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.dependencies import get_ingestion_repository, get_source_connection_repository
from app.api.routers import ingestion_router, mappings_router
from app.config import get_ingestion_settings
from app.hashing.dedupe_hash import sha256_hex
from app.mappers.metric_normalizer import MetricNormalizer
from app.services.ingestion_run_service import IngestionRunService, get_ingestion_run_service
from app.services.mapping_service import MappingService, get_mapping_service
from db.models.source_connection import SourceConnectionType
from tests.fakes import FakeConnection, InMemoryConnectionRepository, InMemoryIngestionRepository

ORG_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
WEBHOOK_TOKEN = "whk_test_token"

MAPPING = {
    "version": 1,
    "target": "metric_values",
    "metric_key": "revenue",
    "occurred_on": {"mode": "field", "field": "date"},
    "value_num": {"field": "amount"},
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def csv_connection() -> FakeConnection:
    return FakeConnection(org_id=ORG_ID, type=SourceConnectionType.CSV)


@pytest.fixture()
def webhook_connection() -> FakeConnection:
    return FakeConnection(
        org_id=ORG_ID,
        type=SourceConnectionType.WEBHOOK,
        token_hash=sha256_hex(WEBHOOK_TOKEN),
    )


@pytest.fixture()
def repo() -> InMemoryIngestionRepository:
    return InMemoryIngestionRepository()


@pytest.fixture()
def client(repo, csv_connection, webhook_connection) -> TestClient:
    application = FastAPI()
    application.include_router(ingestion_router)
    application.include_router(mappings_router)

    connections = InMemoryConnectionRepository(csv_connection, webhook_connection)
    application.dependency_overrides[get_ingestion_repository] = lambda: repo
    application.dependency_overrides[get_source_connection_repository] = lambda: connections
    application.dependency_overrides[get_ingestion_run_service] = lambda: IngestionRunService(
        normalizer=MetricNormalizer(today=lambda: date(2024, 6, 30))
    )
    application.dependency_overrides[get_mapping_service] = lambda: MappingService(preview_limit=20)
    return TestClient(application)


def _org_headers(org_id: uuid.UUID = ORG_ID) -> dict[str, str]:
    return {"X-Organization-Id": str(org_id)}


def _upload(client: TestClient, connection_id: uuid.UUID, content: bytes, **kwargs):
    return client.post(
        "/ingest/csv",
        files={"file": ("data.csv", content, "text/csv")},
        data={"source_connection_id": str(connection_id)},
        headers=kwargs.pop("headers", _org_headers()),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# /ingest/csv
# ---------------------------------------------------------------------------


def test_csv_upload_returns_run_summary(client, repo, csv_connection) -> None:
    repo.mappings[(ORG_ID, csv_connection.id)] = dict(MAPPING)

    response = _upload(client, csv_connection.id, b"date,amount\n2024-01-01,100\nbad,200\n")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert (body["rows_in"], body["rows_valid"], body["rows_invalid"]) == (2, 1, 1)
    assert uuid.UUID(body["run_id"]) == repo.last_run.id


def test_csv_upload_without_org_header_is_unauthorized(client, csv_connection) -> None:
    response = _upload(client, csv_connection.id, b"a\n1\n", headers={})

    assert response.status_code == 401


def test_csv_upload_for_unknown_connection_is_not_found(client) -> None:
    response = _upload(client, uuid.uuid4(), b"a\n1\n")

    assert response.status_code == 404


def test_csv_upload_to_webhook_connection_is_rejected(client, webhook_connection) -> None:
    response = _upload(client, webhook_connection.id, b"a\n1\n")

    assert response.status_code == 400


def test_csv_upload_of_other_org_connection_is_not_found(client, csv_connection) -> None:
    response = _upload(client, csv_connection.id, b"a\n1\n", headers=_org_headers(uuid.uuid4()))

    assert response.status_code == 404


def test_non_csv_file_is_rejected(client, csv_connection) -> None:
    response = client.post(
        "/ingest/csv",
        files={"file": ("data.json", b"{}", "application/json")},
        data={"source_connection_id": str(csv_connection.id)},
        headers=_org_headers(),
    )

    assert response.status_code == 400


def test_empty_csv_reports_failed_run(client, repo, csv_connection) -> None:
    response = _upload(client, csv_connection.id, b"")

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "CSV must include header row and at least one data row"
    assert uuid.UUID(detail["run_id"]) == repo.last_run.id
    assert repo.last_run.rows_in == 0


def test_oversized_upload_is_rejected(client, csv_connection, monkeypatch) -> None:
    monkeypatch.setenv("INGEST_MAX_UPLOAD_BYTES", "16")
    get_ingestion_settings.cache_clear()
    try:
        response = _upload(client, csv_connection.id, b"date,amount\n2024-01-01,100\n")
    finally:
        monkeypatch.delenv("INGEST_MAX_UPLOAD_BYTES")
        get_ingestion_settings.cache_clear()

    assert response.status_code == 413


# ---------------------------------------------------------------------------
# /ingest/webhook
# ---------------------------------------------------------------------------


def test_webhook_delivery_is_ingested(client, repo, webhook_connection) -> None:
    repo.mappings[(ORG_ID, webhook_connection.id)] = dict(MAPPING)

    response = client.post(
        "/ingest/webhook",
        json={"event_type": "invoice.paid", "data": {"date": "2024-03-01", "amount": 42}},
        headers={"Authorization": f"Bearer {WEBHOOK_TOKEN}"},
    )

    assert response.status_code == 200
    assert response.json()["rows_valid"] == 1
    assert repo.raw_events[0].org_id == ORG_ID
    assert repo.raw_events[0].source_connection_id == webhook_connection.id


@pytest.mark.parametrize("authorization", [None, "Bearer", "Basic abc", "Bearer wrong"])
def test_webhook_requires_valid_token(client, authorization: str | None) -> None:
    headers = {"Authorization": authorization} if authorization is not None else {}

    response = client.post("/ingest/webhook", json={"data": {}}, headers=headers)

    assert response.status_code == 401


def test_webhook_without_data_reports_failed_run(client) -> None:
    response = client.post(
        "/ingest/webhook",
        json={"event_type": "x"},
        headers={"Authorization": f"Bearer {WEBHOOK_TOKEN}"},
    )

    assert response.status_code == 400
    assert "data" in response.json()["detail"]["message"]


# ---------------------------------------------------------------------------
# /mappings
# ---------------------------------------------------------------------------


def test_save_mapping(client, repo, csv_connection) -> None:
    response = client.post(
        "/mappings",
        json={"source_connection_id": str(csv_connection.id), "mapping": MAPPING},
        headers=_org_headers(),
    )

    assert response.status_code == 200
    assert response.json()["mapping"] == MAPPING
    assert repo.mappings[(ORG_ID, csv_connection.id)] == MAPPING


def test_save_invalid_mapping_returns_structured_errors(client, repo, csv_connection) -> None:
    response = client.post(
        "/mappings",
        json={"source_connection_id": str(csv_connection.id), "mapping": {**MAPPING, "version": 2}},
        headers=_org_headers(),
    )

    assert response.status_code == 400
    codes = {error["code"] for error in response.json()["detail"]["errors"]}
    assert codes == {"invalid_literal"}
    assert repo.mappings == {}


def test_save_mapping_for_unknown_connection_is_not_found(client) -> None:
    response = client.post(
        "/mappings",
        json={"source_connection_id": str(uuid.uuid4()), "mapping": MAPPING},
        headers=_org_headers(),
    )

    assert response.status_code == 404


def test_preview_mapping_over_uploaded_rows(client, repo, csv_connection) -> None:
    repo.mappings[(ORG_ID, csv_connection.id)] = dict(MAPPING)
    _upload(client, csv_connection.id, b"date,amount\n2024-01-01,100\nbad,200\n2024-01-02,\"1,500\"\n")

    response = client.post(
        "/mappings/test",
        json={"source_connection_id": str(csv_connection.id)},
        headers=_org_headers(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["sampled"] == 3
    assert body["null_count"] == 1
    assert [item["value_num"] for item in body["preview"]] == [1500, 100]
    assert body["preview"][1]["occurred_on"] == "2024-01-01"


def test_preview_without_mapping_is_not_found(client, csv_connection) -> None:
    response = client.post(
        "/mappings/test",
        json={"source_connection_id": str(csv_connection.id)},
        headers=_org_headers(),
    )

    assert response.status_code == 404


def test_preview_with_invalid_stored_mapping_conflicts(client, repo, csv_connection) -> None:
    repo.mappings[(ORG_ID, csv_connection.id)] = {"version": 1}

    response = client.post(
        "/mappings/test",
        json={"source_connection_id": str(csv_connection.id)},
        headers=_org_headers(),
    )

    assert response.status_code == 409


def test_list_fields(client, csv_connection) -> None:
    _upload(client, csv_connection.id, b"date,amount,channel\n2024-01-01,1,ads\n")

    response = client.get(
        "/mappings/fields",
        params={"connection": str(csv_connection.id)},
        headers=_org_headers(),
    )

    assert response.status_code == 200
    assert response.json() == {"fields": ["amount", "channel", "date"]}


def test_storage_outage_mid_run_is_service_unavailable(client, repo, csv_connection) -> None:
    repo.mappings[(ORG_ID, csv_connection.id)] = dict(MAPPING)
    repo.unavailable_after = 1

    response = _upload(client, csv_connection.id, b"date,amount\n2024-01-01,1\n2024-01-02,2\n")

    assert response.status_code == 503
    assert uuid.UUID(response.json()["detail"]["run_id"]) == repo.last_run.id
    assert repo.last_run.status == "failed"
