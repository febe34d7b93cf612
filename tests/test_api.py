from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from outreach.errors import StoreUnavailable
from outreach.main import app
from outreach.services.outreach import get_outreach_service

RESUME = (
    "Alex Kim | alex@example.com\n"
    "Summary: Backend engineer focused on payments infrastructure and reliability.\n"
    "Skills: Python, Go, PostgreSQL, Kafka, Kubernetes, Terraform and observability tooling\n"
)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_outreach_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_root_and_liveness_return_ok(client: TestClient) -> None:
    assert client.get("/").text == "ok"
    assert client.get("/healthz").text == "ok"


def test_readyz_reports_backends(client: TestClient) -> None:
    response = client.get("/readyz")

    assert response.status_code == 200
    assert response.json()["store"] == "memory"
    assert response.json()["embedding_dimension"] == 384


def test_readyz_returns_503_when_store_is_down(service) -> None:
    async def failing_readiness():
        raise StoreUnavailable("chroma offline")

    service.readiness = failing_readiness
    app.dependency_overrides[get_outreach_service] = lambda: service
    try:
        response = TestClient(app).get("/readyz")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["error"] == {"kind": "store_unavailable", "message": "chroma offline"}


def test_document_lifecycle(client: TestClient) -> None:
    created = client.post(
        "/owners/owner-1/documents",
        json={"title": "Alex CV", "document_type": "resume", "content": RESUME},
    )
    assert created.status_code == 201
    payload = created.json()
    assert payload["chunk_types"] == ["personal_details", "summary", "skills"]
    document_id = payload["document_id"]

    listed = client.get("/owners/owner-1/documents", params={"document_type": "resume"})
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()["documents"]] == [document_id]

    searched = client.post("/owners/owner-1/documents/search", json={"threshold": 0.05})
    assert searched.status_code == 200
    assert searched.json()["total"] == 3

    deleted = client.delete(f"/owners/owner-1/documents/{document_id}")
    assert deleted.status_code == 200
    assert deleted.json()["deleted_chunks"] == 3

    missing = client.delete(f"/owners/owner-1/documents/{document_id}")
    assert missing.status_code == 404
    assert missing.json()["error"]["kind"] == "document_not_found"


def test_search_without_query_and_high_threshold_is_bad_request(client: TestClient) -> None:
    response = client.post("/owners/owner-1/documents/search", json={"threshold": 0.5})

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "validation_error"


def test_unknown_document_type_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/owners/owner-1/documents",
        json={"title": "CV", "document_type": "invoice", "content": RESUME},
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["kind"] == "validation_error"
    assert "document_type" in error["message"]


def test_upload_text_file(client: TestClient) -> None:
    response = client.post(
        "/owners/owner-1/documents/upload",
        files={"file": ("notes.md", b"Met the Acme CTO at PyCon; she wants Go experience.", "text/markdown")},
        data={"document_type": "note", "notes": "Send the deck"},
    )

    assert response.status_code == 201
    assert response.json()["title"] == "notes.md"
    assert response.json()["chunk_types"] == ["general"]


def test_upload_unsupported_format_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/owners/owner-1/documents/upload",
        files={"file": ("photo.png", b"\x89PNG", "image/png")},
        data={"document_type": "note"},
    )

    assert response.status_code == 400


def test_generate_email(client: TestClient) -> None:
    client.post(
        "/owners/owner-1/documents",
        json={"title": "Alex CV", "document_type": "resume", "content": RESUME},
    )

    response = client.post(
        "/owners/owner-1/emails",
        json={
            "query": "Apply for the payments backend role",
            "target_company": "Acme",
            "target_role": "Backend Engineer",
            "focus_areas": ["payments"],
            "email_type": "application",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["subject"] == "Backend Engineer at Acme"
    assert body["body"].startswith("Hello team,")
    assert set(body["source_citations"]) == {"total", "by_document", "top_sources"}
    assert body["metadata"]["email_type"] == "application"


def test_generate_email_requires_query(client: TestClient) -> None:
    response = client.post("/owners/owner-1/emails", json={"query": ""})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["kind"] == "validation_error"
    assert "query" in error["message"]
