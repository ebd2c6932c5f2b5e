"""Tests for document upload, download, deletion and summaries."""

import asyncio
import base64
from urllib.parse import quote

import pytest

from casedesk.config import settings
from casedesk.routers.documents import content_disposition


def _upload(client, name="demanda.txt", content=b"Texto de la demanda", content_type="text/plain", **form):
    return client.post(
        "/api/v1/documents",
        files={"file": (name, content, content_type)},
        data=form,
    )


def test_upload_stores_blob_and_metadata(client, storage, make_case):
    case = make_case()

    response = _upload(client, case_id=str(case["id"]), document_type=" Demanda ", description="Borrador")

    assert response.status_code == 201, response.text
    document = response.json()
    assert document["file_name"] == "demanda.txt"
    assert document["file_type"] == "text/plain"
    assert document["version"] == 1
    assert document["case_name"] == "2024-001 - Juan Pérez"
    assert document["document_type"] == "Demanda"
    assert document["uploaded_by"] == "mlopez"
    assert document["file_size"] == len(b"Texto de la demanda")
    assert document["storage_path"].startswith("documents_repository/")
    assert document["storage_path"].endswith("/demanda.txt")
    assert document["file_url"] == f"/blobs/{document['storage_path']}"
    assert asyncio.run(storage.load(document["storage_path"])) == b"Texto de la demanda"


def test_upload_without_case(client):
    response = _upload(client)

    assert response.status_code == 201
    assert response.json()["case_id"] is None
    assert response.json()["document_type"] is None


def test_upload_rejects_unsupported_type(client):
    response = _upload(client, name="script.sh", content=b"echo hi", content_type="application/x-sh")

    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["detail"]


def test_upload_rejects_oversized_file(client, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_size_mb", 0)

    response = _upload(client)

    assert response.status_code == 400
    assert "maximum size" in response.json()["detail"]


def test_upload_rejects_unknown_case(client, storage):
    response = _upload(client, case_id="999")

    assert response.status_code == 400


def test_upload_strips_directories_from_file_name(client):
    response = _upload(client, name="../../etc/passwd.txt")

    assert response.status_code == 201
    assert response.json()["file_name"] == "passwd.txt"


@pytest.mark.parametrize("name", ["..", ".", "docs/..", "/"])
def test_upload_rejects_names_without_a_file_part(client, storage, name):
    response = _upload(client, name=name)

    assert response.status_code == 400
    assert "Invalid file name" in response.json()["detail"]
    assert not (storage.root / "documents_repository").is_file()
    assert _upload(client, name="escrito.txt").status_code == 201


def test_non_ascii_file_name_round_trip(client):
    name = "contrato_€_合同 “final”.txt"
    document = _upload(client, name=name, content=b"acuerdo").json()
    assert document["file_name"] == name

    response = client.get(f"/api/v1/documents/{document['id']}/download")

    assert response.status_code == 200
    assert response.content == b"acuerdo"
    assert response.headers["content-disposition"] == f"attachment; filename*=utf-8''{quote(name)}"


def test_content_disposition_encodes_quotes():
    assert content_disposition("demanda.txt") == 'attachment; filename="demanda.txt"'
    assert content_disposition('acta "firmada".txt') == "attachment; filename*=utf-8''acta%20%22firmada%22.txt"


def test_list_documents_filters_by_case(client, make_case):
    case = make_case()
    linked = _upload(client, case_id=str(case["id"])).json()
    _upload(client, name="otro.txt")

    assert len(client.get("/api/v1/documents").json()) == 2
    filtered = client.get("/api/v1/documents", params={"case_id": case["id"]}).json()
    assert [d["id"] for d in filtered] == [linked["id"]]


def test_download_returns_content(client):
    document = _upload(client, content=b"contenido").json()

    response = client.get(f"/api/v1/documents/{document['id']}/download")

    assert response.status_code == 200
    assert response.content == b"contenido"
    assert response.headers["content-type"].startswith("text/plain")
    assert "demanda.txt" in response.headers["content-disposition"]


def test_delete_removes_blob_and_row(client, storage):
    document = _upload(client).json()

    assert client.delete(f"/api/v1/documents/{document['id']}").status_code == 204
    assert client.get(f"/api/v1/documents/{document['id']}").status_code == 404
    assert not (storage.root / document["storage_path"]).exists()


def test_delete_tolerates_missing_blob(client, storage):
    document = _upload(client).json()
    (storage.root / document["storage_path"]).unlink()

    assert client.delete(f"/api/v1/documents/{document['id']}").status_code == 204
    assert client.delete(f"/api/v1/documents/{document['id']}").status_code == 404


def test_download_missing_blob_returns_404(client, storage):
    document = _upload(client).json()
    (storage.root / document["storage_path"]).unlink()

    assert client.get(f"/api/v1/documents/{document['id']}/download").status_code == 404


def test_deleting_case_keeps_documents(client, make_case):
    case = make_case()
    document = _upload(client, case_id=str(case["id"])).json()

    client.delete(f"/api/v1/cases/{case['id']}")

    assert client.get(f"/api/v1/documents/{document['id']}").json()["case_id"] is None


class TestSummaries:
    def test_summarize_stored_document(self, client, summarizer):
        document = _upload(client, content=b"El arrendatario pagara 500 EUR").json()

        response = client.post(f"/api/v1/documents/{document['id']}/summarize")

        assert response.status_code == 200
        assert response.json() == {"summary": "Summary of 30 bytes of text/plain"}
        assert summarizer.calls == [(b"El arrendatario pagara 500 EUR", "text/plain")]

    def test_summarize_data_uri(self, client, summarizer):
        encoded = base64.b64encode(b"hola").decode()

        response = client.post(
            "/api/v1/documents/summarize",
            json={"document_data_uri": f"data:text/plain;base64,{encoded}"},
        )

        assert response.status_code == 200
        assert response.json()["summary"] == "Summary of inline document"

    def test_summarize_rejects_non_data_uri(self, client):
        response = client.post("/api/v1/documents/summarize", json={"document_data_uri": "http://x/y.pdf"})

        assert response.status_code == 422

    def test_summarize_missing_document(self, client):
        assert client.post("/api/v1/documents/12/summarize").status_code == 404

    def test_summarizer_unavailable_without_api_key(self, client):
        from casedesk.dependencies import get_summarizer
        from casedesk.main import app

        app.dependency_overrides.pop(get_summarizer)
        document = _upload(client).json()

        response = client.post(f"/api/v1/documents/{document['id']}/summarize")

        assert response.status_code == 503


@pytest.mark.parametrize("path", ["/api/v1/documents", "/api/v1/documents/1/download"])
def test_documents_require_authentication(db_session, path):
    from fastapi.testclient import TestClient
    from casedesk.main import app

    response = TestClient(app).get(path)

    assert response.status_code in (401, 403)
