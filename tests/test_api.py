import asyncio
import json
import os

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from app.config import settings
from app.core.errors import AuthenticationFailed
from app.main import app, validation_error_handler
from app.services.transcription_pipeline import TranscriptionPipeline
from conftest import FakeSTTService


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def install_pipeline(scratch_dir):
    def _install(stt, max_direct_size=25, chunk_size=20):
        app.state.pipeline = TranscriptionPipeline(
            stt_service=stt,
            max_direct_size=max_direct_size,
            chunk_size=chunk_size,
            scratch_dir=str(scratch_dir),
        )
        return app.state.pipeline

    yield _install
    if hasattr(app.state, "pipeline"):
        delattr(app.state, "pipeline")


def test_health_check() -> None:
    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


def test_ready_with_configured_key() -> None:
    client = TestClient(app)
    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_ready_without_key(monkeypatch) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "")
    client = TestClient(app)
    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json()["details"]["openai_credential"]["status"] == "error"


def test_transcribe_returns_pdf_attachment(install_pipeline, scratch_dir) -> None:
    stt = FakeSTTService(texts=["Hola, esto es una prueba."])
    install_pipeline(stt)
    client = TestClient(app)

    response = client.post("/api/transcribe", files={"audio": ("interview.mp3", b"ID3" + b"0" * 10, "audio/mpeg")})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == 'attachment; filename="interview_transcript.pdf"'
    assert response.content.startswith(b"%PDF")
    assert len(stt.paths) == 1
    assert os.listdir(scratch_dir) == []


def test_transcribe_large_upload_uses_chunks(install_pipeline, scratch_dir) -> None:
    stt = FakeSTTService(texts=["uno", "dos"])
    install_pipeline(stt, max_direct_size=25, chunk_size=20)
    client = TestClient(app)

    response = client.post("/api/transcribe", files={"audio": ("long.wav", b"R" * 39, "audio/wav")})

    assert response.status_code == 200
    assert stt.payloads == [b"R" * 20, b"R" * 19]
    assert os.listdir(scratch_dir) == []


def test_missing_file_is_rejected(install_pipeline) -> None:
    install_pipeline(FakeSTTService())
    client = TestClient(app)

    response = client.post("/api/transcribe", data={"other": "value"})

    assert response.status_code == 400
    assert response.json()["code"] == "no_file_provided"
    assert response.json()["error"]


def test_text_in_audio_field_counts_as_no_file(install_pipeline, scratch_dir) -> None:
    stt = FakeSTTService()
    install_pipeline(stt)
    client = TestClient(app)

    response = client.post("/api/transcribe", data={"audio": "not a file"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "no_file_provided"
    assert "audio" in body["error"]
    assert "detail" not in body
    assert stt.paths == []
    assert os.listdir(scratch_dir) == []


def test_unsupported_format_is_rejected(install_pipeline, scratch_dir) -> None:
    stt = FakeSTTService()
    install_pipeline(stt)
    client = TestClient(app)

    response = client.post("/api/transcribe", files={"audio": ("song.aiff", b"FORM" * 3, "audio/aiff")})

    assert response.status_code == 415
    assert ".aiff" in response.json()["error"]
    assert stt.paths == []
    assert os.listdir(scratch_dir) == []


def test_missing_credential(monkeypatch, install_pipeline, scratch_dir) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "")
    stt = FakeSTTService()
    install_pipeline(stt)
    client = TestClient(app)

    response = client.post("/api/transcribe", files={"audio": ("a.mp3", b"abc", "audio/mpeg")})

    assert response.status_code == 500
    assert response.json()["code"] == "missing_credential"
    assert stt.paths == []
    assert os.listdir(scratch_dir) == []


def test_malformed_credential(monkeypatch, install_pipeline) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "not-a-key")
    install_pipeline(FakeSTTService())
    client = TestClient(app)

    response = client.post("/api/transcribe", files={"audio": ("a.mp3", b"abc", "audio/mpeg")})

    assert response.status_code == 500
    assert response.json()["code"] == "invalid_credential_format"


def test_upstream_failure_cleans_up_and_reports(install_pipeline, scratch_dir) -> None:
    stt = FakeSTTService(fail_at=1, error=AuthenticationFailed("bad key upstream"))
    install_pipeline(stt)
    client = TestClient(app)

    response = client.post("/api/transcribe", files={"audio": ("long.mp3", b"m" * 50, "audio/mpeg")})

    assert response.status_code == 502
    body = response.json()
    assert body["code"] == "authentication_failed"
    assert "chunk 2/3" in body["error"]
    assert os.listdir(scratch_dir) == []


def test_empty_transcription_is_an_error(install_pipeline, scratch_dir) -> None:
    install_pipeline(FakeSTTService(texts=["   "]))
    client = TestClient(app)

    response = client.post("/api/transcribe", files={"audio": ("quiet.mp3", b"q" * 5, "audio/mpeg")})

    assert response.status_code == 422
    assert response.json()["code"] == "empty_transcription_result"
    assert os.listdir(scratch_dir) == []


def test_other_validation_errors_use_the_error_body() -> None:
    request = Request({"type": "http", "method": "POST", "path": "/api/transcribe", "headers": []})
    exc = RequestValidationError(
        [{"type": "missing", "loc": ("query", "language"), "msg": "Field required", "input": None}]
    )

    response = asyncio.run(validation_error_handler(request, exc))

    assert response.status_code == 400
    body = json.loads(response.body)
    assert body["code"] == "invalid_request"
    assert "query.language" in body["error"]
