import os

os.environ.setdefault("OPENAI_API_KEY", "sk-test-key")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("AUDIT_LOG_ENABLED", "false")

import httpx
import openai
import pytest

from app.services.stt_service import STTService

OPENAI_URL = "https://api.openai.com/v1/audio/transcriptions"


def _request() -> httpx.Request:
    return httpx.Request("POST", OPENAI_URL)


def connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=_request())


def status_error(cls, status_code: int, message: str = "upstream said no"):
    response = httpx.Response(status_code, request=_request())
    return cls(message, response=response, body=None)


class FakeTranscriptions:
    """Stands in for `client.audio.transcriptions`; replays scripted outcomes."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def create(self, **kwargs):
        audio_file = kwargs["file"]
        self.calls.append({**kwargs, "file": audio_file.name, "data": audio_file.read()})
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeAudio:
    def __init__(self, transcriptions):
        self.transcriptions = transcriptions


class FakeOpenAIClient:
    def __init__(self, outcomes=()):
        self.audio = FakeAudio(FakeTranscriptions(outcomes))

    @property
    def calls(self):
        return self.audio.transcriptions.calls

    async def close(self):
        pass


class FakeSTTService:
    """Records the order of transcribed files and returns scripted text."""

    def __init__(self, texts=None, fail_at=None, error=None):
        self.texts = texts
        self.fail_at = fail_at
        self.error = error
        self.paths = []
        self.payloads = []

    async def transcribe(self, file_path, request_id=None, unit_index=0, unit_count=1):
        self.paths.append(file_path)
        with open(file_path, "rb") as f:
            self.payloads.append(f.read())
        call_index = len(self.paths) - 1
        if self.fail_at is not None and call_index == self.fail_at:
            raise self.error
        if self.texts is None:
            return f"fragment {call_index}"
        return self.texts[call_index]


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_stt(sleeps):
    def _make(outcomes=(), max_attempts=3, retry_delay=2.0):
        client = FakeOpenAIClient(outcomes)

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        service = STTService(
            client=client,
            model="whisper-1",
            language="es",
            temperature=0.0,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            sleep=fake_sleep,
        )
        return service, client

    return _make


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "input.mp3"
    path.write_bytes(b"ID3" + b"\x00" * 61)
    return path
