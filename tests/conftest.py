import os
import sys

import pytest
from httpx import AsyncClient, ASGITransport

# Ensure the project root is in sys.path so `import upload_ai` works without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from upload_ai import main
from upload_ai.processors.completion import CompletionService
from upload_ai.processors.transcriber import TranscriptionService
from upload_ai.processors.video_store import VideoStore


# ---------------------------------------------------------------------------
# Fake upstream collaborators
# ---------------------------------------------------------------------------

class FakeTranscriber:
    """Stands in for the speech-to-text service and records every call."""

    def __init__(self, text="hello world", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def transcribe(self, record, audio, prompt=""):
        self.calls.append((record.id, audio, prompt))
        if self.error is not None:
            raise self.error
        return self.text


class FakeGenerator:
    """Stands in for the text-generation service; yields the given chunks."""

    def __init__(self, chunks=("generated",), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.calls = []
        self.closed = False

    def ensure_ready(self):
        pass

    async def stream(self, prompt, temperature):
        self.calls.append((prompt, temperature))
        try:
            for chunk in self.chunks:
                yield chunk
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store(tmp_path):
    return VideoStore(processing_dir=str(tmp_path / "processing"), max_upload_bytes=1024 * 1024)


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def generator():
    return FakeGenerator(chunks=["Title", ": ", "hello"])


@pytest.fixture
def transcription_service(store, transcriber):
    return TranscriptionService(store, transcriber)


@pytest.fixture
def completion_service(store, generator):
    return CompletionService(store, generator)


@pytest.fixture
def app(monkeypatch, store, transcription_service, completion_service):
    monkeypatch.setattr(main, "video_store", store)
    monkeypatch.setattr(main, "transcription_service", transcription_service)
    monkeypatch.setattr(main, "completion_service", completion_service)
    return main.app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
