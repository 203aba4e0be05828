import math
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from upload_ai.exceptions import (
    ConfigurationError,
    MissingTranscriptionError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from upload_ai.processors.completion import (
    CompletionService,
    OpenAICompletionClient,
    render_prompt,
    validate_temperature,
)
from upload_ai.utils.config import Config

from conftest import FakeGenerator


async def collect(chunks):
    return [chunk async for chunk in chunks]


def transcribed(store, text="hello world"):
    record = store.accept(b"RIFF....", "a.mp3")
    store.set_transcription(record.id, text)
    return record


# ---------------------------------------------------------------------------
# Prompt rendering and validation
# ---------------------------------------------------------------------------

def test_render_prompt_replaces_placeholder():
    assert render_prompt("Title: {transcription}", "hello world") == "Title: hello world"


def test_render_prompt_replaces_every_occurrence():
    assert render_prompt("{transcription} / {transcription}", "x") == "x / x"


def test_render_prompt_without_placeholder_is_unchanged():
    assert render_prompt("Write a haiku about {topic}", "hello") == "Write a haiku about {topic}"


@pytest.mark.parametrize("temperature", [0, 0.0, 0.5, 1, 1.0])
def test_valid_temperatures(temperature):
    assert validate_temperature(temperature) == float(temperature)


@pytest.mark.parametrize("temperature", [-0.1, 1.01, 2, math.nan, math.inf, "0.5", None, True])
def test_invalid_temperatures(temperature):
    with pytest.raises(ValidationError):
        validate_temperature(temperature)


# ---------------------------------------------------------------------------
# CompletionService
# ---------------------------------------------------------------------------

class TestCompletionService:
    @pytest.mark.asyncio
    async def test_substitutes_transcription_before_forwarding(self, store, generator, completion_service):
        record = transcribed(store)

        chunks = await collect(await completion_service.complete(record.id, "Title: {transcription}", 0.5))

        assert chunks == ["Title", ": ", "hello"]
        assert generator.calls == [("Title: hello world", 0.5)]

    @pytest.mark.asyncio
    async def test_unknown_video_never_calls_upstream(self, generator, completion_service):
        with pytest.raises(NotFoundError):
            await completion_service.complete("nonexistent-id", "{transcription}", 0.5)

        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_missing_transcription_is_validation_error(self, store, generator, completion_service):
        record = store.accept(b"data", "a.mp3")

        with pytest.raises(ValidationError) as exc_info:
            await completion_service.complete(record.id, "{transcription}", 0.5)

        assert isinstance(exc_info.value, MissingTranscriptionError)
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_empty_transcription_is_validation_error(self, store, generator, completion_service):
        record = transcribed(store, text="")

        with pytest.raises(ValidationError):
            await completion_service.complete(record.id, "{transcription}", 0.5)

        assert generator.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("temperature", [-0.5, 1.5])
    async def test_out_of_range_temperature(self, store, generator, completion_service, temperature):
        record = transcribed(store)

        with pytest.raises(ValidationError):
            await completion_service.complete(record.id, "{transcription}", temperature)

        assert generator.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("partition", [
        ["The whole answer"],
        ["T", "h", "e", " whole", " answer"],
        ["The who", "", "le answer"],
    ])
    async def test_relay_preserves_order(self, store, partition):
        record = transcribed(store)
        service = CompletionService(store, FakeGenerator(chunks=partition))

        chunks = await collect(await service.complete(record.id, "{transcription}", 0.2))

        assert "".join(chunks) == "The whole answer"
        assert chunks == partition

    @pytest.mark.asyncio
    async def test_mid_stream_failure_keeps_delivered_chunks(self, store):
        record = transcribed(store)
        generator = FakeGenerator(chunks=["first", "second"], error=UpstreamError("openai", "dropped"))
        service = CompletionService(store, generator)

        received = []
        with pytest.raises(UpstreamError):
            async for chunk in await service.complete(record.id, "{transcription}", 0.5):
                received.append(chunk)

        assert received == ["first", "second"]

    @pytest.mark.asyncio
    async def test_upstream_failure_before_first_chunk_raises_from_complete(self, store):
        record = transcribed(store)
        generator = FakeGenerator(chunks=[], error=UpstreamError("openai", "connection refused"))
        service = CompletionService(store, generator)

        with pytest.raises(UpstreamError):
            await service.complete(record.id, "{transcription}", 0.5)

        assert generator.calls == [("hello world", 0.5)]
        assert generator.closed

    @pytest.mark.asyncio
    async def test_empty_upstream_stream(self, store):
        record = transcribed(store)
        generator = FakeGenerator(chunks=[])
        service = CompletionService(store, generator)

        assert await collect(await service.complete(record.id, "{transcription}", 0.5)) == []
        assert generator.closed

    @pytest.mark.asyncio
    async def test_closing_early_closes_upstream_and_keeps_record(self, store, generator, completion_service):
        record = transcribed(store)

        chunks = await completion_service.complete(record.id, "{transcription}", 0.5)
        assert await chunks.__anext__() == "Title"
        await chunks.aclose()

        assert generator.closed
        assert store.get(record.id).transcription == "hello world"

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_before_streaming(self, store):
        record = transcribed(store)
        service = CompletionService(store, OpenAICompletionClient(Config(openai_api_key=None)))

        with pytest.raises(ConfigurationError):
            await service.complete(record.id, "{transcription}", 0.5)


# ---------------------------------------------------------------------------
# OpenAICompletionClient
# ---------------------------------------------------------------------------

def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeOpenAIStream:
    def __init__(self, items, error=None):
        self.items = items
        self.error = error
        self.close = AsyncMock()

    async def __aiter__(self):
        for item in self.items:
            yield item
        if self.error is not None:
            raise self.error


def _completion_client(**create_kwargs):
    client = OpenAICompletionClient(Config(openai_api_key="sk-test", completion_model="gpt-test"))
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(**create_kwargs)
    client._client = openai_client
    return client, openai_client.chat.completions.create


class TestOpenAICompletionClient:
    @pytest.mark.asyncio
    async def test_streams_content_deltas(self):
        stream = FakeOpenAIStream([_chunk("Hel"), _chunk(None), SimpleNamespace(choices=[]), _chunk("lo")])
        client, create = _completion_client(return_value=stream)

        chunks = await collect(client.stream("prompt text", 0.7))

        assert chunks == ["Hel", "lo"]
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["temperature"] == 0.7
        assert kwargs["stream"] is True
        assert kwargs["messages"] == [{"role": "user", "content": "prompt text"}]
        stream.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_request_failure_becomes_upstream_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client, _ = _completion_client(side_effect=openai.APIConnectionError(request=request))

        with pytest.raises(UpstreamError):
            await collect(client.stream("prompt", 0.5))

    @pytest.mark.asyncio
    async def test_mid_stream_failure_becomes_upstream_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        stream = FakeOpenAIStream([_chunk("partial")], error=openai.APIConnectionError(request=request))
        client, _ = _completion_client(return_value=stream)

        received = []
        with pytest.raises(UpstreamError):
            async for chunk in client.stream("prompt", 0.5):
                received.append(chunk)

        assert received == ["partial"]
        stream.close.assert_awaited_once()

    def test_ensure_ready_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            OpenAICompletionClient(Config(openai_api_key=None)).ensure_ready()
