import math
from typing import AsyncIterator, Optional

import openai

from ..exceptions import MissingTranscriptionError, UpstreamError, ValidationError
from ..models.prompt import TRANSCRIPTION_PLACEHOLDER, CompletionRequest
from ..utils.config import Config
from ..utils.logger import get_logger
from .video_store import VideoStore

logger = get_logger(__name__)

def render_prompt(template: str, transcription: str) -> str:
    """Replaces every placeholder token with the transcription.

    A template without the token is returned unchanged.
    """
    return template.replace(TRANSCRIPTION_PLACEHOLDER, transcription)

def validate_temperature(temperature) -> float:
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        raise ValidationError("Temperature must be a number", {"temperature": temperature})
    if math.isnan(temperature) or not 0 <= temperature <= 1:
        raise ValidationError("Temperature must be between 0 and 1", {"temperature": temperature})
    return float(temperature)

class OpenAICompletionClient:
    def __init__(self, config: Config):
        self.config = config
        self._client = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.config.require_openai_api_key(),
                timeout=self.config.upstream_timeout,
                max_retries=self.config.openai_max_retries,
            )
        return self._client

    def ensure_ready(self):
        """Raises ConfigurationError now instead of once the stream has started"""
        self._get_client()

    async def stream(self, prompt: str, temperature: float) -> AsyncIterator[str]:
        """Streams the content deltas of a chat completion for a single user message"""
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.config.completion_model,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                stream=True,
            )
        except openai.OpenAIError as e:
            raise UpstreamError("openai", f"Completion request failed: {e}") from e

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except openai.OpenAIError as e:
            raise UpstreamError("openai", f"Completion stream failed: {e}") from e
        finally:
            await response.close()

class CompletionService:
    def __init__(self, store: VideoStore, generator):
        self.store = store
        self.generator = generator

    def prepare(self, request: CompletionRequest) -> str:
        """Validates a request and returns the prompt to send upstream"""
        validate_temperature(request.temperature)
        if not isinstance(request.template, str):
            raise ValidationError("Template must be a string")

        record = self.store.get(request.video_id)
        if not record.transcription:
            raise MissingTranscriptionError(
                "Video transcription was not generated yet", {"video_id": request.video_id}
            )
        return render_prompt(request.template, record.transcription)

    async def complete(self, video_id: str, template: str, temperature: float = 0.5) -> AsyncIterator[str]:
        """Opens the upstream stream and returns an iterator relaying it chunk by chunk.

        Validation, the upstream request and the first chunk all happen before
        this returns, so their failures surface before any response has started.
        """
        request = CompletionRequest(video_id=video_id, template=template, temperature=temperature)
        prompt = self.prepare(request)
        self.generator.ensure_ready()
        logger.info(f"Starting completion for video {video_id} (temperature={temperature})")

        stream = self.generator.stream(prompt, float(temperature))
        try:
            first = await stream.__anext__()
        except StopAsyncIteration:
            first = None
        except BaseException:
            await stream.aclose()
            logger.error(f"Completion for video {video_id} failed before the first chunk")
            raise
        return self._relay(video_id, stream, first)

    async def _relay(self, video_id: str, stream: AsyncIterator[str], first: Optional[str]) -> AsyncIterator[str]:
        sent = 0
        try:
            if first is not None:
                sent += len(first)
                yield first
                async for chunk in stream:
                    sent += len(chunk)
                    yield chunk
        except UpstreamError:
            logger.error(f"Completion for video {video_id} failed after {sent} chars")
            raise
        finally:
            await stream.aclose()
        logger.info(f"Completion for video {video_id} finished ({sent} chars)")
