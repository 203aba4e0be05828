import asyncio
import importlib.util
import os
import warnings
from typing import Optional

import openai

from ..exceptions import ConfigurationError, UploadAIError, UpstreamError
from ..models.video import VideoRecord
from ..utils.config import Config
from ..utils.logger import get_logger
from .video_store import VideoStore

logger = get_logger(__name__)

class OpenAITranscriber:
    """Speech-to-text through OpenAI's audio transcription endpoint"""

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

    async def transcribe(self, record: VideoRecord, audio: bytes, prompt: str = "") -> str:
        client = self._get_client()
        params = {
            "model": self.config.transcription_model,
            "file": (os.path.basename(record.audio_path), audio),
            "response_format": "json",
            "temperature": 0,
        }
        if prompt:
            params["prompt"] = prompt
        if self.config.transcription_language:
            params["language"] = self.config.transcription_language

        try:
            response = await client.audio.transcriptions.create(**params)
        except openai.APITimeoutError as e:
            raise UpstreamError("openai", "Transcription request timed out", video_id=record.id) from e
        except openai.OpenAIError as e:
            raise UpstreamError("openai", f"Transcription request failed: {e}", video_id=record.id) from e

        return response.text

class WhisperTranscriber:
    """Speech-to-text with a local Whisper model, loaded on first use"""

    def __init__(self, model_name: str = "base", language: Optional[str] = None):
        self.model_name = model_name
        self.language = language
        self.model = None

    @staticmethod
    def is_available() -> bool:
        return importlib.util.find_spec("whisper") is not None

    def _load_model(self):
        if self.model is None:
            try:
                import whisper
            except ImportError as e:
                raise ConfigurationError(
                    "openai-whisper is not installed; pip install upload-ai[local]"
                ) from e
            logger.info(f"Loading whisper model {self.model_name}")
            self.model = whisper.load_model(self.model_name)
        return self.model

    def _transcribe_sync(self, audio_path: str, prompt: str) -> str:
        model = self._load_model()
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", message="FP16 is not supported on CPU; using FP32 instead")
            result = model.transcribe(audio_path, initial_prompt=prompt or None, language=self.language)
        return result.get("text", "").strip()

    async def transcribe(self, record: VideoRecord, audio: bytes, prompt: str = "") -> str:
        try:
            return await asyncio.to_thread(self._transcribe_sync, record.audio_path, prompt)
        except UploadAIError:
            raise
        except Exception as e:
            raise UpstreamError("whisper", f"Local transcription failed: {e}", video_id=record.id) from e

def build_transcriber(config: Config):
    if config.transcription_backend == "local":
        if not WhisperTranscriber.is_available():
            logger.warning("TRANSCRIPTION_BACKEND=local but openai-whisper is not installed; "
                           "transcription requests will fail until it is")
        return WhisperTranscriber(model_name=config.whisper_model, language=config.transcription_language)
    return OpenAITranscriber(config)

class TranscriptionService:
    def __init__(self, store: VideoStore, transcriber):
        self.store = store
        self.transcriber = transcriber

    async def transcribe(self, video_id: str, prompt: str = "") -> str:
        """Transcribes the stored audio of a video and saves the text on its record.

        A video that already has a transcription returns it without calling the
        upstream service again.
        """
        record = self.store.get(video_id)

        if record.transcription is not None:
            logger.info(f"Video {video_id} already transcribed, returning stored transcription")
            return record.transcription

        audio = self.store.read_audio(record)
        logger.info(f"Transcribing video {video_id} ({len(audio)} bytes)")
        transcription = await self.transcriber.transcribe(record, audio, prompt)

        self.store.set_transcription(video_id, transcription)
        logger.info(f"Saved transcription for video {video_id} ({len(transcription)} chars)")
        return transcription
