"""
Client-side upload workflow.

A single upload moves through an explicit state machine:

    waiting -> converting -> uploading -> generating -> success

Any failure while busy returns the workflow to ``waiting`` and keeps the
exception in ``error`` so the user can retry. A new upload cannot start while
another one is converting, uploading or generating.
"""

from enum import Enum
from typing import AsyncIterator, Callable, List, Optional

from ..exceptions import InvalidTransitionError, WorkflowBusyError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class UploadStatus(Enum):
    WAITING = "waiting"
    CONVERTING = "converting"
    UPLOADING = "uploading"
    GENERATING = "generating"
    SUCCESS = "success"

    @property
    def busy(self) -> bool:
        return self in (UploadStatus.CONVERTING, UploadStatus.UPLOADING, UploadStatus.GENERATING)


STATUS_MESSAGES = {
    UploadStatus.CONVERTING: "Converting...",
    UploadStatus.UPLOADING: "Uploading...",
    UploadStatus.GENERATING: "Transcribing...",
    UploadStatus.SUCCESS: "Success!",
}

TRANSITIONS = {
    UploadStatus.WAITING: {UploadStatus.CONVERTING},
    UploadStatus.CONVERTING: {UploadStatus.UPLOADING, UploadStatus.WAITING},
    UploadStatus.UPLOADING: {UploadStatus.GENERATING, UploadStatus.WAITING},
    UploadStatus.GENERATING: {UploadStatus.SUCCESS, UploadStatus.WAITING},
    UploadStatus.SUCCESS: {UploadStatus.WAITING},
}

StatusListener = Callable[[UploadStatus, UploadStatus], None]


class VideoInputWorkflow:
    """Sequences audio extraction, upload and transcription for one video.

    ``extractor`` needs an async ``extract(video_path) -> audio_path`` and
    ``api`` the ``upload_video``/``create_transcription``/``complete`` calls of
    :class:`~upload_ai.client.api_client.UploadAIClient`.
    """

    def __init__(self, extractor, api):
        self.extractor = extractor
        self.api = api
        self.status = UploadStatus.WAITING
        self.error: Optional[BaseException] = None
        self.video_id: Optional[str] = None
        self.transcription: Optional[str] = None
        self._listeners: List[StatusListener] = []

    def add_listener(self, listener: StatusListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener):
        self._listeners.remove(listener)

    def transition(self, new_status: UploadStatus):
        if new_status not in TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot go from {self.status.value} to {new_status.value}",
                {"from": self.status.value, "to": new_status.value},
            )
        old_status, self.status = self.status, new_status
        logger.debug(f"Upload status {old_status.value} -> {new_status.value}")
        for listener in self._listeners:
            listener(old_status, new_status)

    def reset(self):
        if self.status.busy:
            raise WorkflowBusyError("An upload is already in progress", {"status": self.status.value})
        if self.status is UploadStatus.SUCCESS:
            self.transition(UploadStatus.WAITING)
        self.error = None

    async def run(self, video_path: str, prompt: str = "") -> str:
        """Converts, uploads and transcribes a video; returns its video id"""
        self.reset()
        self.video_id = None
        self.transcription = None

        try:
            self.transition(UploadStatus.CONVERTING)
            audio_path = await self.extractor.extract(video_path)

            self.transition(UploadStatus.UPLOADING)
            video_id = await self.api.upload_video(audio_path)

            self.transition(UploadStatus.GENERATING)
            transcription = await self.api.create_transcription(video_id, prompt)
        except BaseException as e:
            self.error = e
            if self.status.busy:
                self.transition(UploadStatus.WAITING)
            logger.error(f"Upload of {video_path} failed: {e!r}")
            raise

        self.video_id = video_id
        self.transcription = transcription
        self.transition(UploadStatus.SUCCESS)
        return video_id

    async def generate(self, template: str, temperature: float = 0.5,
                       video_id: Optional[str] = None) -> AsyncIterator[str]:
        """Streams a completion for the uploaded video (or ``video_id``)"""
        video_id = video_id or self.video_id
        if video_id is None:
            raise InvalidTransitionError("No video has been uploaded yet")
        async for chunk in self.api.complete(video_id, template, temperature):
            yield chunk
