import json
import os
import shutil
import uuid
from typing import List, Optional

from ..exceptions import NotFoundError, StorageError, ValidationError
from ..models.video import VideoRecord
from ..utils.logger import get_logger

logger = get_logger(__name__)

METADATA_FILE = "video.json"
ALLOWED_EXTENSIONS = (".mp3",)

class VideoStore:
    """File-system record store for uploaded audio.

    Every record lives in its own directory under ``processing_dir``: the audio
    file plus a ``video.json`` metadata file. A record only becomes visible once
    its metadata file has been renamed into place.
    """

    def __init__(self, processing_dir: str = "processing", max_upload_bytes: Optional[int] = None):
        self.processing_dir = processing_dir
        self.max_upload_bytes = max_upload_bytes

    def _ensure_dirs(self):
        os.makedirs(self.processing_dir, exist_ok=True)

    def _get_video_dir(self, video_id: str) -> str:
        return os.path.join(self.processing_dir, video_id)

    def _metadata_path(self, video_id: str) -> str:
        return os.path.join(self._get_video_dir(video_id), METADATA_FILE)

    def _validate(self, data: bytes, filename: str):
        if not data:
            raise ValidationError("Uploaded file is empty", {"filename": filename})
        _, ext = os.path.splitext(filename or "")
        if ext.lower() not in ALLOWED_EXTENSIONS:
            raise ValidationError("Invalid input type, please upload a MP3", {"filename": filename})
        if self.max_upload_bytes is not None and len(data) > self.max_upload_bytes:
            raise ValidationError(
                "Uploaded file is too large",
                {"filename": filename, "size": len(data), "limit": self.max_upload_bytes},
            )

    def _write_metadata(self, record: VideoRecord):
        path = self._metadata_path(record.id)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(record.to_dict(), f)
        os.replace(tmp_path, path)

    def accept(self, data: bytes, filename: str) -> VideoRecord:
        """Stores the audio bytes under a fresh id and returns the new record"""
        self._validate(data, filename)
        self._ensure_dirs()

        video_id = uuid.uuid4().hex
        video_dir = self._get_video_dir(video_id)
        try:
            # exist_ok=False: an id collision surfaces instead of merging records
            os.makedirs(video_dir, exist_ok=False)
        except FileExistsError:
            raise StorageError("Generated id already exists", {"video_id": video_id})
        except OSError as e:
            raise StorageError(f"Could not create record directory: {e}", {"video_id": video_id})

        stem, ext = os.path.splitext(os.path.basename(filename))
        audio_path = os.path.join(video_dir, f"{stem}-{video_id}{ext.lower()}")
        record = VideoRecord(id=video_id, filename=filename, audio_path=audio_path)

        try:
            with open(audio_path, "wb") as f:
                f.write(data)
            self._write_metadata(record)
        except OSError as e:
            shutil.rmtree(video_dir, ignore_errors=True)
            raise StorageError(f"Could not store upload: {e}", {"video_id": video_id})

        logger.info(f"Stored {filename} as video {video_id} ({len(data)} bytes)")
        return record

    def get(self, video_id: str) -> VideoRecord:
        # Reject anything that could escape processing_dir
        if not video_id or os.path.basename(video_id) != video_id or video_id in (".", ".."):
            raise NotFoundError("Video not found", {"video_id": video_id})

        try:
            with open(self._metadata_path(video_id), "r", encoding="utf-8") as f:
                return VideoRecord.from_dict(json.load(f))
        except FileNotFoundError:
            raise NotFoundError("Video not found", {"video_id": video_id})
        except (OSError, ValueError, KeyError) as e:
            raise StorageError(f"Could not read video record: {e}", {"video_id": video_id})

    def exists(self, video_id: str) -> bool:
        try:
            self.get(video_id)
        except NotFoundError:
            return False
        return True

    def list(self) -> List[VideoRecord]:
        if not os.path.isdir(self.processing_dir):
            return []
        records = []
        for entry in os.listdir(self.processing_dir):
            if not os.path.exists(self._metadata_path(entry)):
                continue
            try:
                records.append(self.get(entry))
            except StorageError as e:
                logger.warning(f"Skipping unreadable video record {entry}: {e}")
        return sorted(records, key=lambda r: r.created_at)

    def read_audio(self, record: VideoRecord) -> bytes:
        try:
            with open(record.audio_path, "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Could not read audio file: {e}", {"video_id": record.id})

    def set_transcription(self, video_id: str, transcription: str) -> VideoRecord:
        record = self.get(video_id)
        if not os.path.exists(record.audio_path):
            raise StorageError("Audio file is missing", {"video_id": video_id})
        record.transcription = transcription
        try:
            self._write_metadata(record)
        except OSError as e:
            raise StorageError(f"Could not save transcription: {e}", {"video_id": video_id})
        return record
