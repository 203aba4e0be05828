from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

@dataclass
class VideoRecord:
    id: str
    filename: str
    audio_path: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    transcription: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "audio_path": self.audio_path,
            "created_at": self.created_at.isoformat(),
            "transcription": self.transcription,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoRecord":
        return cls(
            id=data["id"],
            filename=data["filename"],
            audio_path=data["audio_path"],
            created_at=datetime.fromisoformat(data["created_at"]),
            transcription=data.get("transcription"),
        )
