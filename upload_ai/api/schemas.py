from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional
from ..models.prompt import PromptTemplate
from ..models.video import VideoRecord

class PromptResponse(BaseModel):
    id: str
    title: str
    template: str

    @classmethod
    def from_prompt(cls, prompt: PromptTemplate):
        return cls(id=prompt.id, title=prompt.title, template=prompt.template)

class VideoResponse(BaseModel):
    id: str
    filename: str
    created_at: datetime
    transcription: Optional[str] = None

    @classmethod
    def from_record(cls, record: VideoRecord):
        return cls(
            id=record.id,
            filename=record.filename,
            created_at=record.created_at,
            transcription=record.transcription
        )

class UploadResponse(BaseModel):
    video: VideoResponse

class VideoListResponse(BaseModel):
    videos: List[VideoResponse]

class TranscriptionRequest(BaseModel):
    prompt: str = ""

class TranscriptionResponse(BaseModel):
    transcription: str

class CompletionBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: str = Field(alias="videoId")
    template: str
    temperature: float = 0.5

class ErrorResponse(BaseModel):
    error: str
    detail: str
