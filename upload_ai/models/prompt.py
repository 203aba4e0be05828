from dataclasses import dataclass

TRANSCRIPTION_PLACEHOLDER = "{transcription}"

@dataclass(frozen=True)
class PromptTemplate:
    id: str
    title: str
    template: str

@dataclass(frozen=True)
class CompletionRequest:
    video_id: str
    template: str
    temperature: float = 0.5
