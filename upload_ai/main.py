from fastapi import FastAPI, File, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from typing import List, Optional

from .api.schemas import (
    CompletionBody,
    ErrorResponse,
    PromptResponse,
    TranscriptionRequest,
    TranscriptionResponse,
    UploadResponse,
    VideoListResponse,
    VideoResponse,
)
from .exceptions import UploadAIError, ValidationError
from .processors.completion import CompletionService, OpenAICompletionClient
from .processors.prompt_catalog import PromptCatalog
from .processors.transcriber import TranscriptionService, build_transcriber
from .processors.video_store import VideoStore
from .utils.config import load_config
from .utils.logger import get_logger

logger = get_logger(__name__)

ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 404, 500, 502, 503)
}

app = FastAPI(
    title="Upload AI API",
    description="Upload video audio, transcribe it and generate titles and descriptions from the transcription",
    version="1.0.0"
)

# Initialize processors
config = load_config()
video_store = VideoStore(processing_dir=config.processing_dir, max_upload_bytes=config.max_upload_bytes)
prompt_catalog = PromptCatalog()
transcription_service = TranscriptionService(video_store, build_transcriber(config))
completion_service = CompletionService(video_store, OpenAICompletionClient(config))

@app.exception_handler(UploadAIError)
async def handle_upload_ai_error(request: Request, exc: UploadAIError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.kind, "detail": exc.message})

@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": ValidationError.kind, "detail": str(exc.errors())},
    )

@app.get("/health")
async def health_check():
    return {"status": "ok"}

@app.get("/prompts", response_model=List[PromptResponse])
async def get_all_prompts():
    return [PromptResponse.from_prompt(prompt) for prompt in prompt_catalog.list()]

@app.post("/videos", response_model=UploadResponse, status_code=status.HTTP_201_CREATED,
          responses=ERROR_RESPONSES)
async def upload_video(file: Optional[UploadFile] = File(None)):
    if file is None:
        raise ValidationError("Missing file input")

    data = await file.read()
    record = video_store.accept(data, file.filename or "")
    return UploadResponse(video=VideoResponse.from_record(record))

@app.get("/videos", response_model=VideoListResponse, responses=ERROR_RESPONSES)
async def list_videos():
    return VideoListResponse(videos=[VideoResponse.from_record(r) for r in video_store.list()])

@app.post("/videos/{video_id}/transcription", response_model=TranscriptionResponse,
          responses=ERROR_RESPONSES)
async def create_transcription(video_id: str, body: Optional[TranscriptionRequest] = None):
    prompt = body.prompt if body else ""
    transcription = await transcription_service.transcribe(video_id, prompt)
    return TranscriptionResponse(transcription=transcription)

@app.post("/ai/complete", responses=ERROR_RESPONSES)
async def generate_ai_completion(body: CompletionBody):
    # complete() validates and opens the upstream stream, so failures become error responses
    chunks = await completion_service.complete(body.video_id, body.template, body.temperature)
    return StreamingResponse(chunks, media_type="text/plain; charset=utf-8")
