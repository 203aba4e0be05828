import os
from typing import AsyncIterator, List, Optional

import httpx

from ..exceptions import ERRORS_BY_KIND, UploadAIError, UpstreamError
from ..models.prompt import PromptTemplate

class UploadAIClient:
    """Async client for the upload-ai HTTP API.

    Error responses are raised as the same exception kinds the server raised.
    Pass ``transport`` to talk to an in-process app (``httpx.ASGITransport``).
    """

    def __init__(self, base_url: str = "http://localhost:3333", timeout: float = 300.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    @staticmethod
    def _raise_for_error(response: httpx.Response):
        if response.is_success:
            return
        try:
            body = response.json()
            kind, detail = body.get("error"), body.get("detail", "")
        except ValueError:
            kind, detail = None, response.text

        if response.status_code == 502 or kind == UpstreamError.kind:
            raise UpstreamError("upload-ai", detail or "Upstream service failed")
        error_cls = ERRORS_BY_KIND.get(kind)
        if error_cls is None:
            error = UploadAIError(detail or f"Request failed with status {response.status_code}")
            error.status_code = response.status_code
            raise error
        raise error_cls(detail)

    async def list_prompts(self) -> List[PromptTemplate]:
        response = await self._client.get("/prompts")
        self._raise_for_error(response)
        return [PromptTemplate(**item) for item in response.json()]

    async def upload_video(self, audio_path: str) -> str:
        """Uploads an extracted audio file and returns the new video id"""
        with open(audio_path, "rb") as f:
            files = {"file": (os.path.basename(audio_path), f.read(), "audio/mpeg")}
        response = await self._client.post("/videos", files=files)
        self._raise_for_error(response)
        return response.json()["video"]["id"]

    async def create_transcription(self, video_id: str, prompt: str = "") -> str:
        response = await self._client.post(f"/videos/{video_id}/transcription", json={"prompt": prompt})
        self._raise_for_error(response)
        return response.json()["transcription"]

    async def complete(self, video_id: str, template: str, temperature: float = 0.5) -> AsyncIterator[str]:
        """Yields generated text as the server streams it"""
        body = {"videoId": video_id, "template": template, "temperature": temperature}
        async with self._client.stream("POST", "/ai/complete", json=body) as response:
            if not response.is_success:
                await response.aread()
                self._raise_for_error(response)
            try:
                async for text in response.aiter_text():
                    if text:
                        yield text
            except httpx.HTTPError as e:
                raise UpstreamError("upload-ai", f"Completion stream interrupted: {e}") from e
