"""Remote service boundary: Veo job submission/polling via google-genai, artifact download via httpx."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from models import (
    ArtifactRef,
    ErrorKind,
    GenerationRequest,
    OperationHandle,
    OperationStatus,
    RawError,
)
from models.operation import DEFAULT_VIDEO_MIME_TYPE

logger = logging.getLogger(__name__)


class RemoteService(Protocol):
    async def submit(self, request: GenerationRequest) -> OperationHandle:
        """Create the remote job; raise RawError on failure."""

    def status(self, handle: OperationHandle) -> OperationStatus:
        """Status already carried by a handle, without a network call."""

    async def poll(self, handle: OperationHandle) -> OperationStatus:
        """Query the job with the last-received handle; raise RawError on failure."""

    async def download(self, uri: str, credential: str) -> bytes:
        """Fetch one artifact; raise RawError(kind=DOWNLOAD) on failure."""


def raw_error_from_api_error(exc: genai_errors.APIError, *, stage: str, model: str | None = None) -> RawError:
    return RawError(
        message=str(exc),
        stage=stage,
        code=getattr(exc, "code", None),
        status=getattr(exc, "status", None),
        details=getattr(exc, "details", None),
        model=model,
    )


def _operation_failure(error: Any, model: str | None) -> RawError | None:
    if not error:
        return None
    if isinstance(error, dict):
        message = str(error.get("message") or error)
        code = error.get("code")
        return RawError(
            message=message,
            stage="poll",
            code=code if isinstance(code, int) else None,
            status=error.get("status"),
            details=error,
            model=model,
        )
    return RawError(message=str(error), stage="poll", details=error, model=model)


def _extract_artifacts(operation: Any) -> tuple[ArtifactRef, ...]:
    response = getattr(operation, "response", None) or getattr(operation, "result", None)
    generated = getattr(response, "generated_videos", None) or []
    artifacts: list[ArtifactRef] = []
    for index, item in enumerate(generated):
        video = getattr(item, "video", None)
        uri = getattr(video, "uri", None)
        if not uri:
            logger.warning("[veo_client] Generated video %d has no uri; skipping", index)
            continue
        mime_type = getattr(video, "mime_type", None) or DEFAULT_VIDEO_MIME_TYPE
        artifacts.append(ArtifactRef(uri=uri, index=index, mime_type=mime_type))
    return tuple(artifacts)


def status_from_operation(operation: Any, model: str | None = None) -> OperationStatus:
    """Translate a google-genai operation object into an OperationStatus."""
    handle = OperationHandle(operation=operation, name=getattr(operation, "name", None))
    done = bool(getattr(operation, "done", False))
    if not done:
        return OperationStatus(done=False, handle=handle)
    failure = _operation_failure(getattr(operation, "error", None), model)
    artifacts = () if failure else _extract_artifacts(operation)
    return OperationStatus(done=True, handle=handle, artifacts=artifacts, failure=failure)


class GeminiVeoService:
    """
    RemoteService backed by the Gemini API.

    The genai client and the httpx client are injectable so tests (and the
    app) can substitute them; nothing here is a process-wide singleton.
    """

    def __init__(
        self,
        *,
        api_key: str,
        client: Any | None = None,
        http_client: httpx.AsyncClient | None = None,
        download_timeout: float = 120.0,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._http_client = http_client
        self._download_timeout = download_timeout

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise RawError(
                message="GEMINI_API_KEY is not set. Set it in backend/.env or the environment.",
                stage="submit",
            )
        self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def submit(self, request: GenerationRequest) -> OperationHandle:
        client = self._ensure_client()
        config = types.GenerateVideosConfig(
            number_of_videos=request.video_count,
            aspect_ratio=request.aspect_ratio.value,
        )
        image = None
        if request.reference_image is not None:
            image = types.Image(
                image_bytes=request.reference_image.data,
                mime_type=request.reference_image.mime_type,
            )
        try:
            operation = await client.aio.models.generate_videos(
                model=request.model,
                prompt=request.prompt or None,
                image=image,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise raw_error_from_api_error(exc, stage="submit", model=request.model) from exc
        return OperationHandle(operation=operation, name=getattr(operation, "name", None))

    def status(self, handle: OperationHandle) -> OperationStatus:
        return status_from_operation(handle.operation)

    async def poll(self, handle: OperationHandle) -> OperationStatus:
        client = self._ensure_client()
        try:
            operation = await client.aio.operations.get(handle.operation)
        except genai_errors.APIError as exc:
            raise raw_error_from_api_error(exc, stage="poll") from exc
        return status_from_operation(operation)

    async def download(self, uri: str, credential: str) -> bytes:
        params = {"key": credential} if credential else None
        try:
            if self._http_client is not None:
                response = await self._http_client.get(uri, params=params, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self._download_timeout) as http:
                    response = await http.get(uri, params=params, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise RawError(
                message=f"Failed to download video: {exc}",
                stage="download",
                kind=ErrorKind.DOWNLOAD,
                details=repr(exc),
            ) from exc

        if not response.is_success:
            raise RawError(
                message=f"Failed to download video: {response.reason_phrase or response.status_code}",
                stage="download",
                code=response.status_code,
                kind=ErrorKind.DOWNLOAD,
            )
        return response.content
