from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from google.genai import errors as genai_errors
from google.genai import types

from models import AspectRatio, ErrorKind, GenerationRequest, OperationHandle, RawError, ReferenceImage
from services.error_classifier import RATE_LIMIT_MESSAGE, classify
from services.veo_client import GeminiVeoService, status_from_operation

URI = "https://generativelanguage.example/v1beta/files/abc:download?alt=media"


def _operation(done: bool = False, uris: tuple[str | None, ...] = (), error: Any = None, name: str = "operations/123"):
    videos = [SimpleNamespace(video=SimpleNamespace(uri=uri, mime_type="video/mp4")) for uri in uris]
    return SimpleNamespace(
        name=name,
        done=done,
        error=error,
        response=SimpleNamespace(generated_videos=videos) if done else None,
    )


class _FakeModels:
    def __init__(self, result: Any = None, error: Exception | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.result = result
        self.error = error

    async def generate_videos(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


class _FakeOperations:
    def __init__(self, result: Any) -> None:
        self.calls: list[Any] = []
        self.result = result

    async def get(self, operation: Any) -> Any:
        self.calls.append(operation)
        return self.result


def _fake_client(models: _FakeModels, operations: _FakeOperations | None = None) -> Any:
    return SimpleNamespace(aio=SimpleNamespace(models=models, operations=operations or _FakeOperations(None)))


def test_status_of_pending_operation() -> None:
    status = status_from_operation(_operation(done=False))
    assert status.done is False
    assert status.handle.name == "operations/123"
    assert status.artifacts == ()


def test_status_of_finished_operation_lists_artifacts_in_order() -> None:
    status = status_from_operation(_operation(done=True, uris=("u0", None, "u2")))
    assert status.done is True
    assert status.failure is None
    assert [(a.uri, a.index) for a in status.artifacts] == [("u0", 0), ("u2", 2)]


def test_status_of_failed_operation_carries_failure() -> None:
    error = {"code": 400, "message": "Prompt blocked by safety filters", "status": "INVALID_ARGUMENT"}
    status = status_from_operation(_operation(done=True, error=error), model="veo-2.0-generate-001")
    assert status.failure is not None
    assert status.failure.code == 400
    assert status.failure.message == "Prompt blocked by safety filters"
    assert status.artifacts == ()


@pytest.mark.asyncio
async def test_submit_builds_generate_videos_call() -> None:
    models = _FakeModels(result=_operation())
    service = GeminiVeoService(api_key="k", client=_fake_client(models))
    request = GenerationRequest(
        prompt="",
        video_count=3,
        aspect_ratio=AspectRatio.PORTRAIT,
        reference_image=ReferenceImage(data=b"img", mime_type="image/png"),
    )

    handle = await service.submit(request)

    assert handle.name == "operations/123"
    call = models.calls[0]
    assert call["model"] == "veo-2.0-generate-001"
    assert call["prompt"] is None
    assert isinstance(call["config"], types.GenerateVideosConfig)
    assert call["config"].number_of_videos == 3
    assert call["config"].aspect_ratio == "9:16"
    assert isinstance(call["image"], types.Image)
    assert call["image"].image_bytes == b"img"
    assert call["image"].mime_type == "image/png"


@pytest.mark.asyncio
async def test_submit_api_error_becomes_rate_limit() -> None:
    api_error = genai_errors.ClientError(
        429, {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
    )
    service = GeminiVeoService(api_key="k", client=_fake_client(_FakeModels(error=api_error)))
    request = GenerationRequest(prompt="p", video_count=1, aspect_ratio=AspectRatio.LANDSCAPE)

    with pytest.raises(RawError) as excinfo:
        await service.submit(request)

    raw = excinfo.value
    assert raw.stage == "submit"
    assert raw.code == 429
    assert raw.model == "veo-2.0-generate-001"
    classified = classify(raw)
    assert classified.kind is ErrorKind.RATE_LIMIT
    assert classified.message == RATE_LIMIT_MESSAGE


@pytest.mark.asyncio
async def test_poll_passes_the_previous_operation() -> None:
    previous = _operation(name="operations/prev")
    operations = _FakeOperations(_operation(done=True, uris=(URI,)))
    service = GeminiVeoService(api_key="k", client=_fake_client(_FakeModels(), operations))

    status = await service.poll(OperationHandle(operation=previous, name=previous.name))

    assert operations.calls == [previous]
    assert status.done is True
    assert status.artifacts[0].uri == URI


def test_status_does_not_touch_the_network() -> None:
    operations = _FakeOperations(None)
    service = GeminiVeoService(api_key="k", client=_fake_client(_FakeModels(), operations))
    assert service.status(OperationHandle(operation=_operation())).done is False
    assert operations.calls == []


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_any_request() -> None:
    service = GeminiVeoService(api_key="")
    with pytest.raises(RawError):
        await service.submit(GenerationRequest(prompt="p", video_count=1, aspect_ratio=AspectRatio.SQUARE))


@pytest.mark.asyncio
async def test_download_appends_credential_and_keeps_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"mp4-bytes")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        service = GeminiVeoService(api_key="k", http_client=http)
        data = await service.download(URI, "secret")

    assert data == b"mp4-bytes"
    assert seen[0].url.params["key"] == "secret"
    assert seen[0].url.params["alt"] == "media"


@pytest.mark.asyncio
async def test_download_http_error_is_download_kind() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        service = GeminiVeoService(api_key="k", http_client=http)
        with pytest.raises(RawError) as excinfo:
            await service.download(URI, "secret")

    assert excinfo.value.kind is ErrorKind.DOWNLOAD
    assert excinfo.value.code == 404
    assert excinfo.value.message == "Failed to download video: Not Found"


@pytest.mark.asyncio
async def test_download_transport_error_is_download_kind() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        service = GeminiVeoService(api_key="k", http_client=http)
        with pytest.raises(RawError) as excinfo:
            await service.download(URI, "secret")

    assert excinfo.value.kind is ErrorKind.DOWNLOAD
    assert "connection refused" in excinfo.value.message
