from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from models import ArtifactRef, GenerationRequest, OperationHandle, OperationStatus, RawError
from services.controller import GenerationController
from services.fetcher import ResultFetcher
from services.poller import OperationPoller
from services.resources import ResourceLifecycleManager
from services.submitter import OperationSubmitter

TEST_API_KEY = "test-key"


class FakeVeoService:
    """
    Scripted RemoteService double.

    Each poll rotates the handle (operation={"poll": n}); the job reports done
    on poll number `polls_until_done`, or never when it is None.
    """

    def __init__(
        self,
        *,
        polls_until_done: int | None = 1,
        uris: tuple[str, ...] = ("https://files.example/v1/video-0:download?alt=media",),
        failure: RawError | None = None,
        submit_error: Exception | None = None,
        download_errors: dict[str, Exception] | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.polls_until_done = polls_until_done
        self.uris = uris
        self.failure = failure
        self.submit_error = submit_error
        self.download_errors = download_errors or {}
        self.gate = gate
        self.submitted: list[GenerationRequest] = []
        self.polled: list[OperationHandle] = []
        self.downloaded: list[tuple[str, str]] = []

    @property
    def network_calls(self) -> int:
        return len(self.submitted) + len(self.polled) + len(self.downloaded)

    async def submit(self, request: GenerationRequest) -> OperationHandle:
        self.submitted.append(request)
        if self.submit_error is not None:
            raise self.submit_error
        return OperationHandle(operation={"poll": 0}, name="operations/fake-0")

    def status(self, handle: OperationHandle) -> OperationStatus:
        return OperationStatus(done=False, handle=handle)

    async def poll(self, handle: OperationHandle) -> OperationStatus:
        self.polled.append(handle)
        if self.gate is not None:
            await self.gate.wait()
        n = handle.operation["poll"] + 1
        rotated = OperationHandle(operation={"poll": n}, name=f"operations/fake-{n}")
        if self.polls_until_done is None or n < self.polls_until_done:
            return OperationStatus(done=False, handle=rotated)
        if self.failure is not None:
            return OperationStatus(done=True, handle=rotated, failure=self.failure)
        artifacts = tuple(ArtifactRef(uri=uri, index=i) for i, uri in enumerate(self.uris))
        return OperationStatus(done=True, handle=rotated, artifacts=artifacts)

    async def download(self, uri: str, credential: str) -> bytes:
        self.downloaded.append((uri, credential))
        error = self.download_errors.get(uri)
        if error is not None:
            raise error
        return f"video-bytes:{uri}".encode()


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_controller(fake_sleep: SleepRecorder) -> Callable[..., GenerationController]:
    def _make(
        service: FakeVeoService,
        *,
        max_attempts: int = 60,
        on_event=None,
        parallel: bool = False,
    ) -> GenerationController:
        return GenerationController(
            submitter=OperationSubmitter(service),
            poller=OperationPoller(service, interval=10.0, max_attempts=max_attempts, sleep=fake_sleep),
            fetcher=ResultFetcher(service, TEST_API_KEY, parallel=parallel),
            resources=ResourceLifecycleManager(),
            model="veo-2.0-generate-001",
            on_event=on_event,
        )

    return _make


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
