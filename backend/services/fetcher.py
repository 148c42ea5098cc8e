from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from models import ArtifactRef, ErrorKind, GeneratedResource, GenerationCancelled, RawError
from services.cancellation import raise_if_cancelled
from services.veo_client import RemoteService

logger = logging.getLogger(__name__)


class ResultFetcher:
    """
    Downloads every artifact of a finished job into GeneratedResources.

    All-or-nothing: if any download fails, resources already materialized in
    this call are released and a single DOWNLOAD error is raised. Output order
    follows `ArtifactRef.index` in both sequential and parallel mode.
    """

    def __init__(self, service: RemoteService, credential: str, *, parallel: bool = False) -> None:
        self._service = service
        self._credential = credential
        self._parallel = parallel

    async def fetch(
        self,
        artifacts: Iterable[ArtifactRef],
        cancel_event: asyncio.Event | None = None,
    ) -> list[GeneratedResource]:
        ordered = sorted(artifacts, key=lambda a: a.index)
        if self._parallel:
            return await self._fetch_parallel(ordered, cancel_event)

        resources: list[GeneratedResource] = []
        try:
            for artifact in ordered:
                resources.append(await self._fetch_one(artifact, cancel_event))
        except BaseException:
            _release_partial(resources)
            raise
        return resources

    async def _fetch_parallel(
        self,
        ordered: list[ArtifactRef],
        cancel_event: asyncio.Event | None,
    ) -> list[GeneratedResource]:
        tasks = [asyncio.ensure_future(self._fetch_one(a, cancel_event)) for a in ordered]
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        except BaseException:
            # Cancelled from outside; downloads that already finished still hold bytes.
            _release_partial(_completed_results(tasks))
            raise
        resources = [r for r in results if isinstance(r, GeneratedResource)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            _release_partial(resources)
            raise failures[0]
        return resources

    async def _fetch_one(self, artifact: ArtifactRef, cancel_event: asyncio.Event | None) -> GeneratedResource:
        raise_if_cancelled(cancel_event)
        logger.info("[fetcher] Downloading artifact index=%d", artifact.index)
        try:
            data = await self._service.download(artifact.uri, self._credential)
        except (GenerationCancelled, asyncio.CancelledError):
            raise
        except RawError as exc:
            if exc.kind is None:
                exc.kind = ErrorKind.DOWNLOAD
            raise
        except Exception as exc:
            raise RawError(
                message=f"Failed to download video: {exc}",
                stage="download",
                kind=ErrorKind.DOWNLOAD,
                details=repr(exc),
            ) from exc
        resource = GeneratedResource.from_bytes(artifact.index, data, artifact.mime_type)
        logger.info("[fetcher] Materialized %s (%d bytes)", resource.resource_id, resource.size)
        return resource


def _release_partial(resources: list[GeneratedResource]) -> None:
    for resource in resources:
        if not resource.released:
            resource.release()
    if resources:
        logger.info("[fetcher] Released %d partial download(s)", len(resources))


def _completed_results(tasks: list[asyncio.Future]) -> list[GeneratedResource]:
    return [t.result() for t in tasks if t.done() and not t.cancelled() and t.exception() is None]
