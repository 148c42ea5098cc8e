"""End-to-end sequencing of one video generation run for a session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from models import (
    DEFAULT_MODEL,
    GeneratedResource,
    GenerationCancelled,
    GenerationSettings,
    ProgressEvent,
    ReferenceImage,
    RunResult,
    RunStage,
    SessionState,
)
from services.error_classifier import classify
from services.fetcher import ResultFetcher
from services.poller import OperationPoller
from services.progress_hub import ProgressHub
from services.request_builder import build_request, clamp_video_count, parse_aspect_ratio
from services.resources import ResourceLifecycleManager
from services.submitter import OperationSubmitter

logger = logging.getLogger(__name__)

EventCallback = Callable[[ProgressEvent, dict[str, Any]], None]


class GenerationController:
    """
    Runs request building, submission, polling and download for one session,
    with at most one job in flight.

    The busy flag and the resource batch belong to this object only. Every
    failure is classified exactly once and reported through the progress
    channel; `busy` is always cleared when a run ends.
    """

    def __init__(
        self,
        *,
        submitter: OperationSubmitter,
        poller: OperationPoller,
        fetcher: ResultFetcher,
        resources: ResourceLifecycleManager | None = None,
        model: str = DEFAULT_MODEL,
        hub: ProgressHub | None = None,
        session_id: str | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        self._submitter = submitter
        self._poller = poller
        self._fetcher = fetcher
        self._resources = resources or ResourceLifecycleManager()
        self._model = model
        self._hub = hub
        self._session_id = session_id
        self._on_event = on_event
        self._cancel_event: asyncio.Event | None = None
        self._closed = False
        self.state = SessionState()

    @property
    def busy(self) -> bool:
        return self.state.busy

    @property
    def resources(self) -> ResourceLifecycleManager:
        return self._resources

    @property
    def model(self) -> str:
        return self._model

    def update_settings(self, video_count: object = None, aspect_ratio: object = None) -> GenerationSettings:
        """Apply UI settings, clamping the video count into range."""
        current = self.state.settings
        self.state.settings = GenerationSettings(
            video_count=clamp_video_count(current.video_count if video_count is None else video_count),
            aspect_ratio=current.aspect_ratio if aspect_ratio is None else parse_aspect_ratio(aspect_ratio),  # type: ignore[arg-type]
        )
        return self.state.settings

    async def submit(
        self,
        prompt: str | None,
        image: ReferenceImage | None = None,
        settings: GenerationSettings | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> RunResult | None:
        """
        Run one generation end to end.

        Returns None without side effects while another run is in flight.
        Otherwise returns a RunResult holding either the full batch (also
        installed as the current resources), one classified error, or a
        cancellation marker.
        """
        if self.state.busy:
            logger.warning("[controller] Submit ignored: a generation is already running (session=%s)", self._session_id)
            return None

        self.state.busy = True
        self.state.reset_progress()
        self.state.runs_started += 1
        cancel_event = cancel_event or asyncio.Event()
        self._cancel_event = cancel_event
        batch: list[GeneratedResource] = []
        try:
            if settings is not None:
                self.update_settings(settings.video_count, settings.aspect_ratio)
            request = build_request(prompt, image, self.state.settings, model=self._model)

            # Previous videos go away as soon as a new valid run starts.
            self._resources.clear()
            self._emit(ProgressEvent(RunStage.SUBMITTING, "Initializing video generation..."))
            handle = await self._submitter.submit(request, cancel_event)

            self._emit(ProgressEvent(RunStage.POLLING, "Generating video... This can take a few minutes."))
            status = await self._poller.poll_until_done(
                handle,
                on_progress=self._on_poll_progress,
                cancel_event=cancel_event,
            )

            self._emit(ProgressEvent(RunStage.FETCHING, "Fetching video data..."))
            batch = await self._fetcher.fetch(status.artifacts, cancel_event)
            if cancel_event.is_set():
                raise GenerationCancelled("Generation cancelled after download")

            self._resources.replace(batch)
            installed = tuple(batch)
            batch = []
            self._emit(
                ProgressEvent(RunStage.COMPLETED, f"Generated {len(installed)} video(s)."),
                resources=[r.to_payload() for r in installed],
            )
            return RunResult(resources=installed)
        except GenerationCancelled:
            logger.info("[controller] Generation cancelled (session=%s)", self._session_id)
            self._emit(ProgressEvent(RunStage.CANCELLED, "Video generation cancelled."))
            return RunResult(cancelled=True)
        except Exception as exc:  # noqa: BLE001
            logger.error("[controller] Error generating video: %s", exc, exc_info=True)
            error = classify(exc, model=self._model)
            self.state.last_error = error
            self._emit(ProgressEvent(RunStage.FAILED, error.message), error=error.to_payload())
            return RunResult(error=error)
        finally:
            for resource in batch:
                if not resource.released:
                    resource.release()
            self.state.busy = False
            self._cancel_event = None

    def cancel(self) -> bool:
        """Stop waiting on the running job. The remote job itself keeps going."""
        if self._cancel_event is None or self._cancel_event.is_set():
            return False
        self._cancel_event.set()
        logger.info("[controller] Cancellation requested (session=%s)", self._session_id)
        return True

    def clear(self) -> int:
        """Release the current batch and reset settings/progress. A running job keeps its busy flag."""
        released = self._resources.clear()
        busy = self.state.busy
        runs = self.state.runs_started
        self.state = SessionState(busy=busy, runs_started=runs)
        self._emit(ProgressEvent(RunStage.CLEARED, "Results cleared."))
        return released

    def close(self) -> int:
        """Tear down the session: stop waiting on any run, release the batch and drop its progress history."""
        self._closed = True
        self.cancel()
        released = self._resources.clear()
        if self._hub is not None and self._session_id is not None:
            self._hub.forget(self._session_id)
        logger.info("[controller] Closed session=%s released=%d", self._session_id, released)
        return released

    def _on_poll_progress(self, attempt: int, max_attempts: int) -> None:
        self._emit(
            ProgressEvent(
                RunStage.POLLING,
                f"Polling for status ({attempt}/{max_attempts})... Please wait.",
                attempt=attempt,
                max_attempts=max_attempts,
            )
        )

    def _emit(self, event: ProgressEvent, **extra: Any) -> None:
        self.state.stage = event.stage
        self.state.progress = event
        payload = event.to_payload()
        payload.update(extra)
        if self._on_event is not None:
            self._on_event(event, payload)
        if self._hub is not None and self._session_id is not None and not self._closed:
            self._hub.publish_nowait(self._session_id, payload)
