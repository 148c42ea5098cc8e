from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from models import ErrorKind, OperationHandle, OperationStatus, RawError
from services.cancellation import Sleep, sleep_unless_cancelled
from services.config import DEFAULT_MAX_POLLS, DEFAULT_POLL_INTERVAL_SECONDS
from services.veo_client import RemoteService

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Video generation timed out. Please try again."
NO_RESULT_MESSAGE = "Video generation failed to produce a result. Please check your prompt and settings."

ProgressCallback = Callable[[int, int], None]


class OperationPoller:
    """
    Polls a long-running operation until it is done or `max_attempts` polls
    have been spent, bounding the wait to `interval * max_attempts`.
    """

    def __init__(
        self,
        service: RemoteService,
        *,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_POLLS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._service = service
        self._interval = interval
        self._max_attempts = max_attempts
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def poll_until_done(
        self,
        handle: OperationHandle,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> OperationStatus:
        """
        Return the terminal status of a successful job with at least one artifact.

        Raises RawError(kind=TIMEOUT) when the job is still running after the
        last attempt, the job's own failure when it reports one, and a plain
        RawError (classified as unknown) when it finished without artifacts.
        """
        # The submit response may already be terminal; nothing to poll then.
        status = self._service.status(handle)

        attempt = 0
        while not status.done and attempt < self._max_attempts:
            await sleep_unless_cancelled(self._interval, cancel_event, sleep=self._sleep)
            status = await self._service.poll(status.handle)
            attempt += 1
            logger.info(
                "[poller] Poll %d/%d name=%s done=%s",
                attempt,
                self._max_attempts,
                status.handle.name,
                status.done,
            )
            if on_progress is not None:
                on_progress(attempt, self._max_attempts)

        if not status.done:
            logger.warning("[poller] Gave up after %d polls (%.0fs)", attempt, attempt * self._interval)
            raise RawError(message=TIMEOUT_MESSAGE, stage="poll", kind=ErrorKind.TIMEOUT)

        if status.failure is not None:
            raise status.failure

        if not status.artifacts:
            raise RawError(message=NO_RESULT_MESSAGE, stage="poll")

        return status
