from __future__ import annotations

import asyncio
import logging

from models import GenerationRequest, OperationHandle
from services.cancellation import raise_if_cancelled
from services.veo_client import RemoteService

logger = logging.getLogger(__name__)


class OperationSubmitter:
    """Creates the remote job. One attempt only; failures propagate unchanged."""

    def __init__(self, service: RemoteService) -> None:
        self._service = service

    async def submit(
        self,
        request: GenerationRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> OperationHandle:
        raise_if_cancelled(cancel_event)
        logger.info(
            "[submitter] Submitting model=%s videos=%d aspect_ratio=%s image=%s prompt=%.60s",
            request.model,
            request.video_count,
            request.aspect_ratio.value,
            request.reference_image is not None,
            request.prompt,
        )
        handle = await self._service.submit(request)
        logger.info("[submitter] Operation created name=%s", handle.name)
        return handle
