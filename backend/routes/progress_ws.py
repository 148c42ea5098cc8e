from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket

from services.progress_hub import progress_hub
from services.store import sessions

router = APIRouter(tags=["progress"])
logger = logging.getLogger(__name__)

UNKNOWN_SESSION_CLOSE_CODE = 4404


async def _forward(websocket: WebSocket, session_id: str) -> None:
    q = await progress_hub.subscribe(session_id)
    try:
        while True:
            payload = await q.get()
            await websocket.send_json(payload)
            logger.debug("[progress_ws] session=%s <- %s", session_id, payload.get("stage"))
    finally:
        await progress_hub.unsubscribe(session_id, q)


async def _until_disconnect(websocket: WebSocket) -> None:
    # The stream is one-way; inbound frames are ignored.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/sessions/{session_id}/progress")
async def ws_session_progress(websocket: WebSocket, session_id: str) -> None:
    """
    Push every progress event of a session as JSON, starting with the most
    recent ones so a client that connects mid-run can render the current stage.

    Events carry `stage` and `message`; polling events add `attempt` and
    `max_attempts`, `completed` adds `resources`, `failed` adds `error`.
    """
    if session_id not in sessions:
        logger.warning("[progress_ws] Rejecting unknown session_id=%r", session_id)
        await websocket.close(code=UNKNOWN_SESSION_CLOSE_CODE)
        return

    await websocket.accept()
    logger.info("[progress_ws] Streaming session_id=%r", session_id)
    pump = asyncio.create_task(_forward(websocket, session_id))
    try:
        await _until_disconnect(websocket)
    finally:
        pump.cancel()
        outcome = (await asyncio.gather(pump, return_exceptions=True))[0]
        if isinstance(outcome, Exception):
            logger.warning("[progress_ws] Send failed session_id=%r: %s", session_id, outcome)
        logger.info("[progress_ws] Client left session_id=%r", session_id)
