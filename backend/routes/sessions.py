"""Session REST API: start generations, poll their state, fetch and clear the resulting videos."""

import asyncio
import base64
import binascii
import logging
import secrets

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from models import GenerationSettings, RawError, ReferenceImage
from models.generation import DEFAULT_MODEL
from models.session import StudioSession
from services.error_classifier import classify
from services.request_builder import build_request, clamp_video_count
from services.store import create_controller, sessions

# Avoid 0/O, 1/I/l in session IDs so links don't get misread (e.g. 0 vs O).
_SESSION_ALPHABET = "23456789abcdefghjkmnpqrstuvwxyz"
_SESSION_ID_LENGTH = 12

router = APIRouter(tags=["sessions"])
logger = logging.getLogger(__name__)
_running_tasks: set[asyncio.Task] = set()


class ImagePayload(BaseModel):
    data: str = Field(..., description="Base64-encoded image bytes (no data: prefix)")
    mime_type: str = Field(..., pattern=r"^image/[\w.+-]+$")


class SettingsPayload(BaseModel):
    video_count: int = 1
    aspect_ratio: str = "16:9"


class GenerationCreateRequest(BaseModel):
    prompt: str = ""
    image: ImagePayload | None = None
    settings: SettingsPayload | None = None


class SessionCreateResponse(BaseModel):
    session_id: str


class GenerationCreateResponse(BaseModel):
    session_id: str
    status: str
    model: str = DEFAULT_MODEL


class ResourceResponse(BaseModel):
    resource_id: str
    index: int
    mime_type: str
    size: int
    download_name: str
    url: str


class ErrorResponse(BaseModel):
    kind: str
    message: str


class SessionReadResponse(BaseModel):
    """Session state for polling. GET /api/sessions/{id}."""

    session_id: str
    busy: bool
    stage: str
    message: str = ""
    attempt: int | None = None
    max_attempts: int | None = None
    video_count: int
    aspect_ratio: str
    runs_started: int = 0
    resources: list[ResourceResponse] = Field(default_factory=list)
    error: ErrorResponse | None = None


def _generate_session_id() -> str:
    """Session ID safe for URLs: no 0/O, 1/I/l to avoid misread."""
    return "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(_SESSION_ID_LENGTH))


def _get_session(session_id: str) -> StudioSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _decode_image(payload: ImagePayload | None) -> ReferenceImage | None:
    if payload is None:
        return None
    try:
        data = base64.b64decode(payload.data, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="image.data is not valid base64") from None
    if not data:
        raise HTTPException(status_code=422, detail="image.data is empty")
    return ReferenceImage(data=data, mime_type=payload.mime_type)


@router.post("/sessions", response_model=SessionCreateResponse, status_code=201)
def create_session() -> SessionCreateResponse:
    session_id = _generate_session_id()
    sessions[session_id] = StudioSession(id=session_id, controller=create_controller(session_id))
    logger.info("[sessions] Session created: session_id=%s", session_id)
    return SessionCreateResponse(session_id=session_id)


@router.get("/sessions/{session_id}", response_model=SessionReadResponse)
def get_session(session_id: str) -> SessionReadResponse:
    controller = _get_session(session_id).controller
    state = controller.state
    progress = state.progress
    return SessionReadResponse(
        session_id=session_id,
        busy=state.busy,
        stage=state.stage.value,
        message=progress.message if progress else "",
        attempt=progress.attempt if progress else None,
        max_attempts=progress.max_attempts if progress else None,
        video_count=state.settings.video_count,
        aspect_ratio=state.settings.aspect_ratio.value,
        runs_started=state.runs_started,
        resources=[
            ResourceResponse(
                **r.to_payload(),
                url=f"/api/sessions/{session_id}/resources/{r.resource_id}",
            )
            for r in controller.resources.current()
        ],
        error=ErrorResponse(**state.last_error.to_payload()) if state.last_error else None,
    )


@router.post("/sessions/{session_id}/generations", response_model=GenerationCreateResponse, status_code=202)
async def create_generation(session_id: str, body: GenerationCreateRequest) -> GenerationCreateResponse:
    """Validate and start a generation in the background; progress is read via GET or the WebSocket."""
    session = _get_session(session_id)
    controller = session.controller
    if controller.busy or (session.task is not None and not session.task.done()):
        raise HTTPException(status_code=409, detail="A video generation is already running for this session")

    image = _decode_image(body.image)
    settings_in = body.settings or SettingsPayload()
    requested = GenerationSettings(
        video_count=clamp_video_count(settings_in.video_count),
        aspect_ratio=settings_in.aspect_ratio,  # type: ignore[arg-type]
    )
    try:
        request = build_request(body.prompt, image, requested, model=controller.model)
    except RawError as exc:
        error = classify(exc, model=controller.model)
        raise HTTPException(status_code=422, detail=error.to_payload()) from None
    settings = GenerationSettings(video_count=request.video_count, aspect_ratio=request.aspect_ratio)

    task = asyncio.create_task(controller.submit(body.prompt, image, settings))
    session.task = task
    _running_tasks.add(task)
    task.add_done_callback(_running_tasks.discard)
    logger.info("[sessions] Generation started: session_id=%s videos=%d", session_id, settings.video_count)
    return GenerationCreateResponse(session_id=session_id, status="started", model=controller.model)


@router.post("/sessions/{session_id}/cancel", status_code=202)
async def cancel_generation(session_id: str) -> dict[str, bool]:
    controller = _get_session(session_id).controller
    return {"cancelled": controller.cancel()}


@router.delete("/sessions/{session_id}/resources")
async def clear_resources(session_id: str) -> dict[str, int]:
    controller = _get_session(session_id).controller
    released = controller.clear()
    logger.info("[sessions] Cleared session_id=%s released=%d", session_id, released)
    return {"released": released}


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str) -> Response:
    """Drop the session, releasing its videos and progress history; a running job is abandoned."""
    session = _get_session(session_id)
    del sessions[session_id]
    released = session.controller.close()
    logger.info("[sessions] Session deleted: session_id=%s released=%d", session_id, released)
    return Response(status_code=204)


@router.get("/sessions/{session_id}/resources/{resource_id}")
def get_resource(session_id: str, resource_id: str) -> Response:
    controller = _get_session(session_id).controller
    found = controller.resources.read(resource_id)
    if found is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    resource, data = found
    return Response(
        content=data,
        media_type=resource.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{resource.download_name}"'},
    )
