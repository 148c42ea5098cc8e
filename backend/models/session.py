from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import ClassifiedError
from .generation import GenerationSettings
from .resource import GeneratedResource


class RunStage(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    SUBMITTING = "submitting"
    POLLING = "polling"
    FETCHING = "fetching"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    CLEARED = "cleared"


@dataclass(frozen=True)
class ProgressEvent:
    stage: RunStage
    message: str = ""
    attempt: int | None = None
    max_attempts: int | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"stage": self.stage.value, "message": self.message}
        if self.attempt is not None:
            payload["attempt"] = self.attempt
            payload["max_attempts"] = self.max_attempts
        return payload


@dataclass
class SessionState:
    """Orchestration state owned by one controller; no presentation concerns."""

    busy: bool = False
    stage: RunStage = RunStage.IDLE
    progress: ProgressEvent | None = None
    last_error: ClassifiedError | None = None
    settings: GenerationSettings = field(default_factory=GenerationSettings)
    runs_started: int = 0

    def reset_progress(self) -> None:
        self.progress = None
        self.last_error = None
        self.stage = RunStage.IDLE


@dataclass
class StudioSession:
    id: str
    controller: Any                        # services.controller.GenerationController
    task: Any = None                       # asyncio.Task of the running generation, if any
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class RunResult:
    """Outcome of one controller run: a full batch, a single error, or a cancellation."""

    resources: tuple[GeneratedResource, ...] = ()
    error: ClassifiedError | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled
