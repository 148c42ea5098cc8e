from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    DOWNLOAD = "download"
    UNKNOWN = "unknown"


@dataclass(eq=False)
class RawError(Exception):
    """
    Structured diagnostic raised by any stage of a generation run.

    `kind` is a hint set only by stages that already know what went wrong
    (validation, poll timeout, download); everything else is left to the
    classifier.
    """

    message: str
    stage: str = "unknown"
    code: int | None = None
    status: str | None = None
    details: Any = None
    kind: ErrorKind | None = None
    model: str | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def text(self) -> str:
        """Message plus code/status, the haystack used for marker matching."""
        parts = [self.message]
        if self.code is not None:
            parts.append(str(self.code))
        if self.status:
            parts.append(self.status)
        return " ".join(parts)

    @classmethod
    def from_exception(cls, exc: BaseException, *, stage: str = "unknown") -> RawError:
        if isinstance(exc, RawError):
            return exc
        return cls(message=str(exc) or UNEXPECTED_ERROR_MESSAGE, stage=stage, details=repr(exc))


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str               # user-facing
    cause: RawError            # original diagnostic, for logs only

    def to_payload(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class GenerationCancelled(Exception):
    """Raised when the caller abandons the wait for a running job."""


class ResourceReleasedError(RuntimeError):
    """Raised on access to (or a second release of) a released resource."""
