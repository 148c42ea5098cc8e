from .errors import (
    ClassifiedError,
    ErrorKind,
    GenerationCancelled,
    RawError,
    ResourceReleasedError,
)
from .generation import (
    DEFAULT_MODEL,
    MAX_VIDEO_COUNT,
    MIN_VIDEO_COUNT,
    AspectRatio,
    GenerationRequest,
    GenerationSettings,
    ReferenceImage,
)
from .operation import ArtifactRef, OperationHandle, OperationStatus
from .resource import GeneratedResource
from .session import ProgressEvent, RunResult, RunStage, SessionState, StudioSession

__all__ = [
    "AspectRatio",
    "ArtifactRef",
    "ClassifiedError",
    "DEFAULT_MODEL",
    "ErrorKind",
    "GeneratedResource",
    "GenerationCancelled",
    "GenerationRequest",
    "GenerationSettings",
    "MAX_VIDEO_COUNT",
    "MIN_VIDEO_COUNT",
    "OperationHandle",
    "OperationStatus",
    "ProgressEvent",
    "RawError",
    "ReferenceImage",
    "ResourceReleasedError",
    "RunResult",
    "RunStage",
    "SessionState",
    "StudioSession",
]
