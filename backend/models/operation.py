from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import RawError

DEFAULT_VIDEO_MIME_TYPE = "video/mp4"


@dataclass(frozen=True)
class OperationHandle:
    operation: Any             # opaque, owned by the remote service
    name: str | None = None    # for logs only


@dataclass(frozen=True)
class ArtifactRef:
    uri: str                   # needs the access credential appended to fetch
    index: int                 # position in the service's result set
    mime_type: str = DEFAULT_VIDEO_MIME_TYPE


@dataclass(frozen=True)
class OperationStatus:
    done: bool
    handle: OperationHandle
    artifacts: tuple[ArtifactRef, ...] = ()
    failure: RawError | None = None
