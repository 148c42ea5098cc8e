from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from .errors import ResourceReleasedError
from .operation import DEFAULT_VIDEO_MIME_TYPE


def _new_resource_id() -> str:
    return f"blob:{uuid.uuid4().hex}"


@dataclass(eq=False)
class GeneratedResource:
    """
    Locally materialized artifact bytes, addressable by `resource_id`.

    Owned by one session until superseded or cleared; `release()` drops the
    bytes and must happen exactly once.
    """

    index: int
    _data: bytes | None = field(repr=False)
    mime_type: str = DEFAULT_VIDEO_MIME_TYPE
    resource_id: str = field(default_factory=_new_resource_id)
    size: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.size = len(self._data or b"")

    @classmethod
    def from_bytes(cls, index: int, data: bytes, mime_type: str = DEFAULT_VIDEO_MIME_TYPE) -> GeneratedResource:
        return cls(index=index, _data=bytes(data), mime_type=mime_type)

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def data(self) -> bytes:
        if self._data is None:
            raise ResourceReleasedError(f"Resource {self.resource_id} has been released")
        return self._data

    @property
    def download_name(self) -> str:
        return f"veo-studio-{self.index + 1}.mp4"

    def release(self) -> None:
        if self._data is None:
            raise ResourceReleasedError(f"Resource {self.resource_id} already released")
        self._data = None

    def to_payload(self) -> dict[str, object]:
        return {
            "resource_id": self.resource_id,
            "index": self.index,
            "mime_type": self.mime_type,
            "size": self.size,
            "download_name": self.download_name,
        }
