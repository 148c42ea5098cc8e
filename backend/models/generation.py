from dataclasses import dataclass, field
from enum import Enum

MIN_VIDEO_COUNT = 1
MAX_VIDEO_COUNT = 4
DEFAULT_MODEL = "veo-2.0-generate-001"


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    SQUARE = "1:1"
    CLASSIC = "4:3"
    CLASSIC_PORTRAIT = "3:4"


@dataclass(frozen=True)
class ReferenceImage:
    data: bytes                # raw image bytes (already decoded from base64)
    mime_type: str             # e.g. "image/png"


@dataclass
class GenerationSettings:
    video_count: int = MIN_VIDEO_COUNT
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    video_count: int
    aspect_ratio: AspectRatio
    model: str = DEFAULT_MODEL
    reference_image: ReferenceImage | None = field(default=None, repr=False)
