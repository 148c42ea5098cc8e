"""Input validation and construction of immutable generation requests."""

from __future__ import annotations

from models import (
    DEFAULT_MODEL,
    MAX_VIDEO_COUNT,
    MIN_VIDEO_COUNT,
    AspectRatio,
    ErrorKind,
    GenerationRequest,
    GenerationSettings,
    RawError,
    ReferenceImage,
)

MISSING_INPUT_MESSAGE = "Please enter a prompt or upload an image to generate a video."


def clamp_video_count(value: object) -> int:
    """Clamp any int-like input into [MIN_VIDEO_COUNT, MAX_VIDEO_COUNT]; junk and NaN become the minimum."""
    try:
        count = int(value)  # type: ignore[call-overload]
    except OverflowError:
        # +-inf: pin to the bound on its side.
        return MAX_VIDEO_COUNT if value > 0 else MIN_VIDEO_COUNT  # type: ignore[operator]
    except (TypeError, ValueError):
        return MIN_VIDEO_COUNT
    return max(MIN_VIDEO_COUNT, min(MAX_VIDEO_COUNT, count))


def parse_aspect_ratio(value: AspectRatio | str) -> AspectRatio:
    try:
        return AspectRatio(value)
    except ValueError:
        allowed = ", ".join(r.value for r in AspectRatio)
        raise RawError(
            message=f"Unsupported aspect ratio {value!r}; expected one of {allowed}.",
            stage="validation",
            kind=ErrorKind.VALIDATION,
        ) from None


def build_request(
    prompt: str | None,
    image: ReferenceImage | None = None,
    settings: GenerationSettings | None = None,
    *,
    model: str = DEFAULT_MODEL,
) -> GenerationRequest:
    """
    Validate raw user input and return an immutable GenerationRequest.

    Raises RawError(kind=VALIDATION) when there is neither a prompt nor a
    reference image, or when the aspect ratio is not one of the supported
    values. Never touches the network.
    """
    settings = settings or GenerationSettings()
    text = prompt or ""
    if not text and image is None:
        raise RawError(message=MISSING_INPUT_MESSAGE, stage="validation", kind=ErrorKind.VALIDATION)

    return GenerationRequest(
        prompt=text,
        video_count=clamp_video_count(settings.video_count),
        aspect_ratio=parse_aspect_ratio(settings.aspect_ratio),
        model=model,
        reference_image=image,
    )
