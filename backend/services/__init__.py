from .controller import GenerationController
from .error_classifier import classify
from .request_builder import build_request, clamp_video_count
from .store import create_controller, sessions

__all__ = ["GenerationController", "build_request", "clamp_video_count", "classify", "create_controller", "sessions"]
