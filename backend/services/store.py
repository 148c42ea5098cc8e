"""In-memory session store. Keyed by session ID; artifacts never outlive the process."""

from models.session import StudioSession
from services import config
from services.controller import GenerationController
from services.fetcher import ResultFetcher
from services.poller import OperationPoller
from services.progress_hub import ProgressHub, progress_hub
from services.resources import ResourceLifecycleManager
from services.submitter import OperationSubmitter
from services.veo_client import GeminiVeoService, RemoteService

sessions: dict[str, StudioSession] = {}


def create_controller(
    session_id: str,
    *,
    service: RemoteService | None = None,
    hub: ProgressHub | None = None,
) -> GenerationController:
    """Wire a controller for one session from environment configuration."""
    api_key = config.get_api_key()
    if service is None:
        service = GeminiVeoService(api_key=api_key, download_timeout=config.get_download_timeout())
    return GenerationController(
        submitter=OperationSubmitter(service),
        poller=OperationPoller(
            service,
            interval=config.get_poll_interval(),
            max_attempts=config.get_max_polls(),
        ),
        fetcher=ResultFetcher(service, api_key, parallel=config.parallel_downloads_enabled()),
        resources=ResourceLifecycleManager(),
        model=config.get_model(),
        hub=hub or progress_hub,
        session_id=session_id,
    )
