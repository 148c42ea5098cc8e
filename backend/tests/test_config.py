import pytest

from services import config

_ENV = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "API_KEY",
    "VEO_MODEL",
    "VEO_POLL_INTERVAL_SECONDS",
    "VEO_MAX_POLLS",
    "VEO_DOWNLOAD_TIMEOUT_SECONDS",
    "VEO_PARALLEL_DOWNLOADS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    assert config.get_api_key() == ""
    assert config.get_model() == "veo-2.0-generate-001"
    assert config.get_poll_interval() == 10.0
    assert config.get_max_polls() == 60
    assert config.get_download_timeout() == 120.0
    assert config.parallel_downloads_enabled() is False


def test_api_key_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_KEY", "third")
    assert config.get_api_key() == "third"
    monkeypatch.setenv("GOOGLE_API_KEY", "second")
    assert config.get_api_key() == "second"
    monkeypatch.setenv("GEMINI_API_KEY", "  first  ")
    assert config.get_api_key() == "first"


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VEO_MODEL", "veo-3.0-generate-preview")
    monkeypatch.setenv("VEO_POLL_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("VEO_MAX_POLLS", "5")
    monkeypatch.setenv("VEO_PARALLEL_DOWNLOADS", "yes")
    assert config.get_model() == "veo-3.0-generate-preview"
    assert config.get_poll_interval() == 2.5
    assert config.get_max_polls() == 5
    assert config.parallel_downloads_enabled() is True


@pytest.mark.parametrize("raw", ["abc", "0", "-3", "1.5"])
def test_invalid_max_polls_falls_back(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("VEO_MAX_POLLS", raw)
    assert config.get_max_polls() == 60
