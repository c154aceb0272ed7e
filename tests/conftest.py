import httpx
import pytest
from fastapi.testclient import TestClient

from cleanplate.app.api.deps import get_fetcher
from cleanplate.app.core.config import Settings, get_settings
from cleanplate.app.main import create_app
from cleanplate.app.services.url_parsing import html_fetcher
from cleanplate.app.services.url_parsing.html_fetcher import HtmlFetcher, ScraperSession

PUBLIC_IP = "93.184.216.34"


class FakeClock:
    """Monotonic clock whose sleep just advances time."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def no_dns(monkeypatch):
    """Host names resolve to a public address unless a test says otherwise."""
    monkeypatch.setattr(html_fetcher, "resolve_host", lambda host: [PUBLIC_IP])


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        scraper_timeout=5.0,
        scraper_max_redirects=3,
        scraper_min_delay=2.0,
        scraper_user_agents=["TestAgent/1.0"],
        batch_pause_seconds=5.0,
        filter_strictness="balanced",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(clock):
    return ScraperSession(["TestAgent/1.0"], clock=clock, sleep=clock.sleep)


@pytest.fixture
def make_fetcher(settings, session):
    """Build an HtmlFetcher whose requests are answered by ``handler``."""

    def _make(handler) -> HtmlFetcher:
        return HtmlFetcher(session=session, settings=settings, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def app(settings):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def override_fetcher(app):
    def _override(fetcher: HtmlFetcher) -> None:
        app.dependency_overrides[get_fetcher] = lambda: fetcher

    return _override
