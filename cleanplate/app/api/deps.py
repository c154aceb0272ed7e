from fastapi import Request

from cleanplate.app.core.config import get_settings
from cleanplate.app.services.url_parsing.html_fetcher import HtmlFetcher


def get_fetcher(request: Request) -> HtmlFetcher:
    """The process-wide fetcher, so every request shares one scraper session."""
    fetcher = getattr(request.app.state, "fetcher", None)
    if fetcher is None:
        fetcher = HtmlFetcher(settings=get_settings())
        request.app.state.fetcher = fetcher
    return fetcher
