import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette import status

from cleanplate.app.api.errors import error_response
from cleanplate.app.api.routes import api_router
from cleanplate.app.core.config import get_settings
from cleanplate.app.services.url_parsing.html_fetcher import HtmlFetcher, ScraperSession

logger = logging.getLogger(__name__)


async def validation_exception_handler(request, exc: RequestValidationError):
    missing_url = any(
        err.get("type") == "missing" and "url" in err.get("loc", ()) for err in exc.errors()
    )
    if missing_url:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "MISSING_URL",
            "Please provide a recipe URL.",
            ["Paste the full address of the recipe page"],
        )
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "INVALID_JSON",
        "The request could not be understood.",
        ['Send a JSON body like {"url": "https://example.com/recipe"}'],
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="CleanPlate", version="0.1.0")
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(api_router)
    app.state.fetcher = HtmlFetcher(
        session=ScraperSession(settings.scraper_user_agents), settings=settings
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
