import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from cleanplate.app.api.deps import get_fetcher
from cleanplate.app.api.errors import extraction_error_response
from cleanplate.app.core.config import Settings, get_settings
from cleanplate.app.services import recipe_extraction
from cleanplate.app.services.url_parsing.errors import ExtractionError
from cleanplate.app.services.url_parsing.html_fetcher import HtmlFetcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["parse"])


class ParseRequest(BaseModel):
    url: str
    debug: Optional[bool] = None


@router.post("/parse")
def parse_recipe_url(
    payload: ParseRequest,
    fetcher: HtmlFetcher = Depends(get_fetcher),
    settings: Settings = Depends(get_settings),
):
    debug = settings.confidence_debug if payload.debug is None else payload.debug
    try:
        envelope = recipe_extraction.extract_recipe(
            payload.url, debug_logging=debug, fetcher=fetcher, settings=settings
        )
    except ExtractionError as exc:
        logger.warning("Extraction failed for %s: %s (%s)", payload.url, exc, exc.error_code)
        return extraction_error_response(exc)
    return envelope.to_json_dict()
