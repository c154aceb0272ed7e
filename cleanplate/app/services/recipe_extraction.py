"""Recipe extraction pipeline: fetch, two-phase parse, score."""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, MutableMapping, Optional, Sequence

from cleanplate.app.core.config import Settings, get_settings
from cleanplate.app.services.url_parsing.confidence import (
    format_confidence_log_line,
    score_confidence,
)
from cleanplate.app.services.url_parsing.errors import (
    ExtractionError,
    ForbiddenHost,
    InvalidUrl,
    NoRecipeFound,
)
from cleanplate.app.services.url_parsing.extractors import (
    extract_recipe_from_schema_org,
    extract_recipe_heuristic,
)
from cleanplate.app.services.url_parsing.html_fetcher import HtmlFetcher, validate_url
from cleanplate.app.services.url_parsing.models import BatchItemResult, ExtractionEnvelope
from cleanplate.app.services.url_parsing.noise_filter import NoiseFilter
from cleanplate.app.services.url_parsing.parsing_utils import extract_domain

logger = logging.getLogger(__name__)
confidence_logger = logging.getLogger("cleanplate.app.services.url_parsing.confidence")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_recipe_html(
    html: str,
    url: str,
    debug_logging: bool = False,
    settings: Optional[Settings] = None,
) -> ExtractionEnvelope:
    """Run both extraction phases over fetched HTML and score the result.

    The heuristic phase runs only when the structured-data phase finds
    nothing. Raises NoRecipeFound when neither phase produces a recipe.
    """
    settings = settings or get_settings()
    noise_filter = NoiseFilter.from_settings(settings, debug=debug_logging)

    phase = 1
    recipe = extract_recipe_from_schema_org(html, url, noise_filter=noise_filter, settings=settings)
    if recipe is None:
        logger.info("No structured recipe data for %s, trying heuristic parse", url)
        phase = 2
        recipe = extract_recipe_heuristic(html, url, noise_filter=noise_filter, settings=settings)
    if recipe is None:
        raise NoRecipeFound("No recipe found on this page.")

    result = score_confidence(recipe, phase)
    now = _utc_now()
    if debug_logging:
        confidence_logger.info(
            format_confidence_log_line(extract_domain(url), phase, result, timestamp=now)
        )
    logger.info(
        "Extracted recipe from %s (phase %d, confidence %d %s)",
        url,
        phase,
        result.score,
        result.level,
    )
    return ExtractionEnvelope(
        phase=phase,
        confidence=result.score,
        confidence_level=result.level,
        confidence_details=result.factors,
        data=recipe,
        timestamp=now.isoformat(),
    )


def extract_recipe(
    url: str,
    debug_logging: bool = False,
    fetcher: Optional[HtmlFetcher] = None,
    settings: Optional[Settings] = None,
) -> ExtractionEnvelope:
    """Validate, fetch and parse one URL.

    Raises an ExtractionError subclass for every terminal failure.
    """
    settings = settings or get_settings()
    url = validate_url(url, settings=settings)
    fetcher = fetcher or HtmlFetcher(settings=settings)
    html = fetcher.fetch(url)
    return parse_recipe_html(html, url, debug_logging=debug_logging, settings=settings)


def extract_recipes_batch(
    urls: Sequence[str],
    fetcher: Optional[HtmlFetcher] = None,
    cache: Optional[MutableMapping[str, ExtractionEnvelope]] = None,
    pause_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    debug_logging: bool = False,
    settings: Optional[Settings] = None,
) -> List[BatchItemResult]:
    """Extract a list of URLs one after another.

    Cached URLs return immediately. After every fresh attempt except the
    last one the loop pauses, so consecutive scrapes are spaced out.
    Failures are recorded per item and never stop the batch.
    """
    settings = settings or get_settings()
    fetcher = fetcher or HtmlFetcher(settings=settings)
    pause = settings.batch_pause_seconds if pause_seconds is None else pause_seconds
    results: List[BatchItemResult] = []

    for idx, url in enumerate(urls):
        is_last = idx == len(urls) - 1
        if cache is not None and url in cache:
            logger.info("Batch %d/%d: %s served from cache", idx + 1, len(urls), url)
            results.append(BatchItemResult(url=url, ok=True, cached=True, envelope=cache[url]))
            continue

        fresh = True
        try:
            envelope = extract_recipe(
                url, debug_logging=debug_logging, fetcher=fetcher, settings=settings
            )
        except (InvalidUrl, ForbiddenHost) as exc:
            # Refused by URL validation before any request, so no pause is owed.
            fresh = False
            results.append(
                BatchItemResult(url=url, ok=False, error_code=exc.error_code, error_message=str(exc))
            )
        except ExtractionError as exc:
            logger.warning("Batch %d/%d: %s failed: %s", idx + 1, len(urls), url, exc)
            results.append(
                BatchItemResult(url=url, ok=False, error_code=exc.error_code, error_message=str(exc))
            )
        else:
            if cache is not None:
                cache[url] = envelope
            results.append(BatchItemResult(url=url, ok=True, envelope=envelope))

        if fresh and not is_last and pause > 0:
            sleep(pause)

    return results
