"""URL recipe parsing package.

This package extracts recipes from web pages in two phases: schema.org
JSON-LD first, heuristic HTML parsing second. Extracted lists go through a
noise filter and every result is given a confidence score.
"""

from cleanplate.app.services.url_parsing.confidence import (
    format_confidence_log_line,
    score_confidence,
)
from cleanplate.app.services.url_parsing.errors import (
    AccessDenied,
    BotChallengeDetected,
    ExtractionError,
    ForbiddenHost,
    HttpError,
    InvalidUrl,
    JavaScriptRequired,
    NetworkError,
    NoRecipeFound,
    SslVerificationFailed,
)
from cleanplate.app.services.url_parsing.html_fetcher import (
    HtmlFetcher,
    ScraperSession,
    is_private_host,
    validate_url,
)
from cleanplate.app.services.url_parsing.images import rank_image_candidates, rank_page_images
from cleanplate.app.services.url_parsing.ingredient_parser import (
    extract_ingredients,
    format_ingredient_line,
)
from cleanplate.app.services.url_parsing.models import (
    BatchItemResult,
    ConfidenceResult,
    ExtractionEnvelope,
    ImageCandidate,
    NormalizedRecipe,
    RecipeSource,
)
from cleanplate.app.services.url_parsing.noise_filter import NoiseFilter, Strictness
from cleanplate.app.services.url_parsing.parsing_utils import (
    clean_text,
    coerce_taxonomy,
    decimal_to_fraction,
    extract_image,
    extract_instruction_text,
    format_duration,
    normalize_fraction_display,
)

__all__ = [
    # Models
    "BatchItemResult",
    "ConfidenceResult",
    "ExtractionEnvelope",
    "ImageCandidate",
    "NormalizedRecipe",
    "RecipeSource",
    # Errors
    "AccessDenied",
    "BotChallengeDetected",
    "ExtractionError",
    "ForbiddenHost",
    "HttpError",
    "InvalidUrl",
    "JavaScriptRequired",
    "NetworkError",
    "NoRecipeFound",
    "SslVerificationFailed",
    # HTML fetching
    "HtmlFetcher",
    "ScraperSession",
    "is_private_host",
    "validate_url",
    # Filtering, images and scoring
    "NoiseFilter",
    "Strictness",
    "rank_image_candidates",
    "rank_page_images",
    "format_confidence_log_line",
    "score_confidence",
    # Ingredient parsing
    "extract_ingredients",
    "format_ingredient_line",
    # Parsing utilities
    "clean_text",
    "coerce_taxonomy",
    "decimal_to_fraction",
    "extract_image",
    "extract_instruction_text",
    "format_duration",
    "normalize_fraction_display",
]
