"""Schema.org JSON-LD recipe extraction."""

import json
import logging
from typing import Any, Dict, Iterator, Optional

from bs4 import BeautifulSoup

from cleanplate.app.core.config import Settings, get_settings
from cleanplate.app.services.url_parsing.constants import (
    CATEGORY_LIMIT,
    CUISINE_LIMIT,
    KEYWORD_LIMIT,
)
from cleanplate.app.services.url_parsing.images import image_metadata
from cleanplate.app.services.url_parsing.ingredient_parser import extract_ingredients
from cleanplate.app.services.url_parsing.metadata import (
    find_dom_difficulty,
    normalize_date,
    normalize_dietary_info,
    normalize_difficulty,
    normalize_nutrition,
    normalize_rating,
    normalize_video,
    resolve_author,
)
from cleanplate.app.services.url_parsing.models import (
    PLACEHOLDER_TITLE,
    NormalizedRecipe,
    RecipeSource,
)
from cleanplate.app.services.url_parsing.noise_filter import NoiseFilter
from cleanplate.app.services.url_parsing.parsing_utils import (
    clean_text,
    coerce_taxonomy,
    extract_domain,
    extract_image,
    extract_instruction_text,
    format_duration,
    set_if_present,
)

logger = logging.getLogger(__name__)


def is_recipe_object(obj) -> bool:
    if not isinstance(obj, dict):
        return False
    obj_type = obj.get("@type")
    types = [obj_type] if isinstance(obj_type, str) else obj_type
    if not isinstance(types, list):
        return False
    return any(str(t).lower() == "recipe" for t in types)


def iter_json_ld_objects(soup: BeautifulSoup) -> Iterator[Dict[str, Any]]:
    """Yield every top-level object from the page's JSON-LD blocks, in document order.

    A ``@graph`` wrapper or a root-level array is unwrapped; malformed blocks
    are logged and skipped.
    """
    scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
    logger.debug("Found %d JSON-LD script blocks", len(scripts))
    for idx, script in enumerate(scripts):
        raw_json = script.string or script.get_text()
        if not raw_json or not raw_json.strip():
            logger.debug("JSON-LD block %d is empty", idx)
            continue
        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as exc:
            logger.warning(
                "JSON-LD block %d failed to parse: %s (first 200 chars: %s)",
                idx,
                exc,
                raw_json[:200],
            )
            continue

        if isinstance(data, dict) and isinstance(data.get("@graph"), list):
            candidates = data["@graph"]
        elif isinstance(data, list):
            candidates = data
        else:
            candidates = [data]
        for obj in candidates:
            if isinstance(obj, dict):
                yield obj


def _servings(value) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return clean_text(value) or None
    return None


def _duration(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return clean_text(format_duration(value)) or None


def normalize_recipe_object(
    obj: Dict[str, Any],
    soup: BeautifulSoup,
    url: str,
    noise_filter: NoiseFilter,
    settings: Settings,
) -> NormalizedRecipe:
    """Map one schema.org Recipe object onto the canonical recipe shape."""
    site_name = extract_domain(url)
    title = clean_text(obj.get("name") or "") or PLACEHOLDER_TITLE

    raw_ingredients = extract_ingredients(obj.get("recipeIngredient"))
    raw_instructions = extract_instruction_text(obj.get("recipeInstructions"))
    ingredients, instructions, ingredient_ratio, instruction_ratio = noise_filter.filter_recipe(
        raw_ingredients, raw_instructions
    )
    logger.info(
        "Schema.org recipe: title=%s, ingredients=%d/%d, instructions=%d/%d",
        title[:50],
        len(ingredients),
        len(raw_ingredients),
        len(instructions),
        len(raw_instructions),
    )

    metadata: Dict[str, Any] = {}
    set_if_present(metadata, "prepTime", _duration(obj.get("prepTime")))
    set_if_present(metadata, "cookTime", _duration(obj.get("cookTime")))
    set_if_present(metadata, "totalTime", _duration(obj.get("totalTime")))
    set_if_present(metadata, "servings", _servings(obj.get("recipeYield")))
    metadata.update(
        image_metadata(soup, url, primary_image=extract_image(obj.get("image")), settings=settings)
    )
    set_if_present(metadata, "description", clean_text(obj.get("description") or ""))

    keywords = coerce_taxonomy(obj.get("keywords"), KEYWORD_LIMIT)
    set_if_present(metadata, "category", coerce_taxonomy(obj.get("recipeCategory"), CATEGORY_LIMIT))
    set_if_present(metadata, "cuisine", coerce_taxonomy(obj.get("recipeCuisine"), CUISINE_LIMIT))
    set_if_present(metadata, "keywords", keywords)
    set_if_present(
        metadata, "dietaryInfo", normalize_dietary_info(obj.get("suitableForDiet"), keywords)
    )
    set_if_present(metadata, "rating", normalize_rating(obj.get("aggregateRating")))
    set_if_present(metadata, "nutrition", normalize_nutrition(obj.get("nutrition")))
    set_if_present(metadata, "datePublished", normalize_date(obj.get("datePublished")))
    set_if_present(metadata, "dateModified", normalize_date(obj.get("dateModified")))
    difficulty = normalize_difficulty(obj.get("difficulty") or obj.get("recipeDifficulty"))
    set_if_present(metadata, "difficulty", difficulty or find_dom_difficulty(soup))
    set_if_present(metadata, "video", normalize_video(obj.get("video"), url))

    return NormalizedRecipe(
        title=title,
        source=RecipeSource(
            url=url,
            site_name=site_name,
            author=resolve_author(soup, obj.get("author"), site_name),
        ),
        ingredients=ingredients,
        instructions=instructions,
        metadata=metadata,
        ingredient_quality_ratio=ingredient_ratio,
        instruction_quality_ratio=instruction_ratio,
    )


def extract_recipe_from_schema_org(
    html: str,
    url: str,
    noise_filter: Optional[NoiseFilter] = None,
    settings: Optional[Settings] = None,
) -> Optional[NormalizedRecipe]:
    """Extract recipe from schema.org JSON-LD data embedded in HTML.

    The first Recipe-typed object in document order wins, even when a later
    one carries more data. Returns None when the page has no Recipe object.
    """
    settings = settings or get_settings()
    noise_filter = noise_filter or NoiseFilter.from_settings(settings)
    soup = BeautifulSoup(html, "lxml")

    for obj_idx, obj in enumerate(iter_json_ld_objects(soup)):
        if not is_recipe_object(obj):
            logger.debug("JSON-LD object %d is not a Recipe (type: %s)", obj_idx, obj.get("@type"))
            continue
        return normalize_recipe_object(obj, soup, url, noise_filter, settings)

    logger.info("No schema.org Recipe found for %s", url)
    return None

