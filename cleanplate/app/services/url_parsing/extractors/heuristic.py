"""Heuristic HTML parsing for recipe extraction."""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from cleanplate.app.core.config import Settings, get_settings
from cleanplate.app.services.url_parsing.constants import KEYWORD_LIMIT
from cleanplate.app.services.url_parsing.images import image_metadata
from cleanplate.app.services.url_parsing.ingredient_parser import format_ingredient_line
from cleanplate.app.services.url_parsing.metadata import (
    find_dom_difficulty,
    find_dom_video,
    find_meta_dates,
    meta_content,
    normalize_dietary_info,
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
    set_if_present,
)

logger = logging.getLogger(__name__)

INGREDIENT_CONTAINER_RE = re.compile(r"ingredient", re.I)
INSTRUCTION_CONTAINER_RE = re.compile(r"instruction|direction|method", re.I)

_TITLE_HINTS = (re.compile(r"recipe", re.I), re.compile(r"title", re.I))


def _hint_matches(tag: Tag, pattern: re.Pattern) -> bool:
    classes = " ".join(tag.get("class") or [])
    return bool(pattern.search(classes) or pattern.search(tag.get("id") or ""))


def find_title(soup: BeautifulSoup) -> Optional[str]:
    """First <h1> with a recipe hint, then a title hint, then any <h1>."""
    headings = soup.find_all("h1")
    for hint in _TITLE_HINTS:
        for h1 in headings:
            if _hint_matches(h1, hint):
                text = clean_text(h1.get_text(" ", strip=True))
                if text:
                    return text
    for h1 in headings:
        text = clean_text(h1.get_text(" ", strip=True))
        if text:
            return text
    return None


def _is_ingredient_item(tag: Tag) -> bool:
    return tag.name in ("li", "p") or (tag.name == "span" and tag.has_attr("class"))


def _is_instruction_item(tag: Tag) -> bool:
    return tag.name in ("li", "p")


def _collect_from_containers(
    soup: BeautifulSoup,
    container_pattern: re.Pattern,
    is_item,
    min_length: int,
    max_length: int,
) -> List[str]:
    """Item text from the first matching container that yields anything.

    Items nested inside an already collected item are skipped so a
    ``<span class=amount>`` inside an ``<li>`` does not repeat the line.
    """
    containers = soup.find_all(lambda tag: _hint_matches(tag, container_pattern))
    for container in containers:
        items: List[str] = []
        collected_ids = set()
        for node in container.find_all(is_item):
            if any(id(parent) in collected_ids for parent in node.parents):
                continue
            text = clean_text(node.get_text(" ", strip=True))
            if min_length < len(text) < max_length:
                items.append(text)
                collected_ids.add(id(node))
        if items:
            logger.debug(
                "Found %d items in container <%s class=%s id=%s>",
                len(items),
                container.name,
                container.get("class"),
                container.get("id"),
            )
            return items
    return []


def _dedupe(items: Sequence[str]) -> List[str]:
    seen = set()
    result: List[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def find_ingredients(soup: BeautifulSoup) -> List[str]:
    raw = _collect_from_containers(soup, INGREDIENT_CONTAINER_RE, _is_ingredient_item, 2, 500)
    return _dedupe(line for line in (format_ingredient_line(r) for r in raw) if line)


def find_instructions(soup: BeautifulSoup) -> List[str]:
    raw = _collect_from_containers(soup, INSTRUCTION_CONTAINER_RE, _is_instruction_item, 5, 1000)
    return _dedupe(raw)


def _page_metadata(soup: BeautifulSoup, url: str, settings: Settings) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {}
    metadata.update(image_metadata(soup, url, settings=settings))
    set_if_present(metadata, "description", meta_content(soup, "description", "og:description"))
    keywords = coerce_taxonomy(meta_content(soup, "keywords"), KEYWORD_LIMIT)
    set_if_present(metadata, "keywords", keywords)
    set_if_present(metadata, "dietaryInfo", normalize_dietary_info(None, keywords))
    metadata.update(find_meta_dates(soup))
    set_if_present(metadata, "difficulty", find_dom_difficulty(soup))
    set_if_present(metadata, "video", find_dom_video(soup, url))
    return metadata


def extract_recipe_heuristic(
    html: str,
    url: str,
    noise_filter: Optional[NoiseFilter] = None,
    settings: Optional[Settings] = None,
) -> Optional[NormalizedRecipe]:
    """Heuristic HTML parsing to extract recipe when schema.org is not available.

    Returns None when neither ingredients nor instructions survive filtering.
    """
    settings = settings or get_settings()
    noise_filter = noise_filter or NoiseFilter.from_settings(settings)
    soup = BeautifulSoup(html, "lxml")

    raw_ingredients = find_ingredients(soup)
    raw_instructions = find_instructions(soup)
    ingredients, instructions, ingredient_ratio, instruction_ratio = noise_filter.filter_recipe(
        raw_ingredients, raw_instructions
    )
    logger.info(
        "Heuristic parse: ingredients=%d/%d, instructions=%d/%d",
        len(ingredients),
        len(raw_ingredients),
        len(instructions),
        len(raw_instructions),
    )
    if not ingredients and not instructions:
        return None

    site_name = extract_domain(url)
    return NormalizedRecipe(
        title=find_title(soup) or PLACEHOLDER_TITLE,
        source=RecipeSource(url=url, site_name=site_name, author=resolve_author(soup, None, site_name)),
        ingredients=ingredients,
        instructions=instructions,
        metadata=_page_metadata(soup, url, settings),
        ingredient_quality_ratio=ingredient_ratio,
        instruction_quality_ratio=instruction_ratio,
    )
