"""Ingredient extraction and display cleanup."""

import logging
import re
from typing import List

from cleanplate.app.services.url_parsing.constants import FRACTION_CHARS
from cleanplate.app.services.url_parsing.parsing_utils import (
    clean_text,
    format_quantities,
    normalize_fraction_display,
)

logger = logging.getLogger(__name__)

_LEADING_QUANTITY_RE = re.compile(rf"^([\d\s/.\-+{FRACTION_CHARS}]*[{FRACTION_CHARS}])(\s*)(.*)$")


def format_ingredient_line(line: str) -> str:
    """Clean one ingredient line and render its quantity in kitchen form.

    "0.5 cup milk" -> "1/2 cup milk", "1½ cups flour" -> "1 1/2 cups flour".
    """
    text = clean_text(line)
    if not text:
        return text
    m = _LEADING_QUANTITY_RE.match(text)
    if m:
        qty = normalize_fraction_display(m.group(1)) or m.group(1)
        rest = m.group(3)
        text = f"{qty} {rest}".strip() if rest else qty
    return format_quantities(text)


def extract_ingredients(ingredients) -> List[str]:
    """Extract ingredient lines from a list of strings/dicts, or a single string."""
    parsed: List[str] = []
    if isinstance(ingredients, str):
        ingredients = [ingredients]
    if not isinstance(ingredients, list):
        if ingredients is not None:
            logger.warning(
                "Ingredients input is not a list or string: %s", type(ingredients).__name__
            )
        return parsed

    for idx, raw in enumerate(ingredients):
        if isinstance(raw, dict):
            raw = raw.get("text") or raw.get("name")
        if not isinstance(raw, str):
            logger.debug("Ingredient %d: unexpected type %s", idx, type(raw).__name__)
            continue
        line = format_ingredient_line(raw)
        if line:
            parsed.append(line)
        else:
            logger.debug("Ingredient %d: string was empty after cleaning", idx)

    logger.debug("Extracted %d ingredients from input", len(parsed))
    return parsed
