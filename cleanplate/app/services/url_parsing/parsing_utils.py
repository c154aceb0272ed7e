"""General parsing utilities for recipe extraction."""

import html
import math
import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlparse, urlunparse

from cleanplate.app.services.url_parsing.constants import (
    DISPLAY_FRACTIONS,
    FRACTION_MAP,
    FRACTION_TOLERANCE,
    GENERIC_TAXONOMY_TERMS,
    TAXONOMY_MAX_LENGTH,
    TAXONOMY_MIN_LENGTH,
)

# Only markup that looks like a real tag; "< 160F" in prose is left alone.
_TAG_RE = re.compile(r"</?[A-Za-z][^<>]*>")


def clean_text(text) -> str:
    """Decode HTML entities, drop stray tags and normalize whitespace."""
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    stripped = _TAG_RE.sub(" ", text)
    decoded = html.unescape(stripped)
    return re.sub(r"\s+", " ", decoded).strip()


def extract_domain(url: str) -> str:
    return urlparse(url).hostname or "Unknown"


def strip_query(url: str) -> str:
    """Drop query string and fragment; used as the identity of an image URL."""
    parsed = urlparse(url)
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))


def resolve_url(value: Optional[str], base_url: str) -> Optional[str]:
    """Resolve protocol-relative, absolute-path and relative URLs against the page."""
    if not value:
        return None
    value = clean_text(value)
    if not value or value.startswith("data:"):
        return None
    resolved = urljoin(base_url, value)
    if urlparse(resolved).scheme not in {"http", "https"}:
        return None
    return resolved


def format_duration(duration):
    """Render an ISO-8601 duration (PT1H30M) as "1 hour 30 minutes".

    Values that are not ISO durations are returned unchanged.
    """
    if not isinstance(duration, str):
        return duration
    value = duration.strip()
    match = re.fullmatch(
        r"P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?", value, flags=re.I
    )
    if not match or not any(match.groups()):
        return duration
    days, hours, minutes, _seconds = match.groups()
    hours_total = int(hours or 0) + int(days or 0) * 24
    minutes_total = int(minutes or 0)
    parts = []
    if hours_total:
        parts.append(f"{hours_total} hour{'s' if hours_total > 1 else ''}")
    if minutes_total:
        parts.append(f"{minutes_total} minute{'s' if minutes_total > 1 else ''}")
    return " ".join(parts) if parts else duration


def extract_image(value) -> Optional[str]:
    """Extract image URL from string, list (first element) or ImageObject formats."""
    if isinstance(value, str):
        return clean_text(value) or None
    if isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl")
        if isinstance(url, str):
            return clean_text(url) or None
        return None
    if isinstance(value, list) and value:
        return extract_image(value[0])
    return None


def extract_instruction_text(instructions) -> List[str]:
    """Flatten recipeInstructions into plain step strings.

    HowToSection groups contribute each of their sub-steps; HowToStep objects
    contribute their text.
    """
    steps: List[str] = []
    if isinstance(instructions, str):
        cleaned = clean_text(instructions)
        if cleaned:
            steps.append(cleaned)
        return steps
    if isinstance(instructions, dict):
        instructions = [instructions]
    if not isinstance(instructions, list):
        return steps

    for entry in instructions:
        if isinstance(entry, str):
            cleaned = clean_text(entry)
            if cleaned:
                steps.append(cleaned)
        elif isinstance(entry, dict):
            if "itemListElement" in entry:
                steps.extend(extract_instruction_text(entry.get("itemListElement")))
                continue
            text_val = entry.get("text") or entry.get("description") or entry.get("name")
            cleaned = clean_text(text_val or "")
            if cleaned:
                steps.append(cleaned)
    return steps


def is_valid_taxonomy_term(term: str) -> bool:
    if not (TAXONOMY_MIN_LENGTH <= len(term) <= TAXONOMY_MAX_LENGTH):
        return False
    return term.lower() not in GENERIC_TAXONOMY_TERMS


def coerce_taxonomy(value, limit: int) -> List[str]:
    """Flatten a scalar-or-list taxonomy field into a de-duplicated list.

    Comma separated strings are split, every member is cleaned and checked
    against the taxonomy rule, first occurrence wins (case-insensitive).
    """
    if not value:
        return []
    raw: List[str] = []
    items: Iterable = [value] if isinstance(value, str) else value
    if not isinstance(items, (list, tuple)):
        return []
    for item in items:
        if isinstance(item, str):
            raw.extend(part for part in item.split(","))
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            raw.append(item["name"])

    seen = set()
    terms: List[str] = []
    for part in raw:
        term = clean_text(part)
        if not term or not is_valid_taxonomy_term(term):
            continue
        key = term.lower()
        if key in seen:
            continue
        seen.add(key)
        terms.append(term)
        if len(terms) >= limit:
            break
    return terms


def normalize_fraction_display(qty: Optional[str]) -> Optional[str]:
    """Normalize fraction characters and quantity display strings."""
    if not qty:
        return qty
    s = qty
    # Ensure a space before a unicode fraction when attached to a digit, e.g., "1½" -> "1 ½"
    fraction_chars = "".join(FRACTION_MAP.keys())
    s = re.sub(rf"(\d)([{fraction_chars}])", r"\1 \2", s)
    for k, v in FRACTION_MAP.items():
        s = s.replace(k, v)
    return re.sub(r"\s+", " ", s).strip() or None


def decimal_to_fraction(value: float) -> Optional[str]:
    """Render a decimal quantity as a kitchen fraction ("1.5" -> "1 1/2").

    Returns None when the fractional part is not within tolerance of a
    common fraction.
    """
    if not math.isfinite(value) or value < 0:
        return None
    whole = int(value)
    remainder = value - whole
    if remainder <= FRACTION_TOLERANCE:
        return str(whole)
    if 1 - remainder <= FRACTION_TOLERANCE:
        return str(whole + 1)
    for fraction_value, label in DISPLAY_FRACTIONS:
        if abs(remainder - fraction_value) <= FRACTION_TOLERANCE:
            return f"{whole} {label}" if whole else label
    return None


_DECIMAL_RE = re.compile(r"(?<![\d.])(\d*\.\d+)(?![\d.])")


def format_quantities(text: str) -> str:
    """Replace decimal quantities in an ingredient line with fractions."""

    def _replace(match: re.Match) -> str:
        fraction = decimal_to_fraction(float(match.group(1)))
        return fraction if fraction is not None else match.group(1)

    return _DECIMAL_RE.sub(_replace, text)


def set_if_present(target: dict, key: str, value) -> None:
    """Store ``value`` under ``key`` unless it is None or empty."""
    if value is None:
        return
    if isinstance(value, (str, list, tuple, dict)) and not value:
        return
    target[key] = value
