"""Normalizers for optional recipe metadata.

Each function takes whatever the page offered for one field and returns the
canonical value, or None when the source does not contribute. Nothing here
raises on malformed input.
"""

import logging
import math
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from cleanplate.app.services.url_parsing.constants import (
    DIET_TYPE_LABELS,
    NUTRITION_FIELDS,
    NUTRITION_MIN_FIELDS,
    SCHEMA_ORG_PREFIXES,
    SITE_BRAND_AUTHORS,
)
from cleanplate.app.services.url_parsing.parsing_utils import clean_text, resolve_url

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Author
# ---------------------------------------------------------------------------


def _is_brand_name(name: str, site_name: Optional[str] = None) -> bool:
    lowered = name.lower().strip()
    if lowered in SITE_BRAND_AUTHORS:
        return True
    if site_name:
        site = site_name.lower()
        if site.startswith("www."):
            site = site[4:]
        if lowered.replace(" ", "") == site.split(".")[0]:
            return True
    return False


def format_author_names(names: Sequence[str]) -> Optional[str]:
    """Join names as "A", "A and B" or "A, B, and C"."""
    names = [n for n in names if n]
    if not names:
        return None
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} and {names[1]}"
    return f"{', '.join(names[:-1])}, and {names[-1]}"


def _author_entries(value) -> List[Tuple[str, str]]:
    """Flatten a JSON-LD author value into (type, name) pairs."""
    entries: List[Tuple[str, str]] = []
    items = value if isinstance(value, list) else [value]
    for item in items:
        if isinstance(item, str):
            name = clean_text(item)
            if name:
                entries.append(("Person", name))
        elif isinstance(item, dict):
            name = clean_text(item.get("name") or "")
            if not name:
                continue
            item_type = item.get("@type") or "Person"
            if isinstance(item_type, list):
                item_type = "Person" if "Person" in item_type else str(item_type[0])
            entries.append((str(item_type), name))
    return entries


def extract_json_author(value, site_name: Optional[str] = None) -> Optional[str]:
    """Resolve the JSON-LD author field, preferring Person over Organization."""
    entries = [(t, n) for t, n in _author_entries(value) if not _is_brand_name(n, site_name)]
    if not entries:
        return None
    people = [n for t, n in entries if t == "Person"]
    chosen = people or [n for _, n in entries]
    # de-duplicate, keep order
    return format_author_names(list(dict.fromkeys(chosen)))


def extract_meta_author(soup: BeautifulSoup, site_name: Optional[str] = None) -> Optional[str]:
    for attrs in (
        {"name": "author"},
        {"property": "article:author"},
        {"name": "parsely-author"},
        {"name": "sailthru.author"},
    ):
        tag = soup.find("meta", attrs=attrs)
        if not tag:
            continue
        content = clean_text(tag.get("content") or "")
        # article:author is frequently a profile URL rather than a name
        if not content or content.startswith(("http://", "https://")):
            continue
        if not _is_brand_name(content, site_name):
            return content
    return None


_BYLINE_PREFIX_RE = re.compile(r"^(written\s+by|recipe\s+by|posted\s+by|by)\s*[:\-]?\s*", re.I)
# Bylines often trail off into dates or bios
_BYLINE_TAIL_RE = re.compile(r"\s*(?:\||·|•|\bon\b|\bupdated\b|\bpublished\b)\s*", re.I)
_AUTHOR_SELECTORS = (
    "[itemprop=author] [itemprop=name]",
    "[itemprop=author]",
    "a[rel=author]",
    ".recipe-author",
    ".author-name",
    ".byline-name",
    ".byline",
    ".author",
)


def extract_dom_author(soup: BeautifulSoup, site_name: Optional[str] = None) -> Optional[str]:
    for selector in _AUTHOR_SELECTORS:
        for node in soup.select(selector):
            text = clean_text(node.get_text(" ", strip=True))
            text = _BYLINE_PREFIX_RE.sub("", text).strip()
            text = _BYLINE_TAIL_RE.split(text, maxsplit=1)[0]
            text = text.strip(" ,.-")
            if 2 < len(text) <= 60 and not _is_brand_name(text, site_name):
                return text
    return None


def resolve_author(
    soup: BeautifulSoup, json_author=None, site_name: Optional[str] = None
) -> Optional[str]:
    """JSON author, then meta-tag author, then DOM byline."""
    if json_author:
        author = extract_json_author(json_author, site_name)
        if author:
            return author
    return extract_meta_author(soup, site_name) or extract_dom_author(soup, site_name)


# ---------------------------------------------------------------------------
# Video
# ---------------------------------------------------------------------------

_YOUTUBE_HOSTS = ("youtube.com", "youtu.be", "youtube-nocookie.com")
_VIMEO_HOSTS = ("vimeo.com",)
_HTML5_EXTENSIONS = (".mp4", ".webm", ".ogg", ".ogv", ".mov", ".m4v", ".m3u8")


def _host_matches(host: str, domains: Sequence[str]) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def youtube_video_id(url: str) -> Optional[str]:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if not _host_matches(host, _YOUTUBE_HOSTS):
        return None
    if host.endswith("youtu.be"):
        candidate = parsed.path.lstrip("/").split("/")[0]
    else:
        query_id = parse_qs(parsed.query).get("v")
        if query_id:
            candidate = query_id[0]
        else:
            m = re.match(r"^/(?:embed|shorts|v|live)/([^/?#]+)", parsed.path)
            candidate = m.group(1) if m else ""
    return candidate if re.fullmatch(r"[A-Za-z0-9_-]{6,}", candidate or "") else None


def vimeo_video_id(url: str) -> Optional[str]:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if not _host_matches(host, _VIMEO_HOSTS):
        return None
    m = re.search(r"/(?:video/)?(\d+)", parsed.path)
    return m.group(1) if m else None


def _first_string(value) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("url") or value.get("contentUrl")
    return value if isinstance(value, str) and value.strip() else None


def normalize_video(value, base_url: str) -> Optional[Dict[str, str]]:
    """Turn a VideoObject, list of them, or a URL into {url, platform, thumbnail?}."""
    if isinstance(value, list):
        value = value[0] if value else None
    thumbnail = None
    if isinstance(value, dict):
        raw_url = None
        for key in ("embedUrl", "contentUrl", "url"):
            if isinstance(value.get(key), str) and value[key].strip():
                raw_url = value[key]
                break
        thumbnail = _first_string(value.get("thumbnailUrl") or value.get("thumbnail"))
    elif isinstance(value, str):
        raw_url = value
    else:
        return None

    url = resolve_url(raw_url, base_url)
    if not url:
        return None

    video: Dict[str, str]
    yt_id = youtube_video_id(url)
    vimeo_id = vimeo_video_id(url) if not yt_id else None
    if yt_id:
        video = {"url": f"https://www.youtube.com/embed/{yt_id}", "platform": "youtube"}
        thumbnail = thumbnail or f"https://img.youtube.com/vi/{yt_id}/hqdefault.jpg"
    elif vimeo_id:
        video = {"url": f"https://player.vimeo.com/video/{vimeo_id}", "platform": "vimeo"}
    elif urlparse(url).path.lower().endswith(_HTML5_EXTENSIONS):
        video = {"url": url, "platform": "html5"}
    else:
        video = {"url": url, "platform": "external"}

    thumb_url = resolve_url(thumbnail, base_url) if thumbnail else None
    if thumb_url:
        video["thumbnail"] = thumb_url
    return video


def find_dom_video(soup: BeautifulSoup, base_url: str) -> Optional[Dict[str, str]]:
    """Open Graph video, then an embedded YouTube/Vimeo iframe, then a <video> element."""
    for prop in ("og:video:secure_url", "og:video:url", "og:video"):
        tag = soup.find("meta", attrs={"property": prop}) or soup.find("meta", attrs={"name": prop})
        if tag and tag.get("content"):
            video = normalize_video(tag["content"], base_url)
            if video:
                return video
    for iframe in soup.find_all("iframe"):
        src = iframe.get("src") or iframe.get("data-src")
        if not src:
            continue
        absolute = resolve_url(src, base_url)
        if absolute and (youtube_video_id(absolute) or vimeo_video_id(absolute)):
            return normalize_video(absolute, base_url)
    for video_tag in soup.find_all("video"):
        src = video_tag.get("src")
        if not src:
            source = video_tag.find("source", src=True)
            src = source["src"] if source else None
        if src:
            video = normalize_video(src, base_url)
            if video:
                poster = resolve_url(video_tag.get("poster"), base_url)
                if poster and "thumbnail" not in video:
                    video["thumbnail"] = poster
                return video
    return None


# ---------------------------------------------------------------------------
# Nutrition, rating, dates
# ---------------------------------------------------------------------------


def normalize_nutrition(value) -> Optional[Dict[str, str]]:
    """Map NutritionInformation to canonical names; keep only records with >= 3 fields."""
    if not isinstance(value, dict):
        return None
    nutrition: Dict[str, str] = {}
    for source_key, canonical in NUTRITION_FIELDS.items():
        raw = value.get(source_key)
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            raw = str(raw)
        if isinstance(raw, str):
            cleaned = clean_text(raw)
            if cleaned:
                nutrition[canonical] = cleaned
    return nutrition if len(nutrition) >= NUTRITION_MIN_FIELDS else None


def _to_float(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", ""))
        except ValueError:
            return None
    return None


def normalize_rating(value) -> Optional[Dict[str, Any]]:
    """AggregateRating -> {value, count}; both must be valid or the rating is dropped."""
    if not isinstance(value, dict):
        return None
    rating_value = _to_float(value.get("ratingValue"))
    count_raw = value.get("ratingCount")
    if count_raw in (None, ""):
        count_raw = value.get("reviewCount")
    count = _to_float(count_raw)
    if rating_value is None or count is None:
        return None
    if not (math.isfinite(rating_value) and math.isfinite(count)):
        return None
    count = int(count)
    if not (0 <= rating_value <= 5) or count <= 0:
        return None
    return {"value": round(rating_value, 1), "count": count}


_DATE_FORMATS = ("%Y-%m-%d", "%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%m/%d/%Y")


def normalize_date(value) -> Optional[str]:
    """Keep a date string only if it parses."""
    if isinstance(value, list):
        value = value[0] if value else None
    if not isinstance(value, str):
        return None
    text = clean_text(value)
    if not text:
        return None
    try:
        datetime.fromisoformat(text)
        return text
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            datetime.strptime(text, fmt)
            return text
        except ValueError:
            continue
    logger.debug("Discarding unparseable date %r", text)
    return None


def find_meta_dates(soup: BeautifulSoup) -> Dict[str, str]:
    dates: Dict[str, str] = {}
    lookups = {
        "datePublished": (
            ("meta", {"property": "article:published_time"}),
            ("meta", {"itemprop": "datePublished"}),
            ("time", {"itemprop": "datePublished"}),
        ),
        "dateModified": (
            ("meta", {"property": "article:modified_time"}),
            ("meta", {"property": "og:updated_time"}),
            ("meta", {"itemprop": "dateModified"}),
            ("time", {"itemprop": "dateModified"}),
        ),
    }
    for key, candidates in lookups.items():
        for tag_name, attrs in candidates:
            tag = soup.find(tag_name, attrs=attrs)
            if not tag:
                continue
            raw = tag.get("content") or tag.get("datetime")
            date = normalize_date(raw)
            if date:
                dates[key] = date
                break
    return dates


# ---------------------------------------------------------------------------
# Dietary labels and difficulty: ordered rule lists, first match wins
# ---------------------------------------------------------------------------

DIET_TEXT_RULES: Tuple[Tuple[re.Pattern, str], ...] = tuple(
    (re.compile(pattern, re.I), label)
    for pattern, label in (
        (r"\bvegan\b", "Vegan"),
        (r"\bvegetarian\b", "Vegetarian"),
        (r"\bgluten[\s-]?free\b", "Gluten-Free"),
        (r"\bdairy[\s-]?free\b", "Dairy-Free"),
        (r"\bketo(genic)?\b", "Keto"),
        (r"\bpaleo\b", "Paleo"),
        (r"\bwhole\s?30\b", "Whole30"),
        (r"\blow[\s-]?carb\b", "Low Carb"),
        (r"\blow[\s-]?fat\b", "Low Fat"),
        (r"\blow[\s-]?(calorie|cal)\b", "Low Calorie"),
        (r"\blow[\s-]?(sodium|salt)\b", "Low Salt"),
        (r"\b(nut[\s-]?free|peanut[\s-]?free)\b", "Nut-Free"),
        (r"\begg[\s-]?free\b", "Egg-Free"),
        (r"\bsugar[\s-]?free\b", "Sugar-Free"),
        (r"\bpescatarian\b", "Pescatarian"),
        (r"\bhigh[\s-]?protein\b", "High Protein"),
        (r"\bhalal\b", "Halal"),
        (r"\bkosher\b", "Kosher"),
        (r"\bdiabetic\b", "Diabetic"),
    )
)

DIFFICULTY_RULES: Tuple[Tuple[re.Pattern, str], ...] = tuple(
    (re.compile(pattern, re.I), label)
    for pattern, label in (
        (r"\b(easy|simple|beginner|basic|effortless)\b", "Easy"),
        (r"\b(medium|moderate|intermediate|average)\b", "Medium"),
        (r"\b(hard|difficult|advanced|challenging|expert|complex)\b", "Hard"),
    )
)


def _first_label(rules: Sequence[Tuple[re.Pattern, str]], text: str) -> Optional[str]:
    for pattern, label in rules:
        if pattern.search(text):
            return label
    return None


def diet_label(value: str, allow_free_text: bool = True) -> Optional[str]:
    """Canonical label for one diet value.

    Schema.org codes map to friendly names, common free-text mentions are
    pattern-matched, anything else of reasonable size is title-cased.
    """
    text = clean_text(value)
    for prefix in SCHEMA_ORG_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix) :]
            break
    if not text:
        return None
    if text in DIET_TYPE_LABELS:
        return DIET_TYPE_LABELS[text]
    # "GlutenFreeDiet"-style codes outside the schema list
    spaced = re.sub(r"(?<=[a-z])(?=[A-Z])", " ", text)
    label = _first_label(DIET_TEXT_RULES, spaced)
    if label:
        return label
    if allow_free_text and 3 <= len(text) <= 30:
        return spaced.title()
    return None


def normalize_dietary_info(diets, keywords: Sequence[str] = ()) -> List[str]:
    """Collect diet labels from suitableForDiet plus diet mentions in keywords."""
    labels: List[str] = []
    values = diets if isinstance(diets, list) else [diets] if diets else []
    for value in values:
        if isinstance(value, str):
            label = diet_label(value)
            if label and label not in labels:
                labels.append(label)
    for keyword in keywords:
        label = diet_label(keyword, allow_free_text=False)
        if label and label not in labels:
            labels.append(label)
    return labels


def normalize_difficulty(value) -> Optional[str]:
    """Bucket free text into Easy, Medium or Hard; unmatched values are dropped."""
    if not isinstance(value, str):
        return None
    return _first_label(DIFFICULTY_RULES, clean_text(value))


_DIFFICULTY_TEXT_RE = re.compile(r"\b(?:difficulty|skill level)\s*[:\-]?\s*([A-Za-z]+)", re.I)


def find_dom_difficulty(soup: BeautifulSoup) -> Optional[str]:
    node = soup.find(class_=re.compile("difficulty", re.I))
    if node:
        label = normalize_difficulty(node.get_text(" ", strip=True))
        if label:
            return label
    body = soup.body or soup
    m = _DIFFICULTY_TEXT_RE.search(body.get_text(" ", strip=True))
    return normalize_difficulty(m.group(1)) if m else None


# ---------------------------------------------------------------------------
# Meta tags
# ---------------------------------------------------------------------------


def meta_content(soup: BeautifulSoup, *names: str) -> Optional[str]:
    """First non-empty content of <meta name=...> or <meta property=...>."""
    for name in names:
        tag = soup.find("meta", attrs={"name": name}) or soup.find(
            "meta", attrs={"property": name}
        )
        if tag:
            content = clean_text(tag.get("content") or "")
            if content:
                return content
    return None
