"""Image candidate collection and ranking."""

import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from cleanplate.app.services.url_parsing.models import ImageCandidate
from cleanplate.app.services.url_parsing.parsing_utils import clean_text, resolve_url, strip_query

logger = logging.getLogger(__name__)

STRUCTURED_DATA_SCORE = 100
OPEN_GRAPH_SCORE = 90
DOM_BASE_SCORE = 50

MAX_CANDIDATES = 3
MIN_DOM_SCORE = 40

_RECIPE_CONTAINER_RE = re.compile(r"recipe", re.I)
_FILENAME_ALLOW_RE = re.compile(r"(recipe|food|dish|meal|hero|featured|finished|plated)", re.I)
_FILENAME_DENY_RE = re.compile(
    r"(logo|icon|avatar|sprite|banner|pixel|spinner|placeholder|badge|button|"
    r"gravatar|author|profile|emoji|social|share|pinterest|facebook|twitter|\bads?\b)",
    re.I,
)
_CLASS_ALLOW_RE = re.compile(r"(recipe|featured|hero|wp-post-image|main-image|primary)", re.I)
_CLASS_DENY_RE = re.compile(r"(logo|icon|avatar|thumb|author|social|share|related|\bads?\b)", re.I)
_GENERIC_ALT_RE = re.compile(r"^(image|photo|picture|img|thumbnail|untitled)\s*\d*$", re.I)
_LAZY_ATTRS = ("data-src", "data-lazy-src", "data-original", "data-srcset", "data-lazy-srcset")


def _parse_dimension(value) -> Optional[int]:
    if value is None:
        return None
    m = re.match(r"\s*(\d+)", str(value))
    return int(m.group(1)) if m else None


def _image_src(img: Tag) -> Optional[str]:
    """Real source of an <img>, looking past lazy-load placeholders."""
    src = img.get("src") or ""
    if not src or src.startswith("data:"):
        for attr in ("data-src", "data-lazy-src", "data-original"):
            if img.get(attr):
                return img[attr]
        srcset = img.get("data-srcset") or img.get("srcset")
        if srcset:
            return srcset.split(",")[0].strip().split(" ")[0]
        return None
    return src


def score_dom_image(
    img: Tag,
    url: str,
    min_width: int = 200,
    min_height: int = 200,
) -> int:
    """Score an in-page image from base 50 using size, filename, alt, lazy and class signals."""
    score = DOM_BASE_SCORE

    width = _parse_dimension(img.get("width"))
    height = _parse_dimension(img.get("height"))
    if width and height:
        if width >= min_width * 2 and height >= min_height * 2:
            score += 20
        elif width >= min_width and height >= min_height:
            score += 10

    filename = url.rsplit("/", 1)[-1]
    if _FILENAME_DENY_RE.search(filename):
        score -= 30
    elif _FILENAME_ALLOW_RE.search(filename):
        score += 15

    alt = clean_text(img.get("alt") or "")
    if len(alt) >= 10 and not _GENERIC_ALT_RE.match(alt):
        score += 10

    if img.get("loading") == "lazy" or any(img.get(attr) for attr in _LAZY_ATTRS):
        score += 5

    classes = " ".join(img.get("class") or [])
    if classes:
        if _CLASS_DENY_RE.search(classes):
            score -= 15
        elif _CLASS_ALLOW_RE.search(classes):
            score += 10

    return max(0, min(100, score))


def _page_base_url(soup: BeautifulSoup, page_url: str) -> str:
    base = soup.find("base", href=True)
    if base:
        resolved = resolve_url(base["href"], page_url)
        if resolved:
            return resolved
    return page_url


def _is_recipe_container(tag: Tag) -> bool:
    classes = " ".join(tag.get("class") or [])
    return bool(_RECIPE_CONTAINER_RE.search(classes) or _RECIPE_CONTAINER_RE.search(tag.get("id") or ""))


def collect_open_graph_images(soup: BeautifulSoup, base_url: str) -> List[ImageCandidate]:
    candidates: List[ImageCandidate] = []
    for tag in soup.find_all("meta"):
        key = tag.get("property") or tag.get("name") or ""
        if key.lower() not in {"og:image", "og:image:url", "og:image:secure_url"}:
            continue
        url = resolve_url(tag.get("content"), base_url)
        if url:
            candidates.append(ImageCandidate(url=url, score=OPEN_GRAPH_SCORE, source="og:image"))
    return candidates


def collect_dom_images(
    soup: BeautifulSoup,
    base_url: str,
    min_score: int = MIN_DOM_SCORE,
    min_width: int = 200,
    min_height: int = 200,
) -> List[ImageCandidate]:
    candidates: List[ImageCandidate] = []
    seen_imgs = set()
    for container in soup.find_all(_is_recipe_container):
        for img in container.find_all("img"):
            if id(img) in seen_imgs:
                continue
            seen_imgs.add(id(img))
            url = resolve_url(_image_src(img), base_url)
            if not url:
                continue
            score = score_dom_image(img, url, min_width=min_width, min_height=min_height)
            if score < min_score:
                logger.debug("Skipping low-scoring image %s (score %d)", url, score)
                continue
            alt = clean_text(img.get("alt") or "") or None
            candidates.append(ImageCandidate(url=url, score=score, source="dom", alt=alt))
    return candidates


def rank_candidates(
    candidates: List[ImageCandidate], limit: int = MAX_CANDIDATES
) -> List[ImageCandidate]:
    """De-duplicate by URL without query/fragment, sort by score, keep the top ``limit``.

    Equal scores keep collection order and are stepped down one point each so
    the returned scores are strictly descending.
    """
    best: Dict[str, ImageCandidate] = {}
    order: List[str] = []
    for candidate in candidates:
        key = strip_query(candidate.url)
        current = best.get(key)
        if current is None:
            best[key] = candidate
            order.append(key)
        elif candidate.score > current.score:
            best[key] = candidate

    ranked = sorted((best[key] for key in order), key=lambda c: c.score, reverse=True)
    result: List[ImageCandidate] = []
    for candidate in ranked:
        if len(result) >= limit:
            break
        if result and candidate.score >= result[-1].score:
            stepped = result[-1].score - 1
            if stepped < 0:
                break
            candidate = candidate.model_copy(update={"score": stepped})
        result.append(candidate)
    return result


def rank_page_images(
    soup: BeautifulSoup,
    base_url: str,
    primary_image: Optional[str] = None,
    limit: int = MAX_CANDIDATES,
    min_dom_score: int = MIN_DOM_SCORE,
    min_width: int = 200,
    min_height: int = 200,
) -> List[ImageCandidate]:
    """Collect structured-data, Open Graph and in-recipe images from a parsed page."""
    page_base = _page_base_url(soup, base_url)

    candidates: List[ImageCandidate] = []
    primary_url = resolve_url(primary_image, page_base) if primary_image else None
    if primary_url:
        candidates.append(
            ImageCandidate(url=primary_url, score=STRUCTURED_DATA_SCORE, source="structured-data")
        )
    candidates.extend(collect_open_graph_images(soup, page_base))
    candidates.extend(
        collect_dom_images(
            soup, page_base, min_score=min_dom_score, min_width=min_width, min_height=min_height
        )
    )
    ranked = rank_candidates(candidates, limit=limit)
    logger.debug("Ranked %d of %d image candidates", len(ranked), len(candidates))
    return ranked


def rank_image_candidates(
    html: str,
    base_url: str,
    primary_image: Optional[str] = None,
    limit: int = MAX_CANDIDATES,
    min_dom_score: int = MIN_DOM_SCORE,
    min_width: int = 200,
    min_height: int = 200,
) -> List[ImageCandidate]:
    """Collect structured-data, Open Graph and in-recipe images and return the best few."""
    return rank_page_images(
        BeautifulSoup(html, "lxml"),
        base_url,
        primary_image=primary_image,
        limit=limit,
        min_dom_score=min_dom_score,
        min_width=min_width,
        min_height=min_height,
    )


def image_metadata(
    soup: BeautifulSoup,
    base_url: str,
    primary_image: Optional[str] = None,
    settings=None,
) -> Dict[str, Any]:
    """Build the ``imageUrl`` / ``imageCandidates`` metadata entries for a page.

    The structured-data image wins as ``imageUrl`` when it resolves;
    otherwise the best-ranked candidate is used.
    """
    kwargs = {}
    if settings is not None:
        kwargs = {
            "limit": settings.image_max_candidates,
            "min_dom_score": settings.image_min_score,
            "min_width": settings.image_min_width,
            "min_height": settings.image_min_height,
        }
    candidates = rank_page_images(soup, base_url, primary_image=primary_image, **kwargs)

    result: Dict[str, Any] = {}
    primary_url = resolve_url(primary_image, _page_base_url(soup, base_url)) if primary_image else None
    if primary_url:
        result["imageUrl"] = primary_url
    elif candidates:
        result["imageUrl"] = candidates[0].url
    if candidates:
        result["imageCandidates"] = [c.model_dump(exclude_none=True) for c in candidates]
    return result
