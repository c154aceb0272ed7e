"""Confidence scoring for extracted recipes.

The score is a fixed-weight point budget over five categories (phase,
title, ingredients, instructions, metadata) plus quality adjustments.
Only the final total is clamped to 0..100; subtotals are reported as
computed so the breakdown explains the score.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from cleanplate.app.services.url_parsing.constants import (
    GENERIC_TITLES,
    MEASUREMENT_UNIT_PATTERN,
    NUTRITION_MIN_FIELDS,
)
from cleanplate.app.services.url_parsing.models import ConfidenceResult, NormalizedRecipe
from cleanplate.app.services.url_parsing.noise_filter import contains_cooking_action

logger = logging.getLogger(__name__)

PHASE_1_POINTS = 40
PHASE_2_POINTS = 20
TITLE_POINTS = 10
LIST_FULL_POINTS = 20
LIST_PARTIAL_POINTS = 10
LIST_FULL_COUNT = 5
LIST_PARTIAL_COUNT = 2
METADATA_MAX = 23
QUALITY_MAX = 10

HIGH_THRESHOLD = 80
MEDIUM_THRESHOLD = 50

MEASUREMENT_RATIO_BONUS = 5
MEASUREMENT_RATIO_THRESHOLD = 0.7
ACTION_RATIO_BONUS = 3
ACTION_RATIO_THRESHOLD = 0.5
SINGLE_BLOB_PENALTY = -5
SINGLE_BLOB_LENGTH = 500
RETENTION_BONUS = 1
RETENTION_THRESHOLD = 0.95

_MEASUREMENT_RE = re.compile(MEASUREMENT_UNIT_PATTERN, re.I)

# Simple fields worth one point when present and non-empty.
_BASIC_FIELDS = ("prepTime", "cookTime", "totalTime", "servings", "imageUrl")

_WEIGHTED_FIELDS = (
    ("description", 2),
    ("category", 1),
    ("cuisine", 1),
    ("keywords", 1),
    ("dietaryInfo", 2),
    ("datePublished", 1),
    ("dateModified", 1),
    ("difficulty", 1),
)


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict)):
        return bool(value)
    return True


def _list_points(count: int) -> int:
    if count >= LIST_FULL_COUNT:
        return LIST_FULL_POINTS
    if count >= LIST_PARTIAL_COUNT:
        return LIST_PARTIAL_POINTS
    return 0


def _ratio(items: Sequence[str], predicate) -> float:
    if not items:
        return 0.0
    return sum(1 for item in items if predicate(item)) / len(items)


def is_generic_title(title: Optional[str]) -> bool:
    return (title or "").strip().lower() in GENERIC_TITLES


def confidence_level(score: int) -> str:
    if score >= HIGH_THRESHOLD:
        return "high"
    if score >= MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def _metadata_points(metadata: Dict[str, Any]) -> Dict[str, Any]:
    points = 0
    fields: List[str] = []
    for key in _BASIC_FIELDS:
        if _present(metadata.get(key)):
            points += 1
            fields.append(key)
    for key, weight in _WEIGHTED_FIELDS:
        if _present(metadata.get(key)):
            points += weight
            fields.append(key)

    rating = metadata.get("rating")
    if isinstance(rating, dict) and rating.get("value") is not None and rating.get("count"):
        points += 2
        fields.append("rating")

    nutrition = metadata.get("nutrition")
    if isinstance(nutrition, dict) and len(nutrition) >= NUTRITION_MIN_FIELDS:
        points += 2
        fields.append("nutrition")

    return {"points": points, "max": METADATA_MAX, "fields": fields}


def _quality_adjustments(recipe: NormalizedRecipe) -> Dict[str, Any]:
    adjustments: Dict[str, int] = {}
    measurement_ratio = _ratio(recipe.ingredients, lambda t: bool(_MEASUREMENT_RE.search(t)))
    action_ratio = _ratio(recipe.instructions, contains_cooking_action)

    if recipe.ingredients and measurement_ratio >= MEASUREMENT_RATIO_THRESHOLD:
        adjustments["measurements"] = MEASUREMENT_RATIO_BONUS
    if recipe.instructions and action_ratio >= ACTION_RATIO_THRESHOLD:
        adjustments["cookingActions"] = ACTION_RATIO_BONUS
    if len(recipe.instructions) == 1 and len(recipe.instructions[0]) > SINGLE_BLOB_LENGTH:
        adjustments["singleBlobInstruction"] = SINGLE_BLOB_PENALTY
    if (
        recipe.ingredient_quality_ratio is not None
        and recipe.ingredient_quality_ratio >= RETENTION_THRESHOLD
    ):
        adjustments["ingredientRetention"] = RETENTION_BONUS
    if (
        recipe.instruction_quality_ratio is not None
        and recipe.instruction_quality_ratio >= RETENTION_THRESHOLD
    ):
        adjustments["instructionRetention"] = RETENTION_BONUS

    return {
        "points": sum(adjustments.values()),
        "max": QUALITY_MAX,
        "adjustments": adjustments,
        "measurementRatio": round(measurement_ratio, 2),
        "actionRatio": round(action_ratio, 2),
    }


def score_confidence(recipe: NormalizedRecipe, phase: int) -> ConfidenceResult:
    """Score how far an extraction can be trusted.

    ``phase`` 1 means structured data; any other value is treated as the
    DOM heuristic phase. The result is a pure function of its inputs.
    """
    phase = 1 if phase == 1 else 2
    title_generic = is_generic_title(recipe.title)
    quality = _quality_adjustments(recipe)

    factors: Dict[str, Dict[str, Any]] = {
        "phase": {
            "points": PHASE_1_POINTS if phase == 1 else PHASE_2_POINTS,
            "max": PHASE_1_POINTS,
            "phase": phase,
        },
        "title": {
            "points": 0 if title_generic else TITLE_POINTS,
            "max": TITLE_POINTS,
            "generic": title_generic,
        },
        "ingredients": {
            "points": _list_points(len(recipe.ingredients)),
            "max": LIST_FULL_POINTS,
            "count": len(recipe.ingredients),
            "measurementRatio": quality["measurementRatio"],
        },
        "instructions": {
            "points": _list_points(len(recipe.instructions)),
            "max": LIST_FULL_POINTS,
            "count": len(recipe.instructions),
            "actionRatio": quality["actionRatio"],
        },
        "metadata": _metadata_points(recipe.metadata),
        "quality": {
            "points": quality["points"],
            "max": quality["max"],
            "adjustments": quality["adjustments"],
        },
    }

    raw_score = sum(factor["points"] for factor in factors.values())
    score = max(0, min(100, raw_score))
    return ConfidenceResult(score=score, level=confidence_level(score), factors=factors)


def _factor_summary(name: str, factor: Dict[str, Any]) -> str:
    text = f"{name}={factor['points']}/{factor['max']}"
    if "count" in factor:
        text += f"({factor['count']})"
    elif name == "metadata":
        text += f"({len(factor.get('fields', []))} fields)"
    return text


def format_confidence_log_line(
    domain: str,
    phase: int,
    result: ConfidenceResult,
    timestamp: Optional[datetime] = None,
) -> str:
    """Render the one-line debug summary of a scored extraction."""
    timestamp = timestamp or datetime.now(timezone.utc)
    breakdown = ", ".join(_factor_summary(name, factor) for name, factor in result.factors.items())
    return (
        f"[{timestamp.strftime('%Y-%m-%d %H:%M:%S')}] CONFIDENCE | {domain} | Phase {phase} | "
        f"Score: {result.score}/100 ({result.level.upper()}) | {breakdown}"
    )
