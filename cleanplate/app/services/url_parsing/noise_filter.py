"""Rule-based removal of scraping noise from ingredient and instruction lists.

DOM scraping picks up navigation chrome, section headers and other page
furniture next to the real recipe lines. Each line is run through an
ordered cascade of rules; the first rule that fires decides. The patterns
and weights were tuned against real recipe pages, so they are kept as
plain data rather than folded into a classifier.
"""

import logging
import re
from enum import IntEnum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class Strictness(IntEnum):
    LENIENT = 1
    BALANCED = 2
    STRICT = 3

    @property
    def threshold(self) -> int:
        return _THRESHOLDS[self]

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Strictness":
        if not name:
            return cls.BALANCED
        try:
            return cls[name.strip().upper()]
        except KeyError:
            logger.warning("Unknown filter strictness %r, using balanced", name)
            return cls.BALANCED


_THRESHOLDS = {
    Strictness.LENIENT: 0,
    Strictness.BALANCED: 2,
    Strictness.STRICT: 5,
}


def _compile(patterns: Sequence[str], flags: int = re.I) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p, flags) for p in patterns)


NAVIGATION_PATTERNS = _compile(
    [
        r"^(home|recipes|search|menu|navigation|nav|share|print|save|comment|rating|review)s?$",
        r"^(back to|return to|view all|see more|read more|show more|load more)",
        r"^(follow us|subscribe|sign up|log in|login|register)",
        r"^(facebook|twitter|instagram|pinterest|youtube|tiktok|social)",
        r"^(advertisement|sponsored|affiliate|disclosure)",
        r"^(privacy|cookies|terms|contact|about|help|faq)$",
        r"^(skip to|jump to|go to)",
        r"^(email|newsletter|updates)",
    ]
)

SECTION_HEADER_PATTERNS = _compile(
    [
        r"^(ingredients?|directions?|instructions?|steps?|method|preparation|notes?|tips?):?\s*$",
        r"^(equipment|tools|supplies|you'?ll? needs?):?\s*$",
        r"^(nutrition|nutritional info|calories|servings?):?\s*$",
        r"^(video|watch|photos?|images?|gallery):?\s*$",
        r"^(related|similar|more|other) (recipes?|posts?|articles?):?\s*$",
        r"^(print|save|share|rate) (recipe|this):?\s*$",
        r"^(for the|for serving|to serve|to garnish):?\s*$",
        r"^(optional|recommended|suggested):?\s*$",
    ]
)

FOOD_INDICATOR_PATTERNS = (
    # measurements
    re.compile(
        r"\b(cup|tablespoon|teaspoon|tbsp|tsp|oz|ounce|pound|lb|gram|kg|ml|liter|pinch|dash|handful)s?\b",
        re.I,
    ),
    re.compile(r"\b\d+\s*(/\s*\d+)?\s*(cup|tbsp|tsp|oz|lb|g|kg|ml|l)\b", re.I),
    # quantities
    re.compile(r"\b\d+\s*(to|-|or)\s*\d+\b"),
    re.compile(r"^\d+"),
    # preparations
    re.compile(
        r"\b(chopped|diced|sliced|minced|grated|shredded|crushed|ground|fresh|dried|frozen|cooked|raw|whole|halved|quartered)",
        re.I,
    ),
    # common foods
    re.compile(
        r"\b(chicken|beef|pork|fish|egg|milk|cheese|butter|oil|salt|pepper|sugar|flour|water|onion|garlic|tomato|potato|rice|pasta)",
        re.I,
    ),
    # compound ingredients tend to carry commas, dashes or parentheses
    re.compile(r"[,\-()]"),
)

COOKING_ACTION_PATTERNS = _compile(
    [
        r"\b(add|mix|stir|whisk|beat|fold|combine|blend|pour|sprinkle|season)",
        r"\b(cook|bake|roast|grill|fry|sauté|simmer|boil|steam|broil)",
        r"\b(heat|warm|cool|chill|freeze|thaw|refrigerate)",
        r"\b(cut|chop|dice|slice|mince|grate|shred|peel|trim|core)",
        r"\b(place|arrange|spread|layer|transfer|remove|drain|strain)",
        r"\b(serve|garnish|top|drizzle|sprinkle|dust|present)",
        r"\b(preheat|prepare|set|adjust|reduce|increase)",
        r"\b(let|allow|wait|rest|stand|sit)",
    ]
)

BROWSE_VERB_RE = re.compile(r"^(click|tap|view|see|browse|explore)\b", re.I)
_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]*")

MIN_INGREDIENT_LENGTH = 3
MIN_INSTRUCTION_LENGTH = 10


def _matches_any(patterns: Sequence[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def word_count(text: str) -> int:
    """Count alphabetic words; digits and punctuation are not words."""
    return len(_WORD_RE.findall(text))


def is_navigation_item(text: str) -> bool:
    return _matches_any(NAVIGATION_PATTERNS, text)


def is_section_header(text: str) -> bool:
    return _matches_any(SECTION_HEADER_PATTERNS, text)


def is_single_caps_word(text: str) -> bool:
    return word_count(text) == 1 and text == text.upper()


def contains_food_indicator(text: str) -> bool:
    return _matches_any(FOOD_INDICATOR_PATTERNS, text)


def contains_cooking_action(text: str) -> bool:
    return _matches_any(COOKING_ACTION_PATTERNS, text)


def looks_like_sentence(text: str) -> bool:
    return bool(re.match(r"^[A-Z]", text)) or text.endswith(".") or word_count(text) >= 3


def ingredient_score(text: str) -> int:
    """Signed plausibility score for an ingredient line."""
    length = len(text)
    score = 0
    if contains_food_indicator(text):
        score += 3
    if re.search(r"\d", text):
        score += 2
    if "," in text:
        score += 1
    if 10 <= length <= 200:
        score += 1
    if text == text.upper() and length > 5:
        score -= 3
    if BROWSE_VERB_RE.search(text):
        score -= 2
    return score


Rule = Tuple[str, Callable[[str], bool]]

# Rejection rules shared by both lists, evaluated in order.
_COMMON_RULES: Tuple[Rule, ...] = (
    ("navigation/UI element", is_navigation_item),
    ("section header", is_section_header),
)


class NoiseFilter:
    """Filters ingredient and instruction lists, remembering what it dropped."""

    def __init__(self, strictness: Strictness = Strictness.BALANCED, debug: bool = False):
        self.strictness = Strictness(strictness)
        self.debug = debug
        self.filtered_items: List[Dict[str, str]] = []

    @classmethod
    def from_settings(cls, settings, debug: bool = False) -> "NoiseFilter":
        return cls(Strictness.from_name(settings.filter_strictness), debug=debug)

    def ingredient_rejection(self, item: str) -> Optional[str]:
        """Return the reason an ingredient line is rejected, or None to keep it."""
        rules: Tuple[Rule, ...] = _COMMON_RULES + (
            ("too short", lambda t: len(t) < MIN_INGREDIENT_LENGTH),
            ("single word all caps", is_single_caps_word),
        )
        for reason, predicate in rules:
            if predicate(item):
                return reason
        if ingredient_score(item) >= self.strictness.threshold:
            return None
        if item == item.upper() and len(item) > 5:
            return "all caps (likely header)"
        return "low confidence score"

    def instruction_rejection(self, item: str) -> Optional[str]:
        """Return the reason an instruction line is rejected, or None to keep it."""
        rules: Tuple[Rule, ...] = _COMMON_RULES + (
            ("too short", lambda t: len(t) < MIN_INSTRUCTION_LENGTH),
            ("single word all caps", is_single_caps_word),
        )
        for reason, predicate in rules:
            if predicate(item):
                return reason
        if contains_cooking_action(item) or looks_like_sentence(item):
            return None
        return "not an instruction"

    def is_valid_ingredient(self, item: str) -> bool:
        return self.ingredient_rejection(item) is None

    def is_valid_instruction(self, item: str) -> bool:
        return self.instruction_rejection(item) is None

    def filter_ingredients(self, ingredients: Sequence[str]) -> List[str]:
        return self._filter(ingredients, self.ingredient_rejection, "ingredient")

    def filter_instructions(self, instructions: Sequence[str]) -> List[str]:
        return self._filter(instructions, self.instruction_rejection, "instruction")

    @staticmethod
    def quality_ratio(original: Sequence[str], filtered: Sequence[str]) -> float:
        """Fraction of the original items that survived filtering."""
        if not original:
            return 1.0
        return len(filtered) / len(original)

    def filter_recipe(
        self, ingredients: Sequence[str], instructions: Sequence[str]
    ) -> Tuple[List[str], List[str], float, float]:
        """Filter both lists; returns the kept lists and their retention ratios."""
        kept_ingredients = self.filter_ingredients(ingredients)
        kept_instructions = self.filter_instructions(instructions)
        return (
            kept_ingredients,
            kept_instructions,
            self.quality_ratio(ingredients, kept_ingredients),
            self.quality_ratio(instructions, kept_instructions),
        )

    def _filter(
        self,
        items: Sequence[str],
        classify: Callable[[str], Optional[str]],
        kind: str,
    ) -> List[str]:
        kept: List[str] = []
        self.filtered_items = []
        for raw in items or []:
            if not isinstance(raw, str):
                continue
            item = raw.strip()
            if not item:
                continue
            reason = classify(item)
            if reason is None:
                kept.append(item)
                continue
            self.filtered_items.append({"item": item, "reason": reason})
            if self.debug:
                logger.info("NoiseFilter removed %s '%s' (reason: %s)", kind, item, reason)
        return kept
