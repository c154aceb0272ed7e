"""Vocabularies and deny-lists shared by the extractors and the scorer."""

FRACTION_MAP = {
    "¼": "1/4",
    "½": "1/2",
    "¾": "3/4",
    "⅐": "1/7",
    "⅑": "1/9",
    "⅒": "1/10",
    "⅓": "1/3",
    "⅔": "2/3",
    "⅕": "1/5",
    "⅖": "2/5",
    "⅗": "3/5",
    "⅘": "4/5",
    "⅙": "1/6",
    "⅚": "5/6",
    "⅛": "1/8",
    "⅜": "3/8",
    "⅝": "5/8",
    "⅞": "7/8",
}

FRACTION_CHARS = "".join(FRACTION_MAP.keys())

# Fractions a decimal quantity may be rendered as, with their values.
DISPLAY_FRACTIONS = [
    (1 / 8, "1/8"),
    (1 / 4, "1/4"),
    (1 / 3, "1/3"),
    (3 / 8, "3/8"),
    (1 / 2, "1/2"),
    (5 / 8, "5/8"),
    (2 / 3, "2/3"),
    (3 / 4, "3/4"),
    (7 / 8, "7/8"),
]
FRACTION_TOLERANCE = 0.02

# Measurement units recognised when judging ingredient quality.
MEASUREMENT_UNIT_PATTERN = (
    r"\b(\d+\s*)?(cups?|tablespoons?|tbsps?|tbs|teaspoons?|tsps?|ounces?|oz|"
    r"pounds?|lbs?|grams?|g|kilograms?|kg|milliliters?|millilitres?|ml|liters?|litres?|l|"
    r"pints?|quarts?|gallons?|pinch(es)?|dash(es)?|cloves?|cans?|packages?|sticks?|"
    r"slices?|pieces?|bunch(es)?|handfuls?)\b"
)

# Category/cuisine/keyword values too generic to be informative.
GENERIC_TAXONOMY_TERMS = {
    "recipe",
    "recipes",
    "food",
    "foods",
    "dish",
    "dishes",
    "meal",
    "meals",
    "cooking",
    "other",
    "general",
    "uncategorized",
    "default",
    "all",
    "main",
    "none",
    "n/a",
}
TAXONOMY_MIN_LENGTH = 3
TAXONOMY_MAX_LENGTH = 50
CATEGORY_LIMIT = 5
CUISINE_LIMIT = 5
KEYWORD_LIMIT = 15

# Site brands that structured data sometimes tags as the recipe author.
SITE_BRAND_AUTHORS = {
    "allrecipes",
    "allrecipes member",
    "food network",
    "food network kitchen",
    "serious eats",
    "bon appetit",
    "bon appétit",
    "epicurious",
    "delish",
    "tasty",
    "taste of home",
    "the spruce eats",
    "simply recipes",
    "simplyrecipes",
    "bbc good food",
    "nyt cooking",
    "food & wine",
    "food and wine",
    "eatingwell",
    "martha stewart",
    "editorial staff",
    "test kitchen",
    "staff",
    "admin",
}

# Titles that carry no information about the recipe.
GENERIC_TITLES = {
    "",
    "recipe",
    "recipes",
    "untitled",
    "untitled recipe",
    "home",
    "index",
    "page not found",
}

# schema.org NutritionInformation property -> canonical name
NUTRITION_FIELDS = {
    "calories": "calories",
    "fatContent": "fat",
    "saturatedFatContent": "saturatedFat",
    "unsaturatedFatContent": "unsaturatedFat",
    "transFatContent": "transFat",
    "cholesterolContent": "cholesterol",
    "sodiumContent": "sodium",
    "carbohydrateContent": "carbohydrates",
    "fiberContent": "fiber",
    "sugarContent": "sugar",
    "proteinContent": "protein",
}
NUTRITION_MIN_FIELDS = 3

SCHEMA_ORG_PREFIXES = ("https://schema.org/", "http://schema.org/", "schema:")

# schema.org RestrictedDiet codes -> display label
DIET_TYPE_LABELS = {
    "DiabeticDiet": "Diabetic",
    "GlutenFreeDiet": "Gluten-Free",
    "HalalDiet": "Halal",
    "HinduDiet": "Hindu",
    "KosherDiet": "Kosher",
    "LowCalorieDiet": "Low Calorie",
    "LowFatDiet": "Low Fat",
    "LowLactoseDiet": "Low Lactose",
    "LowSaltDiet": "Low Salt",
    "VeganDiet": "Vegan",
    "VegetarianDiet": "Vegetarian",
}

# Markers that identify hostile responses.
BOT_CHALLENGE_MARKERS = ("cf-browser-verification", "Checking your browser")
JAVASCRIPT_REQUIRED_MARKER = "Please enable JavaScript"
JAVASCRIPT_REQUIRED_MAX_LENGTH = 5000
