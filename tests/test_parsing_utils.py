import pytest

from cleanplate.app.services.url_parsing.ingredient_parser import (
    extract_ingredients,
    format_ingredient_line,
)
from cleanplate.app.services.url_parsing.parsing_utils import (
    clean_text,
    coerce_taxonomy,
    decimal_to_fraction,
    extract_image,
    extract_instruction_text,
    format_duration,
    format_quantities,
    resolve_url,
    set_if_present,
    strip_query,
)


def test_clean_text_decodes_entities_and_collapses_whitespace():
    assert clean_text("  Caf&eacute; <b>au</b>   lait ") == "Café au lait"
    assert clean_text(None) == ""
    assert clean_text(4) == "4"


def test_clean_text_keeps_encoded_angle_brackets():
    assert clean_text("Cook until &lt; 160F and &gt; 150F") == "Cook until < 160F and > 150F"
    assert clean_text("Cook until < 160F and > 150F") == "Cook until < 160F and > 150F"
    assert clean_text("&lt;b&gt;bold&lt;/b&gt; text") == "<b>bold</b> text"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("PT1H30M", "1 hour 30 minutes"),
        ("PT90M", "90 minutes"),
        ("PT2H", "2 hours"),
        ("PT1M", "1 minute"),
        ("P1DT2H", "26 hours"),
        ("about 20 min", "about 20 min"),
    ],
)
def test_format_duration(value, expected):
    assert format_duration(value) == expected


def test_extract_image_accepts_string_list_and_object():
    assert extract_image("https://x.com/a.jpg") == "https://x.com/a.jpg"
    assert extract_image(["https://x.com/a.jpg", "https://x.com/b.jpg"]) == "https://x.com/a.jpg"
    assert extract_image({"@type": "ImageObject", "url": "https://x.com/c.jpg"}) == "https://x.com/c.jpg"
    assert extract_image({"contentUrl": "https://x.com/d.jpg"}) == "https://x.com/d.jpg"
    assert extract_image(None) is None
    assert extract_image([]) is None


def test_extract_instruction_text_flattens_sections():
    instructions = [
        {
            "@type": "HowToSection",
            "name": "Sauce",
            "itemListElement": [
                {"@type": "HowToStep", "text": "Melt butter."},
                {"@type": "HowToStep", "text": "Whisk in flour."},
            ],
        },
        {"@type": "HowToStep", "text": "Serve &amp; enjoy."},
        "Clean up.",
    ]
    assert extract_instruction_text(instructions) == [
        "Melt butter.",
        "Whisk in flour.",
        "Serve & enjoy.",
        "Clean up.",
    ]
    assert extract_instruction_text("Just one step.") == ["Just one step."]
    assert extract_instruction_text(None) == []


def test_coerce_taxonomy_filters_generic_and_duplicates():
    assert coerce_taxonomy("Dinner, Recipe, dinner, Pasta", 5) == ["Dinner", "Pasta"]
    assert coerce_taxonomy(["Italian", "it", "x" * 60, "Italian"], 5) == ["Italian"]
    assert coerce_taxonomy(["One", "Two", "Three"], 2) == ["One", "Two"]
    assert coerce_taxonomy(None, 5) == []


@pytest.mark.parametrize(
    "value,expected",
    [
        (0.5, "1/2"),
        (1.5, "1 1/2"),
        (0.33, "1/3"),
        (0.25, "1/4"),
        (2.0, "2"),
        (0.99, "1"),
        (0.45, None),
        (float("inf"), None),
        (float("nan"), None),
    ],
)
def test_decimal_to_fraction(value, expected):
    assert decimal_to_fraction(value) == expected


def test_format_quantities_rewrites_decimals_only():
    assert format_quantities("0.5 cups milk") == "1/2 cups milk"
    assert format_quantities("1.5 tbsp butter") == "1 1/2 tbsp butter"
    assert format_quantities("0.45 kg flour") == "0.45 kg flour"
    assert format_quantities("2 eggs") == "2 eggs"


def test_huge_decimal_quantity_is_left_alone():
    line = "9" * 400 + ".5 cups flour"
    assert format_quantities(line) == line
    assert format_ingredient_line(line) == line


def test_format_ingredient_line_normalizes_unicode_fractions():
    assert format_ingredient_line("1½ cups flour") == "1 1/2 cups flour"
    assert format_ingredient_line("¼ tsp salt") == "1/4 tsp salt"
    assert format_ingredient_line("0.5 cups sugar") == "1/2 cups sugar"


def test_extract_ingredients_handles_strings_and_objects():
    raw = ["2 eggs", {"text": "1 cup milk"}, {"name": "pinch of salt"}, 7, "   "]
    assert extract_ingredients(raw) == ["2 eggs", "1 cup milk", "pinch of salt"]
    assert extract_ingredients("1 cup rice") == ["1 cup rice"]
    assert extract_ingredients(None) == []


def test_resolve_url_handles_relative_forms():
    page = "https://site.com/recipes/soup"
    assert resolve_url("//cdn.site.com/a.jpg", page) == "https://cdn.site.com/a.jpg"
    assert resolve_url("/img/a.jpg", page) == "https://site.com/img/a.jpg"
    assert resolve_url("b.jpg", page) == "https://site.com/recipes/b.jpg"
    assert resolve_url("data:image/png;base64,AAAA", page) is None
    assert resolve_url("", page) is None


def test_strip_query():
    assert strip_query("https://x.com/a.jpg?w=100#top") == "https://x.com/a.jpg"


def test_set_if_present_skips_empty_values():
    target = {}
    set_if_present(target, "a", "")
    set_if_present(target, "b", [])
    set_if_present(target, "c", None)
    set_if_present(target, "d", 0)
    set_if_present(target, "e", "value")
    assert target == {"d": 0, "e": "value"}
