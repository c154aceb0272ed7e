import json
import logging

import httpx
import pytest

from cleanplate.app.services import recipe_extraction
from cleanplate.app.services.url_parsing import html_fetcher
from cleanplate.app.services.url_parsing.errors import HttpError, NoRecipeFound
from cleanplate.app.services.url_parsing.models import NormalizedRecipe, RecipeSource

URL = "https://www.example.com/pancakes"

PANCAKES = {
    "@context": "https://schema.org",
    "@type": "Recipe",
    "name": "Buttermilk Pancakes",
    "image": "https://cdn.example.com/pancakes.jpg",
    "prepTime": "PT10M",
    "cookTime": "PT20M",
    "recipeYield": "4",
    "recipeIngredient": [
        "2 cups flour",
        "1 tbsp sugar",
        "2 tsp baking powder",
        "2 cups buttermilk",
        "2 eggs",
        "3 tbsp butter, melted",
    ],
    "recipeInstructions": [
        {"@type": "HowToStep", "text": "Whisk the flour, sugar and baking powder."},
        {"@type": "HowToStep", "text": "Beat the eggs into the buttermilk."},
        {"@type": "HowToStep", "text": "Stir the wet mix into the dry."},
        {"@type": "HowToStep", "text": "Heat a griddle over medium heat."},
        {"@type": "HowToStep", "text": "Pour the batter and cook until bubbles form."},
        {"@type": "HowToStep", "text": "Serve warm with syrup."},
    ],
}

STRUCTURED_PAGE = (
    '<html><head><script type="application/ld+json">'
    + json.dumps(PANCAKES)
    + "</script></head><body></body></html>"
)

DOM_PAGE = """
<html><body>
  <h1 class="recipe-title">Toast</h1>
  <ul class="ingredients"><li>2 slices bread</li><li>1 tbsp butter</li></ul>
  <ol class="instructions"><li>Toast the bread until golden.</li><li>Spread with butter and serve.</li></ol>
</body></html>
"""


class StubFetcher:
    """Answers fetches from a url -> html-or-exception map."""

    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def fetch(self, url):
        self.calls.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


def test_structured_page_is_phase_one(monkeypatch, settings):
    def no_heuristics(*args, **kwargs):
        raise AssertionError("heuristic phase must not run")

    monkeypatch.setattr(recipe_extraction, "extract_recipe_heuristic", no_heuristics)
    envelope = recipe_extraction.parse_recipe_html(STRUCTURED_PAGE, URL, settings=settings)

    assert envelope.status == "success"
    assert envelope.phase == 1
    assert envelope.data.title == "Buttermilk Pancakes"
    assert envelope.confidence == 100
    assert envelope.confidence_level == "high"
    assert envelope.confidence_details["phase"]["points"] == 40


def test_dom_page_falls_back_to_phase_two(settings):
    envelope = recipe_extraction.parse_recipe_html(DOM_PAGE, URL, settings=settings)
    assert envelope.phase == 2
    assert envelope.data.title == "Toast"
    assert envelope.data.ingredients == ["2 slices bread", "1 tbsp butter"]
    assert envelope.confidence_details["phase"] == {"points": 20, "max": 40, "phase": 2}


def test_phase_two_runs_only_when_phase_one_finds_nothing(monkeypatch, settings):
    calls = []
    recipe = NormalizedRecipe(
        title="Stub",
        source=RecipeSource(url=URL, site_name="www.example.com"),
        ingredients=["1 cup rice"],
    )

    def phase_one(html, url, **kwargs):
        calls.append("phase1")
        return None

    def phase_two(html, url, **kwargs):
        calls.append("phase2")
        return recipe

    monkeypatch.setattr(recipe_extraction, "extract_recipe_from_schema_org", phase_one)
    monkeypatch.setattr(recipe_extraction, "extract_recipe_heuristic", phase_two)
    envelope = recipe_extraction.parse_recipe_html("<html></html>", URL, settings=settings)

    assert calls == ["phase1", "phase2"]
    assert envelope.phase == 2
    assert envelope.data is recipe


def test_no_recipe_found(settings):
    with pytest.raises(NoRecipeFound):
        recipe_extraction.parse_recipe_html("<html><p>About us</p></html>", URL, settings=settings)


def test_debug_logging_emits_one_confidence_line(settings, caplog):
    logger_name = "cleanplate.app.services.url_parsing.confidence"
    with caplog.at_level(logging.INFO, logger=logger_name):
        recipe_extraction.parse_recipe_html(STRUCTURED_PAGE, URL, debug_logging=True, settings=settings)
    lines = [r.getMessage() for r in caplog.records if r.name == logger_name]
    assert len(lines) == 1
    assert "] CONFIDENCE | www.example.com | Phase 1 | Score: 100/100 (HIGH) | phase=40/40" in lines[0]


def test_no_confidence_line_without_debug(settings, caplog):
    logger_name = "cleanplate.app.services.url_parsing.confidence"
    with caplog.at_level(logging.INFO, logger=logger_name):
        recipe_extraction.parse_recipe_html(STRUCTURED_PAGE, URL, settings=settings)
    assert [r for r in caplog.records if r.name == logger_name] == []


def test_envelope_serializes_camel_case_without_internal_fields(settings):
    payload = recipe_extraction.parse_recipe_html(STRUCTURED_PAGE, URL, settings=settings).to_json_dict()

    assert set(payload) == {
        "status",
        "phase",
        "confidence",
        "confidenceLevel",
        "confidenceDetails",
        "data",
        "timestamp",
    }
    assert set(payload["data"]) == {"title", "source", "ingredients", "instructions", "metadata"}
    assert payload["data"]["source"] == {"url": URL, "siteName": "www.example.com"}
    assert payload["data"]["metadata"]["prepTime"] == "10 minutes"
    assert payload["data"]["metadata"]["imageUrl"] == "https://cdn.example.com/pancakes.jpg"


def test_extract_recipe_fetches_then_parses(settings, make_fetcher):
    fetcher = make_fetcher(lambda request: httpx.Response(200, text=STRUCTURED_PAGE))
    envelope = recipe_extraction.extract_recipe(f"  {URL}  ", fetcher=fetcher, settings=settings)
    assert envelope.data.source.url == URL
    assert envelope.data.title == "Buttermilk Pancakes"


def test_batch_pauses_between_fresh_items_and_records_failures(settings):
    cached_url = "https://www.example.com/cached"
    cached = recipe_extraction.parse_recipe_html(STRUCTURED_PAGE, cached_url, settings=settings)
    cache = {cached_url: cached}
    fetcher = StubFetcher(
        {
            URL: STRUCTURED_PAGE,
            "https://www.example.com/broken": HttpError(500),
            "https://www.example.com/toast": DOM_PAGE,
        }
    )
    sleeps = []
    urls = [
        URL,
        "ftp://www.example.com/nope",
        "https://www.example.com/broken",
        cached_url,
        "https://www.example.com/toast",
    ]

    results = recipe_extraction.extract_recipes_batch(
        urls, fetcher=fetcher, cache=cache, sleep=sleeps.append, settings=settings
    )

    assert [r.ok for r in results] == [True, False, False, True, True]
    assert [r.cached for r in results] == [False, False, False, True, False]
    assert [r.error_code for r in results] == [None, "INVALID_URL", "HTTP_ERROR", None, None]
    assert results[3].envelope is cached
    assert results[4].envelope.phase == 2
    # after the first success and the failed fetch; never after the last item
    assert sleeps == [5.0, 5.0]
    assert fetcher.calls == [URL, "https://www.example.com/broken", "https://www.example.com/toast"]
    assert set(cache) == {cached_url, URL, "https://www.example.com/toast"}


def test_batch_pause_override_and_single_item(settings):
    fetcher = StubFetcher({URL: STRUCTURED_PAGE, "https://www.example.com/toast": DOM_PAGE})
    sleeps = []
    recipe_extraction.extract_recipes_batch(
        [URL, "https://www.example.com/toast"], fetcher=fetcher, pause_seconds=0, sleep=sleeps.append, settings=settings
    )
    assert sleeps == []

    recipe_extraction.extract_recipes_batch([URL], fetcher=fetcher, sleep=sleeps.append, settings=settings)
    assert sleeps == []


def test_batch_skips_work_for_cached_urls(settings):
    cached = recipe_extraction.parse_recipe_html(STRUCTURED_PAGE, URL, settings=settings)
    fetcher = StubFetcher({})
    sleeps = []
    results = recipe_extraction.extract_recipes_batch(
        [URL, URL], fetcher=fetcher, cache={URL: cached}, sleep=sleeps.append, settings=settings
    )
    assert all(r.cached for r in results)
    assert fetcher.calls == []
    assert sleeps == []


def test_batch_does_not_pause_after_a_refused_host(monkeypatch, settings):
    internal = "https://intranet.example.com/recipes/soup"
    addresses = {"intranet.example.com": ["10.0.0.1"]}
    monkeypatch.setattr(
        html_fetcher, "resolve_host", lambda host: addresses.get(host, ["93.184.216.34"])
    )
    fetcher = StubFetcher({URL: STRUCTURED_PAGE, "https://www.example.com/toast": DOM_PAGE})
    sleeps = []

    results = recipe_extraction.extract_recipes_batch(
        [internal, URL, "http://127.0.0.1/admin", "https://www.example.com/toast"],
        fetcher=fetcher,
        sleep=sleeps.append,
        settings=settings,
    )

    assert [r.error_code for r in results] == ["FORBIDDEN", None, "FORBIDDEN", None]
    # only the fetched pancakes page earns a pause
    assert sleeps == [5.0]
    assert fetcher.calls == [URL, "https://www.example.com/toast"]
