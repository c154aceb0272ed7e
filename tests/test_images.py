from bs4 import BeautifulSoup

from cleanplate.app.services.url_parsing.images import (
    image_metadata,
    rank_candidates,
    rank_image_candidates,
    rank_page_images,
    score_dom_image,
)
from cleanplate.app.services.url_parsing.models import ImageCandidate
from cleanplate.app.services.url_parsing.parsing_utils import strip_query

PAGE_URL = "https://example.com/recipes/pancakes"

RECIPE_PAGE = """
<html>
  <head>
    <meta property="og:image" content="https://cdn.example.com/og.jpg?w=1200">
    <meta content="https://cdn.example.com/og2.jpg" name="og:image">
  </head>
  <body>
    <div class="recipe-card">
      <img src="/images/pancakes-recipe.jpg" width="800" height="600"
           alt="Stack of fluffy pancakes" class="wp-post-image">
      <img src="/images/site-logo.png" width="100" height="50" alt="logo">
    </div>
    <div class="sidebar">
      <img src="/images/sidebar-food.jpg" width="800" height="600">
    </div>
  </body>
</html>
"""


def _img(markup: str):
    return BeautifulSoup(markup, "lxml").find("img")


def test_collects_every_source_and_keeps_top_three():
    ranked = rank_image_candidates(
        RECIPE_PAGE, PAGE_URL, primary_image="https://cdn.example.com/hero.jpg"
    )
    assert [(c.url, c.score, c.source) for c in ranked] == [
        ("https://cdn.example.com/hero.jpg", 100, "structured-data"),
        ("https://example.com/images/pancakes-recipe.jpg", 99, "dom"),
        ("https://cdn.example.com/og.jpg?w=1200", 90, "og:image"),
    ]
    assert ranked[1].alt == "Stack of fluffy pancakes"


def test_never_more_than_three_strictly_descending_and_unique():
    ranked = rank_image_candidates(
        RECIPE_PAGE, PAGE_URL, primary_image="https://cdn.example.com/hero.jpg"
    )
    assert len(ranked) <= 3
    scores = [c.score for c in ranked]
    assert all(a > b for a, b in zip(scores, scores[1:]))
    keys = [strip_query(c.url) for c in ranked]
    assert len(keys) == len(set(keys))


def test_dedupes_ignoring_query_and_keeps_best_score():
    html = '<meta property="og:image" content="https://cdn.example.com/og.jpg?w=1200">'
    ranked = rank_image_candidates(html, PAGE_URL, primary_image="https://cdn.example.com/og.jpg")
    assert len(ranked) == 1
    assert ranked[0].source == "structured-data"
    assert ranked[0].score == 100


def test_low_scoring_dom_images_are_dropped():
    html = '<div class="recipe"><img src="/site-logo.png" width="100" height="50" alt="logo"></div>'
    assert rank_image_candidates(html, PAGE_URL) == []


def test_images_outside_recipe_containers_are_ignored():
    html = '<div class="sidebar"><img src="/food.jpg" width="800" height="800"></div>'
    assert rank_image_candidates(html, PAGE_URL) == []


def test_base_href_and_relative_paths():
    html = """
    <html><head><base href="https://static.example.org/assets/"></head>
    <body><div id="recipe">
      <img src="img/soup-dish.jpg" width="500" height="500" alt="A bowl of tomato soup">
    </div></body></html>
    """
    ranked = rank_image_candidates(html, PAGE_URL)
    assert len(ranked) == 1
    assert ranked[0].url == "https://static.example.org/assets/img/soup-dish.jpg"
    # base 50, large +20, filename +15, alt +10
    assert ranked[0].score == 95


def test_lazy_loaded_image_uses_real_source():
    html = """
    <div class="recipe">
      <img src="data:image/gif;base64,R0lGOD" data-src="//cdn.example.com/lazy-food.jpg"
           width="300" height="300">
    </div>
    """
    ranked = rank_image_candidates(html, PAGE_URL)
    assert ranked[0].url == "https://cdn.example.com/lazy-food.jpg"
    # base 50, medium +10, filename +15, lazy +5
    assert ranked[0].score == 80


def test_score_dom_image_penalties():
    avatar = _img('<img src="/jane.jpg" class="author-avatar">')
    assert score_dom_image(avatar, "https://example.com/jane.jpg") == 35
    banner = _img('<img src="/top-banner.jpg" width="1200" height="800">')
    assert score_dom_image(banner, "https://example.com/top-banner.jpg") == 40


def test_generic_alt_text_earns_nothing():
    img = _img('<img src="/photo.jpg" alt="image 1234567">')
    assert score_dom_image(img, "https://example.com/photo.jpg") == 50


def test_equal_scores_are_stepped_down():
    candidates = [
        ImageCandidate(url="https://a.com/1.jpg", score=90, source="og:image"),
        ImageCandidate(url="https://a.com/2.jpg", score=90, source="og:image"),
        ImageCandidate(url="https://a.com/3.jpg", score=90, source="og:image"),
        ImageCandidate(url="https://a.com/4.jpg", score=50, source="dom"),
    ]
    ranked = rank_candidates(candidates)
    assert [(c.url, c.score) for c in ranked] == [
        ("https://a.com/1.jpg", 90),
        ("https://a.com/2.jpg", 89),
        ("https://a.com/3.jpg", 88),
    ]


def test_image_metadata_falls_back_to_best_candidate():
    soup = BeautifulSoup(RECIPE_PAGE, "lxml")
    metadata = image_metadata(soup, PAGE_URL)
    assert metadata["imageUrl"] == "https://example.com/images/pancakes-recipe.jpg"
    assert metadata["imageCandidates"][0] == {
        "url": "https://example.com/images/pancakes-recipe.jpg",
        "score": 100,
        "source": "dom",
        "alt": "Stack of fluffy pancakes",
    }
    assert "alt" not in metadata["imageCandidates"][1]


def test_image_metadata_prefers_structured_image():
    soup = BeautifulSoup(RECIPE_PAGE, "lxml")
    metadata = image_metadata(soup, PAGE_URL, primary_image="/images/hero.jpg")
    assert metadata["imageUrl"] == "https://example.com/images/hero.jpg"
    assert metadata["imageCandidates"][0]["source"] == "structured-data"


def test_parsed_page_ranks_like_raw_html():
    soup = BeautifulSoup(RECIPE_PAGE, "lxml")
    hero = "https://cdn.example.com/hero.jpg"
    from_soup = rank_page_images(soup, PAGE_URL, primary_image=hero)
    assert from_soup == rank_image_candidates(RECIPE_PAGE, PAGE_URL, primary_image=hero)
    assert from_soup[0].source == "structured-data"
