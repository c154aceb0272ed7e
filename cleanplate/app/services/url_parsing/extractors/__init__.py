"""Recipe extractors for the two parsing phases."""

from cleanplate.app.services.url_parsing.extractors.heuristic import (
    extract_recipe_heuristic,
)
from cleanplate.app.services.url_parsing.extractors.schema_org import (
    extract_recipe_from_schema_org,
)

__all__ = [
    "extract_recipe_from_schema_org",
    "extract_recipe_heuristic",
]
