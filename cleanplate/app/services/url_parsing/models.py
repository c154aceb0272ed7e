"""Pydantic models for recipe extraction."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PLACEHOLDER_TITLE = "Untitled Recipe"

ImageSource = Literal["structured-data", "og:image", "dom"]
ConfidenceLevel = Literal["low", "medium", "high"]


class RecipeSource(BaseModel):
    """Where a recipe came from."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    site_name: str = Field(alias="siteName")
    author: Optional[str] = None


class NormalizedRecipe(BaseModel):
    """Canonical recipe produced by either extraction phase.

    ``metadata`` is sparse: a key is present only when the page supplied a
    usable value for it. The quality ratios record how much of each raw list
    survived the noise filter; they feed the confidence score and are not
    part of the serialized shape.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = PLACEHOLDER_TITLE
    source: RecipeSource
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    ingredient_quality_ratio: Optional[float] = Field(default=None, exclude=True)
    instruction_quality_ratio: Optional[float] = Field(default=None, exclude=True)


class ImageCandidate(BaseModel):
    """One scored image considered as the recipe's representative photo."""

    model_config = ConfigDict(frozen=True)

    url: str
    score: int = Field(ge=0, le=100)
    source: ImageSource
    alt: Optional[str] = None


class ConfidenceResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    level: ConfidenceLevel
    factors: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class ExtractionEnvelope(BaseModel):
    """Successful extraction response."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["success"] = "success"
    phase: Literal[1, 2]
    confidence: int
    confidence_level: ConfidenceLevel = Field(alias="confidenceLevel")
    confidence_details: Dict[str, Dict[str, Any]] = Field(alias="confidenceDetails")
    data: NormalizedRecipe
    timestamp: str

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BatchItemResult(BaseModel):
    """Outcome of one URL in a sequential batch import."""

    url: str
    ok: bool
    cached: bool = False
    envelope: Optional[ExtractionEnvelope] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
