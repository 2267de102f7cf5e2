"""
Wire Schemas

Pydantic models describing the JSON that providers are asked to return.
They accept the camelCase field names of the prompt contract, reject wrong
types, and fill defaults for nullable fields so the canonical models never
see a null.
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel


DEFAULT_CONFIDENCE = 0.5


def coerce_confidence(value: Any) -> float:
    """
    Clamp a provider-reported confidence.

    Missing, null, NaN or out-of-range values (including integers too
    large for a float) become 0.5. Booleans and non-numeric strings are
    rejected.

    Raises:
        ValueError: If the value is not numeric
    """
    if value is None:
        return DEFAULT_CONFIDENCE
    if isinstance(value, bool):
        raise ValueError("confidence must be a number, got a boolean")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValueError(f"confidence must be a number, got {value!r}") from None
    if not isinstance(value, (int, float)):
        raise ValueError(f"confidence must be a number, got {type(value).__name__}")

    try:
        number = float(value)
    except OverflowError:
        return DEFAULT_CONFIDENCE
    if math.isnan(number) or number < 0.0 or number > 1.0:
        return DEFAULT_CONFIDENCE
    return number


def require_number(value: Any, field: str) -> float:
    """Accept finite JSON numbers only (no booleans, no strings)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field} must be a number")
    try:
        number = float(value)
    except OverflowError:
        raise ValueError(f"{field} is too large") from None
    if not math.isfinite(number):
        raise ValueError(f"{field} must be finite")
    return number


def string_list(value: Any) -> List[str]:
    """Null becomes an empty list; numbers are stringified; blanks dropped."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("expected an array of strings")

    items: List[str] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ValueError("expected an array of strings")
        text = str(item).strip()
        if text:
            items.append(text)
    return items


def optional_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError("expected a string")
    return str(value).strip()


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ============================================================================
# Extraction contract
# ============================================================================


class QuestionWire(_WireModel):
    question_number: int = Field(..., strict=True)
    question_text: str = Field(..., strict=True)
    options: Optional[List[str]] = None
    sub_parts: Optional[List[str]] = None
    subject: str = ""
    topic: str = ""
    difficulty: str = ""
    question_type: str = ""
    language: str = ""
    confidence: float = DEFAULT_CONFIDENCE
    has_visual_elements: bool = Field(
        False,
        validation_alias=AliasChoices(
            "hasVisualElements", "has_visual_elements", "hasImages"
        ),
    )

    @field_validator("question_text")
    @classmethod
    def _non_empty_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("questionText must not be empty")
        return value

    @field_validator("options", "sub_parts", mode="before")
    @classmethod
    def _optional_string_list(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        return string_list(value) or None

    @field_validator("subject", "topic", "difficulty", "question_type", "language", mode="before")
    @classmethod
    def _nullable_text(cls, value: Any) -> str:
        return optional_text(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return coerce_confidence(value)

    @field_validator("has_visual_elements", mode="before")
    @classmethod
    def _nullable_flag(cls, value: Any) -> Any:
        return False if value is None else value


class ExtractionWire(_WireModel):
    """Top-level extraction reply: {"questions": [...]}."""

    questions: List[QuestionWire]


# ============================================================================
# Evaluation contract
# ============================================================================


class EvaluationBlockWire(_WireModel):
    total_marks: float
    awarded_marks: float
    percentage: float
    grade: str = Field(..., strict=True)
    confidence: float = DEFAULT_CONFIDENCE

    @field_validator("total_marks", "awarded_marks", mode="before")
    @classmethod
    def _non_negative_marks(cls, value: Any, info: ValidationInfo) -> float:
        number = require_number(value, info.field_name)
        if number < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return number

    @field_validator("percentage", mode="before")
    @classmethod
    def _percentage_range(cls, value: Any) -> float:
        number = require_number(value, "percentage")
        if number < 0.0 or number > 100.0:
            raise ValueError("percentage must be between 0 and 100")
        return number

    @field_validator("grade")
    @classmethod
    def _non_empty_grade(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("grade must not be empty")
        return value

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return coerce_confidence(value)


class AnalysisWire(_WireModel):
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    missing_points: List[str] = Field(default_factory=list)
    incorrect_points: List[str] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> List[str]:
        return string_list(value)


class CriterionWire(_WireModel):
    marks: float
    feedback: str = ""

    @field_validator("marks", mode="before")
    @classmethod
    def _marks(cls, value: Any) -> float:
        number = require_number(value, "marks")
        if number < 0:
            raise ValueError("marks must not be negative")
        return number

    @field_validator("feedback", mode="before")
    @classmethod
    def _feedback(cls, value: Any) -> str:
        return optional_text(value)


class SuggestionsWire(_WireModel):
    immediate: List[str] = Field(default_factory=list)
    long_term: List[str] = Field(default_factory=list)
    resources: List[str] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> List[str]:
        return string_list(value)


class EvaluationWire(_WireModel):
    """Top-level evaluation reply."""

    evaluation: EvaluationBlockWire
    analysis: Optional[AnalysisWire] = None
    criteria_breakdown: Optional[Dict[str, CriterionWire]] = None
    suggestions: Optional[SuggestionsWire] = None


__all__ = [
    "DEFAULT_CONFIDENCE",
    "coerce_confidence",
    "QuestionWire",
    "ExtractionWire",
    "EvaluationBlockWire",
    "AnalysisWire",
    "CriterionWire",
    "SuggestionsWire",
    "EvaluationWire",
]
