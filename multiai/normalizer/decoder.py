"""
Response Normalizer

Turns a provider's raw reply into the canonical result shape. Providers
wrap JSON in markdown fences or chatty prose; both are stripped before a
strict decode through the wire schemas.

Usage:
    from multiai.normalizer import normalize

    result = normalize(raw_response, "extraction")
    if isinstance(result, ParseError):
        ...
"""

import json
import re
from typing import Any, Union

from pydantic import ValidationError

from multiai.consensus.models import (
    AnswerEvaluation,
    ConsensusKind,
    CriterionScore,
    ExtractedQuestionSet,
    NormalizedResult,
    ParseError,
    Question,
    Suggestions,
)
from multiai.normalizer.schemas import EvaluationWire, ExtractionWire
from multiai.providers.interfaces import RawResponse


_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?")


class ResponseParseError(ValueError):
    """Raised when a reply cannot be decoded into the expected shape."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


def strip_wrapping(text: str) -> str:
    """
    Remove markdown fences and any prose around the JSON object.

    Example:
        >>> strip_wrapping('Here you go:\\n```json\\n{"questions": []}\\n```')
        '{"questions": []}'
    """
    cleaned = _FENCE_PATTERN.sub("", text or "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end < start:
        return cleaned
    return cleaned[start : end + 1]


def _format_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"{location}: {first.get('msg', 'invalid value')}"


def _load_object(raw: RawResponse) -> Any:
    body = strip_wrapping(raw.text)
    if not body:
        raise ResponseParseError(raw.provider, "empty response")
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(raw.provider, f"invalid JSON: {exc.msg}") from exc
    except (ValueError, RecursionError) as exc:
        # Integers past the int-conversion limit, nesting past the recursion limit
        raise ResponseParseError(raw.provider, f"unreadable JSON: {type(exc).__name__}") from exc
    if not isinstance(data, dict):
        raise ResponseParseError(raw.provider, "top-level JSON value is not an object")
    return data


def _to_question_set(wire: ExtractionWire) -> ExtractedQuestionSet:
    return ExtractedQuestionSet(
        questions=[
            Question(
                number=item.question_number,
                text=item.question_text,
                options=item.options,
                sub_parts=item.sub_parts,
                subject=item.subject,
                topic=item.topic,
                difficulty=item.difficulty,
                question_type=item.question_type,
                language=item.language,
                confidence=item.confidence,
                has_visual_elements=item.has_visual_elements,
            )
            for item in wire.questions
        ]
    )


def _to_evaluation(wire: EvaluationWire) -> AnswerEvaluation:
    block = wire.evaluation
    analysis = wire.analysis
    suggestions = wire.suggestions

    return AnswerEvaluation(
        awarded_marks=block.awarded_marks,
        total_marks=block.total_marks,
        percentage=block.percentage,
        grade=block.grade,
        confidence=block.confidence,
        strengths=analysis.strengths if analysis else [],
        weaknesses=analysis.weaknesses if analysis else [],
        missing_points=analysis.missing_points if analysis else [],
        incorrect_points=analysis.incorrect_points if analysis else [],
        suggestions=Suggestions(
            immediate=suggestions.immediate,
            long_term=suggestions.long_term,
            resources=suggestions.resources,
        )
        if suggestions
        else Suggestions(),
        criteria_breakdown={
            name: CriterionScore(marks=criterion.marks, feedback=criterion.feedback)
            for name, criterion in (wire.criteria_breakdown or {}).items()
        },
    )


def decode(raw: RawResponse, expected_shape: ConsensusKind) -> NormalizedResult:
    """
    Decode a raw reply into the canonical shape.

    Args:
        raw: Unparsed provider reply
        expected_shape: 'extraction' or 'evaluation'

    Returns:
        ExtractedQuestionSet or AnswerEvaluation

    Raises:
        ResponseParseError: On non-JSON input, wrong types or missing
            mandatory fields
        ValueError: If expected_shape is unknown
    """
    if expected_shape not in ("extraction", "evaluation"):
        raise ValueError(f"Unknown result shape: {expected_shape}")

    data = _load_object(raw)
    try:
        if expected_shape == "extraction":
            return _to_question_set(ExtractionWire.model_validate(data))
        return _to_evaluation(EvaluationWire.model_validate(data))
    except ValidationError as exc:
        raise ResponseParseError(raw.provider, _format_validation_error(exc)) from exc


def normalize(
    raw: RawResponse, expected_shape: ConsensusKind
) -> Union[NormalizedResult, ParseError]:
    """
    Decode a raw reply, returning a ParseError instead of raising.

    Example:
        >>> result = normalize(RawResponse(provider="claude", text="not json"), "evaluation")
        >>> result.kind
        <FailureKind.PARSE_ERROR: 'parse_error'>
    """
    try:
        return decode(raw, expected_shape)
    except ResponseParseError as exc:
        return ParseError(provider=raw.provider, message=exc.message)
