"""
Canonical Result Models

Provider-independent shapes shared by the normalizer, the consensus engine
and the scoring policy, plus the final ConsensusResult handed to callers.

All models serialize with camelCase aliases (questionText, perProvider,
agreementScore, ...) and accept either spelling on input.
"""

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from multiai.providers.interfaces import AdapterError, Capability, FailureKind


ConsensusKind = Literal["extraction", "evaluation"]
AgreementLevel = Literal["high", "single"]


def kind_for_capability(capability: Capability) -> ConsensusKind:
    """Map a task capability onto the kind of result it produces."""
    if capability is Capability.VISION_EXTRACTION:
        return "extraction"
    return "evaluation"


class _CanonicalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ============================================================================
# Extraction
# ============================================================================


class Question(_CanonicalModel):
    """
    One question read from an examination page.

    source_providers and agreement_level are empty on per-provider results
    and filled in only by the consensus merge.

    Example:
        >>> question = Question(number=1, text="Consider the following statements", confidence=0.9)
    """

    number: int = Field(..., description="Question number as printed on the page")
    text: str = Field(..., description="Complete question text", min_length=1)
    options: Optional[List[str]] = Field(None, description="Multiple choice options")
    sub_parts: Optional[List[str]] = Field(None, description="Sub-parts of the question")
    subject: str = Field("", description="Subject classification")
    topic: str = Field("", description="Topic or subtopic")
    difficulty: str = Field("", description="Easy, Medium or Hard")
    question_type: str = Field("", description="MCQ, Assertion-Reason, Statement, CaseStudy")
    language: str = Field("", description="English, Hindi or Mixed")
    confidence: float = Field(0.5, description="Provider confidence", ge=0.0, le=1.0)
    has_visual_elements: bool = Field(False, description="Question refers to a figure")
    source_providers: List[str] = Field(
        default_factory=list, description="Providers that reported this question"
    )
    agreement_level: Optional[AgreementLevel] = Field(
        None, description="'high' when reported by two or more providers"
    )


class ExtractedQuestionSet(_CanonicalModel):
    """All questions found on one page."""

    kind: Literal["extraction"] = "extraction"
    questions: List[Question] = Field(default_factory=list)


# ============================================================================
# Evaluation
# ============================================================================


class CriterionScore(_CanonicalModel):
    """Marks and feedback for one evaluation criterion."""

    marks: float = Field(..., description="Marks awarded for the criterion", ge=0.0)
    feedback: str = Field("", description="Examiner feedback")
    source_providers: List[str] = Field(default_factory=list)
    agreement_level: Optional[AgreementLevel] = None


class Suggestions(_CanonicalModel):
    immediate: List[str] = Field(default_factory=list)
    long_term: List[str] = Field(default_factory=list)
    resources: List[str] = Field(default_factory=list)


class AnswerEvaluation(_CanonicalModel):
    """
    Grade and structured feedback for one student answer.

    Attributes:
        awarded_marks: Marks given to the answer
        total_marks: Maximum marks of the question
        percentage: Score as a percentage (0-100)
        grade: Letter grade (A+, A, B+, B, C+, C, D, F)
        confidence: Provider confidence (0-1)
        criteria_breakdown: Marks and feedback per evaluation criterion
        source_providers: Providers whose evaluations were merged
    """

    kind: Literal["evaluation"] = "evaluation"
    awarded_marks: float = Field(..., description="Marks awarded", ge=0.0)
    total_marks: float = Field(..., description="Maximum marks", ge=0.0)
    percentage: float = Field(..., description="Percentage score", ge=0.0, le=100.0)
    grade: str = Field(..., description="Letter grade", min_length=1)
    confidence: float = Field(0.5, description="Provider confidence", ge=0.0, le=1.0)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    missing_points: List[str] = Field(default_factory=list)
    incorrect_points: List[str] = Field(default_factory=list)
    suggestions: Suggestions = Field(default_factory=Suggestions)
    criteria_breakdown: Dict[str, CriterionScore] = Field(default_factory=dict)
    source_providers: List[str] = Field(default_factory=list)


NormalizedResult = Union[ExtractedQuestionSet, AnswerEvaluation]


# ============================================================================
# Per-provider outcomes
# ============================================================================


class ParseError(_CanonicalModel):
    """A provider reply that could not be decoded into the expected shape."""

    provider: str = Field(..., min_length=1)
    kind: Literal[FailureKind.PARSE_ERROR] = FailureKind.PARSE_ERROR
    message: str = Field(..., description="Why decoding failed")


ProviderFailure = Union[AdapterError, ParseError]


class ProviderOutcome(_CanonicalModel):
    """
    Result of one provider for one task.

    Exactly one of normalized and failure is set.

    Example:
        >>> outcome = ProviderOutcome(provider="gemini", normalized=question_set, duration_seconds=1.8)
        >>> outcome.succeeded
        True
    """

    provider: str = Field(..., min_length=1)
    normalized: Optional[NormalizedResult] = None
    failure: Optional[ProviderFailure] = None
    duration_seconds: float = Field(0.0, ge=0.0)

    @model_validator(mode="after")
    def _exactly_one_result(self) -> "ProviderOutcome":
        if (self.normalized is None) == (self.failure is None):
            raise ValueError("ProviderOutcome needs exactly one of normalized or failure")
        return self

    @property
    def succeeded(self) -> bool:
        return self.normalized is not None

    @property
    def failure_kind(self) -> Optional[FailureKind]:
        return None if self.failure is None else FailureKind(self.failure.kind)


# ============================================================================
# Merge, score and final result
# ============================================================================


class MergedResult(_CanonicalModel):
    """
    Output of the consensus merge.

    confidence_ceiling caps the final confidence: 0 with no successes, the
    single-provider ceiling with one, 1.0 otherwise.
    """

    kind: ConsensusKind
    consensus: Optional[NormalizedResult] = None
    source_providers: List[str] = Field(default_factory=list)
    confidence_ceiling: float = Field(..., ge=0.0, le=1.0)


class ScoreCard(_CanonicalModel):
    confidence: float = Field(..., ge=0.0, le=1.0)
    agreement_score: float = Field(..., ge=0.0, le=1.0)
    primary_provider: str = Field(..., min_length=1)


class ConsensusResult(_CanonicalModel):
    """
    Final, immutable result of one consensus task.

    Attributes:
        kind: 'extraction' or 'evaluation'
        consensus: Merged question set or evaluation (empty set / None when
            no provider succeeded)
        per_provider: Outcome of every provider that was asked
        confidence: Overall confidence (0-1)
        agreement_score: Inter-provider agreement (0-1)
        primary_provider: Preferred successful provider, or 'none'
        needs_review: Whether a human should check this result

    Example:
        >>> result = service.extract_consensus(image_bytes, page_number=1)
        >>> result.model_dump(by_alias=True)["agreementScore"]
        1.0
    """

    kind: ConsensusKind
    consensus: Optional[NormalizedResult] = None
    per_provider: Dict[str, ProviderOutcome] = Field(default_factory=dict)
    confidence: float = Field(..., ge=0.0, le=1.0)
    agreement_score: float = Field(..., ge=0.0, le=1.0)
    primary_provider: str = Field(..., min_length=1)
    needs_review: bool = False

    @property
    def successful_providers(self) -> List[str]:
        return sorted(name for name, outcome in self.per_provider.items() if outcome.succeeded)


__all__ = [
    "ConsensusKind",
    "AgreementLevel",
    "kind_for_capability",
    "Question",
    "ExtractedQuestionSet",
    "CriterionScore",
    "Suggestions",
    "AnswerEvaluation",
    "NormalizedResult",
    "ParseError",
    "ProviderFailure",
    "ProviderOutcome",
    "MergedResult",
    "ScoreCard",
    "ConsensusResult",
]
