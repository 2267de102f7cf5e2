"""
Tests for the scoring policy
"""

import pytest

from multiai.config import EngineConfig
from multiai.consensus.models import (
    AnswerEvaluation,
    CriterionScore,
    ExtractedQuestionSet,
    ParseError,
    ProviderOutcome,
    Question,
)
from multiai.consensus.scoring import ScoringPolicy, percentage_to_grade
from multiai.providers.interfaces import (
    AdapterError,
    Capability,
    FailureKind,
    ProviderDescriptor,
)

BOTH = frozenset({Capability.VISION_EXTRACTION, Capability.TEXT_EVALUATION})
EXTRACTION = Capability.VISION_EXTRACTION
EVALUATION = Capability.TEXT_EVALUATION


def _descriptor(name: str, available: bool = True, capabilities=BOTH) -> ProviderDescriptor:
    return ProviderDescriptor(name=name, capabilities=capabilities, available=available)


def _questions(provider: str, *numbers: int) -> ProviderOutcome:
    return ProviderOutcome(
        provider=provider,
        normalized=ExtractedQuestionSet(
            questions=[Question(number=n, text=f"Q{n}", confidence=0.9) for n in numbers]
        ),
    )


def _evaluation(provider: str, criteria=()) -> ProviderOutcome:
    return ProviderOutcome(
        provider=provider,
        normalized=AnswerEvaluation(
            awarded_marks=9,
            total_marks=15,
            percentage=60,
            grade="B",
            criteria_breakdown={name: CriterionScore(marks=3) for name in criteria},
        ),
    )


def _failed(provider: str, kind: FailureKind) -> ProviderOutcome:
    return ProviderOutcome(
        provider=provider,
        failure=AdapterError(provider=provider, kind=kind, message="failed"),
    )


def _parse_failed(provider: str) -> ProviderOutcome:
    return ProviderOutcome(provider=provider, failure=ParseError(provider=provider, message="bad"))


THREE = [_descriptor("claude"), _descriptor("gemini"), _descriptor("openai")]


@pytest.fixture
def policy() -> ScoringPolicy:
    return ScoringPolicy()


@pytest.mark.parametrize(
    "percentage, grade",
    [
        (100, "A+"),
        (95, "A+"),
        (94.99, "A"),
        (91, "A"),
        (85, "A"),
        (75, "B+"),
        (65, "B"),
        (55, "C+"),
        (45, "C"),
        (35, "D"),
        (34.9, "F"),
        (0, "F"),
    ],
)
def test_percentage_to_grade(percentage, grade):
    assert percentage_to_grade(percentage) == grade


class TestConfidence:
    def test_timeout_only_lowers_success_share(self, policy):
        outcomes = [_questions("claude", 1), _questions("gemini", 1), _failed("openai", FailureKind.TIMEOUT)]

        card = policy.score(THREE, outcomes, EXTRACTION)

        assert card.confidence == pytest.approx(2 / 3)

    @pytest.mark.parametrize(
        "kind", [FailureKind.NETWORK_FAILURE, FailureKind.AUTH_FAILURE, FailureKind.RATE_LIMITED]
    )
    def test_explicit_errors_are_penalized(self, policy, kind):
        outcomes = [_questions("claude", 1), _questions("gemini", 1), _failed("openai", kind)]

        card = policy.score(THREE, outcomes, EXTRACTION)

        assert card.confidence == pytest.approx(2 / 3 - 0.1)

    def test_parse_errors_are_penalized(self, policy):
        outcomes = [_questions("claude", 1), _questions("gemini", 1), _parse_failed("openai")]
        assert policy.score(THREE, outcomes, EXTRACTION).confidence == pytest.approx(2 / 3 - 0.1)

    def test_no_success_is_zero(self, policy):
        outcomes = [_failed(name, FailureKind.TIMEOUT) for name in ("claude", "gemini", "openai")]

        card = policy.score(THREE, outcomes, EXTRACTION)

        assert card.confidence == 0.0
        assert card.primary_provider == "none"
        assert card.agreement_score == 1.0

    def test_single_success_is_capped(self, policy):
        card = policy.score([_descriptor("claude")], [_questions("claude", 1)], EXTRACTION)
        assert card.confidence == pytest.approx(0.7)

    def test_clamped_at_zero(self):
        policy = ScoringPolicy(EngineConfig(error_penalty=1.0))
        outcomes = [
            _questions("claude", 1),
            _failed("gemini", FailureKind.NETWORK_FAILURE),
            _failed("openai", FailureKind.NETWORK_FAILURE),
        ]
        assert policy.score(THREE, outcomes, EXTRACTION).confidence == 0.0

    def test_only_available_supporting_descriptors_count(self, policy):
        descriptors = [
            _descriptor("claude"),
            _descriptor("gemini"),
            _descriptor("openai", available=False),
            _descriptor("ocr", capabilities=frozenset({Capability.VISION_EXTRACTION})),
        ]
        outcomes = [_evaluation("claude"), _evaluation("gemini")]

        assert policy.score(descriptors, outcomes, EVALUATION).confidence == pytest.approx(1.0)


class TestAgreement:
    def test_all_questions_shared(self, policy):
        outcomes = [_questions("claude", 1, 2), _questions("gemini", 1, 2)]
        assert policy.score(THREE, outcomes, EXTRACTION).agreement_score == 1.0

    def test_partially_shared_questions(self, policy):
        outcomes = [_questions("claude", 1, 2), _questions("gemini", 1)]
        assert policy.score(THREE, outcomes, EXTRACTION).agreement_score == pytest.approx(0.5)

    def test_no_questions_counts_as_agreement(self, policy):
        outcomes = [_questions("claude"), _questions("gemini")]
        assert policy.score(THREE, outcomes, EXTRACTION).agreement_score == 1.0

    def test_single_success_agrees_with_itself(self, policy):
        outcomes = [_questions("claude", 1, 2, 3), _failed("gemini", FailureKind.TIMEOUT)]
        assert policy.score(THREE, outcomes, EXTRACTION).agreement_score == 1.0

    def test_evaluation_groups_include_criteria(self, policy):
        outcomes = [
            _evaluation("claude", criteria=("contentAccuracy", "examplesEvidence")),
            _evaluation("gemini", criteria=("contentAccuracy",)),
        ]
        # overall + contentAccuracy shared, examplesEvidence single
        card = policy.score(THREE, outcomes, EVALUATION)
        assert card.agreement_score == pytest.approx(2 / 3)


class TestPrimaryProvider:
    def test_extraction_priority(self, policy):
        assert policy.primary_provider(["openai", "claude"], EXTRACTION) == "openai"
        assert policy.primary_provider(["claude", "gemini", "openai"], EXTRACTION) == "gemini"

    def test_evaluation_priority(self, policy):
        assert policy.primary_provider(["gemini", "claude"], EVALUATION) == "claude"

    def test_unknown_names_rank_last_alphabetically(self, policy):
        assert policy.primary_provider(["zeta", "alpha"], EXTRACTION) == "alpha"
        assert policy.primary_provider(["zeta", "claude"], EXTRACTION) == "claude"

    def test_none_when_nothing_succeeded(self, policy):
        assert policy.primary_provider([], EVALUATION) == "none"


class TestNeedsReview:
    def test_low_confidence(self, policy):
        assert policy.needs_review(0.69, ExtractedQuestionSet()) is True
        assert policy.needs_review(0.7, ExtractedQuestionSet()) is False

    def test_low_marks(self, policy):
        low = AnswerEvaluation(awarded_marks=5, total_marks=15, percentage=33.3, grade="F")
        high = AnswerEvaluation(awarded_marks=9, total_marks=15, percentage=60, grade="B")

        assert policy.needs_review(0.9, low) is True
        assert policy.needs_review(0.9, high) is False

    def test_task_max_marks_overrides_reported_total(self, policy):
        # 9 of a misreported 100 is low; 9 of the task's 15 is not
        evaluation = AnswerEvaluation(awarded_marks=9, total_marks=100, percentage=60, grade="B")

        assert policy.needs_review(0.9, evaluation) is True
        assert policy.needs_review(0.9, evaluation, max_marks=15) is False

    def test_max_marks_ignored_for_extraction(self, policy):
        assert policy.needs_review(0.9, ExtractedQuestionSet(), max_marks=15) is False
