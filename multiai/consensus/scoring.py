"""
Scoring Policy

Derives the overall confidence, the inter-provider agreement score and the
primary provider of a consensus task from the per-provider outcomes.
"""

from typing import Dict, List, Optional, Sequence, Set

from multiai.config import EngineConfig
from multiai.consensus.grouping import (
    agreement_fraction,
    evaluation_groups,
    group_questions,
)
from multiai.consensus.models import (
    AnswerEvaluation,
    ExtractedQuestionSet,
    NormalizedResult,
    ProviderOutcome,
    ScoreCard,
)
from multiai.providers.interfaces import (
    EXPLICIT_FAILURE_KINDS,
    Capability,
    ProviderDescriptor,
)


NO_PROVIDER = "none"

# (lower bound of percentage, grade), checked top-down
GRADE_TABLE = (
    (95.0, "A+"),
    (85.0, "A"),
    (75.0, "B+"),
    (65.0, "B"),
    (55.0, "C+"),
    (45.0, "C"),
    (35.0, "D"),
)


def percentage_to_grade(percentage: float) -> str:
    """
    Map a percentage onto a letter grade.

    Example:
        >>> percentage_to_grade(91)
        'A'
        >>> percentage_to_grade(12.5)
        'F'
    """
    for lower_bound, grade in GRADE_TABLE:
        if percentage >= lower_bound:
            return grade
    return "F"


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class ScoringPolicy:
    """
    Confidence, agreement and primary-provider rules.

    confidence = successful / configured - error_penalty * explicit errors,
    clamped to [0, 1]. Timeouts only lower the success share; network, auth,
    rate-limit and parse errors are also penalized. No successes gives 0 and
    a single success is capped at the single-provider ceiling.

    Example:
        >>> policy = ScoringPolicy()
        >>> card = policy.score(descriptors, outcomes, Capability.VISION_EXTRACTION)
        >>> card.confidence
        0.6666666666666666
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config if config is not None else EngineConfig()

    def score(
        self,
        descriptors: Sequence[ProviderDescriptor],
        outcomes: Sequence[ProviderOutcome],
        capability: Capability,
    ) -> ScoreCard:
        successes = sorted(
            (outcome for outcome in outcomes if outcome.succeeded),
            key=lambda outcome: outcome.provider,
        )
        return ScoreCard(
            confidence=self.confidence(descriptors, outcomes, capability),
            agreement_score=self.agreement_score(successes),
            primary_provider=self.primary_provider(
                [outcome.provider for outcome in successes], capability
            ),
        )

    def confidence(
        self,
        descriptors: Sequence[ProviderDescriptor],
        outcomes: Sequence[ProviderOutcome],
        capability: Capability,
    ) -> float:
        successful = sum(1 for outcome in outcomes if outcome.succeeded)
        if successful == 0:
            return 0.0

        configured = sum(
            1
            for descriptor in descriptors
            if descriptor.available and descriptor.supports(capability)
        )
        # Outcomes can only come from configured providers; guard a stale list
        configured = max(configured, len(outcomes))

        errors = sum(
            1 for outcome in outcomes if outcome.failure_kind in EXPLICIT_FAILURE_KINDS
        )
        value = _clamp(successful / configured - self.config.error_penalty * errors)
        if successful == 1:
            value = min(value, self.config.single_provider_ceiling)
        return value

    def agreement_score(self, successes: Sequence[ProviderOutcome]) -> float:
        if len(successes) < 2:
            return 1.0

        extraction = [
            (outcome.provider, outcome.normalized)
            for outcome in successes
            if isinstance(outcome.normalized, ExtractedQuestionSet)
        ]
        evaluation = [
            (outcome.provider, outcome.normalized)
            for outcome in successes
            if isinstance(outcome.normalized, AnswerEvaluation)
        ]

        groups: Dict[object, Set[str]] = {}
        for number, members in group_questions(extraction).items():
            groups[number] = {provider for provider, _ in members}
        groups.update(evaluation_groups(evaluation))

        fraction = agreement_fraction(groups)
        return 1.0 if fraction is None else _clamp(fraction)

    def primary_provider(self, successful: Sequence[str], capability: Capability) -> str:
        """
        Preferred provider among those that succeeded.

        Names missing from the priority list rank after it, alphabetically.
        """
        if not successful:
            return NO_PROVIDER

        priority = self.priority_for(capability)

        def rank(name: str):
            if name in priority:
                return (priority.index(name), "")
            return (len(priority), name)

        return min(successful, key=rank)

    def priority_for(self, capability: Capability) -> List[str]:
        if capability is Capability.VISION_EXTRACTION:
            return self.config.extraction_priority
        return self.config.evaluation_priority

    def needs_review(
        self,
        confidence: float,
        consensus: Optional[NormalizedResult],
        max_marks: Optional[float] = None,
    ) -> bool:
        """
        Whether a human should check the result.

        Low confidence always needs review; an evaluation also needs review
        when the awarded marks fall below the configured share of the total.
        The task's max_marks is the total when given.
        """
        if confidence < self.config.review_confidence_threshold:
            return True
        if isinstance(consensus, AnswerEvaluation):
            total = max_marks if max_marks is not None else consensus.total_marks
            return consensus.awarded_marks < self.config.review_marks_ratio * total
        return False
