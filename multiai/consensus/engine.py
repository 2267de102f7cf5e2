"""
Consensus Engine for Multi-Provider Result Combination

Reconciles the normalized results of several providers into one consensus
result. Only successful outcomes take part; providers are processed in
name order so the merge is independent of the order calls completed in.
"""

from collections import Counter
from statistics import fmean
from typing import Dict, List, Optional, Sequence, Tuple

from multiai.config import EngineConfig
from multiai.consensus.grouping import agreement_level, dedupe_capped, group_questions
from multiai.consensus.models import (
    AnswerEvaluation,
    ConsensusKind,
    CriterionScore,
    ExtractedQuestionSet,
    MergedResult,
    ProviderOutcome,
    Question,
    Suggestions,
)
from multiai.consensus.scoring import percentage_to_grade


class ConsensusEngine:
    """
    Merge per-provider outcomes into a consensus.

    Rules:
        - No successes: empty question set (extraction) or None
          (evaluation), confidence ceiling 0
        - One success: that result verbatim, ceiling single_provider_ceiling
        - Extraction: group by question number, keep the least confident
          member of each group as representative
        - Evaluation: average marks and percentage, majority grade with a
          percentage fallback, deduplicated feedback lists

    Example:
        >>> engine = ConsensusEngine()
        >>> merged = engine.merge(outcomes, "extraction")
        >>> [q.number for q in merged.consensus.questions]
        [1, 2]
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize consensus engine.

        Args:
            config: Engine configuration (uses defaults if None)
        """
        self.config = config if config is not None else EngineConfig()

    def merge(self, outcomes: Sequence[ProviderOutcome], kind: ConsensusKind) -> MergedResult:
        """
        Merge outcomes of one task.

        Args:
            outcomes: Outcomes of every provider that was asked
            kind: 'extraction' or 'evaluation'

        Returns:
            MergedResult with the consensus and its confidence ceiling

        Raises:
            ValueError: If kind is unknown or a successful outcome holds the
                other kind of result
        """
        if kind not in ("extraction", "evaluation"):
            raise ValueError(f"Unknown consensus kind: {kind}")

        successes = sorted(
            (outcome for outcome in outcomes if outcome.succeeded),
            key=lambda outcome: outcome.provider,
        )
        for outcome in successes:
            if outcome.normalized.kind != kind:
                raise ValueError(
                    f"Outcome of '{outcome.provider}' is {outcome.normalized.kind}, expected {kind}"
                )

        if not successes:
            return MergedResult(
                kind=kind,
                consensus=ExtractedQuestionSet() if kind == "extraction" else None,
                source_providers=[],
                confidence_ceiling=0.0,
            )

        providers = sorted({outcome.provider for outcome in successes})

        if len(successes) == 1:
            return MergedResult(
                kind=kind,
                consensus=successes[0].normalized,
                source_providers=providers,
                confidence_ceiling=self.config.single_provider_ceiling,
            )

        if kind == "extraction":
            consensus = self._merge_questions(
                [(outcome.provider, outcome.normalized) for outcome in successes]
            )
        else:
            consensus = self._merge_evaluations(
                [(outcome.provider, outcome.normalized) for outcome in successes]
            )

        return MergedResult(
            kind=kind,
            consensus=consensus,
            source_providers=providers,
            confidence_ceiling=1.0,
        )

    def _merge_questions(
        self, question_sets: List[Tuple[str, ExtractedQuestionSet]]
    ) -> ExtractedQuestionSet:
        merged: List[Question] = []
        for members in group_questions(question_sets).values():
            ordered = sorted(
                members,
                key=lambda member: (member[1].confidence, member[0], member[1].text),
            )
            representative = ordered[0][1]
            sources = sorted({provider for provider, _ in members})
            merged.append(
                representative.model_copy(
                    update={
                        "confidence": min(question.confidence for _, question in members),
                        "source_providers": sources,
                        "agreement_level": agreement_level(sources),
                    }
                )
            )
        return ExtractedQuestionSet(questions=merged)

    def _merge_evaluations(
        self, evaluations: List[Tuple[str, AnswerEvaluation]]
    ) -> AnswerEvaluation:
        items = [evaluation for _, evaluation in evaluations]
        limit = self.config.max_merged_items

        percentage = round(fmean(item.percentage for item in items), 2)

        return AnswerEvaluation(
            awarded_marks=round(fmean(item.awarded_marks for item in items), 2),
            total_marks=self._most_common_total(items),
            percentage=percentage,
            grade=self._consensus_grade(items, percentage),
            confidence=min(item.confidence for item in items),
            strengths=dedupe_capped((item.strengths for item in items), limit),
            weaknesses=dedupe_capped((item.weaknesses for item in items), limit),
            missing_points=dedupe_capped((item.missing_points for item in items), limit),
            incorrect_points=dedupe_capped((item.incorrect_points for item in items), limit),
            suggestions=Suggestions(
                immediate=dedupe_capped((item.suggestions.immediate for item in items), limit),
                long_term=dedupe_capped((item.suggestions.long_term for item in items), limit),
                resources=dedupe_capped((item.suggestions.resources for item in items), limit),
            ),
            criteria_breakdown=self._merge_criteria(evaluations),
            source_providers=sorted({provider for provider, _ in evaluations}),
        )

    @staticmethod
    def _most_common_total(items: List[AnswerEvaluation]) -> float:
        counts = Counter(item.total_marks for item in items)
        return max(counts.items(), key=lambda entry: (entry[1], entry[0]))[0]

    @staticmethod
    def _consensus_grade(items: List[AnswerEvaluation], percentage: float) -> str:
        """Strict majority of reported grades, else the grade of the mean percentage."""
        counts = Counter(item.grade.strip().upper() for item in items)
        grade, votes = max(counts.items(), key=lambda entry: (entry[1], entry[0]))
        if votes * 2 > len(items):
            return grade
        return percentage_to_grade(percentage)

    @staticmethod
    def _merge_criteria(
        evaluations: List[Tuple[str, AnswerEvaluation]]
    ) -> Dict[str, CriterionScore]:
        names = sorted(
            {name for _, evaluation in evaluations for name in evaluation.criteria_breakdown}
        )
        merged: Dict[str, CriterionScore] = {}
        for name in names:
            members = [
                (provider, evaluation.criteria_breakdown[name])
                for provider, evaluation in evaluations
                if name in evaluation.criteria_breakdown
            ]
            lowest = min(members, key=lambda member: (member[1].marks, member[0]))
            sources = sorted({provider for provider, _ in members})
            merged[name] = CriterionScore(
                marks=round(fmean(score.marks for _, score in members), 2),
                feedback=lowest[1].feedback,
                source_providers=sources,
                agreement_level=agreement_level(sources),
            )
        return merged
