"""
Consensus over multi-provider results

Key Components:
    - models: Canonical question, evaluation and result models
    - ConsensusEngine: Merges per-provider outcomes
    - ScoringPolicy: Confidence, agreement and primary provider
"""

from multiai.consensus.models import (
    AnswerEvaluation,
    ConsensusResult,
    CriterionScore,
    ExtractedQuestionSet,
    MergedResult,
    ParseError,
    ProviderOutcome,
    Question,
    ScoreCard,
    Suggestions,
)
from multiai.consensus.engine import ConsensusEngine
from multiai.consensus.scoring import ScoringPolicy, percentage_to_grade

__all__ = [
    "AnswerEvaluation",
    "ConsensusResult",
    "CriterionScore",
    "ExtractedQuestionSet",
    "MergedResult",
    "ParseError",
    "ProviderOutcome",
    "Question",
    "ScoreCard",
    "Suggestions",
    "ConsensusEngine",
    "ScoringPolicy",
    "percentage_to_grade",
]
