"""
Grouping helpers for the consensus merge and the agreement score.

All helpers iterate providers in name order and groups in key order, so
their output never depends on the order outcomes arrived in.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from multiai.consensus.models import (
    AgreementLevel,
    AnswerEvaluation,
    ExtractedQuestionSet,
    Question,
)


OVERALL_GROUP = "overall"


def normalize_text(text: str) -> str:
    """Case- and whitespace-insensitive comparison key."""
    return " ".join(text.split()).casefold()


def agreement_level(providers: Iterable[str]) -> AgreementLevel:
    return "high" if len(set(providers)) >= 2 else "single"


def dedupe_capped(lists: Iterable[Sequence[str]], limit: int) -> List[str]:
    """
    Union several lists, dropping near-duplicates, keeping at most limit items.

    The first spelling of an item wins.

    Example:
        >>> dedupe_capped([["Good structure"], ["good  structure", "Examples"]], 5)
        ['Good structure', 'Examples']
    """
    seen: Set[str] = set()
    merged: List[str] = []
    for items in lists:
        for item in items:
            key = normalize_text(item)
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(item)
            if len(merged) >= limit:
                return merged
    return merged


def group_questions(
    question_sets: Sequence[Tuple[str, ExtractedQuestionSet]],
) -> Dict[int, List[Tuple[str, Question]]]:
    """
    Group questions from several providers by question number.

    Returns:
        Mapping of question number to (provider, question) members, keys in
        ascending order
    """
    groups: Dict[int, List[Tuple[str, Question]]] = defaultdict(list)
    for provider, question_set in sorted(question_sets, key=lambda item: item[0]):
        for question in question_set.questions:
            groups[question.number].append((provider, question))
    return {number: groups[number] for number in sorted(groups)}


def evaluation_groups(
    evaluations: Sequence[Tuple[str, AnswerEvaluation]],
) -> Dict[str, Set[str]]:
    """
    Providers contributing to each evaluation group.

    The 'overall' group holds every evaluation; each criteria_breakdown key
    forms a group of the providers that reported it.
    """
    groups: Dict[str, Set[str]] = defaultdict(set)
    for provider, evaluation in evaluations:
        groups[OVERALL_GROUP].add(provider)
        for criterion in evaluation.criteria_breakdown:
            groups[criterion].add(provider)
    return {key: groups[key] for key in sorted(groups)}


def agreement_fraction(groups: Dict[object, Set[str]]) -> Optional[float]:
    """Share of groups reported by more than one provider, None without groups."""
    if not groups:
        return None
    shared = sum(1 for providers in groups.values() if len(providers) >= 2)
    return shared / len(groups)
