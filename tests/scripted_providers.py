"""
In-process provider doubles and reply builders shared by the test suite.

ScriptedProvider goes through the real BaseProvider.invoke() machinery
(deadline handling, error categorization, metrics) without any network.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

from multiai.providers.base import BaseProvider
from multiai.providers.interfaces import (
    Capability,
    EvaluationTask,
    ExtractionTask,
    ProviderConfig,
)


class ScriptedProvider(BaseProvider):
    """Provider that replies with canned text, raises, or stalls."""

    def __init__(
        self,
        name: str,
        reply: Optional[str] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        capabilities: Optional[Iterable[Capability]] = None,
    ):
        super().__init__(ProviderConfig(name=name, api_key="test-key"))
        self._name = name
        self.reply = reply
        self.error = error
        self.delay = delay
        self.requests: List[Any] = []
        if capabilities is not None:
            self.CAPABILITIES = frozenset(capabilities)

    @property
    def name(self) -> str:
        return self._name

    async def _respond(self, task: Any) -> str:
        self.requests.append(task)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply or ""

    async def _extract_impl(self, task: ExtractionTask) -> str:
        return await self._respond(task)

    async def _evaluate_impl(self, task: EvaluationTask) -> str:
        return await self._respond(task)


def question(number: int, text: str, confidence: Any = 0.9, **extra: Any) -> Dict[str, Any]:
    item = {
        "questionNumber": number,
        "questionText": text,
        "subject": "Polity",
        "topic": "Constitution",
        "difficulty": "Medium",
        "questionType": "MCQ",
        "language": "English",
        "confidence": confidence,
        "hasVisualElements": False,
    }
    item.update(extra)
    return item


def extraction_reply(questions: Sequence[Dict[str, Any]], fenced: bool = False) -> str:
    body = json.dumps({"questions": list(questions)})
    if fenced:
        return f"Here are the questions:\n```json\n{body}\n```\nLet me know if you need more."
    return body


def evaluation_reply(
    awarded: float = 9.0,
    total: float = 15.0,
    percentage: float = 60.0,
    grade: str = "B",
    confidence: Any = 0.8,
    strengths: Optional[List[str]] = None,
    weaknesses: Optional[List[str]] = None,
    criteria: Optional[Dict[str, Dict[str, Any]]] = None,
    immediate: Optional[List[str]] = None,
) -> str:
    payload: Dict[str, Any] = {
        "evaluation": {
            "totalMarks": total,
            "awardedMarks": awarded,
            "percentage": percentage,
            "grade": grade,
            "confidence": confidence,
        },
        "analysis": {
            "strengths": strengths if strengths is not None else ["Clear introduction"],
            "weaknesses": weaknesses if weaknesses is not None else ["Few examples"],
            "missingPoints": ["Article 280"],
            "incorrectPoints": [],
        },
        "suggestions": {
            "immediate": immediate if immediate is not None else ["Cite recent reports"],
            "longTerm": ["Read Laxmikanth"],
            "resources": ["Finance Commission report"],
        },
    }
    if criteria is not None:
        payload["criteriaBreakdown"] = criteria
    return json.dumps(payload)


def evaluation_task(**overrides: Any) -> EvaluationTask:
    values: Dict[str, Any] = {
        "question_text": "Discuss the role of the Finance Commission in fiscal federalism.",
        "student_answer_text": "The Finance Commission is constituted under Article 280 ...",
        "subject": "Polity",
        "max_marks": 15,
    }
    values.update(overrides)
    return EvaluationTask(**values)


def extraction_task(page_number: int = 1) -> ExtractionTask:
    return ExtractionTask(image_bytes=b"\x89PNG fake page", page_number=page_number)
