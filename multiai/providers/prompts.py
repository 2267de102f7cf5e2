"""
Instruction templates sent to every provider.

All providers receive the same wording so their replies can be parsed by a
single normalizer and compared against each other.
"""

from multiai.providers.interfaces import EvaluationTask


EVALUATION_SYSTEM_MESSAGE = "You are an expert UPSC examiner with 20+ years of experience."

EXTRACTION_INSTRUCTION = """
You are an expert at analyzing UPSC (Union Public Service Commission) examination papers.
Extract ALL questions from this page image with maximum accuracy.

REQUIREMENTS:
1. IDENTIFY ALL QUESTIONS: Look for question numbers, question text, and options
2. EXTRACT COMPLETE INFORMATION:
   - Question number
   - Complete question text (including sub-parts)
   - Multiple choice options (A, B, C, D if present)
   - Subject classification (History, Geography, Polity, Economics, etc.)
   - Topic/subtopic identification
   - Difficulty assessment

3. HANDLE MULTIPLE FORMATS:
   - Multiple Choice Questions (MCQs)
   - Assertion-Reason questions
   - Statement-based questions
   - Case study questions
   - Both English and Hindi text

4. OUTPUT FORMAT: Return ONLY valid JSON:
{
  "questions": [{
    "questionNumber": number,
    "questionText": "complete question text",
    "subParts": ["part a", "part b"] or null,
    "options": ["A) option1", "B) option2", "C) option3", "D) option4"] or null,
    "subject": "subject name",
    "topic": "specific topic",
    "difficulty": "Easy|Medium|Hard",
    "questionType": "MCQ|Assertion-Reason|Statement|CaseStudy",
    "language": "English|Hindi|Mixed",
    "confidence": 0.0-1.0,
    "hasVisualElements": boolean
  }]
}

CRITICAL: Return ONLY the JSON object. Ensure all JSON is properly formatted and valid.
If no questions are found, return {"questions": []}.
""".strip()


EVALUATION_CRITERIA = (
    ("Content Accuracy", 40),
    ("Conceptual Understanding", 25),
    ("Structure and Presentation", 20),
    ("Use of Examples and Evidence", 15),
)


def _format_marks(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def build_evaluation_prompt(task: EvaluationTask) -> str:
    """
    Compose the evaluation prompt for one student answer.

    Args:
        task: Evaluation task

    Returns:
        Prompt text embedding subject, question, marks, optional model
        answer, student answer, weighted criteria and the JSON contract

    Example:
        >>> prompt = build_evaluation_prompt(task)
        >>> "MAXIMUM MARKS: 15" in prompt
        True
    """
    max_marks = _format_marks(task.max_marks)
    criteria = "\n".join(
        f"{index}. {label} ({weight}%)"
        for index, (label, weight) in enumerate(EVALUATION_CRITERIA, start=1)
    )
    model_answer = f"MODEL ANSWER: {task.model_answer}\n" if task.model_answer else ""

    return f"""
You are an expert UPSC examiner with 20+ years of experience evaluating {task.subject} answers.

QUESTION: {task.question_text}
MAXIMUM MARKS: {max_marks}
{model_answer}
STUDENT ANSWER TO EVALUATE:
{task.student_answer_text}

EVALUATION CRITERIA:
{criteria}

PROVIDE COMPREHENSIVE EVALUATION:

OUTPUT FORMAT (JSON ONLY):
{{
  "evaluation": {{
    "totalMarks": {max_marks},
    "awardedMarks": number,
    "percentage": number,
    "grade": "A+|A|B+|B|C+|C|D|F",
    "confidence": 0.0-1.0
  }},
  "analysis": {{
    "strengths": ["strength 1", "strength 2"],
    "weaknesses": ["weakness 1", "weakness 2"],
    "missingPoints": ["key point 1", "key point 2"],
    "incorrectPoints": ["error 1", "error 2"]
  }},
  "criteriaBreakdown": {{
    "contentAccuracy": {{"marks": number, "feedback": "detailed feedback"}},
    "conceptualUnderstanding": {{"marks": number, "feedback": "detailed feedback"}},
    "structurePresentation": {{"marks": number, "feedback": "detailed feedback"}},
    "examplesEvidence": {{"marks": number, "feedback": "detailed feedback"}}
  }},
  "suggestions": {{
    "immediate": ["specific improvement 1", "improvement 2"],
    "longTerm": ["strategy 1", "strategy 2"],
    "resources": ["resource 1", "resource 2"]
  }}
}}

Return ONLY valid JSON. Be fair but strict according to UPSC standards.
""".strip()


__all__ = [
    "EVALUATION_SYSTEM_MESSAGE",
    "EXTRACTION_INSTRUCTION",
    "EVALUATION_CRITERIA",
    "build_evaluation_prompt",
]
