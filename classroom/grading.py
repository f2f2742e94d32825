"""Answer grading for assignment questions.

Pure functions: nothing here touches the database, so the same question
keys can be graded from any number of callers at once.
"""

import json
import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from classroom.errors import UnknownQuestion

MULTIPLE_CHOICE = "multiple_choice"
TRUE_FALSE = "true_false"
IDENTIFICATION = "identification"
ENUMERATION = "enumeration"

QUESTION_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE, IDENTIFICATION, ENUMERATION)


@dataclass(frozen=True)
class QuestionKey:
    """Answer key of one question, detached from its database row."""

    id: Any
    type: str
    points: int = 0
    correct_answer: Optional[str] = None
    correct_answers: Tuple[str, ...] = ()
    is_true: Optional[bool] = None
    case_sensitive: bool = False

    @classmethod
    def from_row(cls, row) -> "QuestionKey":
        answers = row.correct_answers
        if isinstance(answers, str):
            try:
                answers = json.loads(answers)
            except ValueError:
                answers = [answers]
        return cls(
            id=row.id,
            type=row.type,
            points=row.points or 0,
            correct_answer=row.correct_answer,
            correct_answers=tuple(answers or ()),
            is_true=row.is_true,
            case_sensitive=bool(row.case_sensitive),
        )


@dataclass(frozen=True)
class GradedAnswer:
    question_id: Any
    is_correct: bool
    points_earned: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _normalize(text: str, case_sensitive: bool) -> str:
    text = text.strip()
    return text if case_sensitive else text.lower()


def _split(text: Optional[str], sep: str) -> List[str]:
    if not text:
        return []
    return [part.strip() for part in text.split(sep) if part.strip()]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _grade_multiple_choice(q: QuestionKey, answer_text: Optional[str]) -> bool:
    if q.correct_answers:
        correct = [_normalize(a, q.case_sensitive) for a in q.correct_answers]
        picked = [_normalize(a, q.case_sensitive) for a in _split(answer_text, ",")]
        if len(picked) == 1:
            return picked[0] in correct
        if len(picked) > 1:
            return all(p in correct for p in picked) and len(picked) == len(correct)
        return False
    if q.correct_answer and answer_text is not None:
        return _normalize(answer_text, q.case_sensitive) == _normalize(q.correct_answer, q.case_sensitive)
    return False


def _grade_true_false(q: QuestionKey, answer_text: Optional[str]) -> bool:
    if q.is_true is None:
        return False
    # no trimming: only the literal "true" in any case counts as true
    said_true = (answer_text or "").lower() == "true"
    return said_true == q.is_true


def _grade_identification(q: QuestionKey, answer_text: Optional[str]) -> bool:
    if answer_text is None:
        return False
    given = _normalize(answer_text, q.case_sensitive)
    if q.correct_answers:
        return any(given == _normalize(a, q.case_sensitive) for a in q.correct_answers)
    if q.correct_answer:
        return given == _normalize(q.correct_answer, q.case_sensitive)
    return False


def _grade_enumeration(q: QuestionKey, answer_text: Optional[str], distinct_matches: bool) -> Tuple[bool, int]:
    if not q.correct_answers:
        return False, 0

    items = _split(answer_text, "\n")
    # newline-separated is the expected format; comma lists are a fallback
    if len(items) == 1 and "," in items[0]:
        items = _split(answer_text, ",")

    correct = [_normalize(a, q.case_sensitive) for a in q.correct_answers]
    given = [_normalize(a, q.case_sensitive) for a in items]
    if distinct_matches:
        given = list(dict.fromkeys(given))

    # each submitted item is checked for membership only; a correct answer is
    # not consumed when matched, so repeated items all count
    matched = sum(1 for item in given if item in correct)
    total = len(q.correct_answers)

    if matched == total and len(given) == total:
        return True, q.points
    if matched > 0:
        return False, _round_half_up(q.points * matched / total)
    return False, 0


def grade_answer(question: QuestionKey, answer_text: Optional[str], distinct_matches: bool = False) -> GradedAnswer:
    """Grade one answer against its question key.

    Enumeration questions can earn partial credit; every other type earns
    either the full points or nothing. Unknown question types never score.
    """
    if question.type == ENUMERATION:
        is_correct, points = _grade_enumeration(question, answer_text, distinct_matches)
        return GradedAnswer(question.id, is_correct, points)

    if question.type == MULTIPLE_CHOICE:
        is_correct = _grade_multiple_choice(question, answer_text)
    elif question.type == TRUE_FALSE:
        is_correct = _grade_true_false(question, answer_text)
    elif question.type == IDENTIFICATION:
        is_correct = _grade_identification(question, answer_text)
    else:
        is_correct = False

    return GradedAnswer(question.id, is_correct, question.points if is_correct else 0)


def grade_answers(
    questions: Mapping[Any, QuestionKey],
    answers: Iterable[Mapping[str, Any]],
    distinct_matches: bool = False,
) -> List[GradedAnswer]:
    """Grade a whole submission.

    answers: list of {question_id, answer_text}. Raises UnknownQuestion
    before returning anything if any answer points outside ``questions``.
    """
    answers = list(answers)
    for ans in answers:
        if ans["question_id"] not in questions:
            raise UnknownQuestion(ans["question_id"])
    return [
        grade_answer(questions[ans["question_id"]], ans.get("answer_text"), distinct_matches)
        for ans in answers
    ]


def total_score(graded: Iterable[GradedAnswer]) -> int:
    return sum(g.points_earned for g in graded)
