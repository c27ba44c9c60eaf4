"""
Answer Grading

Objective scoring of multiple choice and true/false answers by exact match,
score totals, and validation of the marks a teacher assigns to free-text
answers.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from gradebook.assessments.base.models import Answer, TestDefinition
from gradebook.common.error_handling import ValidationError
from gradebook.common.logger import app_logger
from gradebook.domain.questions.model import Question, QuestionType, normalize_true_false

# Module logger
logger = app_logger.getChild("assessments.grading")

AnswerInput = Union[Answer, Mapping[str, Any]]


def coerce_answers(answers: Union[Iterable[AnswerInput], Mapping[str, Any]]) -> List[Answer]:
    """
    Accept answers as Answer records, dictionaries, or a plain
    ``{question_id: answer}`` mapping.
    """
    if isinstance(answers, Mapping):
        return [Answer(question_id=qid, answer=value) for qid, value in answers.items()]
    return [a if isinstance(a, Answer) else Answer.from_dict(a) for a in answers]


def answers_match(question: Question, answer: Any) -> bool:
    """
    Exact-match comparison for objective questions.

    Multiple choice answers must be the option index (booleans never match);
    true/false answers are normalised before comparing.
    """
    if question.question_type == QuestionType.MULTIPLE_CHOICE:
        if isinstance(answer, bool) or not isinstance(answer, int):
            return False
        return answer == question.correct_answer
    if question.question_type == QuestionType.TRUE_FALSE:
        return normalize_true_false(answer) == question.correct_answer
    return False


def score_answer(question: Optional[Question], answer: Answer) -> Answer:
    """
    Score one answer at submission time.

    Args:
        question: The answered question, None if it is not part of the test
        answer: The student's answer

    Returns:
        A new Answer; free-text answers come back ungraded
    """
    if question is None:
        return Answer(question_id=answer.question_id, answer=answer.answer, is_correct=False, points_earned=0)

    if not question.is_objective:
        return Answer(question_id=answer.question_id, answer=answer.answer)

    correct = answers_match(question, answer.answer)
    return Answer(
        question_id=answer.question_id,
        answer=answer.answer,
        is_correct=correct,
        points_earned=question.points if correct else 0,
    )


def score_answers(test: TestDefinition, answers: Iterable[Answer]) -> List[Answer]:
    """Score every answer against the test's questions."""
    questions = test.question_map()
    scored = []
    for answer in answers:
        question = questions.get(answer.question_id)
        if question is None:
            logger.warning(f"Answer for unknown question {answer.question_id} on test {test.id}")
        scored.append(score_answer(question, answer))
    return scored


def total_score(answers: Iterable[Answer]) -> float:
    """Sum of points earned; ungraded answers count as 0."""
    return sum(a.points_earned or 0 for a in answers)


def validate_manual_grades(test: TestDefinition, answers: List[Answer]) -> List[Answer]:
    """
    Check the marks supplied by a grader.

    Raises:
        ValidationError: If an answer awards negative points or more than its
            question is worth
    """
    questions = test.question_map()
    errors: Dict[str, str] = {}
    for answer in answers:
        if answer.points_earned is None:
            continue
        question = questions.get(answer.question_id)
        ceiling = question.points if question is not None else 0
        if answer.points_earned < 0 or answer.points_earned > ceiling:
            errors[answer.question_id] = f"Points must be between 0 and {ceiling}"

    if errors:
        raise ValidationError("Invalid grading marks", details={"test_id": test.id, "errors": errors})
    return answers


def ungraded_free_text(test: TestDefinition, answers: Iterable[Answer]) -> List[str]:
    """IDs of free-text questions without assigned points."""
    graded = {a.question_id for a in answers if a.is_graded}
    return [q.id for q in test.questions if q.question_type == QuestionType.TEXT and q.id not in graded]
