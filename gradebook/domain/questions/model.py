"""
Question Domain Model Module

This module defines the core domain entities for the question subsystem:
typed questions (multiple choice, true/false, free text) with a point value
and a difficulty tag.
"""

import enum
import uuid
import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from gradebook.common.error_handling import ValidationError
from gradebook.common.serialization import SerializableMixin

# Canonical true/false answers
TRUE_VALUE = "true"
FALSE_VALUE = "false"

DEFAULT_QUESTION_POINTS = 10


class QuestionType(enum.Enum):
    """Supported question types."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    TEXT = "text"

    @property
    def is_objective(self) -> bool:
        """Objective questions are auto-graded by exact match."""
        return self in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)


class Difficulty(enum.Enum):
    """Difficulty tag of a question."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def normalize_true_false(value: Any) -> Optional[str]:
    """
    Map a true/false answer onto its canonical value.

    Accepts booleans and the strings "true"/"false" in any case. Anything else
    returns None so callers can tell an unrecognised value from "false".
    """
    if isinstance(value, bool):
        return TRUE_VALUE if value else FALSE_VALUE
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in (TRUE_VALUE, FALSE_VALUE):
            return lowered
    return None


@dataclass
class Question(SerializableMixin):
    """
    Represents a question in a test, template or source pool.

    Attributes:
        id: Unique identifier for the question
        question_type: Multiple choice, true/false or free text
        prompt: The question text
        correct_answer: Option index (multiple choice), canonical "true"/"false"
            (true/false) or an optional reference answer (free text)
        points: Point value awarded for a correct answer
        difficulty: Difficulty tag
        options: Answer options for multiple choice questions
        explanation: Shown to the student after grading
    """

    __serializable_fields__ = [
        "id", "question_type", "prompt", "options", "correct_answer",
        "points", "difficulty", "explanation"
    ]

    id: str
    question_type: QuestionType
    prompt: str
    correct_answer: Any = None
    points: int = DEFAULT_QUESTION_POINTS
    difficulty: Difficulty = Difficulty.MEDIUM
    options: Optional[List[str]] = None
    explanation: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.question_type, str):
            try:
                self.question_type = QuestionType(self.question_type)
            except ValueError:
                raise ValidationError(
                    f"Invalid question type: {self.question_type}",
                    details={"question_id": self.id}
                )

        if isinstance(self.difficulty, str):
            try:
                self.difficulty = Difficulty(self.difficulty)
            except ValueError:
                raise ValidationError(
                    f"Invalid difficulty: {self.difficulty}",
                    details={"question_id": self.id}
                )

        if self.question_type == QuestionType.TRUE_FALSE:
            canonical = normalize_true_false(self.correct_answer)
            if canonical is not None:
                self.correct_answer = canonical

        if self.options is not None:
            self.options = list(self.options)

    @property
    def is_objective(self) -> bool:
        """Whether this question is auto-graded at submission time."""
        return self.question_type.is_objective

    @classmethod
    def create(cls,
               question_type: QuestionType,
               prompt: str,
               correct_answer: Any = None,
               points: int = DEFAULT_QUESTION_POINTS,
               difficulty: Difficulty = Difficulty.MEDIUM,
               options: Optional[List[str]] = None,
               explanation: Optional[str] = None) -> 'Question':
        """
        Create a new question with a generated ID.

        Returns:
            A new, validated Question instance
        """
        question = cls(
            id=f"q_{uuid.uuid4()}",
            question_type=question_type,
            prompt=prompt,
            correct_answer=correct_answer,
            points=points,
            difficulty=difficulty,
            options=options,
            explanation=explanation,
        )
        question.validate()
        return question

    def validate(self) -> None:
        """
        Check the question's invariants.

        Raises:
            ValidationError: If the prompt is empty, the point value is not a
                non-negative number, or the correct answer does not fit the
                question type
        """
        errors: Dict[str, str] = {}

        if not self.prompt or not str(self.prompt).strip():
            errors["prompt"] = "Question text is required"

        if isinstance(self.points, bool) or not isinstance(self.points, (int, float)):
            errors["points"] = "Points must be a number"
        elif self.points < 0:
            errors["points"] = "Points must not be negative"

        if self.question_type == QuestionType.MULTIPLE_CHOICE:
            if not self.options or len(self.options) < 2:
                errors["options"] = "Multiple choice questions need at least two options"
            elif (isinstance(self.correct_answer, bool)
                  or not isinstance(self.correct_answer, int)
                  or not 0 <= self.correct_answer < len(self.options)):
                errors["correct_answer"] = "Correct answer must be an index into options"
        elif self.question_type == QuestionType.TRUE_FALSE:
            if self.correct_answer not in (TRUE_VALUE, FALSE_VALUE):
                errors["correct_answer"] = "Correct answer must be 'true' or 'false'"
        elif self.correct_answer is not None and not isinstance(self.correct_answer, str):
            errors["correct_answer"] = "Reference answer must be text"

        if errors:
            raise ValidationError(
                f"Invalid question {self.id}",
                details={"question_id": self.id, "errors": errors}
            )

    def copy_with(self, **changes) -> 'Question':
        """Return a copy of this question with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        """
        Create a Question from a dictionary.

        Args:
            data: Dictionary containing question data

        Returns:
            A Question instance
        """
        return cls(
            id=data["id"],
            question_type=data.get("question_type", QuestionType.TEXT.value),
            prompt=data.get("prompt", ""),
            correct_answer=data.get("correct_answer"),
            points=data.get("points", DEFAULT_QUESTION_POINTS),
            difficulty=data.get("difficulty", Difficulty.MEDIUM.value),
            options=data.get("options"),
            explanation=data.get("explanation"),
        )
