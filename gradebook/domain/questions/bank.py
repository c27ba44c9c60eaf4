"""
Question Bank Module

Pure operations over question lists, conversions from the platform's source
records (flashcards and bank questions) into questions, and the reusable
templates and folders teachers organise their question sets in.

Every list operation returns a new list; the input is never mutated.
"""

import enum
import uuid
import datetime
import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from gradebook.common.config import get_config
from gradebook.common.error_handling import NotFoundError, ValidationError
from gradebook.common.logger import app_logger
from gradebook.common.serialization import SerializableMixin, parse_datetime
from gradebook.common.utils import utc_now
from gradebook.domain.questions.model import Difficulty, Question, QuestionType

# Module logger
logger = app_logger.getChild("domain.questions.bank")

FLASHCARD_ID_PREFIX = "fc_"
BANK_ID_PREFIX = "bank_"
TEMPLATE_ID_PREFIX = "tb_"

QuestionRef = Union[int, str]


class SourceKind(enum.Enum):
    """Question sources the sampler can draw from, in allocation order."""
    FLASHCARD = "flashcard"
    BANK = "bank"
    TEMPLATE = "template"


class TestType(enum.Enum):
    """Kind of assessment a definition or template describes."""
    __test__ = False

    TEST = "test"
    ASSIGNMENT = "assignment"


class TemplateSourceType(enum.Enum):
    """Where a template's questions came from."""
    CUSTOM = "custom"
    FLASHCARD = "flashcard"
    BANK = "bank"


# ---------------------------------------------------------------------------
# Pure list operations
# ---------------------------------------------------------------------------

def validate_question(question: Question) -> Question:
    """
    Validate a question and return it unchanged.

    Raises:
        ValidationError: If the question breaks one of its invariants
    """
    question.validate()
    return question


def _find_index(questions: List[Question], ref: QuestionRef) -> int:
    if isinstance(ref, int) and not isinstance(ref, bool):
        if 0 <= ref < len(questions):
            return ref
    else:
        for index, question in enumerate(questions):
            if question.id == ref:
                return index
    raise NotFoundError("Question", str(ref))


def add_question(questions: List[Question], question: Question) -> List[Question]:
    """
    Append a validated question.

    Args:
        questions: Current question list
        question: Question to add

    Returns:
        A new list ending with the question

    Raises:
        ValidationError: If the question is invalid or its ID is already used
    """
    validate_question(question)
    if any(existing.id == question.id for existing in questions):
        raise ValidationError(
            f"Duplicate question id: {question.id}",
            details={"question_id": question.id}
        )
    return list(questions) + [question]


def update_question(questions: List[Question], ref: QuestionRef, **changes) -> List[Question]:
    """
    Replace fields of one question.

    Args:
        questions: Current question list
        ref: Position or ID of the question to update
        **changes: Field values to replace

    Returns:
        A new list with the updated question in the same position
    """
    index = _find_index(questions, ref)
    if "id" in changes and changes["id"] != questions[index].id:
        raise ValidationError("Question id cannot be changed", details={"question_id": questions[index].id})

    updated = validate_question(questions[index].copy_with(**changes))
    result = list(questions)
    result[index] = updated
    return result


def remove_question(questions: List[Question], ref: QuestionRef) -> List[Question]:
    """Return a new list without the question at ``ref`` (position or ID)."""
    index = _find_index(questions, ref)
    return [q for i, q in enumerate(questions) if i != index]


def sum_points(questions: List[Question]) -> int:
    """Total point value of a question list."""
    return sum(q.points for q in questions)


# ---------------------------------------------------------------------------
# Source records and conversions
# ---------------------------------------------------------------------------

@dataclass
class FlashcardRecord:
    """A vocabulary flashcard from the learning content store."""
    id: str
    vocabulary: str
    meaning: str
    kanji: Optional[str] = None
    sino_vietnamese: Optional[str] = None
    level: Optional[str] = None
    points: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FlashcardRecord':
        return cls(
            id=str(data["id"]),
            vocabulary=data.get("vocabulary", ""),
            meaning=data.get("meaning", ""),
            kanji=data.get("kanji") or None,
            sino_vietnamese=data.get("sino_vietnamese") or None,
            level=data.get("level"),
            points=data.get("points"),
        )


@dataclass
class BankAnswer:
    """One answer option of a bank question."""
    text: str
    is_correct: bool = False


@dataclass
class BankQuestionRecord:
    """A multiple choice question from the level-based question bank."""
    id: str
    question: str
    answers: List[BankAnswer] = field(default_factory=list)
    level: Optional[str] = None
    points: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BankQuestionRecord':
        return cls(
            id=str(data["id"]),
            question=data.get("question", ""),
            answers=[
                a if isinstance(a, BankAnswer) else BankAnswer(a.get("text", ""), bool(a.get("is_correct", False)))
                for a in data.get("answers", [])
            ],
            level=data.get("level"),
            points=data.get("points"),
        )


def _resolve_points(record_points: Optional[int], default_points: Optional[int]) -> int:
    if record_points is not None:
        return record_points
    if default_points is not None:
        return default_points
    return get_config().sampler.default_question_points


def from_flashcard(card: FlashcardRecord,
                   difficulty: Difficulty,
                   default_points: Optional[int] = None) -> Question:
    """
    Convert a flashcard into a free-text question.

    The prompt asks for the meaning of the vocabulary (with its kanji when
    present) and the meaning is kept as the reference answer.

    Args:
        card: Source flashcard
        difficulty: Difficulty tag for the question
        default_points: Point value when the card carries none

    Returns:
        A validated free-text question with ID ``fc_<card id>``
    """
    prompt = f"{card.vocabulary} の意味は？"
    if card.kanji:
        prompt += f" ({card.kanji})"

    question = Question(
        id=f"{FLASHCARD_ID_PREFIX}{card.id}",
        question_type=QuestionType.TEXT,
        prompt=prompt,
        correct_answer=card.meaning,
        points=_resolve_points(card.points, default_points),
        difficulty=difficulty,
        explanation=f"Hán Việt: {card.sino_vietnamese}" if card.sino_vietnamese else None,
    )
    return validate_question(question)


def from_bank_question(record: BankQuestionRecord,
                       difficulty: Difficulty,
                       default_points: Optional[int] = None) -> Question:
    """
    Convert a bank question into a multiple choice question.

    Args:
        record: Source bank question
        difficulty: Difficulty tag for the question
        default_points: Point value when the record carries none

    Returns:
        A validated multiple choice question with ID ``bank_<record id>``

    Raises:
        ValidationError: If no answer is flagged correct
    """
    correct = next((i for i, a in enumerate(record.answers) if a.is_correct), None)
    question = Question(
        id=f"{BANK_ID_PREFIX}{record.id}",
        question_type=QuestionType.MULTIPLE_CHOICE,
        prompt=record.question,
        options=[a.text for a in record.answers],
        correct_answer=correct,
        points=_resolve_points(record.points, default_points),
        difficulty=difficulty,
    )
    return validate_question(question)


# ---------------------------------------------------------------------------
# Templates and folders
# ---------------------------------------------------------------------------

@dataclass
class QuestionFolder(SerializableMixin):
    """A named folder of templates under one level and test type."""

    __serializable_fields__ = ["id", "name", "level", "test_type", "created_by", "created_at"]

    id: str
    name: str
    level: str
    test_type: TestType
    created_by: str
    created_at: datetime.datetime = field(default_factory=utc_now)

    @classmethod
    def create(cls, name: str, level: str, test_type: TestType, created_by: str) -> 'QuestionFolder':
        if not name or not name.strip():
            raise ValidationError("Folder name is required")
        return cls(id=f"folder_{uuid.uuid4()}", name=name.strip(), level=level,
                   test_type=TestType(test_type), created_by=created_by)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuestionFolder':
        return cls(
            id=data["id"],
            name=data["name"],
            level=data["level"],
            test_type=TestType(data["test_type"]),
            created_by=data["created_by"],
            created_at=parse_datetime(data.get("created_at")) or utc_now(),
        )


@dataclass
class TestTemplate(SerializableMixin):
    """
    A reusable question set teachers assign to classrooms.

    ``total_points`` is derived from the questions so it can never drift from
    their sum.
    """
    __test__ = False

    __serializable_fields__ = [
        "id", "title", "description", "test_type", "folder_id", "questions",
        "time_limit_minutes", "total_points", "level", "tags", "source_type",
        "is_active", "created_by", "created_at", "updated_at"
    ]

    id: str
    title: str
    test_type: TestType
    questions: List[Question]
    level: str
    created_by: str
    description: str = ""
    folder_id: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    source_type: TemplateSourceType = TemplateSourceType.CUSTOM
    is_active: bool = True
    created_at: datetime.datetime = field(default_factory=utc_now)
    updated_at: datetime.datetime = field(default_factory=utc_now)

    def __post_init__(self):
        self.test_type = TestType(self.test_type)
        self.source_type = TemplateSourceType(self.source_type)
        self.questions = list(self.questions)

    @property
    def total_points(self) -> int:
        return sum_points(self.questions)

    @classmethod
    def create(cls,
               title: str,
               test_type: TestType,
               questions: List[Question],
               level: str,
               created_by: str,
               **kwargs) -> 'TestTemplate':
        """
        Create a template after validating its title and questions.

        Raises:
            ValidationError: If the title is empty or a question is invalid
        """
        if not title or not title.strip():
            raise ValidationError("Template title is required")
        for question in questions:
            validate_question(question)

        template = cls(id=f"template_{uuid.uuid4()}", title=title.strip(), test_type=test_type,
                       questions=questions, level=level, created_by=created_by, **kwargs)
        logger.debug(f"Created template {template.id} with {len(questions)} questions")
        return template

    def update(self, **changes) -> 'TestTemplate':
        """
        Return an updated copy of the template.

        Replaced questions are validated; ``updated_at`` is refreshed.
        """
        for name in ("id", "created_by", "created_at", "total_points"):
            changes.pop(name, None)
        if "title" in changes and not str(changes["title"]).strip():
            raise ValidationError("Template title is required", details={"template_id": self.id})
        for question in changes.get("questions", []):
            validate_question(question)
        changes["updated_at"] = utc_now()
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TestTemplate':
        return cls(
            id=data["id"],
            title=data["title"],
            test_type=TestType(data["test_type"]),
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
            level=data.get("level", ""),
            created_by=data.get("created_by", ""),
            description=data.get("description", ""),
            folder_id=data.get("folder_id"),
            time_limit_minutes=data.get("time_limit_minutes"),
            tags=list(data.get("tags", [])),
            source_type=TemplateSourceType(data.get("source_type", TemplateSourceType.CUSTOM.value)),
            is_active=data.get("is_active", True),
            created_at=parse_datetime(data.get("created_at")) or utc_now(),
            updated_at=parse_datetime(data.get("updated_at")) or utc_now(),
        )


def folders_by_level_and_type(folders: List[QuestionFolder], level: str,
                              test_type: TestType) -> List[QuestionFolder]:
    """Folders under one level and test type, sorted by name."""
    test_type = TestType(test_type)
    matches = [f for f in folders if f.level == level and f.test_type == test_type]
    return sorted(matches, key=lambda f: f.name.lower())


def templates_by_folder(templates: List[TestTemplate], folder_id: str) -> List[TestTemplate]:
    """Templates stored in a folder, whatever their type."""
    return [t for t in templates if t.folder_id == folder_id]


def template_count_by_level(templates: List[TestTemplate]) -> Dict[str, int]:
    """Number of templates per level."""
    counts: Dict[str, int] = {}
    for template in templates:
        counts[template.level] = counts.get(template.level, 0) + 1
    return counts


def template_pool(templates: List[TestTemplate]) -> List[Question]:
    """
    Flatten active templates into one question pool.

    Questions get a ``tb_`` ID prefix and repeats (the same question reused
    across templates) are dropped, keeping the first occurrence.
    """
    pool: List[Question] = []
    seen = set()
    for template in templates:
        if not template.is_active:
            continue
        for question in template.questions:
            question_id = question.id
            if not question_id.startswith(TEMPLATE_ID_PREFIX):
                question_id = f"{TEMPLATE_ID_PREFIX}{question_id}"
            if question_id in seen:
                continue
            seen.add(question_id)
            pool.append(question.copy_with(id=question_id))
    return pool
