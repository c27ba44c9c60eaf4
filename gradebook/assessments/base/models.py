"""
Base Assessment Models

This module defines the core data models of the classroom assessment
architecture: test definitions, submissions and answers, attendance sessions
and records, evaluations, and the notifications sent to classroom members.
"""

import uuid
import enum
import datetime
import dataclasses
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field

from gradebook.common.error_handling import ValidationError
from gradebook.common.serialization import SerializableMixin, parse_date, parse_datetime
from gradebook.common.utils import utc_now
from gradebook.domain.questions.bank import TestType, sum_points
from gradebook.domain.questions.model import Question, QuestionType


@dataclass
class TestDefinition(SerializableMixin):
    """
    A named, versioned question set assigned to a classroom.

    ``total_points`` is derived from the questions; replacing the question
    set through ``with_questions`` bumps ``version``.
    """
    __test__ = False

    __serializable_fields__ = [
        "id", "classroom_id", "title", "description", "test_type", "questions",
        "total_points", "time_limit_minutes", "deadline", "is_published",
        "created_by", "created_at", "source_template_id", "version"
    ]

    id: str
    classroom_id: str
    title: str
    test_type: TestType
    questions: List[Question]
    created_by: str
    description: str = ""
    time_limit_minutes: Optional[int] = None
    deadline: Optional[datetime.datetime] = None
    is_published: bool = False
    created_at: datetime.datetime = field(default_factory=utc_now)
    source_template_id: Optional[str] = None
    version: int = 1

    def __post_init__(self):
        if isinstance(self.test_type, str):
            try:
                self.test_type = TestType(self.test_type)
            except ValueError:
                raise ValidationError(f"Invalid test type: {self.test_type}", details={"test_id": self.id})
        self.questions = list(self.questions)

        if self.time_limit_minutes is not None and self.time_limit_minutes <= 0:
            raise ValidationError("Time limit must be positive", details={"test_id": self.id})

    @property
    def total_points(self) -> int:
        return sum_points(self.questions)

    @property
    def has_free_text(self) -> bool:
        """Whether any question needs manual grading."""
        return any(q.question_type == QuestionType.TEXT for q in self.questions)

    @property
    def is_timed(self) -> bool:
        """Timed attempts only apply to tests with a time limit."""
        return self.test_type == TestType.TEST and bool(self.time_limit_minutes)

    def question_map(self) -> Dict[str, Question]:
        return {q.id: q for q in self.questions}

    def with_questions(self, questions: List[Question]) -> 'TestDefinition':
        """Return a copy holding a new question set, one version later."""
        return dataclasses.replace(self, questions=list(questions), version=self.version + 1)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TestDefinition':
        return cls(
            id=data["id"],
            classroom_id=data["classroom_id"],
            title=data["title"],
            test_type=data.get("test_type", TestType.TEST.value),
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
            created_by=data.get("created_by", ""),
            description=data.get("description", ""),
            time_limit_minutes=data.get("time_limit_minutes"),
            deadline=parse_datetime(data.get("deadline")),
            is_published=data.get("is_published", False),
            created_at=parse_datetime(data.get("created_at")) or utc_now(),
            source_template_id=data.get("source_template_id"),
            version=data.get("version", 1),
        )


class SubmissionStatus(enum.Enum):
    """Lifecycle of a student's attempt at one test."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"


@dataclass
class Answer(SerializableMixin):
    """
    A student's answer to one question.

    ``is_correct`` and ``points_earned`` stay None until the answer is graded
    (at submission for objective questions, by a teacher for free text).
    """

    __serializable_fields__ = ["question_id", "answer", "is_correct", "points_earned"]

    question_id: str
    answer: Any = None
    is_correct: Optional[bool] = None
    points_earned: Optional[float] = None

    @property
    def is_graded(self) -> bool:
        return self.points_earned is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Answer':
        return cls(
            question_id=data["question_id"],
            answer=data.get("answer"),
            is_correct=data.get("is_correct"),
            points_earned=data.get("points_earned"),
        )


@dataclass
class Submission(SerializableMixin):
    """A student's attempt at a test; one per (test, user)."""

    __serializable_fields__ = [
        "id", "test_id", "classroom_id", "user_id", "answers", "score",
        "total_points", "started_at", "submitted_at", "time_spent_seconds",
        "graded_by", "graded_at", "feedback", "status"
    ]

    id: str
    test_id: str
    classroom_id: str
    user_id: str
    total_points: int
    answers: List[Answer] = field(default_factory=list)
    score: float = 0
    started_at: datetime.datetime = field(default_factory=utc_now)
    submitted_at: Optional[datetime.datetime] = None
    time_spent_seconds: int = 0
    graded_by: Optional[str] = None
    graded_at: Optional[datetime.datetime] = None
    feedback: Optional[str] = None

    @property
    def status(self) -> SubmissionStatus:
        if self.graded_at is not None:
            return SubmissionStatus.GRADED
        if self.submitted_at is not None:
            return SubmissionStatus.SUBMITTED
        return SubmissionStatus.IN_PROGRESS

    @property
    def is_submitted(self) -> bool:
        """Submitted or graded."""
        return self.submitted_at is not None

    @property
    def percent(self) -> float:
        if not self.total_points:
            return 0.0
        return self.score / self.total_points * 100

    @classmethod
    def create(cls, test: TestDefinition, user_id: str, started_at: Optional[datetime.datetime] = None) -> 'Submission':
        return cls(
            id=f"sub_{uuid.uuid4()}",
            test_id=test.id,
            classroom_id=test.classroom_id,
            user_id=user_id,
            total_points=test.total_points,
            started_at=started_at or utc_now(),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Submission':
        return cls(
            id=data["id"],
            test_id=data["test_id"],
            classroom_id=data["classroom_id"],
            user_id=data["user_id"],
            total_points=data.get("total_points", 0),
            answers=[Answer.from_dict(a) for a in data.get("answers", [])],
            score=data.get("score", 0),
            started_at=parse_datetime(data.get("started_at")) or utc_now(),
            submitted_at=parse_datetime(data.get("submitted_at")),
            time_spent_seconds=data.get("time_spent_seconds", 0),
            graded_by=data.get("graded_by"),
            graded_at=parse_datetime(data.get("graded_at")),
            feedback=data.get("feedback"),
        )


class AttendanceStatus(enum.Enum):
    """Attendance status of a student at one session."""
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    EXCUSED = "excused"

    @property
    def counts_as_attended(self) -> bool:
        return self in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)


@dataclass
class AttendanceSession(SerializableMixin):
    """A class meeting on one date with its status counters."""

    __serializable_fields__ = [
        "id", "classroom_id", "session_date", "created_by", "created_at",
        "total_present", "total_late", "total_absent", "total_excused"
    ]

    id: str
    classroom_id: str
    session_date: datetime.date
    created_by: str
    created_at: datetime.datetime = field(default_factory=utc_now)
    total_present: int = 0
    total_late: int = 0
    total_absent: int = 0
    total_excused: int = 0

    def set_counts(self, counts: Dict[AttendanceStatus, int]) -> None:
        self.total_present = counts.get(AttendanceStatus.PRESENT, 0)
        self.total_late = counts.get(AttendanceStatus.LATE, 0)
        self.total_absent = counts.get(AttendanceStatus.ABSENT, 0)
        self.total_excused = counts.get(AttendanceStatus.EXCUSED, 0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AttendanceSession':
        return cls(
            id=data["id"],
            classroom_id=data["classroom_id"],
            session_date=parse_date(data["session_date"]),
            created_by=data.get("created_by", ""),
            created_at=parse_datetime(data.get("created_at")) or utc_now(),
            total_present=data.get("total_present", 0),
            total_late=data.get("total_late", 0),
            total_absent=data.get("total_absent", 0),
            total_excused=data.get("total_excused", 0),
        )


@dataclass
class AttendanceRecord(SerializableMixin):
    """One student's attendance at one session."""

    __serializable_fields__ = [
        "id", "classroom_id", "session_date", "user_id", "status", "note",
        "checked_by", "checked_at"
    ]

    id: str
    classroom_id: str
    session_date: datetime.date
    user_id: str
    status: AttendanceStatus
    checked_by: str
    note: Optional[str] = None
    checked_at: datetime.datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if isinstance(self.status, str):
            try:
                self.status = AttendanceStatus(self.status)
            except ValueError:
                raise ValidationError(f"Invalid attendance status: {self.status}", details={"user_id": self.user_id})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AttendanceRecord':
        return cls(
            id=data["id"],
            classroom_id=data["classroom_id"],
            session_date=parse_date(data["session_date"]),
            user_id=data["user_id"],
            status=data["status"],
            checked_by=data.get("checked_by", ""),
            note=data.get("note"),
            checked_at=parse_datetime(data.get("checked_at")) or utc_now(),
        )


class EvaluationBasis(enum.Enum):
    """Which summary a criterion is auto-filled from."""
    GRADE = "grade"
    ATTENDANCE = "attendance"
    COMBINED = "combined"


@dataclass
class EvaluationCriteria(SerializableMixin):
    """A rating criterion of a student evaluation."""

    __serializable_fields__ = ["id", "name", "description", "max_points", "basis"]

    id: str
    name: str
    max_points: float = 10
    description: Optional[str] = None
    basis: EvaluationBasis = EvaluationBasis.COMBINED

    def __post_init__(self):
        self.basis = EvaluationBasis(self.basis)
        if self.max_points <= 0:
            raise ValidationError("Criterion max points must be positive", details={"criteria_id": self.id})


DEFAULT_EVALUATION_CRITERIA: List[EvaluationCriteria] = [
    EvaluationCriteria("participation", "Participation", 10, "Engagement in class activities",
                       EvaluationBasis.ATTENDANCE),
    EvaluationCriteria("homework", "Homework", 10, "Completion and quality of homework",
                       EvaluationBasis.GRADE),
    EvaluationCriteria("attitude", "Attitude", 10, "Attitude towards learning",
                       EvaluationBasis.ATTENDANCE),
    EvaluationCriteria("progress", "Progress", 10, "Improvement over the period",
                       EvaluationBasis.GRADE),
]


@dataclass
class Evaluation(SerializableMixin):
    """A teacher's periodic evaluation of one student."""

    __serializable_fields__ = [
        "id", "classroom_id", "user_id", "evaluator_id", "evaluated_at",
        "period_start", "period_end", "ratings", "overall_rating", "comment",
        "strengths", "improvements"
    ]

    id: str
    classroom_id: str
    user_id: str
    evaluator_id: str
    period_start: datetime.date
    period_end: datetime.date
    overall_rating: int
    ratings: Dict[str, float] = field(default_factory=dict)
    comment: str = ""
    strengths: Optional[List[str]] = None
    improvements: Optional[List[str]] = None
    evaluated_at: datetime.datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if not 1 <= self.overall_rating <= 5:
            raise ValidationError("Overall rating must be between 1 and 5",
                                  details={"evaluation_id": self.id, "overall_rating": self.overall_rating})
        if self.period_end < self.period_start:
            raise ValidationError("Evaluation period ends before it starts", details={"evaluation_id": self.id})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Evaluation':
        return cls(
            id=data["id"],
            classroom_id=data["classroom_id"],
            user_id=data["user_id"],
            evaluator_id=data.get("evaluator_id", ""),
            period_start=parse_date(data["period_start"]),
            period_end=parse_date(data["period_end"]),
            overall_rating=data["overall_rating"],
            ratings=dict(data.get("ratings", {})),
            comment=data.get("comment", ""),
            strengths=data.get("strengths"),
            improvements=data.get("improvements"),
            evaluated_at=parse_datetime(data.get("evaluated_at")) or utc_now(),
        )


class NotificationType(enum.Enum):
    """Kinds of notification sent to classroom members."""
    TEST_ASSIGNED = "test_assigned"
    ASSIGNMENT_ASSIGNED = "assignment_assigned"
    SUBMISSION_GRADED = "submission_graded"


@dataclass
class Notification(SerializableMixin):
    """A message for one classroom member."""

    __serializable_fields__ = [
        "classroom_id", "recipient_id", "notification_type", "title",
        "message", "related_id", "created_at"
    ]

    classroom_id: str
    recipient_id: str
    notification_type: NotificationType
    title: str
    message: str
    related_id: Optional[str] = None
    created_at: datetime.datetime = field(default_factory=utc_now)
