"""
Aggregation Engine

Rolls submissions, attendance records and evaluations into the summaries the
teacher dashboard and the student report are built from.

These functions never raise on missing data: a student without submissions,
sessions or evaluations gets zero or default summaries.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from gradebook.assessments.base.models import (
    DEFAULT_EVALUATION_CRITERIA,
    AttendanceRecord,
    AttendanceStatus,
    Evaluation,
    EvaluationBasis,
    EvaluationCriteria,
    Submission,
    TestDefinition,
)
from gradebook.common.serialization import serialize
from gradebook.common.utils import percent, safe_divide
from gradebook.domain.questions.bank import TestType


@dataclass
class GradeSummary:
    """Totals over a student's submitted work."""
    user_id: str
    tests_completed: int = 0
    assignments_completed: int = 0
    total_score: float = 0
    total_points: float = 0

    @property
    def average_percent(self) -> float:
        """Score as a percentage of the points available; 0 with no points."""
        return percent(self.total_score, self.total_points)

    @property
    def level(self) -> str:
        return evaluation_level(self.average_percent)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "tests_completed": self.tests_completed,
            "assignments_completed": self.assignments_completed,
            "total_score": self.total_score,
            "total_points": self.total_points,
            "average_percent": self.average_percent,
            "level": self.level,
        }


@dataclass
class AttendanceSummary:
    """Status counts of a student over a set of sessions."""
    user_id: str
    total_sessions: int = 0
    present: int = 0
    late: int = 0
    absent: int = 0
    excused: int = 0

    @property
    def attendance_rate(self) -> float:
        """Present and late sessions as a percentage; 0 without sessions."""
        return percent(self.present + self.late, self.total_sessions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "total_sessions": self.total_sessions,
            "present": self.present,
            "late": self.late,
            "absent": self.absent,
            "excused": self.excused,
            "attendance_rate": self.attendance_rate,
        }


def summarize_grades(user_id: str,
                     submissions: Iterable[Submission],
                     tests: Mapping[str, TestDefinition]) -> GradeSummary:
    """
    Build a student's grade summary.

    Only submitted (or graded) submissions of the student count. Tests and
    assignments are told apart through ``tests``; a submission whose test is
    unknown still counts towards the score totals.

    Args:
        user_id: The student
        submissions: Submissions, possibly of several students
        tests: Test definitions by ID

    Returns:
        The grade summary
    """
    summary = GradeSummary(user_id=user_id)
    for submission in submissions:
        if submission.user_id != user_id or not submission.is_submitted:
            continue

        test = tests.get(submission.test_id)
        if test is not None and test.test_type == TestType.TEST:
            summary.tests_completed += 1
        elif test is not None and test.test_type == TestType.ASSIGNMENT:
            summary.assignments_completed += 1

        summary.total_score += submission.score
        summary.total_points += submission.total_points
    return summary


def summarize_attendance(user_id: str,
                         records: Iterable[AttendanceRecord],
                         total_sessions: int) -> AttendanceSummary:
    """
    Build a student's attendance summary.

    Args:
        user_id: The student
        records: Attendance records, possibly of several students
        total_sessions: Number of sessions in the period

    Returns:
        The attendance summary
    """
    counts = {status: 0 for status in AttendanceStatus}
    for record in records:
        if record.user_id == user_id:
            counts[record.status] += 1

    return AttendanceSummary(
        user_id=user_id,
        total_sessions=total_sessions,
        present=counts[AttendanceStatus.PRESENT],
        late=counts[AttendanceStatus.LATE],
        absent=counts[AttendanceStatus.ABSENT],
        excused=counts[AttendanceStatus.EXCUSED],
    )


def evaluation_level(average_percent: float) -> str:
    """Report label for an average score."""
    if average_percent >= 90:
        return "excellent"
    if average_percent >= 70:
        return "good"
    if average_percent >= 50:
        return "average"
    return "needs_effort"


class EvaluationTier(enum.Enum):
    """Score tiers on the 0-10 evaluation scale, as (lower, upper) bounds."""
    EXCELLENT = (9, 10)
    GOOD = (7, 9)
    AVERAGE = (5, 7)
    WEAK = (0, 5)

    @property
    def midpoint(self) -> float:
        low, high = self.value
        return (low + high) / 2

    @classmethod
    def for_score(cls, score: float) -> 'EvaluationTier':
        """Tier of a score on the 0-10 scale."""
        if score >= 9:
            return cls.EXCELLENT
        if score >= 7:
            return cls.GOOD
        if score >= 5:
            return cls.AVERAGE
        return cls.WEAK


def stars_for_score(score: float) -> int:
    """Overall rating (1-5 stars) for a mean score on the 0-10 scale."""
    if score >= 9:
        return 5
    if score >= 7:
        return 4
    if score >= 5:
        return 3
    if score >= 3:
        return 2
    return 1


@dataclass
class EvaluationSuggestion:
    """Auto-filled evaluation ratings; a suggestion for the teacher, never stored."""
    user_id: str
    ratings: Dict[str, float]
    tiers: Dict[str, EvaluationTier]
    overall_rating: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "ratings": dict(self.ratings),
            "tiers": {k: t.name.lower() for k, t in self.tiers.items()},
            "overall_rating": self.overall_rating,
        }


def _basis_percent(basis: EvaluationBasis, grade: GradeSummary, attendance: AttendanceSummary) -> float:
    if basis == EvaluationBasis.GRADE:
        return grade.average_percent
    if basis == EvaluationBasis.ATTENDANCE:
        return attendance.attendance_rate

    # Combined: mean of the summaries that have data
    available = []
    if grade.total_points > 0:
        available.append(grade.average_percent)
    if attendance.total_sessions > 0:
        available.append(attendance.attendance_rate)
    return safe_divide(sum(available), len(available))


def suggest_evaluation(grade: GradeSummary,
                       attendance: AttendanceSummary,
                       criteria: Sequence[EvaluationCriteria] = DEFAULT_EVALUATION_CRITERIA) -> EvaluationSuggestion:
    """
    Auto-fill evaluation ratings from a student's grade and attendance.

    Each criterion's basis percentage is scaled to 0-10 and mapped to a tier;
    the criterion gets the tier midpoint scaled to its max points. The overall
    star rating comes from the mean tier midpoint.

    Args:
        grade: The student's grade summary
        attendance: The student's attendance summary
        criteria: Criteria to rate

    Returns:
        The suggested ratings
    """
    ratings: Dict[str, float] = {}
    tiers: Dict[str, EvaluationTier] = {}
    midpoints: List[float] = []

    for criterion in criteria:
        tier = EvaluationTier.for_score(_basis_percent(criterion.basis, grade, attendance) * 0.1)
        tiers[criterion.id] = tier
        ratings[criterion.id] = round(tier.midpoint * criterion.max_points / 10, 2)
        midpoints.append(tier.midpoint)

    mean_score = safe_divide(sum(midpoints), len(midpoints))
    return EvaluationSuggestion(
        user_id=grade.user_id,
        ratings=ratings,
        tiers=tiers,
        overall_rating=stars_for_score(mean_score),
    )


def latest_evaluation(user_id: str, evaluations: Iterable[Evaluation]) -> Optional[Evaluation]:
    """The student's most recent evaluation by ``evaluated_at``."""
    latest = None
    for evaluation in evaluations:
        if evaluation.user_id != user_id:
            continue
        if latest is None or evaluation.evaluated_at > latest.evaluated_at:
            latest = evaluation
    return latest


def average_rating(user_id: str, evaluations: Iterable[Evaluation]) -> float:
    ratings = [e.overall_rating for e in evaluations if e.user_id == user_id]
    return safe_divide(sum(ratings), len(ratings))


@dataclass
class OverallSummary:
    """One row of the classroom overview: attendance, grades and evaluations."""
    user_id: str
    attendance_rate: float = 0
    total_sessions: int = 0
    average_score: float = 0
    tests_completed: int = 0
    assignments_completed: int = 0
    latest_evaluation: Optional[Evaluation] = None
    average_rating: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return serialize({
            "user_id": self.user_id,
            "attendance_rate": self.attendance_rate,
            "total_sessions": self.total_sessions,
            "average_score": self.average_score,
            "tests_completed": self.tests_completed,
            "assignments_completed": self.assignments_completed,
            "latest_evaluation": self.latest_evaluation,
            "average_rating": self.average_rating,
        })


def overall_summary(grade: GradeSummary,
                    attendance: AttendanceSummary,
                    evaluations: Iterable[Evaluation]) -> OverallSummary:
    evaluations = list(evaluations)
    return OverallSummary(
        user_id=grade.user_id,
        attendance_rate=attendance.attendance_rate,
        total_sessions=attendance.total_sessions,
        average_score=grade.average_percent,
        tests_completed=grade.tests_completed,
        assignments_completed=grade.assignments_completed,
        latest_evaluation=latest_evaluation(grade.user_id, evaluations),
        average_rating=average_rating(grade.user_id, evaluations),
    )


@dataclass
class ClassProgress:
    """Classroom-wide progress."""
    classroom_id: str
    total_students: int
    tests_created: int
    assignments_created: int
    student_grades: List[GradeSummary] = field(default_factory=list)

    @property
    def average_class_score(self) -> float:
        """Mean of the students' average percentages (not weighted by points)."""
        return safe_divide(sum(g.average_percent for g in self.student_grades), len(self.student_grades))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "classroom_id": self.classroom_id,
            "total_students": self.total_students,
            "tests_created": self.tests_created,
            "assignments_created": self.assignments_created,
            "average_class_score": self.average_class_score,
            "student_grades": [g.to_dict() for g in self.student_grades],
        }


def class_progress(classroom_id: str,
                   student_ids: Sequence[str],
                   tests: Sequence[TestDefinition],
                   submissions: Sequence[Submission]) -> ClassProgress:
    """Grade summaries of every student plus the classroom totals."""
    tests_by_id = {t.id: t for t in tests}
    return ClassProgress(
        classroom_id=classroom_id,
        total_students=len(student_ids),
        tests_created=sum(1 for t in tests if t.test_type == TestType.TEST),
        assignments_created=sum(1 for t in tests if t.test_type == TestType.ASSIGNMENT),
        student_grades=[summarize_grades(uid, submissions, tests_by_id) for uid in student_ids],
    )


def build_student_report(grade: GradeSummary,
                         attendance: AttendanceSummary,
                         evaluation: Optional[Evaluation]) -> Dict[str, Any]:
    """
    Plain-data report of one student for the reporting collaborator.

    Returns:
        ``{"grade": ..., "attendance": ..., "evaluation": ...}``; evaluation is
        None when the student has not been evaluated
    """
    return {
        "grade": grade.to_dict(),
        "attendance": attendance.to_dict(),
        "evaluation": evaluation.to_dict() if evaluation is not None else None,
    }
