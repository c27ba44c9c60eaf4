"""
Teacher Dashboard Metrics

Classroom-level metrics and the alerts that point a teacher at students or
work needing attention.
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from gradebook.assessments.base.models import Evaluation, Submission, TestDefinition
from gradebook.common.config import ReportingConfig, get_config
from gradebook.common.utils import percent, safe_divide, utc_now
from gradebook.domain.questions.bank import TestType
from gradebook.reporting.aggregation import AttendanceSummary, ClassProgress


@dataclass
class DashboardMetrics:
    """Headline numbers of a classroom."""
    total_students: int
    average_score: float
    average_attendance: float
    average_rating: float
    submission_rate: float
    pending_submissions: int
    ungraded_submissions: int
    tests_created: int
    assignments_created: int

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class Alert:
    """Something the teacher should look at."""
    kind: str
    severity: str
    count: int
    subject_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "severity": self.severity, "count": self.count,
                "subject_ids": list(self.subject_ids)}


def _needs_manual_grading(submission: Submission, test: Optional[TestDefinition]) -> bool:
    return (submission.is_submitted and test is not None
            and test.has_free_text and submission.graded_by is None)


def dashboard_metrics(progress: ClassProgress,
                      tests: Sequence[TestDefinition],
                      submissions: Sequence[Submission],
                      attendance: Sequence[AttendanceSummary],
                      evaluations: Sequence[Evaluation],
                      student_ids: Sequence[str]) -> DashboardMetrics:
    """
    Compute the dashboard metrics.

    The submission rate is submitted work over published tests times
    students; pending counts the missing submissions of published tests.
    """
    tests_by_id = {t.id: t for t in tests}
    published = [t for t in tests if t.is_published]
    submitted = [s for s in submissions if s.is_submitted]

    pending = 0
    for test in published:
        done = sum(1 for s in submitted if s.test_id == test.id)
        pending += max(0, len(student_ids) - done)

    return DashboardMetrics(
        total_students=len(student_ids),
        average_score=progress.average_class_score,
        average_attendance=safe_divide(sum(a.attendance_rate for a in attendance), len(attendance)),
        average_rating=safe_divide(sum(e.overall_rating for e in evaluations), len(evaluations)),
        submission_rate=percent(len(submitted), len(published) * len(student_ids)),
        pending_submissions=pending,
        ungraded_submissions=sum(1 for s in submissions if _needs_manual_grading(s, tests_by_id.get(s.test_id))),
        tests_created=progress.tests_created,
        assignments_created=progress.assignments_created,
    )


def dashboard_alerts(progress: ClassProgress,
                     tests: Sequence[TestDefinition],
                     attendance: Sequence[AttendanceSummary],
                     evaluations: Sequence[Evaluation],
                     student_ids: Sequence[str],
                     metrics: DashboardMetrics,
                     config: Optional[ReportingConfig] = None,
                     now: Optional[datetime.datetime] = None) -> List[Alert]:
    """
    Alerts for low performers, low attendance, ungraded work, overdue
    assignments and students without an evaluation.

    Students with no graded points or no sessions are not flagged.
    """
    config = config or get_config().reporting
    now = now or utc_now()
    alerts: List[Alert] = []

    low_scores = [g.user_id for g in progress.student_grades
                  if g.total_points > 0 and g.average_percent < config.low_score_percent]
    if low_scores:
        alerts.append(Alert("low_performance", "danger", len(low_scores), low_scores))

    low_attendance = [a.user_id for a in attendance
                      if a.total_sessions > 0 and a.attendance_rate < config.low_attendance_percent]
    if low_attendance:
        alerts.append(Alert("low_attendance", "warning", len(low_attendance), low_attendance))

    if metrics.ungraded_submissions > 0:
        alerts.append(Alert("ungraded_submissions", "info", metrics.ungraded_submissions))

    overdue = [t.id for t in tests
               if t.test_type == TestType.ASSIGNMENT and t.is_published
               and t.deadline is not None and t.deadline < now]
    if overdue:
        alerts.append(Alert("overdue_assignments", "warning", len(overdue), overdue))

    evaluated = {e.user_id for e in evaluations}
    not_evaluated = [uid for uid in student_ids if uid not in evaluated]
    if not_evaluated:
        alerts.append(Alert("missing_evaluations", "info", len(not_evaluated), not_evaluated))

    return alerts
