"""
Classroom Read Model

Keeps a classroom's derived reporting state (grade, attendance and
evaluation summaries per student, class progress, dashboard metrics and
alerts) and rebuilds it from the stores whenever a submission, attendance
record or evaluation of the classroom changes.
"""

import datetime
from typing import Any, Dict, List, Optional, Sequence

from gradebook.assessments.base.models import DEFAULT_EVALUATION_CRITERIA, EvaluationCriteria
from gradebook.assessments.base.repositories import (
    AttendanceRepository, EvaluationRepository, SubmissionRepository, TestRepository
)
from gradebook.common.logger import app_logger, log_execution_time
from gradebook.reporting.aggregation import (
    AttendanceSummary, ClassProgress, EvaluationSuggestion, GradeSummary, OverallSummary,
    build_student_report, class_progress, latest_evaluation, overall_summary,
    suggest_evaluation, summarize_attendance
)
from gradebook.reporting.dashboard import Alert, DashboardMetrics, dashboard_alerts, dashboard_metrics

# Module logger
logger = app_logger.getChild("reporting.read_model")


class ClassroomReadModel:
    """
    Derived reporting state of one classroom.

    Args:
        classroom_id: The classroom
        student_ids: Students of the classroom
        tests: Store for test definitions
        submissions: Store for submissions
        attendance: Store for attendance
        evaluations: Store for evaluations
        period_start: First session date counted, if any
        period_end: Last session date counted, if any
        criteria: Criteria used for evaluation suggestions
    """

    def __init__(self,
                 classroom_id: str,
                 student_ids: Sequence[str],
                 tests: TestRepository,
                 submissions: SubmissionRepository,
                 attendance: AttendanceRepository,
                 evaluations: EvaluationRepository,
                 period_start: Optional[datetime.date] = None,
                 period_end: Optional[datetime.date] = None,
                 criteria: Sequence[EvaluationCriteria] = DEFAULT_EVALUATION_CRITERIA):
        self.classroom_id = classroom_id
        self.student_ids = list(student_ids)
        self.tests = tests
        self.submissions = submissions
        self.attendance = attendance
        self.evaluations = evaluations
        self.period_start = period_start
        self.period_end = period_end
        self.criteria = list(criteria)

        self.progress: Optional[ClassProgress] = None
        self.grades: Dict[str, GradeSummary] = {}
        self.attendance_summaries: Dict[str, AttendanceSummary] = {}
        self.overall: Dict[str, OverallSummary] = {}
        self.reports: Dict[str, Dict[str, Any]] = {}
        self.metrics: Optional[DashboardMetrics] = None
        self.alerts: List[Alert] = []
        self.rebuild_count = 0

    def subscribe(self) -> None:
        """Rebuild whenever one of the change-publishing stores saves a record of this classroom."""
        for store in (self.tests, self.submissions, self.attendance, self.evaluations):
            subscribe = getattr(store, "subscribe", None)
            if subscribe is not None:
                subscribe(self._on_change)

    async def _on_change(self, record: Any) -> None:
        if getattr(record, "classroom_id", None) == self.classroom_id:
            await self.rebuild()

    @log_execution_time(logger)
    async def rebuild(self) -> None:
        """Recompute every derived value from the stores."""
        tests = await self.tests.find_by_classroom(self.classroom_id)
        submissions = await self.submissions.find_by_classroom(self.classroom_id)
        sessions = await self.attendance.find_sessions(self.classroom_id, self.period_start, self.period_end)
        records = await self.attendance.find_records(
            self.classroom_id, start_date=self.period_start, end_date=self.period_end
        )
        evaluations = await self.evaluations.find_by_classroom(self.classroom_id)

        self.progress = class_progress(self.classroom_id, self.student_ids, tests, submissions)
        self.grades = {g.user_id: g for g in self.progress.student_grades}
        self.attendance_summaries = {
            uid: summarize_attendance(uid, records, len(sessions)) for uid in self.student_ids
        }

        self.overall = {}
        self.reports = {}
        for uid in self.student_ids:
            grade, attendance = self.grades[uid], self.attendance_summaries[uid]
            self.overall[uid] = overall_summary(grade, attendance, evaluations)
            self.reports[uid] = build_student_report(grade, attendance, latest_evaluation(uid, evaluations))

        summaries = list(self.attendance_summaries.values())
        self.metrics = dashboard_metrics(self.progress, tests, submissions, summaries,
                                         evaluations, self.student_ids)
        self.alerts = dashboard_alerts(self.progress, tests, summaries, evaluations,
                                       self.student_ids, self.metrics)
        self.rebuild_count += 1
        logger.debug(f"Rebuilt read model of classroom {self.classroom_id}")

    def report(self, user_id: str) -> Dict[str, Any]:
        """The ``{grade, attendance, evaluation}`` report of a student."""
        if user_id in self.reports:
            return self.reports[user_id]
        return build_student_report(GradeSummary(user_id), AttendanceSummary(user_id), None)

    def suggestion(self, user_id: str) -> EvaluationSuggestion:
        """Auto-filled evaluation ratings for a student."""
        return suggest_evaluation(
            self.grades.get(user_id, GradeSummary(user_id)),
            self.attendance_summaries.get(user_id, AttendanceSummary(user_id)),
            self.criteria,
        )
