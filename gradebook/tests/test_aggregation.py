"""
Tests for the aggregation engine and dashboard metrics.
"""

import datetime

import pytest

from gradebook.assessments.base.models import (
    AttendanceRecord,
    AttendanceStatus,
    EvaluationBasis,
    EvaluationCriteria,
    Evaluation,
    Submission,
    TestDefinition,
)
from gradebook.common.config import ReportingConfig
from gradebook.domain.questions.bank import TestType
from gradebook.domain.questions.model import QuestionType
from gradebook.reporting.aggregation import (
    AttendanceSummary,
    EvaluationTier,
    GradeSummary,
    build_student_report,
    class_progress,
    evaluation_level,
    latest_evaluation,
    overall_summary,
    stars_for_score,
    suggest_evaluation,
    summarize_attendance,
    summarize_grades,
)
from gradebook.reporting.dashboard import dashboard_alerts, dashboard_metrics

NOW = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=datetime.timezone.utc)
DAY = datetime.date(2024, 5, 20)


def _test(test_id, test_type=TestType.TEST, questions=(), published=True, deadline=None):
    return TestDefinition(id=test_id, classroom_id="class1", title=test_id, test_type=test_type,
                          questions=list(questions), created_by="teacher", is_published=published,
                          deadline=deadline)


def _submission(test_id, user_id, score, total, submitted=True, graded_by=None):
    return Submission(
        id=f"{test_id}-{user_id}", test_id=test_id, classroom_id="class1", user_id=user_id,
        total_points=total, score=score,
        submitted_at=NOW if submitted else None, graded_by=graded_by,
    )


def _record(user_id, status, day=DAY):
    return AttendanceRecord(id=f"{user_id}-{day}", classroom_id="class1", session_date=day,
                            user_id=user_id, status=status, checked_by="teacher")


def _evaluation(user_id, rating, evaluated_at):
    return Evaluation(id=f"ev-{user_id}-{rating}", classroom_id="class1", user_id=user_id,
                      evaluator_id="teacher", period_start=datetime.date(2024, 5, 1),
                      period_end=datetime.date(2024, 5, 31), overall_rating=rating,
                      evaluated_at=evaluated_at)


class TestGradeSummary:
    """Tests for per-student grade totals."""

    def test_counts_submitted_work_only(self):
        tests = {"t1": _test("t1"), "a1": _test("a1", TestType.ASSIGNMENT)}
        submissions = [
            _submission("t1", "s1", 15, 20),
            _submission("a1", "s1", 5, 10),
            _submission("a1", "s2", 10, 10),
            _submission("t2", "s1", 0, 50, submitted=False),
        ]

        summary = summarize_grades("s1", submissions, tests)

        assert summary.tests_completed == 1
        assert summary.assignments_completed == 1
        assert summary.total_score == 20
        assert summary.total_points == 30
        assert summary.average_percent == pytest.approx(66.666, abs=0.01)
        assert summary.level == "average"

    def test_no_points_means_zero_average(self):
        summary = summarize_grades("s1", [], {})
        assert summary.average_percent == 0
        assert summary.level == "needs_effort"

    @pytest.mark.parametrize("value,label", [
        (95, "excellent"), (90, "excellent"), (70, "good"), (69.9, "average"), (50, "average"), (10, "needs_effort"),
    ])
    def test_levels(self, value, label):
        assert evaluation_level(value) == label


class TestAttendanceSummary:
    """Tests for per-student attendance counts."""

    def test_late_counts_as_attended(self):
        records = [
            _record("s1", AttendanceStatus.PRESENT, datetime.date(2024, 5, 1)),
            _record("s1", AttendanceStatus.LATE, datetime.date(2024, 5, 2)),
            _record("s1", AttendanceStatus.ABSENT, datetime.date(2024, 5, 3)),
            _record("s1", AttendanceStatus.EXCUSED, datetime.date(2024, 5, 4)),
            _record("s2", AttendanceStatus.ABSENT, datetime.date(2024, 5, 1)),
        ]

        summary = summarize_attendance("s1", records, total_sessions=4)

        assert (summary.present, summary.late, summary.absent, summary.excused) == (1, 1, 1, 1)
        assert summary.attendance_rate == 50

    def test_no_sessions_means_zero_rate(self):
        assert summarize_attendance("s1", [], 0).attendance_rate == 0


class TestEvaluationSuggestion:
    """Tests for auto-filled evaluation ratings."""

    def test_tiers(self):
        assert EvaluationTier.for_score(9.5) == EvaluationTier.EXCELLENT
        assert EvaluationTier.for_score(7) == EvaluationTier.GOOD
        assert EvaluationTier.for_score(6.9) == EvaluationTier.AVERAGE
        assert EvaluationTier.for_score(2) == EvaluationTier.WEAK
        assert EvaluationTier.GOOD.midpoint == 8

    @pytest.mark.parametrize("score,stars", [(9.5, 5), (8, 4), (6, 3), (4, 2), (2.5, 1)])
    def test_stars(self, score, stars):
        assert stars_for_score(score) == stars

    def test_ratings_follow_criterion_basis(self):
        grade = GradeSummary("s1", tests_completed=1, total_score=80, total_points=100)
        attendance = AttendanceSummary("s1", total_sessions=10, present=10)

        suggestion = suggest_evaluation(grade, attendance)

        assert suggestion.ratings["homework"] == 8
        assert suggestion.ratings["participation"] == 9.5
        assert suggestion.tiers["progress"] == EvaluationTier.GOOD
        assert suggestion.overall_rating == 4

    def test_ratings_scale_to_max_points(self):
        grade = GradeSummary("s1", total_score=95, total_points=100)
        criteria = [EvaluationCriteria("quiz", "Quiz", max_points=5, basis=EvaluationBasis.GRADE)]

        suggestion = suggest_evaluation(grade, AttendanceSummary("s1"), criteria)

        assert suggestion.ratings["quiz"] == 4.75
        assert suggestion.overall_rating == 5

    def test_combined_basis_uses_available_data(self):
        grade = GradeSummary("s1")
        attendance = AttendanceSummary("s1", total_sessions=4, present=4)
        criteria = [EvaluationCriteria("overall", "Overall")]

        suggestion = suggest_evaluation(grade, attendance, criteria)

        assert suggestion.tiers["overall"] == EvaluationTier.EXCELLENT

    def test_no_data_is_weak(self):
        suggestion = suggest_evaluation(GradeSummary("s1"), AttendanceSummary("s1"))
        assert set(suggestion.tiers.values()) == {EvaluationTier.WEAK}
        assert suggestion.overall_rating == 1
        assert suggestion.to_dict()["tiers"]["homework"] == "weak"


class TestReports:
    """Tests for overall summaries, class progress and student reports."""

    def test_latest_evaluation_and_overall(self):
        evaluations = [
            _evaluation("s1", 3, NOW - datetime.timedelta(days=30)),
            _evaluation("s1", 5, NOW),
            _evaluation("s2", 1, NOW),
        ]

        assert latest_evaluation("s1", evaluations).overall_rating == 5
        assert latest_evaluation("s3", evaluations) is None

        summary = overall_summary(GradeSummary("s1", total_score=9, total_points=10),
                                  AttendanceSummary("s1", total_sessions=2, present=1), evaluations)
        assert summary.average_score == 90
        assert summary.attendance_rate == 50
        assert summary.average_rating == 4
        assert summary.to_dict()["latest_evaluation"]["overall_rating"] == 5

    def test_class_average_is_mean_of_student_averages(self):
        tests = [_test("t1"), _test("a1", TestType.ASSIGNMENT)]
        submissions = [
            _submission("t1", "s1", 10, 10),
            _submission("a1", "s1", 90, 90),
            _submission("t1", "s2", 0, 10),
        ]

        progress = class_progress("class1", ["s1", "s2", "s3"], tests, submissions)

        assert progress.total_students == 3
        assert progress.tests_created == 1
        assert progress.assignments_created == 1
        assert progress.average_class_score == pytest.approx(100 / 3)

    def test_empty_classroom(self):
        progress = class_progress("class1", [], [], [])
        assert progress.average_class_score == 0
        assert progress.to_dict()["student_grades"] == []

    def test_student_report_shape(self):
        report = build_student_report(GradeSummary("s1"), AttendanceSummary("s1"), None)

        assert set(report) == {"grade", "attendance", "evaluation"}
        assert report["grade"]["average_percent"] == 0
        assert report["attendance"]["attendance_rate"] == 0
        assert report["evaluation"] is None


class TestDashboard:
    """Tests for dashboard metrics and alerts."""

    @pytest.fixture
    def classroom(self, make_question):
        essay = _test("essay", TestType.ASSIGNMENT,
                      [make_question("e1", QuestionType.TEXT)], deadline=NOW - datetime.timedelta(days=1))
        quiz = _test("quiz", questions=[make_question("q1")])
        draft = _test("draft", published=False)
        tests = [essay, quiz, draft]
        submissions = [
            _submission("quiz", "s1", 10, 10),
            _submission("quiz", "s2", 0, 10),
            _submission("essay", "s1", 0, 10),
            _submission("essay", "s2", 8, 10, graded_by="teacher"),
        ]
        students = ["s1", "s2", "s3"]
        attendance = [
            AttendanceSummary("s1", total_sessions=4, present=4),
            AttendanceSummary("s2", total_sessions=4, present=1, absent=3),
            AttendanceSummary("s3", total_sessions=4, late=3, absent=1),
        ]
        evaluations = [_evaluation("s1", 4, NOW)]
        progress = class_progress("class1", students, tests, submissions)
        return progress, tests, submissions, attendance, evaluations, students

    def test_metrics(self, classroom):
        progress, tests, submissions, attendance, evaluations, students = classroom

        metrics = dashboard_metrics(progress, tests, submissions, attendance, evaluations, students)

        assert metrics.total_students == 3
        assert metrics.submission_rate == pytest.approx(4 / 6 * 100)
        assert metrics.pending_submissions == 2
        assert metrics.ungraded_submissions == 1
        assert metrics.average_rating == 4
        assert metrics.average_attendance == pytest.approx((100 + 25 + 75) / 3)
        assert metrics.tests_created == 2

    def test_alerts(self, classroom):
        progress, tests, submissions, attendance, evaluations, students = classroom
        metrics = dashboard_metrics(progress, tests, submissions, attendance, evaluations, students)

        alerts = {a.kind: a for a in dashboard_alerts(progress, tests, attendance, evaluations, students,
                                                      metrics, ReportingConfig(), now=NOW)}

        assert alerts["low_performance"].subject_ids == ["s2"]
        assert alerts["low_attendance"].subject_ids == ["s2"]
        assert alerts["ungraded_submissions"].count == 1
        assert alerts["overdue_assignments"].subject_ids == ["essay"]
        assert alerts["missing_evaluations"].subject_ids == ["s2", "s3"]

    def test_no_alerts_for_empty_classroom(self):
        progress = class_progress("class1", [], [], [])
        metrics = dashboard_metrics(progress, [], [], [], [], [])

        assert dashboard_alerts(progress, [], [], [], [], metrics, ReportingConfig(), now=NOW) == []
        assert metrics.submission_rate == 0
