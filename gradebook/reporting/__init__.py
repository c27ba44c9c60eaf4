"""
Reporting

Aggregation of submissions, attendance and evaluations into grade,
attendance and evaluation summaries, the teacher dashboard, and the
classroom read model that keeps them current.
"""

from gradebook.reporting.aggregation import (
    GradeSummary, AttendanceSummary, EvaluationTier, EvaluationSuggestion,
    OverallSummary, ClassProgress, summarize_grades, summarize_attendance,
    evaluation_level, stars_for_score, suggest_evaluation, latest_evaluation,
    average_rating, overall_summary, class_progress, build_student_report
)
from gradebook.reporting.attendance import AttendanceService
from gradebook.reporting.dashboard import Alert, DashboardMetrics, dashboard_alerts, dashboard_metrics
from gradebook.reporting.read_model import ClassroomReadModel

__all__ = [
    'GradeSummary', 'AttendanceSummary', 'EvaluationTier', 'EvaluationSuggestion',
    'OverallSummary', 'ClassProgress', 'summarize_grades', 'summarize_attendance',
    'evaluation_level', 'stars_for_score', 'suggest_evaluation', 'latest_evaluation',
    'average_rating', 'overall_summary', 'class_progress', 'build_student_report',
    'AttendanceService', 'Alert', 'DashboardMetrics', 'dashboard_alerts',
    'dashboard_metrics', 'ClassroomReadModel',
]
