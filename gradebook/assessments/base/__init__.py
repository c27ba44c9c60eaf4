"""
Base Assessment Architecture

This package defines the records the assessment and reporting modules share,
the repository interfaces they persist through, and in-memory implementations
of those repositories.
"""

from gradebook.assessments.base.models import (
    TestDefinition,
    SubmissionStatus,
    Answer,
    Submission,
    AttendanceStatus,
    AttendanceSession,
    AttendanceRecord,
    EvaluationBasis,
    EvaluationCriteria,
    DEFAULT_EVALUATION_CRITERIA,
    Evaluation,
    NotificationType,
    Notification
)

from gradebook.assessments.base.repositories import (
    Repository,
    TestRepository,
    SubmissionRepository,
    TemplateRepository,
    AttendanceRepository,
    EvaluationRepository,
    NotificationSink
)

from gradebook.assessments.base.memory_repositories import (
    MemoryTestRepository,
    MemorySubmissionRepository,
    MemoryTemplateRepository,
    MemoryAttendanceRepository,
    MemoryEvaluationRepository,
    MemoryNotificationSink
)

__all__ = [
    # Models
    'TestDefinition',
    'SubmissionStatus',
    'Answer',
    'Submission',
    'AttendanceStatus',
    'AttendanceSession',
    'AttendanceRecord',
    'EvaluationBasis',
    'EvaluationCriteria',
    'DEFAULT_EVALUATION_CRITERIA',
    'Evaluation',
    'NotificationType',
    'Notification',

    # Repositories
    'Repository',
    'TestRepository',
    'SubmissionRepository',
    'TemplateRepository',
    'AttendanceRepository',
    'EvaluationRepository',
    'NotificationSink',

    # In-memory implementations
    'MemoryTestRepository',
    'MemorySubmissionRepository',
    'MemoryTemplateRepository',
    'MemoryAttendanceRepository',
    'MemoryEvaluationRepository',
    'MemoryNotificationSink',
]
