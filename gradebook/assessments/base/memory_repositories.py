"""
Memory Assessment Repositories

In-memory implementations of the assessment repositories for development and
testing purposes. Records are stored and returned as deep copies so callers
cannot mutate stored state by accident.

Each repository also publishes saved records to subscribed listeners, which
is how the classroom read model learns that its inputs changed.
"""

import copy
import inspect
import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from gradebook.assessments.base.models import (
    AttendanceRecord,
    AttendanceSession,
    Evaluation,
    Notification,
    Submission,
    TestDefinition,
)
from gradebook.assessments.base.repositories import (
    AttendanceRepository,
    EvaluationRepository,
    NotificationSink,
    SubmissionRepository,
    TemplateRepository,
    TestRepository,
)
from gradebook.common.logger import app_logger
from gradebook.domain.questions.bank import QuestionFolder, TestTemplate

# Module logger
logger = app_logger.getChild("assessments.memory_repositories")

ChangeListener = Callable[[Any], Any]


class ChangeFeedMixin:
    """Publishes every saved record to subscribed listeners."""

    def _init_listeners(self) -> None:
        self._listeners: List[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        """
        Register a listener called with each saved record.

        Args:
            listener: Plain function or coroutine function
        """
        self._listeners.append(listener)

    async def _publish(self, record: Any) -> None:
        for listener in self._listeners:
            result = listener(copy.deepcopy(record))
            if inspect.isawaitable(result):
                await result


class MemoryTestRepository(ChangeFeedMixin, TestRepository):
    """In-memory TestRepository; deleted tests are published as well."""
    __test__ = False

    def __init__(self, initial_data: Optional[List[TestDefinition]] = None):
        self._init_listeners()
        self._tests: Dict[str, TestDefinition] = {}
        for test in initial_data or []:
            self._tests[test.id] = copy.deepcopy(test)

    async def get_by_id(self, record_id: str) -> Optional[TestDefinition]:
        return copy.deepcopy(self._tests.get(record_id))

    async def save(self, record: TestDefinition) -> TestDefinition:
        self._tests[record.id] = copy.deepcopy(record)
        await self._publish(record)
        return record

    async def delete(self, record_id: str) -> bool:
        removed = self._tests.pop(record_id, None)
        if removed is None:
            return False
        await self._publish(removed)
        return True

    async def find_by_classroom(self, classroom_id: str) -> List[TestDefinition]:
        tests = [t for t in self._tests.values() if t.classroom_id == classroom_id]
        return copy.deepcopy(sorted(tests, key=lambda t: t.created_at))


class MemorySubmissionRepository(ChangeFeedMixin, SubmissionRepository):
    """In-memory SubmissionRepository."""

    def __init__(self, initial_data: Optional[List[Submission]] = None):
        self._init_listeners()
        self._submissions: Dict[str, Submission] = {}
        for submission in initial_data or []:
            self._submissions[submission.id] = copy.deepcopy(submission)

    async def get_by_id(self, record_id: str) -> Optional[Submission]:
        return copy.deepcopy(self._submissions.get(record_id))

    async def save(self, record: Submission) -> Submission:
        self._submissions[record.id] = copy.deepcopy(record)
        await self._publish(record)
        return record

    async def delete(self, record_id: str) -> bool:
        return self._submissions.pop(record_id, None) is not None

    async def find_by_test_and_user(self, test_id: str, user_id: str) -> Optional[Submission]:
        for submission in self._submissions.values():
            if submission.test_id == test_id and submission.user_id == user_id:
                return copy.deepcopy(submission)
        return None

    async def find_by_test(self, test_id: str) -> List[Submission]:
        return copy.deepcopy([s for s in self._submissions.values() if s.test_id == test_id])

    async def find_by_classroom(self, classroom_id: str) -> List[Submission]:
        return copy.deepcopy([s for s in self._submissions.values() if s.classroom_id == classroom_id])


class MemoryTemplateRepository(TemplateRepository):
    """In-memory TemplateRepository."""

    def __init__(self,
                 templates: Optional[List[TestTemplate]] = None,
                 folders: Optional[List[QuestionFolder]] = None):
        self._templates: Dict[str, TestTemplate] = {t.id: copy.deepcopy(t) for t in templates or []}
        self._folders: Dict[str, QuestionFolder] = {f.id: copy.deepcopy(f) for f in folders or []}

    async def get_by_id(self, record_id: str) -> Optional[TestTemplate]:
        return copy.deepcopy(self._templates.get(record_id))

    async def save(self, record: TestTemplate) -> TestTemplate:
        self._templates[record.id] = copy.deepcopy(record)
        return record

    async def delete(self, record_id: str) -> bool:
        return self._templates.pop(record_id, None) is not None

    async def find_by_level(self, level: str) -> List[TestTemplate]:
        return copy.deepcopy([t for t in self._templates.values() if t.level == level])

    async def list_templates(self) -> List[TestTemplate]:
        return copy.deepcopy(list(self._templates.values()))

    async def save_folder(self, folder: QuestionFolder) -> QuestionFolder:
        self._folders[folder.id] = copy.deepcopy(folder)
        return folder

    async def list_folders(self) -> List[QuestionFolder]:
        return copy.deepcopy(list(self._folders.values()))


def _in_range(day: datetime.date,
              start_date: Optional[datetime.date],
              end_date: Optional[datetime.date]) -> bool:
    if start_date is not None and day < start_date:
        return False
    if end_date is not None and day > end_date:
        return False
    return True


class MemoryAttendanceRepository(ChangeFeedMixin, AttendanceRepository):
    """In-memory AttendanceRepository; records are keyed by (classroom, date, user)."""

    def __init__(self):
        self._init_listeners()
        self._sessions: Dict[Tuple[str, datetime.date], AttendanceSession] = {}
        self._records: Dict[Tuple[str, datetime.date, str], AttendanceRecord] = {}

    async def get_session(self, classroom_id: str, session_date: datetime.date) -> Optional[AttendanceSession]:
        return copy.deepcopy(self._sessions.get((classroom_id, session_date)))

    async def save_session(self, session: AttendanceSession) -> AttendanceSession:
        self._sessions[(session.classroom_id, session.session_date)] = copy.deepcopy(session)
        await self._publish(session)
        return session

    async def find_sessions(self,
                            classroom_id: str,
                            start_date: Optional[datetime.date] = None,
                            end_date: Optional[datetime.date] = None) -> List[AttendanceSession]:
        sessions = [
            s for (cid, day), s in self._sessions.items()
            if cid == classroom_id and _in_range(day, start_date, end_date)
        ]
        return copy.deepcopy(sorted(sessions, key=lambda s: s.session_date))

    async def get_record(self, classroom_id: str, session_date: datetime.date,
                         user_id: str) -> Optional[AttendanceRecord]:
        return copy.deepcopy(self._records.get((classroom_id, session_date, user_id)))

    async def save_record(self, record: AttendanceRecord) -> AttendanceRecord:
        self._records[(record.classroom_id, record.session_date, record.user_id)] = copy.deepcopy(record)
        await self._publish(record)
        return record

    async def find_records(self,
                           classroom_id: str,
                           session_date: Optional[datetime.date] = None,
                           start_date: Optional[datetime.date] = None,
                           end_date: Optional[datetime.date] = None) -> List[AttendanceRecord]:
        records = [
            r for (cid, day, _), r in self._records.items()
            if cid == classroom_id
            and (session_date is None or day == session_date)
            and _in_range(day, start_date, end_date)
        ]
        return copy.deepcopy(records)


class MemoryEvaluationRepository(ChangeFeedMixin, EvaluationRepository):
    """In-memory EvaluationRepository."""

    def __init__(self, initial_data: Optional[List[Evaluation]] = None):
        self._init_listeners()
        self._evaluations: Dict[str, Evaluation] = {e.id: copy.deepcopy(e) for e in initial_data or []}

    async def save(self, evaluation: Evaluation) -> Evaluation:
        self._evaluations[evaluation.id] = copy.deepcopy(evaluation)
        await self._publish(evaluation)
        return evaluation

    async def find_by_classroom(self, classroom_id: str) -> List[Evaluation]:
        return copy.deepcopy([e for e in self._evaluations.values() if e.classroom_id == classroom_id])


class MemoryNotificationSink(NotificationSink):
    """Collects notifications in a list for inspection."""

    def __init__(self):
        self.sent: List[Notification] = []

    async def notify(self, notification: Notification) -> None:
        logger.debug(f"Notify {notification.recipient_id}: {notification.notification_type.value}")
        self.sent.append(notification)

    def for_recipient(self, recipient_id: str) -> List[Notification]:
        return [n for n in self.sent if n.recipient_id == recipient_id]
