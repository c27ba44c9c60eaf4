"""
Base Assessment Repositories

This module defines the repository interfaces the engine reaches the
external document store through. Every method is async; there are no
cross-entity transactions.
"""

import datetime
from abc import ABC, abstractmethod
from typing import Generic, List, Optional, TypeVar

from gradebook.assessments.base.models import (
    AttendanceRecord,
    AttendanceSession,
    Evaluation,
    Notification,
    Submission,
    TestDefinition,
)
from gradebook.domain.questions.bank import QuestionFolder, TestTemplate

# Type variable for generics
T = TypeVar('T')


class Repository(Generic[T], ABC):
    """
    Abstract repository interface for records keyed by ``id``.

    Type Parameters:
        T: The record type managed by this repository.
    """

    @abstractmethod
    async def get_by_id(self, record_id: str) -> Optional[T]:
        """
        Retrieve a record by its ID.

        Args:
            record_id: ID of the record

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def save(self, record: T) -> T:
        """
        Create or replace a record.

        Args:
            record: The record to save

        Returns:
            The saved record
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """
        Delete a record by its ID.

        Returns:
            True if the record was deleted, False otherwise
        """
        pass


class TestRepository(Repository[TestDefinition]):
    """Repository for test and assignment definitions."""
    __test__ = False

    @abstractmethod
    async def find_by_classroom(self, classroom_id: str) -> List[TestDefinition]:
        """
        Find the definitions of a classroom.

        Args:
            classroom_id: ID of the classroom

        Returns:
            Definitions ordered by creation time
        """
        pass


class SubmissionRepository(Repository[Submission]):
    """Repository for student submissions."""

    @abstractmethod
    async def find_by_test_and_user(self, test_id: str, user_id: str) -> Optional[Submission]:
        """
        Find the single submission of a user for a test.

        Returns:
            The submission if the user has started the test, None otherwise
        """
        pass

    @abstractmethod
    async def find_by_test(self, test_id: str) -> List[Submission]:
        """Find all submissions for a test."""
        pass

    @abstractmethod
    async def find_by_classroom(self, classroom_id: str) -> List[Submission]:
        """Find all submissions in a classroom."""
        pass


class TemplateRepository(Repository[TestTemplate]):
    """Repository for test templates and the folders that organise them."""

    @abstractmethod
    async def find_by_level(self, level: str) -> List[TestTemplate]:
        """Find the templates of one level."""
        pass

    @abstractmethod
    async def list_templates(self) -> List[TestTemplate]:
        """List every template."""
        pass

    @abstractmethod
    async def save_folder(self, folder: QuestionFolder) -> QuestionFolder:
        """Create or replace a folder."""
        pass

    @abstractmethod
    async def list_folders(self) -> List[QuestionFolder]:
        """List every folder."""
        pass


class AttendanceRepository(ABC):
    """Repository for attendance sessions and records."""

    @abstractmethod
    async def get_session(self, classroom_id: str, session_date: datetime.date) -> Optional[AttendanceSession]:
        """
        Get the session of a classroom on a date.

        Returns:
            The session if one exists, None otherwise
        """
        pass

    @abstractmethod
    async def save_session(self, session: AttendanceSession) -> AttendanceSession:
        """Create or replace a session."""
        pass

    @abstractmethod
    async def find_sessions(self,
                            classroom_id: str,
                            start_date: Optional[datetime.date] = None,
                            end_date: Optional[datetime.date] = None) -> List[AttendanceSession]:
        """
        Find the sessions of a classroom, optionally within a date range.

        Args:
            classroom_id: ID of the classroom
            start_date: First date included, if any
            end_date: Last date included, if any

        Returns:
            Sessions ordered by date
        """
        pass

    @abstractmethod
    async def get_record(self, classroom_id: str, session_date: datetime.date,
                         user_id: str) -> Optional[AttendanceRecord]:
        """Get one student's record for a session."""
        pass

    @abstractmethod
    async def save_record(self, record: AttendanceRecord) -> AttendanceRecord:
        """Create or replace a record."""
        pass

    @abstractmethod
    async def find_records(self,
                           classroom_id: str,
                           session_date: Optional[datetime.date] = None,
                           start_date: Optional[datetime.date] = None,
                           end_date: Optional[datetime.date] = None) -> List[AttendanceRecord]:
        """
        Find attendance records of a classroom.

        Args:
            classroom_id: ID of the classroom
            session_date: Only records of this session, if given
            start_date: First date included, if any
            end_date: Last date included, if any

        Returns:
            Matching records
        """
        pass


class EvaluationRepository(ABC):
    """Repository for student evaluations."""

    @abstractmethod
    async def save(self, evaluation: Evaluation) -> Evaluation:
        """Create or replace an evaluation."""
        pass

    @abstractmethod
    async def find_by_classroom(self, classroom_id: str) -> List[Evaluation]:
        """Find the evaluations of a classroom."""
        pass


class NotificationSink(ABC):
    """Delivery channel for classroom notifications."""

    @abstractmethod
    async def notify(self, notification: Notification) -> None:
        """
        Deliver a notification.

        Args:
            notification: The notification to deliver
        """
        pass
