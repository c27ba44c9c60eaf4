"""
Attendance Service

Creates attendance sessions, marks students, and keeps each session's status
counters equal to its records by recounting them after every change.
"""

import uuid
import datetime
from typing import Iterable, List, Mapping, Optional, Union

from gradebook.assessments.base.models import AttendanceRecord, AttendanceSession, AttendanceStatus
from gradebook.assessments.base.repositories import AttendanceRepository
from gradebook.common.logger import app_logger
from gradebook.common.serialization import parse_date
from gradebook.common.utils import utc_now
from gradebook.reporting.aggregation import AttendanceSummary, summarize_attendance

# Module logger
logger = app_logger.getChild("reporting.attendance")

DateLike = Union[datetime.date, str]


class AttendanceService:
    """
    Marks attendance against an attendance repository.

    Args:
        repository: Store for sessions and records
    """

    def __init__(self, repository: AttendanceRepository):
        self.repository = repository

    async def create_session(self, classroom_id: str, session_date: DateLike, created_by: str) -> AttendanceSession:
        """Create the session of a date; returns the existing one if there is one."""
        session_date = parse_date(session_date)
        existing = await self.repository.get_session(classroom_id, session_date)
        if existing is not None:
            return existing

        session = AttendanceSession(
            id=f"att_{uuid.uuid4()}",
            classroom_id=classroom_id,
            session_date=session_date,
            created_by=created_by,
        )
        await self.repository.save_session(session)
        logger.info(f"Created attendance session {session_date.isoformat()} for classroom {classroom_id}")
        return session

    async def _upsert_record(self,
                             classroom_id: str,
                             session_date: datetime.date,
                             user_id: str,
                             status: AttendanceStatus,
                             checked_by: str,
                             note: Optional[str]) -> AttendanceRecord:
        record = await self.repository.get_record(classroom_id, session_date, user_id)
        if record is None:
            record = AttendanceRecord(
                id=f"rec_{uuid.uuid4()}",
                classroom_id=classroom_id,
                session_date=session_date,
                user_id=user_id,
                status=status,
                checked_by=checked_by,
                note=note,
            )
        else:
            record.status = AttendanceStatus(status)
            record.note = note
            record.checked_by = checked_by
            record.checked_at = utc_now()
        await self.repository.save_record(record)
        return record

    async def mark(self,
                   classroom_id: str,
                   session_date: DateLike,
                   user_id: str,
                   status: AttendanceStatus,
                   checked_by: str,
                   note: Optional[str] = None) -> AttendanceRecord:
        """
        Mark one student; the session is created if needed and its counters
        are recounted.
        """
        session_date = parse_date(session_date)
        await self.create_session(classroom_id, session_date, checked_by)
        record = await self._upsert_record(classroom_id, session_date, user_id,
                                           AttendanceStatus(status), checked_by, note)
        await self.recount_session(classroom_id, session_date)
        return record

    async def bulk_mark(self,
                        classroom_id: str,
                        session_date: DateLike,
                        marks: Iterable[Mapping[str, object]],
                        checked_by: str) -> List[AttendanceRecord]:
        """
        Mark several students at once.

        Args:
            marks: Items with ``user_id``, ``status`` and an optional ``note``
        """
        session_date = parse_date(session_date)
        await self.create_session(classroom_id, session_date, checked_by)

        records = []
        for mark in marks:
            records.append(await self._upsert_record(
                classroom_id, session_date, str(mark["user_id"]),
                AttendanceStatus(mark["status"]), checked_by, mark.get("note")
            ))
        await self.recount_session(classroom_id, session_date)
        logger.info(f"Marked {len(records)} students on {session_date.isoformat()} in classroom {classroom_id}")
        return records

    async def recount_session(self, classroom_id: str, session_date: DateLike) -> Optional[AttendanceSession]:
        """Reset the session's counters from its records."""
        session_date = parse_date(session_date)
        session = await self.repository.get_session(classroom_id, session_date)
        if session is None:
            return None

        counts = {status: 0 for status in AttendanceStatus}
        for record in await self.repository.find_records(classroom_id, session_date=session_date):
            counts[record.status] += 1
        session.set_counts(counts)
        await self.repository.save_session(session)
        return session

    async def student_summary(self,
                              classroom_id: str,
                              user_id: str,
                              start_date: Optional[DateLike] = None,
                              end_date: Optional[DateLike] = None) -> AttendanceSummary:
        """Attendance summary of one student, optionally within a date range."""
        start_date, end_date = parse_date(start_date), parse_date(end_date)
        sessions = await self.repository.find_sessions(classroom_id, start_date, end_date)
        records = await self.repository.find_records(classroom_id, start_date=start_date, end_date=end_date)
        return summarize_attendance(user_id, records, len(sessions))
