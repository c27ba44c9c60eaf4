"""
Tests for attendance sessions and marking.
"""

import datetime

import pytest

from gradebook.assessments.base.models import AttendanceStatus
from gradebook.reporting.attendance import AttendanceService


@pytest.fixture
def attendance_service(stores):
    return AttendanceService(stores.attendance)


class TestSessions:
    """Tests for session creation and counters."""

    @pytest.mark.asyncio
    async def test_session_is_created_once_per_date(self, attendance_service):
        first = await attendance_service.create_session("class1", "2024-05-01", "teacher")
        second = await attendance_service.create_session("class1", datetime.date(2024, 5, 1), "teacher")

        assert first.id == second.id
        assert first.session_date == datetime.date(2024, 5, 1)

    @pytest.mark.asyncio
    async def test_counters_follow_remarking(self, stores, attendance_service):
        await attendance_service.mark("class1", "2024-05-01", "s1", AttendanceStatus.PRESENT, "teacher")
        await attendance_service.mark("class1", "2024-05-01", "s2", AttendanceStatus.ABSENT, "teacher")
        await attendance_service.mark("class1", "2024-05-01", "s2", AttendanceStatus.LATE, "teacher", note="bus")

        session = await stores.attendance.get_session("class1", datetime.date(2024, 5, 1))
        assert (session.total_present, session.total_late, session.total_absent) == (1, 1, 0)

        record = await stores.attendance.get_record("class1", datetime.date(2024, 5, 1), "s2")
        assert record.status == AttendanceStatus.LATE
        assert record.note == "bus"

    @pytest.mark.asyncio
    async def test_bulk_mark(self, stores, attendance_service):
        records = await attendance_service.bulk_mark("class1", "2024-05-02", [
            {"user_id": "s1", "status": "present"},
            {"user_id": "s2", "status": "excused", "note": "sick"},
            {"user_id": "s3", "status": "absent"},
        ], checked_by="teacher")

        assert len(records) == 3
        session = await stores.attendance.get_session("class1", datetime.date(2024, 5, 2))
        assert (session.total_present, session.total_excused, session.total_absent) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_recount_of_missing_session(self, attendance_service):
        assert await attendance_service.recount_session("class1", "2024-01-01") is None


class TestStudentSummary:
    """Tests for per-student attendance over a range."""

    @pytest.mark.asyncio
    async def test_summary_within_range(self, attendance_service):
        await attendance_service.mark("class1", "2024-05-01", "s1", AttendanceStatus.PRESENT, "teacher")
        await attendance_service.mark("class1", "2024-05-02", "s1", AttendanceStatus.LATE, "teacher")
        await attendance_service.mark("class1", "2024-05-03", "s1", AttendanceStatus.ABSENT, "teacher")
        await attendance_service.mark("class1", "2024-05-04", "s2", AttendanceStatus.PRESENT, "teacher")
        await attendance_service.mark("class1", "2024-06-01", "s1", AttendanceStatus.ABSENT, "teacher")

        summary = await attendance_service.student_summary("class1", "s1", "2024-05-01", "2024-05-31")

        assert summary.total_sessions == 4
        assert (summary.present, summary.late, summary.absent) == (1, 1, 1)
        assert summary.attendance_rate == 50
