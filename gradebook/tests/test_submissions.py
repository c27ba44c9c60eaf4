"""
Tests for the submission state machine.
"""

import datetime

import pytest

from gradebook.assessments.base.models import Answer, NotificationType, SubmissionStatus
from gradebook.assessments.submissions import SubmissionService
from gradebook.common.error_handling import (
    DuplicateSubmissionError, GradingStateError, NotFoundError, ValidationError
)
from gradebook.domain.questions.bank import TestType
from gradebook.domain.questions.model import QuestionType

START = datetime.datetime(2024, 5, 1, 9, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def objective_questions(make_question):
    return [make_question("q1", points=10, correct_answer=0), make_question("q2", points=15, correct_answer=1)]


@pytest.fixture
def essay_questions(make_question):
    return [
        make_question("mc", points=10, correct_answer=0),
        make_question("essay", QuestionType.TEXT, points=20),
    ]


class TestStart:
    """Tests for starting attempts."""

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, definition_service, submission_service, objective_questions):
        test = await definition_service.create("class1", "Quiz", TestType.TEST, objective_questions, "teacher",
                                               is_published=True)

        first = await submission_service.start(test.id, "student1")
        second = await submission_service.start(test.id, "student1")

        assert first.id == second.id
        assert first.score == 0
        assert first.total_points == 25
        assert await submission_service.status(test.id, "student1") == SubmissionStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_not_started_status(self, submission_service):
        assert await submission_service.status("missing", "student1") == SubmissionStatus.NOT_STARTED

    @pytest.mark.asyncio
    async def test_unpublished_test_cannot_be_started(self, definition_service, submission_service,
                                                      objective_questions):
        test = await definition_service.create("class1", "Draft", TestType.TEST, objective_questions, "teacher")

        with pytest.raises(ValidationError):
            await submission_service.start(test.id, "student1")

    @pytest.mark.asyncio
    async def test_unknown_test(self, submission_service):
        with pytest.raises(NotFoundError):
            await submission_service.start("nope", "student1")

    @pytest.mark.asyncio
    async def test_start_uses_injected_clock(self, stores, definition_service, objective_questions):
        service = SubmissionService(stores.tests, stores.submissions, clock=lambda: START)
        test = await definition_service.create("class1", "Quiz", TestType.TEST, objective_questions, "teacher",
                                               is_published=True)

        submission = await service.start(test.id, "student1")
        assert submission.started_at == START


class TestSubmit:
    """Tests for submitting and auto-grading."""

    @pytest.mark.asyncio
    async def test_submit_scores_objective_answers(self, definition_service, submission_service,
                                                   objective_questions):
        """Two MC questions worth 10 and 15 with only the first right score 10/25."""
        test = await definition_service.create("class1", "Quiz", TestType.TEST, objective_questions, "teacher",
                                               is_published=True)
        submission = await submission_service.start(test.id, "student1")

        result = await submission_service.submit(submission.id, {"q1": 0, "q2": 3}, time_spent_seconds=120)

        assert result.score == 10
        assert result.total_points == 25
        assert result.status == SubmissionStatus.SUBMITTED
        assert result.time_spent_seconds == 120
        assert [a.is_correct for a in result.answers] == [True, False]

        stored = await submission_service.get_submission(submission.id)
        assert stored.score == 10
        assert stored.submitted_at is not None

    @pytest.mark.asyncio
    async def test_submit_twice_is_rejected(self, definition_service, submission_service, objective_questions):
        test = await definition_service.create("class1", "Quiz", TestType.TEST, objective_questions, "teacher",
                                               is_published=True)
        submission = await submission_service.start(test.id, "student1")
        await submission_service.submit(submission.id, {"q1": 0})

        with pytest.raises(DuplicateSubmissionError):
            await submission_service.submit(submission.id, {"q1": 0, "q2": 1})

        stored = await submission_service.get_submission(submission.id)
        assert stored.score == 10

    @pytest.mark.asyncio
    async def test_start_after_submit_returns_existing(self, definition_service, submission_service,
                                                       objective_questions):
        test = await definition_service.create("class1", "Quiz", TestType.TEST, objective_questions, "teacher",
                                               is_published=True)
        submission = await submission_service.start(test.id, "student1")
        await submission_service.submit(submission.id, [])

        again = await submission_service.start(test.id, "student1")
        assert again.id == submission.id
        assert again.is_submitted

    @pytest.mark.asyncio
    async def test_free_text_left_for_grader(self, definition_service, submission_service, essay_questions):
        test = await definition_service.create("class1", "Essay", TestType.ASSIGNMENT, essay_questions,
                                               "teacher", is_published=True)
        submission = await submission_service.start(test.id, "student1")

        result = await submission_service.submit(submission.id, [Answer("mc", 0), Answer("essay", "My essay")])

        assert result.score == 10
        assert result.answers[1].points_earned is None


class TestGrade:
    """Tests for manual grading."""

    async def _submitted(self, definition_service, submission_service, questions):
        test = await definition_service.create("class1", "Essay", TestType.ASSIGNMENT, questions, "teacher",
                                               is_published=True)
        submission = await submission_service.start(test.id, "student1")
        return await submission_service.submit(submission.id, [Answer("mc", 0), Answer("essay", "text")])

    @pytest.mark.asyncio
    async def test_grade_recomputes_score_and_notifies(self, stores, definition_service, submission_service,
                                                       essay_questions):
        submission = await self._submitted(definition_service, submission_service, essay_questions)

        graded = await submission_service.grade(
            submission.id,
            [Answer("mc", 0, True, 10), Answer("essay", "text", True, 15)],
            feedback="Good work",
            grader_id="teacher",
        )

        assert graded.score == 25
        assert graded.status == SubmissionStatus.GRADED
        assert graded.graded_by == "teacher"
        assert graded.feedback == "Good work"

        notes = [n for n in stores.notifier.for_recipient("student1")
                 if n.notification_type == NotificationType.SUBMISSION_GRADED]
        assert len(notes) == 1
        assert notes[0].message == "25/30"
        assert notes[0].related_id == submission.id

    @pytest.mark.asyncio
    async def test_grade_requires_submission(self, definition_service, submission_service, essay_questions):
        test = await definition_service.create("class1", "Essay", TestType.ASSIGNMENT, essay_questions,
                                               "teacher", is_published=True)
        submission = await submission_service.start(test.id, "student1")

        with pytest.raises(GradingStateError):
            await submission_service.grade(submission.id, [], None, "teacher")

    @pytest.mark.asyncio
    async def test_grade_requires_free_text(self, definition_service, submission_service, objective_questions):
        test = await definition_service.create("class1", "Quiz", TestType.TEST, objective_questions, "teacher",
                                               is_published=True)
        submission = await submission_service.start(test.id, "student1")
        await submission_service.submit(submission.id, {"q1": 0})

        with pytest.raises(GradingStateError) as exc_info:
            await submission_service.grade(submission.id, {"q1": 0}, None, "teacher")
        assert "free-text" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_grade_rejects_out_of_range_marks(self, definition_service, submission_service,
                                                    essay_questions):
        submission = await self._submitted(definition_service, submission_service, essay_questions)

        with pytest.raises(ValidationError):
            await submission_service.grade(submission.id, [Answer("essay", "text", True, 50)], None, "teacher")

        stored = await submission_service.get_submission(submission.id)
        assert stored.graded_at is None
