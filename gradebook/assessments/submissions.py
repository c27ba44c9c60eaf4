"""
Submission State Machine

A student's attempt at a test moves through
``not_started -> in_progress -> submitted -> graded``:

- ``start`` creates the attempt (or returns the existing one)
- ``submit`` stores the answers and auto-grades objective questions
- ``grade`` records a teacher's marks for free-text answers
"""

import datetime
from typing import Callable, Iterable, Mapping, Optional, Union

from gradebook.assessments.base.models import (
    Notification, NotificationType, Submission, SubmissionStatus, TestDefinition
)
from gradebook.assessments.base.repositories import NotificationSink, SubmissionRepository, TestRepository
from gradebook.assessments.grading import (
    AnswerInput, coerce_answers, score_answers, total_score, validate_manual_grades
)
from gradebook.common.error_handling import (
    DuplicateSubmissionError, GradingStateError, NotFoundError, ValidationError
)
from gradebook.common.logger import app_logger, grading_logger, log_execution_time
from gradebook.common.utils import utc_now

# Module logger
logger = app_logger.getChild("assessments.submissions")

Answers = Union[Iterable[AnswerInput], Mapping[str, object]]
Clock = Callable[[], datetime.datetime]


class SubmissionService:
    """
    Drives submissions through their lifecycle.

    Args:
        tests: Store for test definitions
        submissions: Store for submissions
        notifier: Channel used to tell students their work was graded
        clock: Returns the current time (UTC)
    """

    def __init__(self,
                 tests: TestRepository,
                 submissions: SubmissionRepository,
                 notifier: Optional[NotificationSink] = None,
                 clock: Clock = utc_now):
        self.tests = tests
        self.submissions = submissions
        self.notifier = notifier
        self.clock = clock

    async def get_test(self, test_id: str) -> TestDefinition:
        test = await self.tests.get_by_id(test_id)
        if test is None:
            raise NotFoundError("Test", test_id)
        return test

    async def get_submission(self, submission_id: str) -> Submission:
        submission = await self.submissions.get_by_id(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        return submission

    async def status(self, test_id: str, user_id: str) -> SubmissionStatus:
        """Lifecycle state of a user's attempt, ``not_started`` when there is none."""
        submission = await self.submissions.find_by_test_and_user(test_id, user_id)
        if submission is None:
            return SubmissionStatus.NOT_STARTED
        return submission.status

    async def start(self, test_id: str, user_id: str) -> Submission:
        """
        Start an attempt; idempotent per (test, user).

        Returns:
            The existing submission, or a new one with score 0 and the test's
            current total

        Raises:
            NotFoundError: If the test does not exist
            ValidationError: If the test is not published
        """
        test = await self.get_test(test_id)

        existing = await self.submissions.find_by_test_and_user(test_id, user_id)
        if existing is not None:
            return existing

        if not test.is_published:
            raise ValidationError(f"Test {test_id} is not published", details={"test_id": test_id})

        submission = Submission.create(test, user_id, started_at=self.clock())
        await self.submissions.save(submission)
        grading_logger(logger, submission=submission).info(
            f"Started submission {submission.id}"
        )
        return submission

    @log_execution_time(logger)
    async def submit(self, submission_id: str, answers: Answers, time_spent_seconds: int = 0) -> Submission:
        """
        Submit the answers and auto-grade the objective questions.

        Multiple choice and true/false answers get ``is_correct`` and
        ``points_earned``; free-text answers stay ungraded. Answers to
        questions that are not on the test score 0.

        Raises:
            NotFoundError: If the submission or its test does not exist
            DuplicateSubmissionError: If the submission was already submitted
        """
        submission = await self.get_submission(submission_id)
        if submission.is_submitted:
            raise DuplicateSubmissionError(submission.id, submission.submitted_at)

        test = await self.get_test(submission.test_id)
        scored = score_answers(test, coerce_answers(answers))

        submission.answers = scored
        submission.score = total_score(scored)
        submission.time_spent_seconds = max(0, int(time_spent_seconds))
        submission.submitted_at = self.clock()
        await self.submissions.save(submission)

        grading_logger(logger, submission=submission).info(
            f"Submitted with score {submission.score}/{submission.total_points}"
        )
        return submission

    async def grade(self,
                    submission_id: str,
                    answers: Answers,
                    feedback: Optional[str],
                    grader_id: str) -> Submission:
        """
        Record a grader's marks.

        The supplied answers replace the stored ones and the score is
        recomputed from them.

        Raises:
            GradingStateError: If the submission is not submitted yet or the
                test has no free-text question
            ValidationError: If a mark is outside its question's range
        """
        submission = await self.get_submission(submission_id)
        if not submission.is_submitted:
            raise GradingStateError(submission.id, "not submitted")

        test = await self.get_test(submission.test_id)
        if not test.has_free_text:
            raise GradingStateError(submission.id, "test has no free-text questions")

        graded = validate_manual_grades(test, coerce_answers(answers))
        submission.answers = graded
        submission.score = total_score(graded)
        submission.feedback = feedback
        submission.graded_by = grader_id
        submission.graded_at = self.clock()
        await self.submissions.save(submission)

        grading_logger(logger, submission=submission, grader_id=grader_id).info(
            f"Graded with score {submission.score}/{submission.total_points}"
        )

        if self.notifier is not None:
            await self.notifier.notify(Notification(
                classroom_id=submission.classroom_id,
                recipient_id=submission.user_id,
                notification_type=NotificationType.SUBMISSION_GRADED,
                title=f"{test.title} has been graded",
                message=f"{submission.score:g}/{submission.total_points}",
                related_id=submission.id,
            ))
        return submission
