"""
Timed Attempts

Runs the countdown of a timed test. Remaining time is measured from the
submission's ``started_at``; when it reaches zero the held answers are
submitted without confirmation. The interactive path needs explicit
confirmation, and closing the attempt cancels the countdown so no stray
auto-submit fires.
"""

import asyncio
import datetime
from typing import Any, Dict, Optional

from gradebook.assessments.base.models import Submission, TestDefinition
from gradebook.assessments.submissions import Clock, SubmissionService
from gradebook.common.config import TimerConfig, get_config
from gradebook.common.error_handling import GradebookError, ValidationError, log_error
from gradebook.common.logger import app_logger, grading_logger
from gradebook.common.utils import format_duration, utc_now

# Module logger
logger = app_logger.getChild("assessments.timer")


class TimedAttempt:
    """
    One student's in-progress attempt at a timed test.

    Args:
        service: Submission service used to submit
        submission: The started submission
        test: The test being taken; must have a time limit
        clock: Returns the current time (UTC)
        config: Timer thresholds and tick interval
    """

    def __init__(self,
                 service: SubmissionService,
                 submission: Submission,
                 test: TestDefinition,
                 clock: Clock = utc_now,
                 config: Optional[TimerConfig] = None):
        if not test.is_timed:
            raise ValidationError(f"Test {test.id} has no time limit", details={"test_id": test.id})

        self.service = service
        self.submission = submission
        self.test = test
        self.clock = clock
        self.config = config or get_config().timer
        self.deadline = submission.started_at + datetime.timedelta(minutes=test.time_limit_minutes)

        # A resumed attempt that was already submitted is finished from the start
        self.result: Optional[Submission] = submission if submission.is_submitted else None
        self.auto_submitted = False
        self._answers: Dict[str, Any] = {}
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._log = grading_logger(logger, submission=submission)

    @classmethod
    async def begin(cls,
                    service: SubmissionService,
                    test_id: str,
                    user_id: str,
                    clock: Clock = utc_now,
                    config: Optional[TimerConfig] = None) -> 'TimedAttempt':
        """Start (or resume) a submission and run its countdown unless it was already submitted."""
        test = await service.get_test(test_id)
        submission = await service.start(test_id, user_id)
        attempt = cls(service, submission, test, clock=clock, config=config)
        attempt.start()
        return attempt

    @property
    def answers(self) -> Dict[str, Any]:
        return dict(self._answers)

    @property
    def is_finished(self) -> bool:
        return self.result is not None

    def remaining_seconds(self) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, (self.deadline - self.clock()).total_seconds())

    @property
    def is_warning(self) -> bool:
        """Less than the warning threshold (5 minutes by default) is left."""
        return self.remaining_seconds() < self.config.warning_seconds

    @property
    def is_critical(self) -> bool:
        """Less than the critical threshold (1 minute by default) is left."""
        return self.remaining_seconds() < self.config.critical_seconds

    def display(self) -> str:
        return format_duration(self.remaining_seconds())

    def record_answer(self, question_id: str, answer: Any) -> None:
        """Hold an answer until submission."""
        if self.is_finished:
            raise ValidationError("Attempt is already submitted", details={"submission_id": self.submission.id})
        self._answers[question_id] = answer

    def start(self) -> Optional[asyncio.Task]:
        """Schedule the countdown on the running event loop; nothing is scheduled once finished."""
        if self._task is None and not self.is_finished:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def _run(self) -> None:
        while not self.is_finished:
            remaining = self.remaining_seconds()
            if remaining <= 0:
                self._log.info("Time is up, submitting held answers")
                try:
                    await self._submit(forced=True)
                except GradebookError as error:
                    log_error(error, logger, {"submission_id": self.submission.id})
                return
            await asyncio.sleep(min(self.config.tick_seconds, remaining))

    async def submit(self, confirmed: bool = False) -> Submission:
        """
        Submit on the student's request.

        Args:
            confirmed: Whether the student confirmed the submission

        Raises:
            ValidationError: If the submission is not confirmed
        """
        if not confirmed:
            raise ValidationError("Submission must be confirmed", details={"submission_id": self.submission.id})
        await self.close()
        return await self._submit(forced=False)

    async def _submit(self, forced: bool) -> Submission:
        async with self._lock:
            if self.result is not None:
                return self.result

            elapsed = (self.clock() - self.submission.started_at).total_seconds()
            time_spent = int(min(max(0.0, elapsed), self.test.time_limit_minutes * 60))
            self.result = await self.service.submit(self.submission.id, self._answers, time_spent)
            self.auto_submitted = forced
            return self.result

    async def close(self) -> None:
        """Cancel the countdown; safe to call more than once."""
        task, self._task = self._task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            self._log.debug("Countdown cancelled")

    async def wait(self) -> Optional[Submission]:
        """Wait for the countdown to finish and return the submission, if any."""
        if self._task is not None:
            await self._task
        return self.result
