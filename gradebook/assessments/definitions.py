"""
Test and Assignment Definitions

Services that create test definitions, replace their question sets, publish
them, manage templates and folders, and assign templates to classrooms.
"""

import uuid
import datetime
from typing import List, Optional

from gradebook.assessments.base.models import Notification, NotificationType, TestDefinition
from gradebook.assessments.base.repositories import NotificationSink, TemplateRepository, TestRepository
from gradebook.common.error_handling import NotFoundError, ValidationError
from gradebook.common.logger import app_logger, grading_logger
from gradebook.domain.questions.bank import (
    QuestionFolder, TestTemplate, TestType, folders_by_level_and_type,
    template_count_by_level, templates_by_folder, validate_question
)
from gradebook.domain.questions.model import Question

# Module logger
logger = app_logger.getChild("assessments.definitions")


class TestDefinitionService:
    """
    Creates and maintains test definitions.

    Args:
        tests: Store for definitions
        templates: Store for templates and folders
        notifier: Channel for classroom notifications
    """
    __test__ = False

    def __init__(self,
                 tests: TestRepository,
                 templates: TemplateRepository,
                 notifier: Optional[NotificationSink] = None):
        self.tests = tests
        self.templates = templates
        self.notifier = notifier

    async def _get_test(self, test_id: str) -> TestDefinition:
        test = await self.tests.get_by_id(test_id)
        if test is None:
            raise NotFoundError("Test", test_id)
        return test

    async def create(self,
                     classroom_id: str,
                     title: str,
                     test_type: TestType,
                     questions: List[Question],
                     created_by: str,
                     description: str = "",
                     time_limit_minutes: Optional[int] = None,
                     deadline: Optional[datetime.datetime] = None,
                     is_published: bool = False,
                     member_ids: Optional[List[str]] = None) -> TestDefinition:
        """
        Create a definition directly.

        Raises:
            ValidationError: If the title is empty, a question is invalid or
                question IDs repeat
        """
        if not title or not title.strip():
            raise ValidationError("Test title is required")
        self._validate_questions(questions)

        test = TestDefinition(
            id=f"test_{uuid.uuid4()}",
            classroom_id=classroom_id,
            title=title.strip(),
            test_type=test_type,
            questions=questions,
            created_by=created_by,
            description=description,
            time_limit_minutes=time_limit_minutes,
            deadline=deadline,
            is_published=is_published,
        )
        await self.tests.save(test)
        logger.info(f"Created {test.test_type.value} {test.id} in classroom {classroom_id} "
                    f"({len(questions)} questions, {test.total_points} points)")

        if is_published:
            await self._notify_published(test, member_ids)
        return test

    async def replace_questions(self, test_id: str, questions: List[Question]) -> TestDefinition:
        """Replace the question set; the total is recomputed and the version bumped."""
        self._validate_questions(questions)
        test = (await self._get_test(test_id)).with_questions(questions)
        await self.tests.save(test)
        logger.info(f"Test {test_id} now at version {test.version} with {test.total_points} points")
        return test

    async def publish(self, test_id: str, member_ids: Optional[List[str]] = None) -> TestDefinition:
        """Publish a definition and notify the classroom; publishing twice is a no-op."""
        test = await self._get_test(test_id)
        if test.is_published:
            return test

        test.is_published = True
        await self.tests.save(test)
        await self._notify_published(test, member_ids)
        return test

    async def unpublish(self, test_id: str) -> TestDefinition:
        test = await self._get_test(test_id)
        test.is_published = False
        await self.tests.save(test)
        return test

    async def create_template(self,
                              title: str,
                              test_type: TestType,
                              questions: List[Question],
                              level: str,
                              created_by: str,
                              **kwargs) -> TestTemplate:
        """Create and store a template."""
        template = TestTemplate.create(title, test_type, questions, level, created_by, **kwargs)
        await self.templates.save(template)
        return template

    async def update_template(self, template_id: str, **changes) -> TestTemplate:
        """Apply changes to a stored template; the total follows the questions."""
        template = await self.templates.get_by_id(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        template = template.update(**changes)
        await self.templates.save(template)
        return template

    async def create_folder(self, name: str, level: str, test_type: TestType, created_by: str) -> QuestionFolder:
        folder = QuestionFolder.create(name, level, test_type, created_by)
        await self.templates.save_folder(folder)
        return folder

    async def folders(self, level: str, test_type: TestType) -> List[QuestionFolder]:
        """Folders under one level and test type."""
        return folders_by_level_and_type(await self.templates.list_folders(), level, test_type)

    async def folder_templates(self, folder_id: str) -> List[TestTemplate]:
        return templates_by_folder(await self.templates.list_templates(), folder_id)

    async def template_counts(self) -> dict:
        return template_count_by_level(await self.templates.list_templates())

    async def assign_template(self,
                              template_id: str,
                              classroom_id: str,
                              assigned_by: str,
                              deadline: Optional[datetime.datetime] = None,
                              is_published: bool = True,
                              member_ids: Optional[List[str]] = None) -> TestDefinition:
        """
        Create a classroom definition from a template.

        Questions, time limit and type are copied; the new definition remembers
        the template it came from. Classroom members are notified when it is
        published.
        """
        template = await self.templates.get_by_id(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)

        test = TestDefinition(
            id=f"test_{uuid.uuid4()}",
            classroom_id=classroom_id,
            title=template.title,
            test_type=template.test_type,
            questions=[q.copy_with() for q in template.questions],
            created_by=assigned_by,
            description=template.description,
            time_limit_minutes=template.time_limit_minutes,
            deadline=deadline,
            is_published=is_published,
            source_template_id=template.id,
        )
        await self.tests.save(test)
        grading_logger(logger, test=test, template_id=template_id).info(
            f"Assigned template as {test.id} ({test.total_points} points)"
        )

        if is_published:
            await self._notify_published(test, member_ids)
        return test

    async def _notify_published(self, test: TestDefinition, member_ids: Optional[List[str]] = None) -> None:
        if self.notifier is None:
            return

        if test.test_type == TestType.TEST:
            kind, title = NotificationType.TEST_ASSIGNED, "New test"
        else:
            kind, title = NotificationType.ASSIGNMENT_ASSIGNED, "New assignment"

        # Without a member list the classroom itself is the recipient
        for recipient in member_ids or [test.classroom_id]:
            await self.notifier.notify(Notification(
                classroom_id=test.classroom_id,
                recipient_id=recipient,
                notification_type=kind,
                title=title,
                message=test.title,
                related_id=test.id,
            ))

    @staticmethod
    def _validate_questions(questions: List[Question]) -> None:
        seen = set()
        for question in questions:
            validate_question(question)
            if question.id in seen:
                raise ValidationError(f"Duplicate question id: {question.id}", details={"question_id": question.id})
            seen.add(question.id)
