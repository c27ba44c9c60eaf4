"""
Tests for test definitions, templates and assignment from templates.
"""

import datetime

import pytest

from gradebook.assessments.base.models import NotificationType
from gradebook.common.error_handling import NotFoundError, ValidationError
from gradebook.domain.questions.bank import TestType
from gradebook.domain.questions.model import QuestionType


class TestDefinitions:
    """Tests for creating and maintaining definitions."""

    @pytest.mark.asyncio
    async def test_create_computes_total(self, definition_service, make_question):
        test = await definition_service.create(
            "class1", "  Unit 1  ", TestType.TEST,
            [make_question("q1", points=10), make_question("q2", points=15)], "teacher",
        )

        assert test.title == "Unit 1"
        assert test.total_points == 25
        assert test.version == 1
        assert not test.is_published

    @pytest.mark.asyncio
    async def test_create_rejects_duplicate_question_ids(self, definition_service, make_question):
        with pytest.raises(ValidationError):
            await definition_service.create("class1", "Unit 1", TestType.TEST,
                                            [make_question("q1"), make_question("q1")], "teacher")

    @pytest.mark.asyncio
    async def test_create_rejects_empty_title(self, definition_service, make_question):
        with pytest.raises(ValidationError):
            await definition_service.create("class1", "", TestType.TEST, [make_question("q1")], "teacher")

    @pytest.mark.asyncio
    async def test_time_limit_must_be_positive(self, definition_service, make_question):
        with pytest.raises(ValidationError):
            await definition_service.create("class1", "Quiz", TestType.TEST, [make_question("q1")], "teacher",
                                            time_limit_minutes=0)

    @pytest.mark.asyncio
    async def test_replace_questions_bumps_version(self, stores, definition_service, make_question):
        test = await definition_service.create("class1", "Unit 1", TestType.TEST,
                                               [make_question("q1", points=10)], "teacher")

        updated = await definition_service.replace_questions(
            test.id, [make_question("q1", points=10), make_question("q2", points=5)]
        )

        assert updated.version == 2
        assert updated.total_points == 15
        stored = await stores.tests.get_by_id(test.id)
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_replace_on_missing_test(self, definition_service, make_question):
        with pytest.raises(NotFoundError):
            await definition_service.replace_questions("nope", [make_question("q1")])


class TestPublishing:
    """Tests for publication and notifications."""

    @pytest.mark.asyncio
    async def test_publish_notifies_members(self, stores, definition_service, make_question):
        test = await definition_service.create("class1", "Unit 1", TestType.TEST, [make_question("q1")], "teacher")

        await definition_service.publish(test.id, member_ids=["s1", "s2"])
        await definition_service.publish(test.id, member_ids=["s1", "s2"])

        assert len(stores.notifier.sent) == 2
        assert {n.recipient_id for n in stores.notifier.sent} == {"s1", "s2"}
        assert all(n.notification_type == NotificationType.TEST_ASSIGNED for n in stores.notifier.sent)
        assert (await stores.tests.get_by_id(test.id)).is_published

    @pytest.mark.asyncio
    async def test_assignment_without_members_notifies_classroom(self, stores, definition_service,
                                                                 make_question):
        await definition_service.create("class1", "Homework", TestType.ASSIGNMENT, [make_question("q1")],
                                        "teacher", is_published=True)

        assert len(stores.notifier.sent) == 1
        note = stores.notifier.sent[0]
        assert note.recipient_id == "class1"
        assert note.notification_type == NotificationType.ASSIGNMENT_ASSIGNED
        assert note.message == "Homework"

    @pytest.mark.asyncio
    async def test_unpublish(self, definition_service, make_question):
        test = await definition_service.create("class1", "Unit 1", TestType.TEST, [make_question("q1")],
                                               "teacher", is_published=True)
        assert not (await definition_service.unpublish(test.id)).is_published


class TestTemplateAssignment:
    """Tests for templates, folders and assigning a template to a classroom."""

    @pytest.mark.asyncio
    async def test_assign_template_copies_fields(self, stores, definition_service, make_question):
        template = await definition_service.create_template(
            "Kanji check", TestType.TEST,
            [make_question("q1", points=10), make_question("essay", QuestionType.TEXT, points=20)],
            "N5", "teacher", description="Week 3", time_limit_minutes=15,
        )
        deadline = datetime.datetime(2024, 7, 1, tzinfo=datetime.timezone.utc)

        test = await definition_service.assign_template(template.id, "class1", "teacher2", deadline=deadline,
                                                        member_ids=["s1"])

        assert test.source_template_id == template.id
        assert test.title == "Kanji check"
        assert test.description == "Week 3"
        assert test.time_limit_minutes == 15
        assert test.total_points == 30
        assert test.deadline == deadline
        assert test.created_by == "teacher2"
        assert test.is_published
        assert [q.id for q in test.questions] == ["q1", "essay"]
        assert stores.notifier.for_recipient("s1")[0].related_id == test.id

    @pytest.mark.asyncio
    async def test_template_edits_do_not_change_assigned_tests(self, stores, definition_service, make_question):
        template = await definition_service.create_template("Quiz", TestType.TEST, [make_question("q1")],
                                                            "N5", "teacher")
        test = await definition_service.assign_template(template.id, "class1", "teacher", is_published=False)

        await definition_service.update_template(template.id, questions=[make_question("q9", points=50)])

        stored = await stores.tests.get_by_id(test.id)
        assert [q.id for q in stored.questions] == ["q1"]
        assert stores.notifier.sent == []

    @pytest.mark.asyncio
    async def test_assign_missing_template(self, definition_service):
        with pytest.raises(NotFoundError):
            await definition_service.assign_template("nope", "class1", "teacher")

    @pytest.mark.asyncio
    async def test_folders_and_counts(self, definition_service, make_question):
        folder = await definition_service.create_folder("Week 1", "N5", TestType.TEST, "teacher")
        await definition_service.create_folder("Week 1", "N4", TestType.TEST, "teacher")
        await definition_service.create_template("Quiz", TestType.TEST, [make_question("q1")], "N5", "teacher",
                                                 folder_id=folder.id)
        await definition_service.create_template("Other", TestType.TEST, [make_question("q1")], "N4", "teacher")

        assert [f.id for f in await definition_service.folders("N5", TestType.TEST)] == [folder.id]
        assert [t.title for t in await definition_service.folder_templates(folder.id)] == ["Quiz"]
        assert await definition_service.template_counts() == {"N5": 1, "N4": 1}
