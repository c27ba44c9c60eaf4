"""
Shared fixtures for the grading engine tests.
"""

import random
from types import SimpleNamespace

import pytest

from gradebook.assessments.base.memory_repositories import (
    MemoryAttendanceRepository,
    MemoryEvaluationRepository,
    MemoryNotificationSink,
    MemorySubmissionRepository,
    MemoryTemplateRepository,
    MemoryTestRepository,
)
from gradebook.assessments.definitions import TestDefinitionService
from gradebook.assessments.submissions import SubmissionService
from gradebook.domain.questions.bank import (
    BankAnswer, BankQuestionRecord, FlashcardRecord, TestTemplate, TestType
)
from gradebook.domain.questions.memory_repository import MemoryQuestionSourceRepository
from gradebook.domain.questions.model import Difficulty, Question, QuestionType


@pytest.fixture
def rng():
    """Seeded random source for reproducible draws."""
    return random.Random(1234)


@pytest.fixture
def make_question():
    """Factory for valid questions of each type."""
    def factory(question_id, question_type=QuestionType.MULTIPLE_CHOICE, points=10,
                difficulty=Difficulty.MEDIUM, correct_answer=None):
        question_type = QuestionType(question_type)
        if question_type == QuestionType.MULTIPLE_CHOICE:
            return Question(
                id=question_id,
                question_type=question_type,
                prompt=f"Question {question_id}",
                options=["A", "B", "C", "D"],
                correct_answer=0 if correct_answer is None else correct_answer,
                points=points,
                difficulty=difficulty,
            )
        if question_type == QuestionType.TRUE_FALSE:
            return Question(
                id=question_id,
                question_type=question_type,
                prompt=f"Statement {question_id}",
                correct_answer="true" if correct_answer is None else correct_answer,
                points=points,
                difficulty=difficulty,
            )
        return Question(
            id=question_id,
            question_type=question_type,
            prompt=f"Explain {question_id}",
            correct_answer=correct_answer,
            points=points,
            difficulty=difficulty,
        )
    return factory


@pytest.fixture
def make_pool(make_question):
    """Factory for a pool of multiple choice questions with a common prefix."""
    def factory(prefix, size):
        return [make_question(f"{prefix}{i}") for i in range(size)]
    return factory


@pytest.fixture
def flashcards():
    """Twenty N5 flashcards and five N4 ones."""
    cards = [
        FlashcardRecord(id=f"card{i}", vocabulary=f"word{i}", meaning=f"meaning {i}",
                        kanji=f"漢{i}" if i % 2 == 0 else None, level="N5")
        for i in range(20)
    ]
    cards += [FlashcardRecord(id=f"n4card{i}", vocabulary=f"n4word{i}", meaning="m", level="N4") for i in range(5)]
    return cards


@pytest.fixture
def bank_records():
    """Twenty N5 bank questions with the second answer correct."""
    return [
        BankQuestionRecord(
            id=f"jq{i}",
            question=f"Pick the reading of item {i}",
            answers=[BankAnswer("a"), BankAnswer("b", is_correct=True), BankAnswer("c")],
            level="N5",
        )
        for i in range(20)
    ]


@pytest.fixture
def templates(make_question):
    """Two N5 templates sharing one question."""
    shared = make_question("shared")
    return [
        TestTemplate.create("Lesson 1", TestType.TEST, [shared, make_question("t1a"), make_question("t1b")],
                            level="N5", created_by="teacher"),
        TestTemplate.create("Lesson 2", TestType.ASSIGNMENT, [shared, make_question("t2a")],
                            level="N5", created_by="teacher"),
    ]


@pytest.fixture
def source_repository(flashcards, bank_records, templates):
    return MemoryQuestionSourceRepository(flashcards, bank_records, templates)


@pytest.fixture
def stores():
    """In-memory stores for every repository interface."""
    return SimpleNamespace(
        tests=MemoryTestRepository(),
        submissions=MemorySubmissionRepository(),
        templates=MemoryTemplateRepository(),
        attendance=MemoryAttendanceRepository(),
        evaluations=MemoryEvaluationRepository(),
        notifier=MemoryNotificationSink(),
    )


@pytest.fixture
def definition_service(stores):
    return TestDefinitionService(stores.tests, stores.templates, stores.notifier)


@pytest.fixture
def submission_service(stores):
    return SubmissionService(stores.tests, stores.submissions, stores.notifier)
