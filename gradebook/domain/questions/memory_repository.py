"""
Memory Question Source Repository Module

This module provides an in-memory implementation of the
QuestionSourceRepository interface for development and testing purposes.
"""

from typing import Dict, List, Optional

from gradebook.common.error_handling import ValidationError
from gradebook.common.logger import app_logger
from gradebook.domain.questions.bank import (
    BankQuestionRecord, FlashcardRecord, SourceKind, TestTemplate,
    from_bank_question, from_flashcard, template_pool
)
from gradebook.domain.questions.model import Difficulty, Question
from gradebook.domain.questions.repository import QuestionSourceRepository

# Module logger
logger = app_logger.getChild("domain.questions.memory_repository")


class MemoryQuestionSourceRepository(QuestionSourceRepository):
    """
    In-memory implementation of the QuestionSourceRepository.

    Flashcards and bank questions are kept as source records and converted on
    read with a neutral difficulty; the sampler assigns the final difficulty
    of every question it draws.
    """

    def __init__(self,
                 flashcards: Optional[List[FlashcardRecord]] = None,
                 bank_questions: Optional[List[BankQuestionRecord]] = None,
                 templates: Optional[List[TestTemplate]] = None,
                 default_points: Optional[int] = None):
        """
        Initialize the repository with optional initial data.

        Args:
            flashcards: Flashcard records (their ``level`` selects the pool)
            bank_questions: Bank question records
            templates: Templates whose questions form the template pool
            default_points: Point value for records that carry none
        """
        self._flashcards: List[FlashcardRecord] = list(flashcards or [])
        self._bank_questions: List[BankQuestionRecord] = list(bank_questions or [])
        self._templates: List[TestTemplate] = list(templates or [])
        self._default_points = default_points

    def add_flashcard(self, card: FlashcardRecord) -> None:
        self._flashcards.append(card)

    def add_bank_question(self, record: BankQuestionRecord) -> None:
        self._bank_questions.append(record)

    def add_template(self, template: TestTemplate) -> None:
        self._templates.append(template)

    async def get_questions_by_source(self, source_kind: SourceKind, level: str) -> List[Question]:
        """
        Get the question pool of one source at one level.

        Bank questions that cannot be converted are skipped with a warning.

        Args:
            source_kind: Source to read
            level: Proficiency level

        Returns:
            Freshly converted questions
        """
        source_kind = SourceKind(source_kind)

        if source_kind == SourceKind.FLASHCARD:
            pool = [
                from_flashcard(card, Difficulty.MEDIUM, self._default_points)
                for card in self._flashcards if card.level == level
            ]
        elif source_kind == SourceKind.BANK:
            pool = self._bank_pool(level)
        else:
            pool = template_pool([t for t in self._templates if t.level == level])

        logger.debug(f"Loaded {len(pool)} {source_kind.value} questions for level {level}")
        return pool

    def _bank_pool(self, level: str) -> List[Question]:
        pool: List[Question] = []
        for record in self._bank_questions:
            if record.level != level:
                continue
            try:
                pool.append(from_bank_question(record, Difficulty.MEDIUM, self._default_points))
            except ValidationError as e:
                logger.warning(f"Skipping bank question {record.id}: {e.message}")
        return pool
