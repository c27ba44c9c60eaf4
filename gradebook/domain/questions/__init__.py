"""
Question domain module for the grading engine.

This module contains the question model, the pure question bank operations,
templates and folders, and the source repositories the sampler reads pools
from.
"""

from .model import (
    Question, QuestionType, Difficulty, normalize_true_false,
    TRUE_VALUE, FALSE_VALUE, DEFAULT_QUESTION_POINTS
)
from .bank import (
    SourceKind, TestType, TemplateSourceType, FlashcardRecord, BankAnswer,
    BankQuestionRecord, QuestionFolder, TestTemplate, validate_question,
    add_question, update_question, remove_question, sum_points,
    from_flashcard, from_bank_question, folders_by_level_and_type,
    templates_by_folder, template_count_by_level, template_pool
)
from .repository import QuestionSourceRepository
from .memory_repository import MemoryQuestionSourceRepository

__all__ = [
    'Question', 'QuestionType', 'Difficulty', 'normalize_true_false',
    'TRUE_VALUE', 'FALSE_VALUE', 'DEFAULT_QUESTION_POINTS',
    'SourceKind', 'TestType', 'TemplateSourceType', 'FlashcardRecord',
    'BankAnswer', 'BankQuestionRecord', 'QuestionFolder', 'TestTemplate',
    'validate_question', 'add_question', 'update_question', 'remove_question',
    'sum_points', 'from_flashcard', 'from_bank_question',
    'folders_by_level_and_type', 'templates_by_folder',
    'template_count_by_level', 'template_pool',
    'QuestionSourceRepository', 'MemoryQuestionSourceRepository',
]
