"""
Question Source Repository Module

This module defines the read-only interface the sampler uses to obtain
question pools from the content store.
"""

import abc
from typing import List

from gradebook.domain.questions.bank import SourceKind
from gradebook.domain.questions.model import Question


class QuestionSourceRepository(abc.ABC):
    """
    Abstract base class for question source repositories.

    Implementations convert their stored records into questions; the pools
    they return are owned by the caller.
    """

    @abc.abstractmethod
    async def get_questions_by_source(self, source_kind: SourceKind, level: str) -> List[Question]:
        """
        Get the question pool of one source at one level.

        Args:
            source_kind: Source to read (flashcard, bank or template)
            level: Proficiency level, e.g. "N5"

        Returns:
            List of questions; empty when the source has nothing at that level
        """
        pass

    async def get_pools(self, source_kinds: List[SourceKind], level: str) -> dict:
        """
        Get the pools of several sources.

        Returns:
            Mapping of source kind to its question pool
        """
        return {kind: await self.get_questions_by_source(kind, level) for kind in source_kinds}
