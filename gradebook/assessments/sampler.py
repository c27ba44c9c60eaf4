"""
Weighted Question Sampler

This module auto-generates a question set from several weighted sources and
a difficulty distribution while hitting an exact point budget:

1. Allocation of the question count across the enabled sources by their mix
   percentage, in a fixed source order, with the remainder on the last one
2. A uniform random draw from each source's pool; a short source is topped
   up from the undrawn questions of the other enabled sources
3. Point and difficulty assignment for every drawn question
4. A final shuffle that mixes the sources
5. A point-budget correction on the last question

All functions are pure: pools are copied before shuffling and every result is
a new list. Randomness comes from an injectable ``random.Random``.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, Final, Iterable, List, Mapping, Optional, Union

from gradebook.common.config import get_config
from gradebook.common.error_handling import InsufficientPoolError, ValidationError
from gradebook.common.logger import app_logger, log_execution_time
from gradebook.common.utils import round_half_up
from gradebook.domain.questions.bank import (
    SourceKind, TemplateSourceType, TestTemplate, TestType, sum_points
)
from gradebook.domain.questions.model import Difficulty, Question
from gradebook.domain.questions.repository import QuestionSourceRepository

# Module logger
logger = app_logger.getChild("assessments.sampler")

# Type aliases
SourceMix = Mapping[SourceKind, float]
Pools = Mapping[SourceKind, List[Question]]

# Module constants
SOURCE_ORDER: Final = (SourceKind.FLASHCARD, SourceKind.BANK, SourceKind.TEMPLATE)
MIX_TOLERANCE: Final[float] = 1e-6


@dataclass(frozen=True)
class DifficultyMix:
    """
    Percentages of easy, medium and hard questions; they must sum to 100.
    """
    easy: float
    medium: float
    hard: float

    def __post_init__(self):
        values = (self.easy, self.medium, self.hard)
        if any(v < 0 for v in values):
            raise ValidationError("Difficulty percentages must not be negative",
                                  details={"easy": self.easy, "medium": self.medium, "hard": self.hard})
        if abs(sum(values) - 100) > MIX_TOLERANCE:
            raise ValidationError(f"Difficulty percentages must sum to 100, got {sum(values)}",
                                  details={"easy": self.easy, "medium": self.medium, "hard": self.hard})

    @classmethod
    def from_config(cls) -> 'DifficultyMix':
        """Default mix from the sampler configuration."""
        sampler = get_config().sampler
        return cls(sampler.default_easy_percent, sampler.default_medium_percent, sampler.default_hard_percent)

    def pick(self, rng: random.Random) -> Difficulty:
        """Draw one difficulty from ``uniform[0, 100)`` against the cumulative thresholds."""
        roll = rng.random() * 100
        if roll < self.easy:
            return Difficulty.EASY
        if roll < self.easy + self.medium:
            return Difficulty.MEDIUM
        return Difficulty.HARD


DifficultySpec = Union[Difficulty, DifficultyMix]

DIFFICULTY_PRESETS: Dict[str, DifficultyMix] = {
    "balanced": DifficultyMix(30, 50, 20),
    "easier": DifficultyMix(50, 40, 10),
    "harder": DifficultyMix(10, 40, 50),
    "medium_only": DifficultyMix(0, 100, 0),
}

SOURCE_MIX_PRESETS: Dict[str, Dict[SourceKind, int]] = {
    "flashcard_only": {SourceKind.FLASHCARD: 100},
    "bank_only": {SourceKind.BANK: 100},
    "flashcard_and_bank": {SourceKind.FLASHCARD: 50, SourceKind.BANK: 50},
    "all_sources": {SourceKind.FLASHCARD: 40, SourceKind.BANK: 40, SourceKind.TEMPLATE: 20},
}


def pick_difficulty(spec: DifficultySpec, rng: random.Random) -> Difficulty:
    """Fixed difficulty, or one drawn from a mix."""
    if isinstance(spec, DifficultyMix):
        return spec.pick(rng)
    return Difficulty(spec)


def enabled_sources(mix: SourceMix) -> List[SourceKind]:
    """Sources present in the mix, in allocation order."""
    keys = {SourceKind(k) for k in mix}
    return [kind for kind in SOURCE_ORDER if kind in keys]


def _normalize_mix(mix: SourceMix) -> Dict[SourceKind, float]:
    return {SourceKind(k): v for k, v in mix.items()}


def validate_source_mix(mix: SourceMix) -> List[SourceKind]:
    """
    Check a source mix and return its sources in allocation order.

    Raises:
        ValidationError: If no source is enabled, a percentage is negative or
            the percentages do not sum to 100
    """
    normalized = _normalize_mix(mix)
    sources = enabled_sources(normalized)
    if not sources:
        raise ValidationError("At least one question source must be enabled")
    if any(normalized[s] < 0 for s in sources):
        raise ValidationError("Source percentages must not be negative",
                              details={"mix": {s.value: normalized[s] for s in sources}})

    total = sum(normalized[s] for s in sources)
    if abs(total - 100) > MIX_TOLERANCE:
        raise ValidationError(f"Source percentages must sum to 100, got {total}",
                              details={"mix": {s.value: normalized[s] for s in sources}})
    return sources


def equal_split(sources: Iterable[SourceKind]) -> Dict[SourceKind, int]:
    """
    Split 100 percent equally between sources.

    Shares are whole percentages; the remainder goes to the first source in
    allocation order. An empty input yields an empty mix.
    """
    ordered = enabled_sources({SourceKind(s): 0 for s in sources})
    if not ordered:
        return {}

    share = 100 // len(ordered)
    remainder = 100 - share * len(ordered)
    return {kind: share + (remainder if index == 0 else 0) for index, kind in enumerate(ordered)}


def toggle_source(mix: SourceMix, source: SourceKind) -> Dict[SourceKind, int]:
    """Enable or disable a source and split the percentages equally again."""
    source = SourceKind(source)
    sources = set(enabled_sources(mix))
    sources.symmetric_difference_update({source})
    return equal_split(sources)


def rebalance_mix(mix: SourceMix, source: SourceKind, percent: float) -> Dict[SourceKind, int]:
    """
    Set one source's percentage and rescale the others to fill the rest.

    The other sources keep their previous proportions (an equal split when
    they were all at 0). Rounding drift is added to the first other source so
    the mix sums to exactly 100. A single enabled source always gets 100.

    Args:
        mix: Current mix of enabled sources
        source: Source being changed
        percent: Its new percentage, clamped to [0, 100]

    Returns:
        A new mix
    """
    normalized = _normalize_mix(mix)
    source = SourceKind(source)
    if source not in normalized:
        raise ValidationError(f"Source {source.value} is not enabled", details={"source": source.value})

    sources = enabled_sources(normalized)
    if len(sources) <= 1:
        return {source: 100}

    percent = round_half_up(min(100, max(0, percent)))
    remaining = 100 - percent
    others = [s for s in sources if s != source]
    others_total = sum(normalized[s] for s in others)

    result: Dict[SourceKind, int] = {source: percent}
    for other in others:
        ratio = normalized[other] / others_total if others_total > 0 else 1 / len(others)
        result[other] = round_half_up(remaining * ratio)

    drift = 100 - sum(result.values())
    if drift:
        result[others[0]] += drift
    return {kind: result[kind] for kind in sources}


def allocate_by_source(question_count: int, mix: SourceMix) -> Dict[SourceKind, int]:
    """
    Split a question count across the enabled sources.

    Each source gets ``round(pct / 100 * N)`` (half up) except the last, which
    gets whatever is left, so the allocations always sum to ``N``.
    """
    sources = validate_source_mix(mix)
    normalized = _normalize_mix(mix)

    allocations: Dict[SourceKind, int] = {}
    allocated = 0
    for index, kind in enumerate(sources):
        if index == len(sources) - 1:
            allocations[kind] = question_count - allocated
        else:
            count = round_half_up(normalized[kind] / 100 * question_count)
            allocations[kind] = count
            allocated += count
    return allocations


def draw(pool: List[Question], count: int, rng: random.Random) -> List[Question]:
    """
    Draw up to ``count`` questions uniformly without replacement.

    The pool is copied before shuffling; a short pool yields fewer items.
    """
    shuffled = list(pool)
    rng.shuffle(shuffled)
    return shuffled[:max(0, count)]


def primary_source(mix: SourceMix) -> SourceKind:
    """Source with the highest percentage; ties go to the earliest source."""
    normalized = _normalize_mix(mix)
    sources = enabled_sources(normalized)
    if not sources:
        raise ValidationError("At least one question source must be enabled")

    best = sources[0]
    for kind in sources[1:]:
        if normalized[kind] > normalized[best]:
            best = kind
    return best


def template_source_type(kind: SourceKind) -> TemplateSourceType:
    """Template metadata for a generated set; template-derived sets count as custom."""
    if kind == SourceKind.FLASHCARD:
        return TemplateSourceType.FLASHCARD
    if kind == SourceKind.BANK:
        return TemplateSourceType.BANK
    return TemplateSourceType.CUSTOM


@dataclass
class AvailabilityReport:
    """How well the pools cover a generation request."""
    requested: int
    allocations: Dict[SourceKind, int]
    available: Dict[SourceKind, int]

    @property
    def total_available(self) -> int:
        return sum(self.available.get(kind, 0) for kind in self.allocations)

    @property
    def shortfalls(self) -> Dict[SourceKind, int]:
        """Sources that cannot cover their allocation, with the missing count."""
        return {
            kind: count - self.available.get(kind, 0)
            for kind, count in self.allocations.items()
            if count > self.available.get(kind, 0)
        }

    @property
    def is_sufficient(self) -> bool:
        """Whether every enabled source covers its allocation."""
        return not self.shortfalls

    def to_dict(self) -> Dict[str, object]:
        return {
            "requested": self.requested,
            "total_available": self.total_available,
            "allocations": {k.value: v for k, v in self.allocations.items()},
            "available": {k.value: v for k, v in self.available.items()},
            "shortfalls": {k.value: v for k, v in self.shortfalls.items()},
        }


def check_availability(pool_sizes: Mapping[SourceKind, int],
                       question_count: int,
                       mix: SourceMix) -> AvailabilityReport:
    """
    Compare the allocation of a request with the pool sizes.

    Args:
        pool_sizes: Number of questions per source
        question_count: Requested question count
        mix: Source mix

    Returns:
        An availability report; nothing is raised for short pools
    """
    allocations = allocate_by_source(question_count, mix)
    sizes = {SourceKind(k): v for k, v in pool_sizes.items()}
    available = {kind: sizes.get(kind, 0) for kind in allocations}
    return AvailabilityReport(requested=question_count, allocations=allocations, available=available)


@dataclass
class GeneratedQuestionSet:
    """Result of one generation run."""
    questions: List[Question]
    allocations: Dict[SourceKind, int]
    points_per_question: int
    primary_source: SourceKind
    shortfalls: Dict[SourceKind, int] = field(default_factory=dict)
    backfilled: Dict[SourceKind, int] = field(default_factory=dict)

    @property
    def total_points(self) -> int:
        return sum_points(self.questions)

    @property
    def source_type(self) -> TemplateSourceType:
        return template_source_type(self.primary_source)


class WeightedSampler:
    """
    Generates question sets from weighted sources.

    Args:
        rng: Random source; pass a seeded ``random.Random`` for reproducible
            draws
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    @log_execution_time(logger)
    def generate(self,
                 pools: Pools,
                 source_mix: SourceMix,
                 question_count: Optional[int] = None,
                 total_points: Optional[int] = None,
                 difficulty: Optional[DifficultySpec] = None) -> GeneratedQuestionSet:
        """
        Generate a question set.

        Args:
            pools: Question pool per source
            source_mix: Percentage per enabled source (sums to 100)
            question_count: Number of questions N (configured default if None)
            total_points: Point budget P (configured default if None)
            difficulty: Fixed difficulty or a DifficultyMix (configured
                default mix if None)

        Returns:
            The generated set; its points sum to exactly P

        Raises:
            ValidationError: For an invalid count, budget or mix
            InsufficientPoolError: If the enabled sources hold fewer than N
                questions in total
        """
        sampler_config = get_config().sampler
        if question_count is None:
            question_count = sampler_config.default_question_count
        if total_points is None:
            total_points = sampler_config.default_total_points
        if difficulty is None:
            difficulty = DifficultyMix.from_config()

        if question_count <= 0:
            raise ValidationError("Question count must be positive", details={"question_count": question_count})
        if total_points < 0:
            raise ValidationError("Total points must not be negative", details={"total_points": total_points})

        pools = {SourceKind(k): v for k, v in pools.items()}
        report = check_availability({k: len(v) for k, v in pools.items()}, question_count, source_mix)
        if report.total_available < question_count:
            raise InsufficientPoolError(
                requested=question_count,
                available=report.total_available,
                per_source={k.value: v for k, v in report.available.items()}
            )
        points_each = round_half_up(total_points / question_count)

        picked: List[Question] = []
        leftovers: Dict[SourceKind, List[Question]] = {}
        for kind, count in report.allocations.items():
            shuffled = draw(pools.get(kind, []), len(pools.get(kind, [])), self.rng)
            picked.extend(shuffled[:count])
            leftovers[kind] = shuffled[count:]

        backfilled = self._backfill(picked, leftovers, question_count, report.shortfalls)

        drawn = [
            question.copy_with(points=points_each, difficulty=pick_difficulty(difficulty, self.rng))
            for question in picked
        ]

        self.rng.shuffle(drawn)
        self._correct_point_budget(drawn, total_points, points_each)

        logger.info(
            f"Generated {len(drawn)}/{question_count} questions worth {total_points} points "
            f"from {', '.join(k.value for k in report.allocations)}"
        )
        return GeneratedQuestionSet(
            questions=drawn,
            allocations=report.allocations,
            points_per_question=points_each,
            primary_source=primary_source(source_mix),
            shortfalls=report.shortfalls,
            backfilled=backfilled,
        )

    @staticmethod
    def _backfill(picked: List[Question],
                  leftovers: Dict[SourceKind, List[Question]],
                  question_count: int,
                  shortfalls: Dict[SourceKind, int]) -> Dict[SourceKind, int]:
        """
        Top up a short draw from the undrawn questions of the other sources.

        Leftovers are taken in allocation order; each leftover list is
        already shuffled.

        Returns:
            Number of extra questions taken per source
        """
        for kind, missing in shortfalls.items():
            logger.warning(f"Source {kind.value} is short by {missing} questions; "
                           f"filling from the other sources")

        backfilled: Dict[SourceKind, int] = {}
        for kind, remaining in leftovers.items():
            needed = question_count - len(picked)
            if needed <= 0:
                break
            extra = remaining[:needed]
            if extra:
                picked.extend(extra)
                backfilled[kind] = len(extra)
        return backfilled

    @staticmethod
    def _correct_point_budget(questions: List[Question], total_points: int, points_each: int) -> None:
        """Give the last question whatever makes the sum equal the budget."""
        if not questions:
            return

        others = sum_points(questions[:-1])
        last_points = total_points - others
        if not 0 <= last_points <= 2 * points_each:
            logger.warning(
                f"Point correction gives the last question {last_points} points "
                f"(others get {points_each})"
            )
        questions[-1] = questions[-1].copy_with(points=last_points)


class AutoGenerator:
    """
    Generates template drafts from the question sources of one level.

    Args:
        source_repository: Repository supplying the pools
        sampler: Sampler to use (a new unseeded one if None)
    """

    def __init__(self,
                 source_repository: QuestionSourceRepository,
                 sampler: Optional[WeightedSampler] = None):
        self.source_repository = source_repository
        self.sampler = sampler or WeightedSampler()

    async def load_pools(self, level: str, source_mix: SourceMix) -> Dict[SourceKind, List[Question]]:
        """Fetch the pools of the sources enabled in the mix."""
        return await self.source_repository.get_pools(enabled_sources(source_mix), level)

    async def availability(self, level: str, question_count: int, source_mix: SourceMix) -> AvailabilityReport:
        """Report pool coverage before generating, for pre-submit warnings."""
        pools = await self.load_pools(level, source_mix)
        return check_availability({k: len(v) for k, v in pools.items()}, question_count, source_mix)

    async def generate(self,
                       level: str,
                       source_mix: SourceMix,
                       question_count: Optional[int] = None,
                       total_points: Optional[int] = None,
                       difficulty: Optional[DifficultySpec] = None) -> GeneratedQuestionSet:
        """Load the level's pools and generate a question set from them."""
        pools = await self.load_pools(level, source_mix)
        return self.sampler.generate(pools, source_mix, question_count, total_points, difficulty)

    async def generate_template(self,
                                title: str,
                                test_type: TestType,
                                level: str,
                                created_by: str,
                                source_mix: SourceMix,
                                question_count: Optional[int] = None,
                                total_points: Optional[int] = None,
                                difficulty: Optional[DifficultySpec] = None,
                                **template_fields) -> TestTemplate:
        """
        Generate a question set and wrap it in an unsaved template.

        The template's source type follows the source with the largest share.
        """
        generated = await self.generate(level, source_mix, question_count, total_points, difficulty)
        return TestTemplate.create(
            title=title,
            test_type=test_type,
            questions=generated.questions,
            level=level,
            created_by=created_by,
            source_type=generated.source_type,
            **template_fields
        )
