# scoring.py
import math
from typing import Iterable, List, Sequence, Tuple, Union

from analysis.models import LevelProgress, ScoreBreakdown, ScoreLevel
from constants import ALPHA_VOLUME_MULTIPLIER, SCORE_LEVELS

LevelsLike = Iterable[Union[ScoreLevel, Tuple[float, int]]]


def validate_levels(levels: LevelsLike) -> List[ScoreLevel]:
    """Normalises a level table and checks thresholds and scores strictly increase."""
    table = [lvl if isinstance(lvl, ScoreLevel) else ScoreLevel(*lvl) for lvl in levels]
    if not table:
        raise ValueError("Score level table must not be empty")
    for prev, cur in zip(table, table[1:]):
        if cur.amount <= prev.amount or cur.score <= prev.score:
            raise ValueError("Score levels must be strictly increasing")
    if table[0].amount <= 0 or table[0].score <= 0:
        raise ValueError("First score level must be positive")
    return table


DEFAULT_LEVELS: Sequence[ScoreLevel] = tuple(validate_levels(SCORE_LEVELS))


def calculate_score(total_value: float, levels: LevelsLike = DEFAULT_LEVELS) -> ScoreBreakdown:
    """
    Converts a (doubled) qualifying volume into a score and level progress.

    The table is walked with an inclusive lower bound. Past its last row the
    threshold keeps doubling and every doubling reached adds one point, so the
    score grows with log2 of the volume and has no upper bound.

    ``amount_needed_for_next_level`` is halved because ``total_value`` already
    counts qualifying volume twice; the user only has to trade half of the gap.
    """
    if not math.isfinite(total_value) or total_value < 0:
        raise ValueError("total_value must be a finite, non-negative number")

    table = list(levels) if levels is DEFAULT_LEVELS else validate_levels(levels)

    score = 0
    floor = 0.0
    ceiling = 0.0
    for level in table:
        if total_value >= level.amount:
            score = level.score
            floor = level.amount
        else:
            ceiling = level.amount
            break

    if not ceiling:
        last = table[-1]
        floor = last.amount
        score = last.score
        ceiling = last.amount * 2
        while total_value >= ceiling:
            floor = ceiling
            ceiling *= 2
            score += 1

    progress = 0.0
    if ceiling > floor:
        progress = (total_value - floor) / (ceiling - floor) * 100
    progress = max(0.0, min(100.0, progress))

    return ScoreBreakdown(
        score=score,
        current_level_floor=floor,
        next_level_ceiling=ceiling,
        progress_percent=progress,
        amount_needed_for_next_level=(ceiling - total_value) / ALPHA_VOLUME_MULTIPLIER,
    )


def level_progress(breakdown: ScoreBreakdown) -> LevelProgress:
    return LevelProgress(
        current_level=breakdown.current_level_floor,
        next_level=breakdown.next_level_ceiling,
        progress=breakdown.progress_percent,
    )
