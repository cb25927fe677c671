from typing import Iterable

from rangeround.constants import SCORE_NAMES
from rangeround.engine.models import Hole, HoleStats, Round, RoundStats

EMPTY_HOLE_STATS = HoleStats(strokes=0, score=0, score_name="-")


def score_name(score: int) -> str:
    """Name for a hole score relative to par."""
    if score <= -3:
        return "Albatross"
    if score in SCORE_NAMES:
        return SCORE_NAMES[score]
    return f"+{score}"


def hole_strokes(hole: Hole) -> int:
    """Every shot is a stroke, plus its penalty, plus the putts."""
    return sum(shot.strokes for shot in hole.shots) + hole.putts


def hole_stats(round_obj: Round, index: int) -> HoleStats:
    if index < 0 or index >= len(round_obj.holes):
        return EMPTY_HOLE_STATS
    hole = round_obj.holes[index]
    if not hole.is_complete:
        return EMPTY_HOLE_STATS

    strokes = hole_strokes(hole)
    score = strokes - hole.par
    return HoleStats(strokes=strokes, score=score, score_name=score_name(score))


def aggregate(holes: Iterable[Hole]) -> RoundStats:
    """Totals over complete holes only; skipped holes don't count toward par."""
    total_strokes = 0
    total_par = 0
    completed = 0
    for hole in holes:
        if not hole.is_complete:
            continue
        total_strokes += hole_strokes(hole)
        total_par += hole.par
        completed += 1
    return RoundStats(
        total_strokes=total_strokes,
        total_par=total_par,
        score=total_strokes - total_par,
        completed_holes=completed,
    )


def round_stats(round_obj: Round) -> RoundStats:
    return aggregate(round_obj.holes)


def total_score(round_obj: Round) -> int:
    return aggregate(round_obj.holes).total_strokes
