import pytest

from rangeround.engine.models import Round, Shot
from rangeround.engine.scoring import hole_stats, hole_strokes, round_stats, score_name

from conftest import make_hole


def _shot(penalty=0):
    return Shot(club="7 Iron", input_distance=150, input_direction="Middle",
                final_distance=150, remaining_distance=0, penalty_strokes=penalty)


@pytest.mark.parametrize("score,name", [
    (-4, "Albatross"),
    (-3, "Albatross"),
    (-2, "Eagle"),
    (-1, "Birdie"),
    (0, "Par"),
    (1, "Bogey"),
    (2, "Double"),
    (3, "+3"),
    (5, "+5"),
])
def test_score_names(score, name):
    assert score_name(score) == name


def test_hole_strokes_count_penalties_and_putts():
    hole = make_hole()
    hole.shots = [_shot(), _shot(penalty=1), _shot()]
    hole.putts = 2
    assert hole_strokes(hole) == 6


def test_incomplete_hole_has_no_stats():
    rnd = Round(holes=[make_hole()])
    stats = hole_stats(rnd, 0)
    assert (stats.strokes, stats.score, stats.score_name) == (0, 0, "-")
    assert hole_stats(rnd, 5).score_name == "-"


def test_round_stats_skip_incomplete_holes():
    done = make_hole(number=1, par=4)
    done.shots = [_shot(), _shot()]
    done.putts = 1
    done.is_complete = True
    skipped = make_hole(number=2, par=5)
    skipped.shots = [_shot()]

    stats = round_stats(Round(holes=[done, skipped]))

    assert stats.total_strokes == 3
    assert stats.total_par == 4
    assert stats.score == -1
    assert stats.completed_holes == 1
    assert hole_stats(Round(holes=[done]), 0).score_name == "Birdie"
