"""Shot resolution: self-reported carry and direction -> ball position.

Everything here is pure. The hole's wind and hazard come in as plain values so
the same function serves live rounds, replays and the seed script.
"""

import math
from typing import Optional

from rangeround.constants import (
    BUNKER,
    BUNKER_PENALTY_YARDS,
    FRONT_HAZARD_RATIO,
    LATERAL_OFFSET,
    SIDE_HAZARD_YARDS,
    WATER,
    WATER_PENALTY_STROKES,
    WIDE_DIRECTIONS,
    WIDE_PENALTY_YARDS,
    WIND_CARRY_FACTOR,
    WIND_DRIFT,
)
from rangeround.engine.models import ShotResult


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def wind_adjusted_carry(input_distance: float, wind_direction: str) -> float:
    """Headwind knocks 10% off, tailwind adds 10%, crosswinds leave carry alone."""
    return input_distance * WIND_CARRY_FACTOR.get(wind_direction, 1.0)


def lateral_deviation(direction: str, wind_direction: str) -> int:
    """Signed yards off the target line, negative is left."""
    return LATERAL_OFFSET.get(direction, 0) + WIND_DRIFT.get(wind_direction, 0)


def hazard_in_play(
    hazard: Optional[str],
    deviation: int,
    effective_distance: float,
    current_distance: float,
) -> bool:
    if hazard == "Left":
        return deviation < -SIDE_HAZARD_YARDS
    if hazard == "Right":
        return deviation > SIDE_HAZARD_YARDS
    if hazard == "Front":
        return effective_distance < current_distance * FRONT_HAZARD_RATIO
    return False


def resolve_shot(
    input_distance: float,
    input_direction: str,
    current_distance: float,
    hazard: Optional[str],
    hazard_type: Optional[str],
    wind_speed: int,
    wind_direction: str,
) -> ShotResult:
    """
    Resolve one shot against the hole's conditions.

    Steps:
      - wind scales the carry (head/tail only)
      - direction plus crosswind drift give the lateral miss
      - at most one hazard can be hit: water costs a stroke, sand costs 7 yards
      - a wide miss costs 15 yards on top of any hazard
      - remaining distance is floored at zero before penalty yards are added

    wind_speed is accepted for the hole record but doesn't scale the effect.
    """
    effective = wind_adjusted_carry(input_distance, wind_direction)
    deviation = lateral_deviation(input_direction, wind_direction)

    penalty_strokes = 0
    distance_penalty = 0
    hit_hazard = hazard_in_play(hazard, deviation, effective, current_distance)

    if hit_hazard:
        if hazard_type == WATER:
            penalty_strokes = WATER_PENALTY_STROKES
        elif hazard_type == BUNKER:
            distance_penalty += BUNKER_PENALTY_YARDS

    if input_direction in WIDE_DIRECTIONS:
        distance_penalty += WIDE_PENALTY_YARDS

    final_distance = round_half_up(effective)
    remaining = max(0, round_half_up(current_distance) - final_distance) + distance_penalty

    return ShotResult(
        final_distance=final_distance,
        remaining_distance=remaining,
        penalty_strokes=penalty_strokes,
        distance_penalty=distance_penalty,
        hit_hazard=hit_hazard,
    )
