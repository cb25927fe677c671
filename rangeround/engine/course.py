import logging
import random
from typing import Iterable, Optional

from rangeround.constants import (
    CALM,
    HAZARD_GATE,
    HAZARD_LOCATIONS,
    HAZARD_TYPES,
    PARS,
    WIND_DIRECTIONS,
    WIND_SPEED_MAX,
    WIND_SPEED_MIN,
    YARDAGE_RANGES,
)
from rangeround.engine.models import Hole
from rangeround.engine.validation import validate_hole_count, validate_layout_row

logger = logging.getLogger(__name__)

# "No hazard" sits inside the draw as well as behind the gate, so a hole has a
# hazard with probability (1 - HAZARD_GATE) * 3/4.
_HAZARD_CHOICES: list[Optional[str]] = HAZARD_LOCATIONS + [None]


def generate_hole(
    number: int,
    forced_par: Optional[int] = None,
    rng: Optional[random.Random] = None,
    wind: Optional[tuple[int, str]] = None,
) -> Hole:
    """Build one random hole. Pass ``wind=(speed, direction)`` to fix the wind."""
    rng = rng or random.Random()

    par = forced_par if forced_par is not None else rng.choice(PARS)
    low, high = YARDAGE_RANGES[par]
    yardage = rng.randint(low, high)

    hazard = None
    if rng.random() > HAZARD_GATE:
        hazard = rng.choice(_HAZARD_CHOICES)

    hazard_type = None
    if hazard:
        hazard_type = HAZARD_TYPES[0] if rng.random() > 0.5 else HAZARD_TYPES[1]

    if wind is not None:
        wind_speed, wind_direction = wind
    else:
        wind_speed = rng.randint(WIND_SPEED_MIN, WIND_SPEED_MAX)
        wind_direction = rng.choice(WIND_DIRECTIONS)

    return Hole(
        number=number,
        par=par,
        yardage=yardage,
        hazard=hazard,
        hazard_type=hazard_type,
        wind_speed=wind_speed,
        wind_direction=wind_direction,
    )


def generate_holes(
    count: int,
    rng: Optional[random.Random] = None,
    wind: Optional[tuple[int, str]] = None,
) -> list[Hole]:
    """
    Build a round's worth of holes.

    A 3-hole round always plays one par 3, one par 4 and one par 5 in shuffled
    order. 9 and 18 hole rounds draw every hole independently.
    """
    validate_hole_count(count)
    rng = rng or random.Random()

    if count == 3:
        pars = list(PARS)
        for i in range(len(pars)):
            j = rng.randrange(len(pars))
            pars[i], pars[j] = pars[j], pars[i]
        holes = [generate_hole(i + 1, par, rng=rng, wind=wind) for i, par in enumerate(pars)]
    else:
        holes = [generate_hole(i, rng=rng, wind=wind) for i in range(1, count + 1)]

    logger.debug("Generated %d holes: pars %s", count, [h.par for h in holes])
    return holes


def holes_from_layout(rows: Iterable) -> list[Hole]:
    """
    Fresh, unplayed holes from a fixed layout.

    Rows may be dicts or objects (saved course holes) carrying hole_number or
    number, par, yardage, hazard, hazard_type, wind_speed and wind_dir or
    wind_direction.
    """
    holes = []
    for idx, row in enumerate(rows, start=1):
        data = row if isinstance(row, dict) else row.model_dump()
        validate_layout_row(data)
        holes.append(
            Hole(
                number=data.get("hole_number") or data.get("number") or idx,
                par=data["par"],
                yardage=int(data["yardage"]),
                hazard=data.get("hazard"),
                hazard_type=data.get("hazard_type"),
                wind_speed=data.get("wind_speed") or 0,
                wind_direction=data.get("wind_dir") or data.get("wind_direction") or CALM,
            )
        )
    return holes
