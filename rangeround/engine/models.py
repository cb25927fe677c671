from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from rangeround.constants import CALM


class RoundState(str, Enum):
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETE = "Complete"


class HolePhase(str, Enum):
    PLAYING = "Playing"
    ON_GREEN = "OnGreen"
    HOLE_COMPLETE = "HoleComplete"


@dataclass(frozen=True)
class ShotResult:
    final_distance: int
    remaining_distance: int
    penalty_strokes: int
    distance_penalty: int
    hit_hazard: bool


@dataclass(frozen=True)
class Shot:
    club: str
    input_distance: float
    input_direction: str
    final_distance: int
    remaining_distance: int
    penalty_strokes: int = 0
    distance_penalty: int = 0
    hit_hazard: bool = False

    @property
    def strokes(self) -> int:
        return 1 + self.penalty_strokes


@dataclass
class Hole:
    number: int
    par: int
    yardage: int
    hazard: Optional[str] = None
    hazard_type: Optional[str] = None
    wind_speed: int = 0
    wind_direction: str = CALM
    shots: list[Shot] = field(default_factory=list)
    putts: int = 0
    is_complete: bool = False

    @property
    def distance_to_target(self) -> int:
        if not self.shots:
            return self.yardage
        return self.shots[-1].remaining_distance

    def append_shot(self, shot: Shot) -> None:
        self.shots.append(shot)

    def remove_last_shot(self) -> Optional[Shot]:
        """Pop the tail of the shot log; shots are never removed from the middle."""
        if not self.shots:
            return None
        return self.shots.pop()


@dataclass(frozen=True)
class MulliganEvent:
    hole_number: int
    shot_order: int
    shot: Shot


@dataclass
class Round:
    holes: list[Hole]
    mulligans_allowed: int = 2
    mulligans_used: int = 0
    current_hole_index: int = 0
    is_round_complete: bool = False
    total_score: Optional[int] = None
    id: Optional[int] = None
    profile_id: Optional[int] = None
    course_id: Optional[int] = None
    mulligans: list[MulliganEvent] = field(default_factory=list)

    @property
    def current_hole(self) -> Optional[Hole]:
        if not self.holes:
            return None
        return self.holes[self.current_hole_index]


@dataclass(frozen=True)
class HoleStats:
    strokes: int
    score: int
    score_name: str


@dataclass(frozen=True)
class RoundStats:
    total_strokes: int
    total_par: int
    score: int
    completed_holes: int
