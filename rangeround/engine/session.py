"""
Round state machine.

A RoundSession owns exactly one Round. Every mutation goes through the methods
below; calls made out of order (no round, hole already finished, round over,
no mulligans left) are ignored rather than raised, so UI layers can fire
them freely.

Persistence is delegated to an optional recorder. The in-memory round is
updated first and the recorder is told afterwards, so a failing store can
never leave the session half-applied.
"""

import logging
import random
from typing import Optional, Sequence

from rangeround.constants import ON_GREEN_YARDS
from rangeround.engine import scoring
from rangeround.engine.course import generate_holes
from rangeround.engine.models import (
    Hole,
    HolePhase,
    HoleStats,
    MulliganEvent,
    Round,
    RoundState,
    RoundStats,
    Shot,
)
from rangeround.engine.shots import resolve_shot
from rangeround.errors import NoActiveProfileError, ValidationError

logger = logging.getLogger(__name__)


class RoundSession:
    def __init__(self, round_obj: Optional[Round] = None, recorder=None):
        self.round = round_obj
        self.recorder = recorder

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------
    @property
    def state(self) -> RoundState:
        if self.round is None:
            return RoundState.NOT_STARTED
        if self.round.is_round_complete:
            return RoundState.COMPLETE
        return RoundState.IN_PROGRESS

    def current_hole(self) -> Optional[Hole]:
        if self.round is None:
            return None
        return self.round.current_hole

    def current_distance(self) -> Optional[int]:
        hole = self.current_hole()
        return hole.distance_to_target if hole else None

    def hole_phase(self) -> Optional[HolePhase]:
        hole = self.current_hole()
        if hole is None:
            return None
        if hole.is_complete:
            return HolePhase.HOLE_COMPLETE
        if hole.distance_to_target <= ON_GREEN_YARDS:
            return HolePhase.ON_GREEN
        return HolePhase.PLAYING

    def hole_stats(self, index: int) -> HoleStats:
        if self.round is None:
            return scoring.EMPTY_HOLE_STATS
        return scoring.hole_stats(self.round, index)

    def round_stats(self) -> RoundStats:
        if self.round is None:
            return RoundStats(total_strokes=0, total_par=0, score=0, completed_holes=0)
        return scoring.round_stats(self.round)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _playable_hole(self, action: str) -> Optional[Hole]:
        hole = self.current_hole()
        if hole is None or self.round.is_round_complete or hole.is_complete:
            logger.debug("Ignoring %s: no playable hole", action)
            return None
        return hole

    def _notify(self, event: str, *args) -> None:
        if self.recorder is not None:
            getattr(self.recorder, event)(self.round, *args)

    def record_shot(self, club: str, distance: float, direction: str) -> Optional[Shot]:
        hole = self._playable_hole("record_shot")
        if hole is None:
            return None

        result = resolve_shot(
            distance,
            direction,
            hole.distance_to_target,
            hole.hazard,
            hole.hazard_type,
            hole.wind_speed,
            hole.wind_direction,
        )
        shot = Shot(
            club=club,
            input_distance=distance,
            input_direction=direction,
            final_distance=result.final_distance,
            remaining_distance=result.remaining_distance,
            penalty_strokes=result.penalty_strokes,
            distance_penalty=result.distance_penalty,
            hit_hazard=result.hit_hazard,
        )
        hole.append_shot(shot)
        self._notify("shot_recorded", hole, shot, len(hole.shots) - 1)
        return shot

    def undo_last_shot(self) -> Optional[Shot]:
        hole = self._playable_hole("undo_last_shot")
        if hole is None or not hole.shots:
            return None
        shot = hole.remove_last_shot()
        self._notify("shot_removed", hole)
        return shot

    def use_mulligan(self) -> Optional[Shot]:
        hole = self._playable_hole("use_mulligan")
        if hole is None or not hole.shots:
            return None
        if self.round.mulligans_used >= self.round.mulligans_allowed:
            logger.debug("Ignoring use_mulligan: %d of %d used",
                         self.round.mulligans_used, self.round.mulligans_allowed)
            return None

        shot_order = len(hole.shots) - 1
        shot = hole.remove_last_shot()
        event = MulliganEvent(hole_number=hole.number, shot_order=shot_order, shot=shot)
        self.round.mulligans_used += 1
        self.round.mulligans.append(event)
        self._notify("mulligan_used", hole, event)
        return shot

    def finish_hole(self, putts: int) -> bool:
        hole = self._playable_hole("finish_hole")
        if hole is None:
            return False
        hole.putts = putts
        hole.is_complete = True
        self._advance()
        self._notify("hole_finished", hole)
        return True

    def skip_hole(self) -> bool:
        """Move on without holing out; the skipped hole stays incomplete and unscored."""
        hole = self._playable_hole("skip_hole")
        if hole is None:
            return False
        self._advance()
        self._notify("hole_skipped", hole)
        return True

    def _advance(self) -> None:
        next_index = self.round.current_hole_index + 1
        if next_index >= len(self.round.holes):
            self.round.is_round_complete = True
            self.round.total_score = scoring.total_score(self.round)
            logger.info("Round %s complete: %d strokes", self.round.id, self.round.total_score)
        else:
            self.round.current_hole_index = next_index


def start_round(
    profile_id,
    hole_count: int = 18,
    holes: Optional[Sequence[Hole]] = None,
    mulligans_allowed: int = 2,
    rng: Optional[random.Random] = None,
    wind: Optional[tuple[int, str]] = None,
    course_id: Optional[int] = None,
    recorder=None,
) -> RoundSession:
    """
    Open a new round for a profile.

    A fixed layout in ``holes`` wins over ``hole_count``; otherwise holes are
    generated with the given rng.
    """
    if not profile_id:
        raise NoActiveProfileError("A profile is required to start a round")
    if mulligans_allowed < 0:
        raise ValidationError("mulligans_allowed", "Mulligans allowed can't be negative")

    if holes is not None:
        holes = list(holes)
        if not holes:
            raise ValidationError("holes", "Layout has no holes")
    else:
        holes = generate_holes(hole_count, rng=rng, wind=wind)

    round_obj = Round(
        holes=holes,
        mulligans_allowed=mulligans_allowed,
        profile_id=profile_id,
        course_id=course_id,
    )
    session = RoundSession(round_obj, recorder=recorder)
    session._notify("round_started")
    logger.info("Started %d-hole round for profile %s", len(holes), profile_id)
    return session
