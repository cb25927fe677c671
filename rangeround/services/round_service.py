import logging
import random
from functools import lru_cache
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from rangeround.config import settings
from rangeround.engine.course import holes_from_layout
from rangeround.engine.models import Hole, MulliganEvent, Round, Shot
from rangeround.engine.session import RoundSession, start_round
from rangeround.engine.validation import (
    validate_club,
    validate_course_name,
    validate_direction,
    validate_distance,
    validate_hole_count,
    validate_putts,
)
from rangeround.errors import NotFoundError
from rangeround.services.bag import suggest_club
from rangeround.storage.database import Course
from rangeround.storage.offline import OfflineQueue, sync_offline_shots
from rangeround.storage.repository import RoundStore

logger = logging.getLogger(__name__)

PERSISTENCE_ERRORS = (SQLAlchemyError, OSError)


class RoundRecorder:
    """
    Mirrors a session's changes into the store.

    Memory has already been updated when these hooks run. Any store failure is
    logged, the round snapshot is backed up locally, and shot inserts/undos are
    queued for a later sync. Nothing here raises back into the session.
    """

    def __init__(self, store: RoundStore, offline: OfflineQueue):
        self.store = store
        self.offline = offline

    def _mirror(self, round_obj: Round, action: str, write: Callable[[], object]) -> bool:
        try:
            if round_obj.id is None:
                self.store.create_round(round_obj)
                logger.info("Round %s written to store", round_obj.id)
            else:
                write()
        except PERSISTENCE_ERRORS as e:
            logger.warning(f"Could not store {action} for round {round_obj.id}: {e}")
            self._backup(round_obj)
            return False
        self._heartbeat(round_obj)
        return True

    def _heartbeat(self, round_obj: Round) -> None:
        """Keep a course player listed as active while they log the round."""
        if round_obj.course_id is None:
            return
        try:
            self.store.touch_participant(round_obj.course_id, round_obj.profile_id)
        except PERSISTENCE_ERRORS as e:
            logger.warning(f"Could not mark profile {round_obj.profile_id} active on course {round_obj.course_id}: {e}")

    def _backup(self, round_obj: Round) -> None:
        try:
            self.offline.save_round(round_obj)
        except OSError as e:
            logger.error(f"Offline backup failed: {e}")

    def round_started(self, round_obj: Round) -> None:
        self._mirror(round_obj, "round start", lambda: None)

    def shot_recorded(self, round_obj: Round, hole: Hole, shot: Shot, shot_order: int) -> None:
        stored = self._mirror(
            round_obj,
            "shot",
            lambda: self.store.insert_shot(round_obj.id, hole.number, shot_order, shot),
        )
        if not stored and round_obj.id is not None:
            self.offline.queue_shot(round_obj.id, hole.number, shot_order, shot)

    def shot_removed(self, round_obj: Round, hole: Hole) -> None:
        if round_obj.id is not None and self.offline.drop_shot(round_obj.id, hole.number, len(hole.shots)):
            return
        stored = self._mirror(
            round_obj,
            "undo",
            lambda: self.store.delete_last_shot(round_obj.id, hole.number),
        )
        if not stored and round_obj.id is not None:
            self.offline.queue_undo(round_obj.id, hole.number)

    def mulligan_used(self, round_obj: Round, hole: Hole, event: MulliganEvent) -> None:
        was_stored = round_obj.id is not None
        self.shot_removed(round_obj, hole)
        if not was_stored and round_obj.id is not None:
            # written from memory just now, mulligan log included
            return

        def write():
            self.store.record_mulligan(round_obj.id, event)
            self.store.update_round(round_obj)

        self._mirror(round_obj, "mulligan", write)

    def hole_finished(self, round_obj: Round, hole: Hole) -> None:
        self._mirror(round_obj, f"hole {hole.number}", lambda: self.store.update_round(round_obj))

    def hole_skipped(self, round_obj: Round, hole: Hole) -> None:
        self._mirror(round_obj, f"skip of hole {hole.number}", lambda: self.store.update_round(round_obj))

    def resync(self, round_obj: Round) -> bool:
        return self._mirror(round_obj, "resync", lambda: self.store.update_round(round_obj))


class RoundService:
    """
    One active RoundSession per profile, with input validation in front of the
    engine and a recorder behind it.
    """

    def __init__(
        self,
        store: Optional[RoundStore] = None,
        offline: Optional[OfflineQueue] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store or RoundStore()
        self.offline = offline or OfflineQueue()
        self.recorder = RoundRecorder(self.store, self.offline)
        self.rng = rng
        self.sessions: dict[int, RoundSession] = {}

    def session_for(self, profile_id: int) -> RoundSession:
        """The profile's session; an empty one (no round) if nothing is active."""
        return self.sessions.get(profile_id) or RoundSession(recorder=self.recorder)

    def start_round(
        self,
        profile_id: int,
        hole_count: int = 18,
        course_id: Optional[int] = None,
        mulligans_allowed: Optional[int] = None,
        wind: Optional[tuple[int, str]] = None,
    ) -> RoundSession:
        holes = None
        if course_id is not None:
            holes = holes_from_layout(self.store.course_holes(course_id))
        else:
            validate_hole_count(hole_count)

        if mulligans_allowed is None:
            mulligans_allowed = settings.default_mulligans

        session = start_round(
            profile_id,
            hole_count,
            holes=holes,
            mulligans_allowed=mulligans_allowed,
            rng=self.rng,
            wind=wind,
            course_id=course_id,
            recorder=self.recorder,
        )
        self.sessions[profile_id] = session
        return session

    def resume_round(self, profile_id: int, round_id: int) -> RoundSession:
        session = RoundSession(self.store.load_round(round_id), recorder=self.recorder)
        self.sessions[profile_id] = session
        logger.info("Resumed round %s for profile %s", round_id, profile_id)
        return session

    def end_session(self, profile_id: int) -> None:
        self.sessions.pop(profile_id, None)

    def record_shot(self, profile_id: int, club: str, distance: float, direction: str) -> Optional[Shot]:
        validate_club(club)
        validate_distance(distance)
        validate_direction(direction)
        return self.session_for(profile_id).record_shot(club, distance, direction)

    def undo_last_shot(self, profile_id: int) -> Optional[Shot]:
        return self.session_for(profile_id).undo_last_shot()

    def use_mulligan(self, profile_id: int) -> Optional[Shot]:
        return self.session_for(profile_id).use_mulligan()

    def finish_hole(self, profile_id: int, putts: int) -> bool:
        putts = validate_putts(putts)
        return self.session_for(profile_id).finish_hole(putts)

    def skip_hole(self, profile_id: int) -> bool:
        return self.session_for(profile_id).skip_hole()

    def suggested_club(self, profile_id: int, distance: Optional[float] = None) -> Optional[str]:
        if distance is None:
            distance = self.session_for(profile_id).current_distance()
            if distance is None:
                return None
        return suggest_club(self.store.list_clubs(profile_id), distance)

    def save_current_course(self, profile_id: int, name: str, description: Optional[str] = None) -> Optional[Course]:
        session = self.session_for(profile_id)
        if session.round is None:
            return None
        name = validate_course_name(name)
        return self.store.save_course(profile_id, session.round, name, description)

    def _replay(self, entry: dict) -> None:
        if entry.get("op") == "delete_last":
            self.store.delete_last_shot(entry["round_id"], entry["hole_number"])
            return
        shot = Shot(
            club=entry["club"],
            input_distance=entry["input_distance"],
            input_direction=entry["input_direction"],
            final_distance=entry["final_distance"],
            remaining_distance=entry["remaining_distance"],
            penalty_strokes=entry["penalty_strokes"],
            distance_penalty=entry["distance_penalty"],
            hit_hazard=entry["hit_hazard"],
        )
        self.store.insert_shot(entry["round_id"], entry["hole_number"], entry["shot_order"], shot)

    def _restore_backup(self) -> bool:
        """Write a round left behind by an earlier process, unless it is still live here."""
        try:
            round_obj = self.offline.restore_round()
        except (KeyError, TypeError) as e:
            logger.error(f"Unreadable round backup, leaving it in place: {e}")
            return False
        if round_obj is None:
            return True
        live = self.sessions.get(round_obj.profile_id)
        if live is not None and live.round is not None:
            return True
        try:
            if round_obj.id is None:
                self.store.create_round(round_obj)
                logger.info("Round backup written to store as round %s", round_obj.id)
            else:
                self.store.update_round(round_obj)
                logger.info("Round %s restored from backup", round_obj.id)
        except NotFoundError as e:
            logger.warning(f"Dropping backup of a round no longer stored: {e}")
        except PERSISTENCE_ERRORS as e:
            logger.warning(f"Could not restore round backup: {e}")
            return False
        return True

    def sync(self) -> bool:
        """
        Replay the offline queue, then write any round backup from an earlier
        process and every active round's state again.
        """
        if not sync_offline_shots(self.offline, self._replay):
            return False
        if not self._restore_backup():
            return False
        synced = all(
            self.recorder.resync(session.round)
            for session in self.sessions.values()
            if session.round is not None
        )
        if synced:
            self.offline.clear_round()
        return synced

    def delete_round(self, round_id: int) -> bool:
        """Remove a stored round; any session still logging it is ended."""
        for profile_id, session in list(self.sessions.items()):
            if session.round is not None and session.round.id == round_id:
                self.end_session(profile_id)
        return self.store.delete_round(round_id)


@lru_cache
def get_round_service() -> RoundService:
    """Process-wide service shared by the API and the bot."""
    return RoundService()
