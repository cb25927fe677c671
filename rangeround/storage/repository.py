"""Record CRUD for rounds, holes, shots, profiles and courses.

Rows are keyed the way the round session knows them: by round id and hole
number. The store never decides anything about scoring; it only mirrors what
the session already applied in memory.
"""

import datetime as dt
import logging
import secrets
import string
from typing import Optional

from sqlmodel import col, select

from rangeround.constants import DEFAULT_BAG
from rangeround.engine.models import Hole, MulliganEvent, Round, Shot
from rangeround.errors import NotFoundError
from rangeround.storage.database import (
    ClubInBag,
    Course,
    CourseHole,
    CourseParticipant,
    HoleRecord,
    MulliganRecord,
    Profile,
    RoundRecord,
    ShotRecord,
    get_session,
    utcnow,
)

logger = logging.getLogger(__name__)

SHARE_CODE_ALPHABET = string.ascii_uppercase + string.digits
SHARE_CODE_LENGTH = 8


def generate_share_code() -> str:
    return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(SHARE_CODE_LENGTH))


def _shot_from_record(rec: ShotRecord) -> Shot:
    return Shot(
        club=rec.club,
        input_distance=rec.input_distance,
        input_direction=rec.input_direction,
        final_distance=rec.final_distance,
        remaining_distance=rec.remaining_distance,
        penalty_strokes=rec.penalty_strokes,
        distance_penalty=rec.distance_penalty,
        hit_hazard=rec.hit_hazard,
    )


class RoundStore:
    def __init__(self, engine=None):
        self.engine = engine

    def _session(self):
        return get_session(self.engine)

    def _hole_record(self, session, round_id: int, hole_number: int) -> HoleRecord:
        hole = session.exec(
            select(HoleRecord)
            .where(HoleRecord.round_id == round_id)
            .where(HoleRecord.hole_number == hole_number)
        ).first()
        if hole is None:
            raise NotFoundError(f"Hole {hole_number} of round {round_id} not found")
        return hole

    # ------------------------------------------------------------------
    # Profiles & clubs
    # ------------------------------------------------------------------
    def create_profile(self, name: str = "Golfer", with_default_bag: bool = True) -> Profile:
        with self._session() as session:
            profile = Profile(name=name)
            session.add(profile)
            session.commit()
            session.refresh(profile)
            if with_default_bag:
                for club_type, club_name, yardage in DEFAULT_BAG:
                    session.add(ClubInBag(
                        profile_id=profile.id,
                        club_type=club_type,
                        club_name=club_name,
                        yardage=yardage,
                    ))
                session.commit()
                session.refresh(profile)
            logger.info("Created profile %s (%s)", profile.id, name)
            return profile

    def get_profile(self, profile_id: int) -> Optional[Profile]:
        with self._session() as session:
            return session.get(Profile, profile_id)

    def ensure_profile(self) -> Profile:
        """Most recent profile, or a fresh "Golfer" with the default bag."""
        with self._session() as session:
            profile = session.exec(
                select(Profile).order_by(col(Profile.created_at).desc(), col(Profile.id).desc())
            ).first()
        if profile is not None:
            if not self.list_clubs(profile.id):
                self.add_default_clubs(profile.id)
            return profile
        return self.create_profile()

    def update_profile(self, profile_id: int, name: str) -> Profile:
        with self._session() as session:
            profile = session.get(Profile, profile_id)
            if profile is None:
                raise NotFoundError(f"Profile {profile_id} not found")
            profile.name = name
            profile.updated_at = utcnow()
            session.add(profile)
            session.commit()
            session.refresh(profile)
            return profile

    def add_default_clubs(self, profile_id: int) -> list[ClubInBag]:
        for club_type, club_name, yardage in DEFAULT_BAG:
            self.add_club(profile_id, club_type, club_name, yardage)
        return self.list_clubs(profile_id)

    def list_clubs(self, profile_id: int) -> list[ClubInBag]:
        with self._session() as session:
            return list(session.exec(
                select(ClubInBag)
                .where(ClubInBag.profile_id == profile_id)
                .order_by(ClubInBag.created_at, ClubInBag.id)
            ).all())

    def add_club(self, profile_id: int, club_type: str, club_name: str, yardage: float) -> ClubInBag:
        with self._session() as session:
            club = ClubInBag(profile_id=profile_id, club_type=club_type, club_name=club_name, yardage=yardage)
            session.add(club)
            session.commit()
            session.refresh(club)
            return club

    def update_club(self, club_id: int, yardage: float) -> ClubInBag:
        with self._session() as session:
            club = session.get(ClubInBag, club_id)
            if club is None:
                raise NotFoundError(f"Club {club_id} not found")
            club.yardage = yardage
            session.add(club)
            session.commit()
            session.refresh(club)
            return club

    def delete_club(self, club_id: int) -> bool:
        with self._session() as session:
            club = session.get(ClubInBag, club_id)
            if club is None:
                return False
            session.delete(club)
            session.commit()
            return True

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------
    def _add_shot(self, session, hole_id: int, shot_order: int, shot: Shot) -> ShotRecord:
        rec = ShotRecord(
            hole_id=hole_id,
            shot_order=shot_order,
            club=shot.club,
            input_distance=shot.input_distance,
            input_direction=shot.input_direction,
            final_distance=shot.final_distance,
            remaining_distance=shot.remaining_distance,
            penalty_strokes=shot.penalty_strokes,
            distance_penalty=shot.distance_penalty,
            hit_hazard=shot.hit_hazard,
        )
        session.add(rec)
        return rec

    def _add_mulligan(self, session, hole_id: int, event: MulliganEvent) -> None:
        session.add(MulliganRecord(
            hole_id=hole_id,
            shot_order=event.shot_order,
            club=event.shot.club,
            input_distance=event.shot.input_distance,
            input_direction=event.shot.input_direction,
        ))

    def create_round(self, round_obj: Round) -> int:
        """
        Insert the round with everything it holds in memory: holes, shots,
        mulligan log and, for a course round, the participant row.

        It is one transaction. round_obj.id is set only after the commit, so a
        failed write leaves the round unstored and the next attempt starts over.
        """
        with self._session() as session:
            rec = RoundRecord(
                profile_id=round_obj.profile_id,
                course_id=round_obj.course_id,
                hole_count=len(round_obj.holes),
                current_hole_index=round_obj.current_hole_index,
                is_round_complete=round_obj.is_round_complete,
                mulligans_allowed=round_obj.mulligans_allowed,
                mulligans_used=round_obj.mulligans_used,
                total_score=round_obj.total_score,
            )
            session.add(rec)
            session.flush()

            hole_ids = {}
            for hole in round_obj.holes:
                hole_rec = HoleRecord(
                    round_id=rec.id,
                    hole_number=hole.number,
                    par=hole.par,
                    yardage=hole.yardage,
                    hazard=hole.hazard,
                    hazard_type=hole.hazard_type,
                    wind_speed=hole.wind_speed,
                    wind_dir=hole.wind_direction,
                    putts=hole.putts,
                    is_complete=hole.is_complete,
                )
                session.add(hole_rec)
                session.flush()
                hole_ids[hole.number] = hole_rec.id
                for order, shot in enumerate(hole.shots):
                    self._add_shot(session, hole_rec.id, order, shot)

            for event in round_obj.mulligans:
                self._add_mulligan(session, hole_ids[event.hole_number], event)

            if round_obj.course_id is not None:
                self._touch(session, round_obj.course_id, round_obj.profile_id, round_id=rec.id)

            round_id = rec.id
            session.commit()

        round_obj.id = round_id
        return round_id

    def update_round(self, round_obj: Round) -> None:
        """Write round progress and every hole's putts/completion from memory."""
        with self._session() as session:
            rec = session.get(RoundRecord, round_obj.id)
            if rec is None:
                raise NotFoundError(f"Round {round_obj.id} not found")
            rec.current_hole_index = round_obj.current_hole_index
            rec.is_round_complete = round_obj.is_round_complete
            rec.total_score = round_obj.total_score
            rec.mulligans_used = round_obj.mulligans_used
            rec.updated_at = utcnow()
            session.add(rec)

            by_number = {h.number: h for h in round_obj.holes}
            for hole_rec in session.exec(select(HoleRecord).where(HoleRecord.round_id == rec.id)).all():
                hole = by_number.get(hole_rec.hole_number)
                if hole is None:
                    continue
                hole_rec.putts = hole.putts
                hole_rec.is_complete = hole.is_complete
                session.add(hole_rec)
            session.commit()

    def insert_shot(self, round_id: int, hole_number: int, shot_order: int, shot: Shot) -> int:
        with self._session() as session:
            hole = self._hole_record(session, round_id, hole_number)
            rec = self._add_shot(session, hole.id, shot_order, shot)
            session.commit()
            session.refresh(rec)
            return rec.id

    def delete_last_shot(self, round_id: int, hole_number: int) -> bool:
        """Drop the hole's highest-ordered shot, if any."""
        with self._session() as session:
            hole = self._hole_record(session, round_id, hole_number)
            last = session.exec(
                select(ShotRecord)
                .where(ShotRecord.hole_id == hole.id)
                .order_by(col(ShotRecord.shot_order).desc())
                .limit(1)
            ).first()
            if last is None:
                return False
            session.delete(last)
            session.commit()
            return True

    def record_mulligan(self, round_id: int, event: MulliganEvent) -> None:
        with self._session() as session:
            hole = self._hole_record(session, round_id, event.hole_number)
            self._add_mulligan(session, hole.id, event)
            session.commit()

    def _round_from_record(self, session, rec: RoundRecord) -> Round:
        holes_recs = session.exec(
            select(HoleRecord).where(HoleRecord.round_id == rec.id).order_by(HoleRecord.hole_number)
        ).all()
        holes = []
        mulligans = []
        for h in holes_recs:
            shots = session.exec(
                select(ShotRecord).where(ShotRecord.hole_id == h.id).order_by(ShotRecord.shot_order)
            ).all()
            holes.append(Hole(
                number=h.hole_number,
                par=h.par,
                yardage=h.yardage,
                hazard=h.hazard,
                hazard_type=h.hazard_type,
                wind_speed=h.wind_speed,
                wind_direction=h.wind_dir,
                shots=[_shot_from_record(s) for s in shots],
                putts=h.putts,
                is_complete=h.is_complete,
            ))
            for m in session.exec(select(MulliganRecord).where(MulliganRecord.hole_id == h.id)).all():
                mulligans.append(MulliganEvent(
                    hole_number=h.hole_number,
                    shot_order=m.shot_order,
                    shot=Shot(
                        club=m.club,
                        input_distance=m.input_distance,
                        input_direction=m.input_direction,
                        final_distance=0,
                        remaining_distance=0,
                    ),
                ))
        return Round(
            holes=holes,
            mulligans_allowed=rec.mulligans_allowed,
            mulligans_used=rec.mulligans_used,
            current_hole_index=rec.current_hole_index,
            is_round_complete=rec.is_round_complete,
            total_score=rec.total_score,
            id=rec.id,
            profile_id=rec.profile_id,
            course_id=rec.course_id,
            mulligans=mulligans,
        )

    def load_round(self, round_id: int) -> Round:
        with self._session() as session:
            rec = session.get(RoundRecord, round_id)
            if rec is None:
                raise NotFoundError(f"Round {round_id} not found")
            return self._round_from_record(session, rec)

    def load_rounds(self, profile_id: int) -> list[Round]:
        """All of a profile's rounds, newest first."""
        with self._session() as session:
            recs = session.exec(
                select(RoundRecord)
                .where(RoundRecord.profile_id == profile_id)
                .order_by(col(RoundRecord.created_at).desc(), col(RoundRecord.id).desc())
            ).all()
            return [self._round_from_record(session, r) for r in recs]

    def round_history(self, profile_id: int) -> list[tuple[RoundRecord, Round]]:
        """(record, round) pairs newest first; the record carries the timestamps."""
        with self._session() as session:
            recs = session.exec(
                select(RoundRecord)
                .where(RoundRecord.profile_id == profile_id)
                .order_by(col(RoundRecord.created_at).desc(), col(RoundRecord.id).desc())
            ).all()
            return [(r, self._round_from_record(session, r)) for r in recs]

    def delete_round(self, round_id: int) -> bool:
        """Remove a round with its holes, shots and mulligan log."""
        with self._session() as session:
            rec = session.get(RoundRecord, round_id)
            if rec is None:
                return False
            for hole in session.exec(select(HoleRecord).where(HoleRecord.round_id == round_id)).all():
                for shot in session.exec(select(ShotRecord).where(ShotRecord.hole_id == hole.id)).all():
                    session.delete(shot)
                for m in session.exec(select(MulliganRecord).where(MulliganRecord.hole_id == hole.id)).all():
                    session.delete(m)
                session.delete(hole)
            for p in session.exec(select(CourseParticipant).where(CourseParticipant.round_id == round_id)).all():
                p.round_id = None
                session.add(p)
            session.delete(rec)
            session.commit()
            logger.info("Deleted round %s", round_id)
            return True

    def best_rounds(self, profile_id: int, limit: int = 5) -> list[RoundRecord]:
        with self._session() as session:
            return list(session.exec(
                select(RoundRecord)
                .where(RoundRecord.profile_id == profile_id)
                .where(RoundRecord.is_round_complete == True)  # noqa: E712
                .where(col(RoundRecord.total_score).is_not(None))
                .order_by(RoundRecord.total_score)
                .limit(limit)
            ).all())

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    def save_course(self, profile_id: int, round_obj: Round, name: str,
                    description: Optional[str] = None) -> Course:
        """Keep a round's layout (not its scores) as a reusable course."""
        with self._session() as session:
            course = Course(
                profile_id=profile_id,
                name=name,
                description=description,
                hole_count=len(round_obj.holes),
            )
            session.add(course)
            session.commit()
            session.refresh(course)
            for hole in round_obj.holes:
                session.add(CourseHole(
                    course_id=course.id,
                    hole_number=hole.number,
                    par=hole.par,
                    yardage=hole.yardage,
                    hazard=hole.hazard,
                    hazard_type=hole.hazard_type,
                    wind_speed=hole.wind_speed,
                    wind_dir=hole.wind_direction,
                ))
            session.commit()
            session.refresh(course)
            logger.info("Saved course %s (%s)", course.id, name)
            return course

    def list_courses(self, profile_id: int) -> list[Course]:
        with self._session() as session:
            return list(session.exec(
                select(Course)
                .where(Course.profile_id == profile_id)
                .order_by(col(Course.created_at).desc())
            ).all())

    def course_holes(self, course_id: int) -> list[CourseHole]:
        with self._session() as session:
            if session.get(Course, course_id) is None:
                raise NotFoundError(f"Course {course_id} not found")
            return list(session.exec(
                select(CourseHole)
                .where(CourseHole.course_id == course_id)
                .order_by(CourseHole.hole_number)
            ).all())

    def delete_course(self, course_id: int) -> bool:
        with self._session() as session:
            course = session.get(Course, course_id)
            if course is None:
                return False
            for hole in session.exec(select(CourseHole).where(CourseHole.course_id == course_id)).all():
                session.delete(hole)
            for p in session.exec(
                select(CourseParticipant).where(CourseParticipant.course_id == course_id)
            ).all():
                session.delete(p)
            session.delete(course)
            session.commit()
            return True

    def share_course(self, course_id: int, profile_id: int) -> str:
        with self._session() as session:
            course = session.get(Course, course_id)
            if course is None:
                raise NotFoundError(f"Course {course_id} not found")
            if not course.share_code:
                course.share_code = generate_share_code()
            course.is_shared = True
            course.updated_at = utcnow()
            session.add(course)
            session.commit()
            share_code = course.share_code
        self.touch_participant(course_id, profile_id)
        return share_code

    def join_shared_course(self, share_code: str, profile_id: int) -> Optional[int]:
        with self._session() as session:
            course = session.exec(
                select(Course)
                .where(Course.share_code == share_code)
                .where(Course.is_shared == True)  # noqa: E712
            ).first()
            if course is None:
                return None
            course_id = course.id
        self.touch_participant(course_id, profile_id)
        return course_id

    def _touch(self, session, course_id: int, profile_id: int, round_id: Optional[int] = None) -> None:
        participant = session.exec(
            select(CourseParticipant)
            .where(CourseParticipant.course_id == course_id)
            .where(CourseParticipant.profile_id == profile_id)
        ).first()
        if participant is None:
            participant = CourseParticipant(course_id=course_id, profile_id=profile_id)
        if round_id is not None:
            participant.round_id = round_id
        participant.last_active_at = utcnow()
        session.add(participant)

    def touch_participant(self, course_id: int, profile_id: int, round_id: Optional[int] = None) -> None:
        """Upsert on (course, profile): bump last_active_at and attach a round if given."""
        with self._session() as session:
            self._touch(session, course_id, profile_id, round_id)
            session.commit()

    def active_participants(self, course_id: int, since: dt.datetime) -> list[tuple[CourseParticipant, str]]:
        with self._session() as session:
            rows = session.exec(
                select(CourseParticipant, Profile)
                .join(Profile, Profile.id == CourseParticipant.profile_id)
                .where(CourseParticipant.course_id == course_id)
                .where(CourseParticipant.last_active_at >= since)
                .order_by(col(CourseParticipant.last_active_at).desc())
            ).all()
            return [(p, profile.name) for p, profile in rows]

    def course_rounds(self, course_id: int) -> list[tuple[str, Round]]:
        """(player name, round) for every participant that has a round on the course."""
        with self._session() as session:
            rows = session.exec(
                select(CourseParticipant, Profile, RoundRecord)
                .join(Profile, Profile.id == CourseParticipant.profile_id)
                .join(RoundRecord, RoundRecord.id == CourseParticipant.round_id)
                .where(CourseParticipant.course_id == course_id)
            ).all()
            return [(profile.name, self._round_from_record(session, rec)) for _, profile, rec in rows]
