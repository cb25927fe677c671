import datetime as dt

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from rangeround.engine.models import RoundState
from rangeround.errors import NotFoundError, ValidationError
from rangeround.services import stats_service
from rangeround.services.bag import suggest_club
from rangeround.services.round_service import RoundService
from rangeround.storage.database import CourseParticipant, utcnow
from rangeround.storage.offline import OfflineQueue
from rangeround.storage.repository import RoundStore


class FlakyStore(RoundStore):
    """
    A store whose round writes fail while ``down`` is set.

    ``shot_failures`` makes that many shot inserts fail; ``row_failures`` does
    the same for shot rows written inside any transaction, create_round's
    included.
    """

    down = False
    shot_failures = 0
    row_failures = 0

    def _check(self):
        if self.down:
            raise OperationalError("write", {}, Exception("database is unavailable"))

    def _add_shot(self, session, hole_id, shot_order, shot):
        if self.row_failures:
            self.row_failures -= 1
            raise OperationalError("insert", {}, Exception("disk I/O error"))
        return super()._add_shot(session, hole_id, shot_order, shot)

    def create_round(self, round_obj):
        self._check()
        return super().create_round(round_obj)

    def update_round(self, round_obj):
        self._check()
        return super().update_round(round_obj)

    def insert_shot(self, round_id, hole_number, shot_order, shot):
        self._check()
        if self.shot_failures:
            self.shot_failures -= 1
            raise OperationalError("insert", {}, Exception("database is locked"))
        return super().insert_shot(round_id, hole_number, shot_order, shot)

    def delete_last_shot(self, round_id, hole_number):
        self._check()
        return super().delete_last_shot(round_id, hole_number)

    def record_mulligan(self, round_id, event):
        self._check()
        return super().record_mulligan(round_id, event)


@pytest.fixture
def flaky_store(db_engine):
    return FlakyStore(engine=db_engine)


@pytest.fixture
def flaky_service(flaky_store, offline):
    return RoundService(store=flaky_store, offline=offline)


def _stored_clubs(store, round_id, hole_index=0):
    return [s.club for s in store.load_round(round_id).holes[hole_index].shots]


def test_start_round_is_stored(service, profile):
    session = service.start_round(profile.id, 9)

    assert session.state == RoundState.IN_PROGRESS
    assert len(session.round.holes) == 9
    assert session.round.id is not None
    assert service.session_for(profile.id) is session
    assert len(service.store.load_round(session.round.id).holes) == 9


def test_start_round_rejects_bad_hole_count(service, profile):
    with pytest.raises(ValidationError):
        service.start_round(profile.id, 12)


def test_default_mulligans_come_from_settings(service, profile):
    assert service.start_round(profile.id, 3).round.mulligans_allowed == 2
    assert service.start_round(profile.id, 3, mulligans_allowed=0).round.mulligans_allowed == 0


def test_session_for_unknown_profile_is_empty(service):
    session = service.session_for(999)
    assert session.round is None
    assert service.record_shot(999, "Driver", 200, "Middle") is None


def test_record_shot_validates_input(service, profile):
    service.start_round(profile.id, 3)
    with pytest.raises(ValidationError) as exc:
        service.record_shot(profile.id, "Driver", 0, "Middle")
    assert exc.value.field == "distance"
    with pytest.raises(ValidationError):
        service.record_shot(profile.id, "Driver", 200, "Straight")
    with pytest.raises(ValidationError):
        service.record_shot(profile.id, "Spoon", 200, "Middle")
    with pytest.raises(ValidationError):
        service.finish_hole(profile.id, 11)


def test_shots_and_undo_are_mirrored(service, profile):
    session = service.start_round(profile.id, 3)
    service.record_shot(profile.id, "Driver", 200, "Middle")
    service.record_shot(profile.id, "7 Iron", 150, "Middle")
    service.undo_last_shot(profile.id)

    assert _stored_clubs(service.store, session.round.id) == ["Driver"]


def test_mulligan_is_logged_and_counted(service, profile):
    session = service.start_round(profile.id, 3)
    service.record_shot(profile.id, "Driver", 200, "Wide Left")
    service.use_mulligan(profile.id)

    loaded = service.store.load_round(session.round.id)
    assert loaded.holes[0].shots == []
    assert loaded.mulligans_used == 1
    assert [m.shot.input_direction for m in loaded.mulligans] == ["Wide Left"]


def test_full_round_is_stored_complete(service, profile):
    session = service.start_round(profile.id, 3)
    for _ in range(3):
        service.record_shot(profile.id, "Driver", 500, "Middle")
        assert service.finish_hole(profile.id, 2) is True

    assert session.state == RoundState.COMPLETE
    loaded = service.store.load_round(session.round.id)
    assert loaded.is_round_complete is True
    assert loaded.total_score == 9
    assert all(h.is_complete for h in loaded.holes)
    assert service.finish_hole(profile.id, 2) is False


def test_skip_hole_is_stored(service, profile):
    session = service.start_round(profile.id, 3)
    service.skip_hole(profile.id)

    loaded = service.store.load_round(session.round.id)
    assert loaded.current_hole_index == 1
    assert loaded.holes[0].is_complete is False


def test_resume_round_continues_where_it_left_off(service, profile):
    session = service.start_round(profile.id, 3)
    service.record_shot(profile.id, "Driver", 200, "Middle")
    round_id = session.round.id
    service.end_session(profile.id)
    assert service.session_for(profile.id).round is None

    resumed = service.resume_round(profile.id, round_id)
    assert resumed.current_distance() == session.current_distance()
    service.record_shot(profile.id, "9 Iron", 120, "Middle")
    assert _stored_clubs(service.store, round_id) == ["Driver", "9 Iron"]


def test_resume_unknown_round(service, profile):
    with pytest.raises(NotFoundError):
        service.resume_round(profile.id, 404)


def test_suggested_club_uses_distance_to_target(service, profile):
    assert service.suggested_club(profile.id) is None
    assert service.suggested_club(profile.id, 250) == "Driver"

    session = service.start_round(profile.id, 3)
    clubs = service.store.list_clubs(profile.id)
    assert service.suggested_club(profile.id) == suggest_club(clubs, session.current_distance())


def test_save_current_course_and_replay_it(service, profile):
    assert service.save_current_course(profile.id, "Nothing") is None

    first = service.start_round(profile.id, 3)
    course = service.save_current_course(profile.id, "Morning Loop", "Bay 2")
    with pytest.raises(ValidationError):
        service.save_current_course(profile.id, "ab")

    replay = service.start_round(profile.id, course_id=course.id)
    assert replay.round.course_id == course.id
    assert [(h.par, h.yardage, h.hazard) for h in replay.round.holes] == [
        (h.par, h.yardage, h.hazard) for h in first.round.holes
    ]
    assert all(not h.shots for h in replay.round.holes)


def test_start_round_on_missing_course(service, profile):
    with pytest.raises(NotFoundError):
        service.start_round(profile.id, course_id=77)


def test_outage_keeps_memory_and_queues_shots(flaky_service, flaky_store, profile):
    session = flaky_service.start_round(profile.id, 3)
    round_id = session.round.id

    flaky_store.down = True
    shot = flaky_service.record_shot(profile.id, "Driver", 200, "Middle")

    assert shot is not None
    assert len(session.current_hole().shots) == 1
    assert [e["club"] for e in flaky_service.offline.pending_shots()] == ["Driver"]
    assert flaky_service.offline.load_round_backup()["round_id"] == round_id

    flaky_store.down = False
    assert flaky_service.sync() is True
    assert _stored_clubs(flaky_store, round_id) == ["Driver"]
    assert flaky_service.offline.pending_shots() == []
    assert flaky_service.offline.load_round_backup() is None


def test_undo_during_outage_drops_queued_shot(flaky_service, flaky_store, profile):
    session = flaky_service.start_round(profile.id, 3)

    flaky_store.down = True
    flaky_service.record_shot(profile.id, "Driver", 200, "Middle")
    flaky_service.undo_last_shot(profile.id)

    assert flaky_service.offline.pending_shots() == []
    flaky_store.down = False
    assert flaky_service.sync() is True
    assert _stored_clubs(flaky_store, session.round.id) == []


def test_undo_of_stored_shot_during_outage_is_queued(flaky_service, flaky_store, profile):
    session = flaky_service.start_round(profile.id, 3)
    flaky_service.record_shot(profile.id, "Driver", 200, "Middle")

    flaky_store.down = True
    flaky_service.undo_last_shot(profile.id)
    assert [e["op"] for e in flaky_service.offline.pending_shots()] == ["delete_last"]

    flaky_store.down = False
    assert flaky_service.sync() is True
    assert _stored_clubs(flaky_store, session.round.id) == []


def test_round_created_late_when_start_failed(flaky_service, flaky_store, profile):
    flaky_store.down = True
    session = flaky_service.start_round(profile.id, 3)
    assert session.round.id is None
    flaky_service.record_shot(profile.id, "Driver", 200, "Middle")
    flaky_service.record_shot(profile.id, "7 Iron", 150, "Wide Right")
    flaky_service.use_mulligan(profile.id)

    flaky_store.down = False
    flaky_service.finish_hole(profile.id, 2)

    assert session.round.id is not None
    loaded = flaky_store.load_round(session.round.id)
    assert [s.club for s in loaded.holes[0].shots] == ["Driver"]
    assert len(loaded.mulligans) == 1
    assert loaded.mulligans_used == 1
    assert loaded.holes[0].is_complete is True


def test_sync_reports_failure_while_still_down(flaky_service, flaky_store, profile):
    flaky_service.start_round(profile.id, 3)
    flaky_store.down = True
    flaky_service.record_shot(profile.id, "Driver", 200, "Middle")

    assert flaky_service.sync() is False
    assert len(flaky_service.offline.pending_shots()) == 1


def test_late_create_keeps_every_shot_after_a_failed_insert(flaky_service, flaky_store, profile):
    flaky_store.down = True
    session = flaky_service.start_round(profile.id, 3)
    flaky_service.record_shot(profile.id, "Driver", 120, "Middle")
    flaky_service.record_shot(profile.id, "3 Wood", 80, "Middle")

    flaky_store.down = False
    flaky_store.shot_failures = 1
    flaky_service.record_shot(profile.id, "7 Iron", 60, "Middle")
    assert _stored_clubs(flaky_store, session.round.id) == ["Driver", "3 Wood", "7 Iron"]

    flaky_service.record_shot(profile.id, "Pitching Wedge", 30, "Middle")
    assert [e["club"] for e in flaky_service.offline.pending_shots()] == ["Pitching Wedge"]

    assert flaky_service.sync() is True
    assert _stored_clubs(flaky_store, session.round.id) == ["Driver", "3 Wood", "7 Iron", "Pitching Wedge"]


def test_failed_create_is_retried_whole(flaky_service, flaky_store, profile):
    flaky_store.down = True
    session = flaky_service.start_round(profile.id, 3)
    flaky_service.record_shot(profile.id, "Driver", 120, "Middle")
    flaky_service.record_shot(profile.id, "3 Wood", 80, "Middle")

    flaky_store.down = False
    flaky_store.row_failures = 1
    flaky_service.record_shot(profile.id, "7 Iron", 60, "Middle")

    assert session.round.id is None
    assert flaky_store.load_rounds(profile.id) == []
    assert flaky_service.offline.pending_shots() == []

    flaky_service.finish_hole(profile.id, 2)

    assert session.round.id is not None
    assert _stored_clubs(flaky_store, session.round.id) == ["Driver", "3 Wood", "7 Iron"]
    assert flaky_store.load_round(session.round.id).holes[0].is_complete is True
    assert len(flaky_store.load_rounds(profile.id)) == 1


def test_new_process_stores_a_round_it_only_had_as_backup(flaky_service, flaky_store, offline, db_engine, profile):
    flaky_store.down = True
    flaky_service.start_round(profile.id, 3)
    flaky_service.record_shot(profile.id, "Driver", 200, "Middle")
    flaky_service.record_shot(profile.id, "7 Iron", 150, "Right")
    assert offline.load_round_backup()["round_id"] is None

    restarted = RoundService(store=RoundStore(engine=db_engine), offline=OfflineQueue(directory=str(offline.directory)))
    assert restarted.sync() is True

    rounds = restarted.store.load_rounds(profile.id)
    assert len(rounds) == 1
    assert [s.club for s in rounds[0].holes[0].shots] == ["Driver", "7 Iron"]
    assert restarted.offline.load_round_backup() is None


def test_new_process_restores_progress_of_a_stored_round(flaky_service, flaky_store, offline, db_engine, profile):
    session = flaky_service.start_round(profile.id, 3)
    flaky_service.record_shot(profile.id, "Driver", 500, "Middle")

    flaky_store.down = True
    flaky_service.finish_hole(profile.id, 2)
    assert flaky_store.load_round(session.round.id).holes[0].is_complete is False

    restarted = RoundService(store=RoundStore(engine=db_engine), offline=OfflineQueue(directory=str(offline.directory)))
    assert restarted.sync() is True

    loaded = restarted.store.load_round(session.round.id)
    assert loaded.holes[0].is_complete is True
    assert loaded.holes[0].putts == 2
    assert loaded.current_hole_index == 1


def test_backup_of_a_live_round_is_not_stored_twice(flaky_service, flaky_store, profile):
    flaky_store.down = True
    session = flaky_service.start_round(profile.id, 3)
    flaky_service.record_shot(profile.id, "Driver", 200, "Middle")

    flaky_store.down = False
    assert flaky_service.sync() is True

    assert session.round.id is not None
    assert len(flaky_store.load_rounds(profile.id)) == 1
    assert flaky_service.offline.load_round_backup() is None


def test_backup_stays_while_store_is_down(flaky_service, flaky_store, offline, db_engine, profile):
    flaky_store.down = True
    flaky_service.start_round(profile.id, 3)
    flaky_service.record_shot(profile.id, "Driver", 200, "Middle")

    still_down = FlakyStore(engine=db_engine)
    still_down.down = True
    restarted = RoundService(store=still_down, offline=OfflineQueue(directory=str(offline.directory)))

    assert restarted.sync() is False
    assert restarted.offline.load_round_backup() is not None


def test_logging_a_course_round_keeps_the_player_active(service, db_engine, profile):
    service.start_round(profile.id, 3)
    course = service.save_current_course(profile.id, "Evening League")
    service.start_round(profile.id, course_id=course.id)

    with Session(db_engine) as db:
        participant = db.exec(select(CourseParticipant).where(CourseParticipant.course_id == course.id)).one()
        participant.last_active_at = utcnow() - dt.timedelta(minutes=10)
        db.add(participant)
        db.commit()
    assert stats_service.active_participants(service.store, course.id) == []

    service.record_shot(profile.id, "Driver", 200, "Middle")

    active = stats_service.active_participants(service.store, course.id)
    assert [p["profile_name"] for p in active] == ["Tester"]


def test_delete_round_ends_its_session(service, profile):
    session = service.start_round(profile.id, 3)
    round_id = session.round.id

    assert service.delete_round(round_id) is True
    assert service.session_for(profile.id).round is None
    assert service.store.load_rounds(profile.id) == []
    assert service.delete_round(round_id) is False
