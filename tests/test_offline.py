import json

from sqlalchemy.exc import OperationalError

from rangeround.engine.models import MulliganEvent, Round, Shot
from rangeround.storage.offline import OfflineQueue, sync_offline_shots

from conftest import make_hole


def _shot(club="Driver", remaining=150):
    return Shot(
        club=club,
        input_distance=250,
        input_direction="Middle",
        final_distance=250,
        remaining_distance=remaining,
    )


def test_empty_queue(offline):
    assert offline.pending_shots() == []
    assert offline.load_round_backup() is None


def test_queue_shot_persists_entry(offline):
    offline.queue_shot(7, 1, 0, _shot())

    with open(offline.queue_path) as f:
        entries = json.load(f)
    assert len(entries) == 1
    assert entries[0]["op"] == "insert"
    assert entries[0]["round_id"] == 7
    assert entries[0]["hole_number"] == 1
    assert entries[0]["shot_order"] == 0
    assert entries[0]["club"] == "Driver"
    assert entries[0]["remaining_distance"] == 150


def test_queue_survives_a_new_instance(offline):
    offline.queue_shot(7, 1, 0, _shot())
    offline.queue_undo(7, 1)

    reopened = OfflineQueue(directory=str(offline.directory))
    assert [e["op"] for e in reopened.pending_shots()] == ["insert", "delete_last"]


def test_drop_shot_removes_matching_insert(offline):
    offline.queue_shot(7, 1, 0, _shot("Driver"))
    offline.queue_shot(7, 1, 1, _shot("7 Iron"))

    assert offline.drop_shot(7, 1, 1) is True
    assert [e["club"] for e in offline.pending_shots()] == ["Driver"]
    assert offline.drop_shot(7, 2, 0) is False


def test_corrupt_queue_reads_as_empty(offline):
    offline.directory.mkdir(parents=True)
    offline.queue_path.write_text("{not json")
    assert offline.pending_shots() == []


def test_round_backup_roundtrip(offline):
    round_obj = Round(holes=[make_hole()], id=3)
    offline.save_round(round_obj)

    backup = offline.load_round_backup()
    assert backup["round_id"] == 3
    assert backup["round"]["holes"][0]["yardage"] == 400

    offline.clear_round()
    assert offline.load_round_backup() is None


def test_restore_round_rebuilds_engine_objects(offline):
    hole = make_hole()
    hole.append_shot(_shot("Driver", 150))
    round_obj = Round(
        holes=[hole, make_hole(number=2)],
        profile_id=4,
        mulligans_used=1,
        mulligans=[MulliganEvent(hole_number=1, shot_order=1, shot=_shot("3 Wood", 90))],
    )
    offline.save_round(round_obj)

    restored = OfflineQueue(directory=str(offline.directory)).restore_round()
    assert restored == round_obj
    assert isinstance(restored.holes[0].shots[0], Shot)
    assert restored.mulligans[0].shot.club == "3 Wood"


def test_restore_round_without_backup(offline):
    assert offline.restore_round() is None


def test_sync_replays_in_order_and_clears(offline):
    offline.queue_shot(7, 1, 0, _shot("Driver"))
    offline.queue_shot(7, 1, 1, _shot("7 Iron"))
    replayed = []

    assert sync_offline_shots(offline, replayed.append) is True
    assert [e["club"] for e in replayed] == ["Driver", "7 Iron"]
    assert offline.pending_shots() == []
    assert not offline.queue_path.exists()


def test_sync_with_nothing_queued(offline):
    assert sync_offline_shots(offline, lambda entry: None) is True


def test_sync_keeps_only_unreplayed_entries(offline):
    for order, club in enumerate(["Driver", "3 Wood", "9 Iron"]):
        offline.queue_shot(7, 1, order, _shot(club))
    replayed = []

    def replay(entry):
        if entry["club"] == "3 Wood":
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        replayed.append(entry["club"])

    assert sync_offline_shots(offline, replay) is False
    assert replayed == ["Driver"]
    assert [e["club"] for e in offline.pending_shots()] == ["3 Wood", "9 Iron"]
