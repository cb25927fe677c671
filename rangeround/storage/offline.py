"""Local durable fallback for when the store can't be reached.

Two JSON files live under the offline directory: a queue of shots waiting to
be written, and a backup of the last in-memory round snapshot.
"""

import dataclasses
import json
import logging
import time
from pathlib import Path
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from rangeround.config import settings
from rangeround.engine.models import Hole, MulliganEvent, Round, Shot
from rangeround.errors import RangeRoundError

logger = logging.getLogger(__name__)

ROUND_BACKUP_FILE = "offline_round_backup.json"
SHOTS_QUEUE_FILE = "offline_shots_queue.json"


class OfflineQueue:
    def __init__(self, directory: Optional[str] = None):
        self.directory = Path(directory or settings.offline_dir)

    @property
    def queue_path(self) -> Path:
        return self.directory / SHOTS_QUEUE_FILE

    @property
    def backup_path(self) -> Path:
        return self.directory / ROUND_BACKUP_FILE

    def _load(self, path: Path, default):
        if not path.exists():
            return default
        try:
            with open(path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {path}: {e}")
            return default

    def _save(self, path: Path, data) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2)
        tmp.replace(path)

    # --- shots ---
    def queue_shot(self, round_id, hole_number: int, shot_order: int, shot) -> None:
        entry = {
            "round_id": round_id,
            "hole_number": hole_number,
            "shot_order": shot_order,
            "op": "insert",
            "timestamp": time.time(),
            **dataclasses.asdict(shot),
        }
        queue = self.pending_shots()
        queue.append(entry)
        self._save(self.queue_path, queue)
        logger.info("Queued shot %d on hole %d offline (%d pending)", shot_order, hole_number, len(queue))

    def queue_undo(self, round_id, hole_number: int) -> None:
        queue = self.pending_shots()
        queue.append({
            "op": "delete_last",
            "round_id": round_id,
            "hole_number": hole_number,
            "timestamp": time.time(),
        })
        self._save(self.queue_path, queue)

    def drop_shot(self, round_id, hole_number: int, shot_order: int) -> bool:
        """Remove a still-queued insert so an undo never has to reach the store."""
        queue = self.pending_shots()
        for i in range(len(queue) - 1, -1, -1):
            entry = queue[i]
            if (entry.get("op", "insert") == "insert" and entry["round_id"] == round_id
                    and entry["hole_number"] == hole_number and entry["shot_order"] == shot_order):
                del queue[i]
                self._save(self.queue_path, queue)
                return True
        return False

    def pending_shots(self) -> list[dict]:
        return self._load(self.queue_path, [])

    def replace_shots(self, entries: list[dict]) -> None:
        self._save(self.queue_path, entries)

    def clear_shots(self) -> None:
        if self.queue_path.exists():
            self.queue_path.unlink()

    # --- round backup ---
    def save_round(self, round_obj: Round) -> None:
        self._save(self.backup_path, {
            "round_id": round_obj.id,
            "timestamp": time.time(),
            "round": dataclasses.asdict(round_obj),
        })

    def load_round_backup(self) -> Optional[dict]:
        return self._load(self.backup_path, None)

    def restore_round(self) -> Optional[Round]:
        """The backed-up round rebuilt as engine objects, or None."""
        backup = self.load_round_backup()
        if not backup or not backup.get("round"):
            return None
        return round_from_dict(backup["round"])

    def clear_round(self) -> None:
        if self.backup_path.exists():
            self.backup_path.unlink()


def round_from_dict(data: dict) -> Round:
    """Inverse of dataclasses.asdict for a Round snapshot."""
    holes = [
        Hole(**{**h, "shots": [Shot(**s) for s in h.get("shots", [])]})
        for h in data["holes"]
    ]
    mulligans = [
        MulliganEvent(hole_number=m["hole_number"], shot_order=m["shot_order"], shot=Shot(**m["shot"]))
        for m in data.get("mulligans", [])
    ]
    return Round(**{**data, "holes": holes, "mulligans": mulligans})


def sync_offline_shots(queue: OfflineQueue, replay: Callable[[dict], None]) -> bool:
    """
    Replay every queued shot in order.

    The queue is cleared only when all entries went through. On the first
    failure the entries not yet replayed are written back, so the next sync
    resumes from there without duplicating shots.
    """
    pending = queue.pending_shots()
    if not pending:
        return True

    for i, entry in enumerate(pending):
        try:
            replay(entry)
        except (SQLAlchemyError, RangeRoundError, OSError) as e:
            logger.warning(f"Offline sync stopped at entry {i} of {len(pending)}: {e}")
            queue.replace_shots(pending[i:])
            return False

    queue.clear_shots()
    logger.info("Synced %d offline shots", len(pending))
    return True
