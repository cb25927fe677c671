import datetime as dt
from collections import defaultdict
from typing import Iterable, Optional

from rangeround.config import settings
from rangeround.constants import (
    ACHIEVEMENTS,
    DIRECTIONS,
    XP_BONUS_BIRDIE,
    XP_BONUS_EAGLE,
    XP_BONUS_PAR,
    XP_FIRST_LEVEL,
    XP_LEVEL_GROWTH,
    XP_PER_HOLE,
    XP_PER_ROUND,
)
from rangeround.engine.models import Round
from rangeround.engine.scoring import aggregate, hole_strokes
from rangeround.storage.database import utcnow
from rangeround.storage.repository import RoundStore


def leaderboard_entry(name: str, round_obj: Round) -> dict:
    totals = aggregate(round_obj.holes)
    return {
        "profile_name": name,
        "total_strokes": totals.total_strokes,
        "total_par": totals.total_par,
        "score": totals.score,
        "completed_holes": totals.completed_holes,
        "is_complete": round_obj.is_round_complete,
    }


def build_leaderboard(entries: Iterable[tuple[str, Round]]) -> list[dict]:
    """Most holes played first, then lowest score to par."""
    board = [leaderboard_entry(name, r) for name, r in entries]
    board.sort(key=lambda e: (-e["completed_holes"], e["score"]))
    return board


def course_leaderboard(store: RoundStore, course_id: int) -> list[dict]:
    return build_leaderboard(store.course_rounds(course_id))


def active_participants(store: RoundStore, course_id: int, now: Optional[dt.datetime] = None) -> list[dict]:
    """Players seen on the course within the active window."""
    now = now or utcnow()
    since = now - dt.timedelta(minutes=settings.active_window_minutes)
    return [
        {
            "profile_id": p.profile_id,
            "profile_name": name,
            "last_active_at": p.last_active_at.isoformat(),
        }
        for p, name in store.active_participants(course_id, since)
    ]


def best_rounds(store: RoundStore, profile_id: int, limit: int = 5) -> list[dict]:
    return [
        {
            "id": r.id,
            "created_at": r.created_at.isoformat(),
            "total_score": r.total_score,
            "hole_count": r.hole_count,
            "course_id": r.course_id,
        }
        for r in store.best_rounds(profile_id, limit)
    ]


def round_history(store: RoundStore, profile_id: int) -> list[dict]:
    """Summary of every stored round, newest first; totals count complete holes only."""
    history = []
    for rec, round_obj in store.round_history(profile_id):
        totals = aggregate(round_obj.holes)
        history.append({
            "id": rec.id,
            "created_at": rec.created_at.isoformat(),
            "updated_at": rec.updated_at.isoformat(),
            "hole_count": rec.hole_count,
            "course_id": rec.course_id,
            "is_round_complete": rec.is_round_complete,
            "current_hole": round_obj.current_hole_index + 1,
            "completed_holes": totals.completed_holes,
            "total_strokes": totals.total_strokes,
            "score": totals.score,
        })
    return history


def _level_for(total_xp: int) -> tuple[int, int, int]:
    """(level, xp into the level, xp needed for the next one)."""
    level = 1
    threshold = 0
    needed = XP_FIRST_LEVEL
    while total_xp >= threshold + needed:
        threshold += needed
        level += 1
        needed = int(needed * XP_LEVEL_GROWTH)
    return level, total_xp - threshold, needed


def compute_player_stats(rounds: list[Round]) -> dict:
    """Level, XP and achievements from a player's rounds (complete holes only)."""
    total_xp = 0
    holes_played = 0
    birdies = 0
    pars = 0
    streak = 0
    best_streak = 0

    has_birdie = False
    has_eagle = False
    has_long_drive = False
    has_clean_round = False

    for r in rounds:
        if r.is_round_complete:
            total_xp += XP_PER_ROUND
            if len(r.holes) >= 9:
                diffs = [hole_strokes(h) - h.par for h in r.holes if h.is_complete]
                if diffs and all(d <= 0 for d in diffs):
                    has_clean_round = True

        for hole in r.holes:
            if not hole.is_complete:
                continue
            holes_played += 1
            total_xp += XP_PER_HOLE

            if any(s.club == "Driver" and s.final_distance > 300 for s in hole.shots):
                has_long_drive = True

            diff = hole_strokes(hole) - hole.par
            # Birdie streak: pars and worse both reset it
            if diff < 0:
                streak += 1
                best_streak = max(best_streak, streak)
            else:
                streak = 0

            if diff == 0:
                pars += 1
                total_xp += XP_BONUS_PAR
            elif diff == -1:
                birdies += 1
                total_xp += XP_BONUS_BIRDIE
                has_birdie = True
            elif diff <= -2:
                birdies += 1
                total_xp += XP_BONUS_EAGLE
                has_birdie = True
                has_eagle = True

    level, current_xp, next_level_xp = _level_for(total_xp)

    unlocked = {
        "first_birdie": has_birdie,
        "eagle_eye": has_eagle,
        "long_drive": has_long_drive,
        "consistency": has_clean_round,
        "marathon": holes_played >= 50,
        "streak_master": best_streak >= 3,
    }

    return {
        "level": level,
        "current_xp": current_xp,
        "next_level_xp": next_level_xp,
        "progress_pct": min(100, int(current_xp / next_level_xp * 100)),
        "total_holes_played": holes_played,
        "total_birdies": birdies,
        "total_pars": pars,
        "best_streak": best_streak,
        "achievements": [
            {"id": key, "title": title, "description": desc, "unlocked": unlocked[key]}
            for key, title, desc in ACHIEVEMENTS
        ],
    }


def club_tendencies(rounds: list[Round]) -> dict[str, dict]:
    """
    Per-club carry and direction spread over logged shots.

    Mulliganed shots are gone from the hole logs, so they never skew a club's
    numbers.
    """
    by_club: dict[str, list] = defaultdict(list)
    for r in rounds:
        for hole in r.holes:
            for shot in hole.shots:
                by_club[shot.club].append(shot)

    out = {}
    for club, shots in by_club.items():
        counts = {d: 0 for d in DIRECTIONS}
        for s in shots:
            counts[s.input_direction] = counts.get(s.input_direction, 0) + 1
        out[club] = {
            "shots": len(shots),
            "avg_input_distance": round(sum(s.input_distance for s in shots) / len(shots), 1),
            "avg_final_distance": round(sum(s.final_distance for s in shots) / len(shots), 1),
            "hazard_pct": round(sum(1 for s in shots if s.hit_hazard) / len(shots) * 100, 1),
            "directions": counts,
        }
    return out


def player_stats(store: RoundStore, profile_id: int) -> dict:
    rounds = store.load_rounds(profile_id)
    stats = compute_player_stats(rounds)
    stats["club_tendencies"] = club_tendencies(rounds)
    return stats
