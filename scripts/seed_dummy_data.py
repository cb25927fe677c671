"""
Play 24 simulated rounds through the engine and store them as seed data.

Usage: python -m scripts.seed_dummy_data
"""

import random

from rangeround.constants import MAX_SHOT_DISTANCE, ON_GREEN_YARDS
from rangeround.services.bag import default_bag, suggest_club
from rangeround.services.round_service import RoundService
from rangeround.storage.database import init_db
from rangeround.storage.offline import OfflineQueue
from rangeround.storage.repository import RoundStore

TOTAL_ROUNDS = 24
HOLE_COUNTS = [18, 18, 9, 3]

# Where a mid-handicap range session tends to send the ball
DIRECTION_WEIGHTS: dict[str, float] = {
    "Wide Left": 0.06,
    "Left": 0.20,
    "Middle": 0.46,
    "Right": 0.21,
    "Wide Right": 0.07,
}

# Carry as a share of the club's stock yardage: mean, spread
CARRY_MEAN = 0.96
CARRY_SPREAD = 0.08

MAX_SHOTS_PER_HOLE = 8

# Putts by approach distance left (yards): bucket upper bound -> weights for 1, 2, 3 putts
PUTT_WEIGHTS = [
    (3, [0.55, 0.43, 0.02]),
    (6, [0.25, 0.70, 0.05]),
    (ON_GREEN_YARDS, [0.12, 0.78, 0.10]),
    (MAX_SHOT_DISTANCE, [0.05, 0.70, 0.25]),
]


def _carry(club_yardage: float, remaining: int, rng: random.Random) -> float:
    target = min(club_yardage, remaining) if club_yardage else remaining
    carry = target * rng.gauss(CARRY_MEAN, CARRY_SPREAD)
    return max(1.0, min(float(MAX_SHOT_DISTANCE), round(carry)))


def _putts(remaining: int, rng: random.Random) -> int:
    for upper, weights in PUTT_WEIGHTS:
        if remaining <= upper:
            return rng.choices([1, 2, 3], weights=weights)[0]
    return 3


def play_round(service: RoundService, profile_id: int, hole_count: int, rng: random.Random) -> None:
    bag = {c["club_name"]: c["yardage"] for c in default_bag() if c["club_name"] != "Putter"}
    clubs = [{"club_name": k, "yardage": v} for k, v in bag.items()]
    session = service.start_round(profile_id, hole_count)

    while not session.round.is_round_complete:
        hole = session.current_hole()
        for _ in range(MAX_SHOTS_PER_HOLE):
            remaining = hole.distance_to_target
            if remaining <= ON_GREEN_YARDS:
                break
            club = suggest_club(clubs, remaining)
            direction = rng.choices(list(DIRECTION_WEIGHTS), weights=list(DIRECTION_WEIGHTS.values()))[0]
            service.record_shot(profile_id, club, _carry(bag[club], remaining, rng), direction)
        if rng.random() < 0.03:
            service.skip_hole(profile_id)
        else:
            service.finish_hole(profile_id, _putts(hole.distance_to_target, rng))


def seed() -> None:
    init_db()
    store = RoundStore()
    service = RoundService(store=store, offline=OfflineQueue(), rng=random.Random(42))
    profile = store.create_profile("Seed Golfer")
    rng = random.Random(7)

    for i in range(TOTAL_ROUNDS):
        play_round(service, profile.id, HOLE_COUNTS[i % len(HOLE_COUNTS)], rng)

    stats = [r.total_score for r in store.load_rounds(profile.id)]
    print(f"Seeded {TOTAL_ROUNDS} rounds for profile {profile.id}: scores {stats}")


if __name__ == "__main__":
    seed()
