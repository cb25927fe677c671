from typing import Optional, Sequence

from rangeround.constants import DEFAULT_BAG, SUGGEST_FACTOR


def default_bag() -> list[dict]:
    return [
        {"club_type": club_type, "club_name": club_name, "yardage": yardage}
        for club_type, club_name, yardage in DEFAULT_BAG
    ]


def _field(club, name):
    return club[name] if isinstance(club, dict) else getattr(club, name)


def suggest_club(clubs: Sequence, distance: float) -> Optional[str]:
    """Longest club whose yardage * 0.9 still fits the distance, else the shortest club."""
    if not clubs:
        return None

    ordered = sorted(clubs, key=lambda c: _field(c, "yardage"), reverse=True)
    for club in ordered:
        if distance >= _field(club, "yardage") * SUGGEST_FACTOR:
            return _field(club, "club_name")
    return _field(ordered[-1], "club_name")
