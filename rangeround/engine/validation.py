import math
import re

from rangeround.constants import (
    CALM,
    CLUB_NAMES,
    DIRECTIONS,
    HAZARD_LOCATIONS,
    HAZARD_TYPES,
    HOLE_COUNTS,
    MAX_CLUB_YARDAGE,
    MAX_PUTTS,
    MAX_SHOT_DISTANCE,
    MIN_SHOT_DISTANCE,
    PARS,
    WIND_DIRECTIONS,
)
from rangeround.errors import ValidationError

_SHARE_CODE = re.compile(r"^[A-Z0-9]{8}$")


def _number(field: str, label: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise ValidationError(field, f"{label} must be a number")
    return value


def validate_distance(distance) -> float:
    """Shot carry in yards, 1 to 500."""
    distance = _number("distance", "Distance", distance)
    if distance < MIN_SHOT_DISTANCE:
        raise ValidationError("distance", "Distance must be at least 1 yard")
    if distance > MAX_SHOT_DISTANCE:
        raise ValidationError("distance", "Distance must be 500 yards or less")
    return distance


def validate_putts(putts) -> int:
    putts = _number("putts", "Putts", putts)
    if putts < 0:
        raise ValidationError("putts", "Putts must be positive")
    if putts > MAX_PUTTS:
        raise ValidationError("putts", "Putts must be 10 or less")
    return int(putts)


def validate_yardage(yardage) -> float:
    """Stock yardage for a club in the bag."""
    yardage = _number("yardage", "Yardage", yardage)
    if yardage < 0:
        raise ValidationError("yardage", "Yardage must be positive")
    if yardage > MAX_CLUB_YARDAGE:
        raise ValidationError("yardage", "Yardage must be 400 or less")
    return yardage


def validate_direction(direction) -> str:
    if direction not in DIRECTIONS:
        raise ValidationError("direction", f"Direction must be one of {', '.join(DIRECTIONS)}")
    return direction


def validate_club(club) -> str:
    if not club or not isinstance(club, str) or not club.strip():
        raise ValidationError("club", "Club is required")
    if club not in CLUB_NAMES:
        raise ValidationError("club", f"Unknown club: {club}")
    return club


def validate_hole_count(count) -> int:
    if count not in HOLE_COUNTS:
        raise ValidationError("hole_count", "Hole count must be 3, 9 or 18")
    return count


def validate_name(name) -> str:
    if not name or not name.strip():
        raise ValidationError("name", "Name is required")
    if len(name) < 2:
        raise ValidationError("name", "Name must be at least 2 characters")
    if len(name) > 50:
        raise ValidationError("name", "Name must be 50 characters or less")
    return name.strip()


def validate_course_name(name) -> str:
    if not name or not name.strip():
        raise ValidationError("name", "Course name is required")
    if len(name) < 3:
        raise ValidationError("name", "Course name must be at least 3 characters")
    if len(name) > 100:
        raise ValidationError("name", "Course name must be 100 characters or less")
    return name.strip()


def validate_share_code(code) -> str:
    if not code or not code.strip():
        raise ValidationError("share_code", "Share code is required")
    if len(code) != 8:
        raise ValidationError("share_code", "Share code must be 8 characters")
    if not _SHARE_CODE.match(code):
        raise ValidationError("share_code", "Invalid share code format")
    return code


def validate_layout_row(row: dict) -> dict:
    """Check one hole of a fixed layout: par, yardage, a consistent hazard and a known wind."""
    if row.get("par") not in PARS:
        raise ValidationError("par", "Par must be 3, 4 or 5")
    yardage = _number("yardage", "Yardage", row.get("yardage"))
    if yardage <= 0:
        raise ValidationError("yardage", "Yardage must be positive")

    hazard = row.get("hazard")
    hazard_type = row.get("hazard_type")
    if (hazard is None) != (hazard_type is None):
        raise ValidationError("hazard", "Hazard location and type must both be set or both be empty")
    if hazard is not None and hazard not in HAZARD_LOCATIONS:
        raise ValidationError("hazard", f"Unknown hazard location: {hazard}")
    if hazard_type is not None and hazard_type not in HAZARD_TYPES:
        raise ValidationError("hazard_type", f"Unknown hazard type: {hazard_type}")

    wind_speed = row.get("wind_speed")
    if wind_speed is not None and _number("wind_speed", "Wind speed", wind_speed) < 0:
        raise ValidationError("wind_speed", "Wind speed can't be negative")
    wind_dir = row.get("wind_dir", row.get("wind_direction"))
    if wind_dir is not None and wind_dir != CALM and wind_dir not in WIND_DIRECTIONS:
        raise ValidationError("wind_dir", f"Unknown wind direction: {wind_dir}")
    return row
