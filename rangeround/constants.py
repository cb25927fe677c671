# Shot directions as reported by the player, left to right
DIRECTIONS = ["Wide Left", "Left", "Middle", "Right", "Wide Right"]

# Signed lateral offset in yards per direction (negative = left)
LATERAL_OFFSET: dict[str, int] = {
    "Wide Left": -30,
    "Left": -15,
    "Middle": 0,
    "Right": 15,
    "Wide Right": 30,
}

WIDE_DIRECTIONS = ("Wide Left", "Wide Right")
WIDE_PENALTY_YARDS = 15

HEADWIND = "Headwind"
TAILWIND = "Tailwind"
LEFT_TO_RIGHT = "Left-to-Right"
RIGHT_TO_LEFT = "Right-to-Left"
WIND_DIRECTIONS = [HEADWIND, TAILWIND, LEFT_TO_RIGHT, RIGHT_TO_LEFT]
# A still hole: neither carry nor drift changes
CALM = "None"

# Carry multiplier per wind direction; crosswinds don't change carry
WIND_CARRY_FACTOR: dict[str, float] = {
    HEADWIND: 0.9,
    TAILWIND: 1.1,
}

# Lateral push per crosswind, in yards
WIND_DRIFT: dict[str, int] = {
    LEFT_TO_RIGHT: 10,
    RIGHT_TO_LEFT: -10,
}

WIND_SPEED_MIN = 5
WIND_SPEED_MAX = 19

HAZARD_LOCATIONS = ["Left", "Right", "Front"]
HAZARD_TYPES = ["Water", "Bunker"]
WATER = "Water"
BUNKER = "Bunker"

# Hazard draw: only past this gate do we pick from locations + "no hazard"
HAZARD_GATE = 0.35
# Lateral deviation beyond which a side hazard is in play
SIDE_HAZARD_YARDS = 20
# A front hazard catches shots shorter than this share of the distance to go
FRONT_HAZARD_RATIO = 0.3
BUNKER_PENALTY_YARDS = 7
WATER_PENALTY_STROKES = 1

PARS = (3, 4, 5)

# Inclusive yardage range per par
YARDAGE_RANGES: dict[int, tuple[int, int]] = {
    3: (130, 209),
    4: (320, 429),
    5: (480, 559),
}

HOLE_COUNTS = (3, 9, 18)

# Within this many yards the ball is on the green
ON_GREEN_YARDS = 10

MIN_SHOT_DISTANCE = 1
MAX_SHOT_DISTANCE = 500
MAX_PUTTS = 10
MAX_CLUB_YARDAGE = 400

CLUB_NAMES = [
    "Driver", "2 Wood", "3 Wood", "4 Wood", "5 Wood", "7 Wood",
    "2 Hybrid", "3 Hybrid", "4 Hybrid", "5 Hybrid",
    "1 Iron", "2 Iron", "3 Iron", "4 Iron", "5 Iron", "6 Iron",
    "7 Iron", "8 Iron", "9 Iron",
    "Pitching Wedge", "Gap Wedge", "Sand Wedge", "Lob Wedge",
    "Putter",
]

CLUB_TYPES = ["Driver", "Wood", "Hybrid", "Iron", "Wedge", "Putter"]

# (club type, club name, stock yardage) for a new profile's bag
DEFAULT_BAG = [
    ("Driver", "Driver", 230),
    ("Wood", "3 Wood", 210),
    ("Hybrid", "3 Hybrid", 190),
    ("Iron", "4 Iron", 180),
    ("Iron", "5 Iron", 170),
    ("Iron", "6 Iron", 160),
    ("Iron", "7 Iron", 150),
    ("Iron", "8 Iron", 140),
    ("Iron", "9 Iron", 130),
    ("Wedge", "Pitching Wedge", 120),
    ("Wedge", "Sand Wedge", 100),
    ("Wedge", "Lob Wedge", 80),
    ("Putter", "Putter", 0),
]

# A club is suggested once the distance covers this share of its yardage
SUGGEST_FACTOR = 0.9

# Score relative to par -> name; anything worse than a double shows as "+N"
SCORE_NAMES: dict[int, str] = {
    -2: "Eagle",
    -1: "Birdie",
    0: "Par",
    1: "Bogey",
    2: "Double",
}

# Player progression
XP_PER_ROUND = 100
XP_PER_HOLE = 10
XP_BONUS_PAR = 5
XP_BONUS_BIRDIE = 20
XP_BONUS_EAGLE = 50
XP_FIRST_LEVEL = 1000
XP_LEVEL_GROWTH = 1.2

ACHIEVEMENTS = [
    ("first_birdie", "First Birdie", "Score your first birdie"),
    ("eagle_eye", "Eagle Eye", "Score an eagle or better"),
    ("long_drive", "Power Hitter", "Hit a drive over 300 yards"),
    ("consistency", "Consistency is Key", "Complete a round strictly with Pars or better"),
    ("marathon", "Marathon Golfer", "Play 50 total holes"),
    ("streak_master", "On Fire", "Get a birdie streak of 3 or more"),
]
