import datetime as dt
from pathlib import Path
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel, Session, create_engine

from rangeround.config import settings
from rangeround.constants import CALM


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = "Golfer"
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

    clubs: list["ClubInBag"] = Relationship(back_populates="profile")


class ClubInBag(SQLModel, table=True):
    __tablename__ = "clubs"

    id: Optional[int] = Field(default=None, primary_key=True)
    profile_id: int = Field(foreign_key="profiles.id", index=True)
    club_type: str
    club_name: str
    yardage: float = 0
    created_at: dt.datetime = Field(default_factory=utcnow)

    profile: Optional[Profile] = Relationship(back_populates="clubs")


class RoundRecord(SQLModel, table=True):
    __tablename__ = "rounds"

    id: Optional[int] = Field(default=None, primary_key=True)
    profile_id: int = Field(foreign_key="profiles.id", index=True)
    course_id: Optional[int] = Field(default=None, foreign_key="courses.id")
    hole_count: int
    current_hole_index: int = 0
    is_round_complete: bool = False
    mulligans_allowed: int = 2
    mulligans_used: int = 0
    total_score: Optional[int] = None
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

    holes: list["HoleRecord"] = Relationship(back_populates="round")


class HoleRecord(SQLModel, table=True):
    __tablename__ = "holes"

    id: Optional[int] = Field(default=None, primary_key=True)
    round_id: int = Field(foreign_key="rounds.id", index=True)
    hole_number: int
    par: int
    yardage: int
    hazard: Optional[str] = None  # "Left", "Right", "Front"
    hazard_type: Optional[str] = None  # "Water", "Bunker"
    wind_speed: int = 0
    wind_dir: str = CALM
    putts: int = 0
    is_complete: bool = False

    round: Optional[RoundRecord] = Relationship(back_populates="holes")
    shots: list["ShotRecord"] = Relationship(back_populates="hole")


class ShotRecord(SQLModel, table=True):
    __tablename__ = "shots"

    id: Optional[int] = Field(default=None, primary_key=True)
    hole_id: int = Field(foreign_key="holes.id", index=True)
    shot_order: int
    club: str
    input_distance: float
    input_direction: str
    final_distance: int
    remaining_distance: int
    penalty_strokes: int = 0
    distance_penalty: int = 0
    hit_hazard: bool = False
    created_at: dt.datetime = Field(default_factory=utcnow)

    hole: Optional[HoleRecord] = Relationship(back_populates="shots")


class MulliganRecord(SQLModel, table=True):
    __tablename__ = "hole_mulligans"

    id: Optional[int] = Field(default=None, primary_key=True)
    hole_id: int = Field(foreign_key="holes.id", index=True)
    shot_order: int
    club: str
    input_distance: float
    input_direction: str
    created_at: dt.datetime = Field(default_factory=utcnow)


class Course(SQLModel, table=True):
    __tablename__ = "courses"

    id: Optional[int] = Field(default=None, primary_key=True)
    profile_id: int = Field(foreign_key="profiles.id", index=True)
    name: str
    description: Optional[str] = None
    hole_count: int
    is_shared: bool = False
    share_code: Optional[str] = Field(default=None, unique=True)
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

    holes: list["CourseHole"] = Relationship(back_populates="course")


class CourseHole(SQLModel, table=True):
    __tablename__ = "course_holes"

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="courses.id", index=True)
    hole_number: int
    par: int
    yardage: int
    hazard: Optional[str] = None
    hazard_type: Optional[str] = None
    wind_speed: int = 0
    wind_dir: str = CALM

    course: Optional[Course] = Relationship(back_populates="holes")


class CourseParticipant(SQLModel, table=True):
    __tablename__ = "course_participants"
    __table_args__ = (UniqueConstraint("course_id", "profile_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="courses.id", index=True)
    profile_id: int = Field(foreign_key="profiles.id")
    round_id: Optional[int] = Field(default=None, foreign_key="rounds.id")
    last_active_at: dt.datetime = Field(default_factory=utcnow)


def build_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = build_engine(settings.database_url)


def init_db(db_engine=None) -> None:
    db_engine = db_engine or engine
    if db_engine.url.drivername.startswith("sqlite") and db_engine.url.database not in (None, "", ":memory:"):
        Path(db_engine.url.database).parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(db_engine)


def get_session(db_engine=None) -> Session:
    return Session(db_engine or engine)
