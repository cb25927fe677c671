import dataclasses
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from rangeround.constants import MAX_PUTTS, MAX_SHOT_DISTANCE, MIN_SHOT_DISTANCE
from rangeround.engine.session import RoundSession
from rangeround.engine.validation import validate_club, validate_name, validate_share_code, validate_yardage
from rangeround.errors import NoActiveProfileError, NotFoundError, ValidationError
from rangeround.services import stats_service
from rangeround.services.round_service import RoundService, get_round_service

router = APIRouter(prefix="/api")

Direction = Literal["Wide Left", "Left", "Middle", "Right", "Wide Right"]


class ProfileIn(BaseModel):
    name: str = "Golfer"


class ClubIn(BaseModel):
    club_type: str
    club_name: str
    yardage: float


class ClubYardageIn(BaseModel):
    yardage: float


class StartRoundIn(BaseModel):
    profile_id: int
    hole_count: Literal[3, 9, 18] = 18
    course_id: Optional[int] = None
    mulligans_allowed: Optional[int] = Field(default=None, ge=0)


class ShotIn(BaseModel):
    profile_id: int
    club: str
    distance: float = Field(ge=MIN_SHOT_DISTANCE, le=MAX_SHOT_DISTANCE)
    direction: Direction


class ProfileAction(BaseModel):
    profile_id: int


class FinishHoleIn(BaseModel):
    profile_id: int
    putts: int = Field(ge=0, le=MAX_PUTTS)


class CourseIn(BaseModel):
    profile_id: int
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = None


class JoinCourseIn(BaseModel):
    profile_id: int
    share_code: str


def round_payload(session: RoundSession) -> dict:
    payload = {"state": session.state.value, "round": None}
    if session.round is None:
        return payload
    data = dataclasses.asdict(session.round)
    data["hole_stats"] = [dataclasses.asdict(session.hole_stats(i)) for i in range(len(session.round.holes))]
    payload["round"] = data
    payload["current_distance"] = session.current_distance()
    phase = session.hole_phase()
    payload["hole_phase"] = phase.value if phase else None
    payload["stats"] = dataclasses.asdict(session.round_stats())
    return payload


def _bad_request(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"field": e.field, "message": e.message})


def _club_out(club) -> dict:
    return {"id": club.id, "club_type": club.club_type, "club_name": club.club_name, "yardage": club.yardage}


@router.post("/profiles")
def create_profile(body: ProfileIn, service: RoundService = Depends(get_round_service)):
    try:
        name = validate_name(body.name)
    except ValidationError as e:
        raise _bad_request(e)
    profile = service.store.create_profile(name)
    return {"id": profile.id, "name": profile.name}


@router.get("/profiles/default")
def default_profile(service: RoundService = Depends(get_round_service)):
    """Latest profile, created with the default bag on first use."""
    profile = service.store.ensure_profile()
    return {"id": profile.id, "name": profile.name}


@router.put("/profiles/{profile_id}")
def rename_profile(profile_id: int, body: ProfileIn, service: RoundService = Depends(get_round_service)):
    try:
        profile = service.store.update_profile(profile_id, validate_name(body.name))
    except ValidationError as e:
        raise _bad_request(e)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"id": profile.id, "name": profile.name}


@router.get("/profiles/{profile_id}/clubs")
def list_clubs(profile_id: int, service: RoundService = Depends(get_round_service)):
    return [_club_out(c) for c in service.store.list_clubs(profile_id)]


@router.post("/profiles/{profile_id}/clubs")
def add_club(profile_id: int, body: ClubIn, service: RoundService = Depends(get_round_service)):
    try:
        club_name = validate_club(body.club_name)
        yardage = validate_yardage(body.yardage)
    except ValidationError as e:
        raise _bad_request(e)
    return _club_out(service.store.add_club(profile_id, body.club_type, club_name, yardage))


@router.patch("/clubs/{club_id}")
def update_club(club_id: int, body: ClubYardageIn, service: RoundService = Depends(get_round_service)):
    try:
        club = service.store.update_club(club_id, validate_yardage(body.yardage))
    except ValidationError as e:
        raise _bad_request(e)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _club_out(club)


@router.delete("/clubs/{club_id}")
def delete_club(club_id: int, service: RoundService = Depends(get_round_service)):
    if not service.store.delete_club(club_id):
        raise HTTPException(status_code=404, detail="Club not found")
    return {"deleted": True}


@router.get("/profiles/{profile_id}/clubs/suggest")
def suggest(profile_id: int, distance: Optional[float] = None, service: RoundService = Depends(get_round_service)):
    return {"club": service.suggested_club(profile_id, distance)}


@router.get("/profiles/{profile_id}/player-stats")
def player_stats(profile_id: int, service: RoundService = Depends(get_round_service)):
    return stats_service.player_stats(service.store, profile_id)


@router.get("/profiles/{profile_id}/best-rounds")
def best_rounds(profile_id: int, limit: int = 5, service: RoundService = Depends(get_round_service)):
    return stats_service.best_rounds(service.store, profile_id, limit)


@router.get("/profiles/{profile_id}/rounds")
def round_history(profile_id: int, service: RoundService = Depends(get_round_service)):
    return stats_service.round_history(service.store, profile_id)


@router.post("/rounds/{round_id}/resume")
def resume_round(round_id: int, body: ProfileAction, service: RoundService = Depends(get_round_service)):
    try:
        round_obj = service.store.load_round(round_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if round_obj.profile_id != body.profile_id:
        raise HTTPException(status_code=403, detail="Round belongs to another profile")
    return round_payload(service.resume_round(body.profile_id, round_id))


@router.delete("/rounds/{round_id}")
def delete_round(round_id: int, service: RoundService = Depends(get_round_service)):
    if not service.delete_round(round_id):
        raise HTTPException(status_code=404, detail="Round not found")
    return {"deleted": True}


@router.post("/rounds")
def start_round(body: StartRoundIn, service: RoundService = Depends(get_round_service)):
    if service.store.get_profile(body.profile_id) is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    try:
        session = service.start_round(
            body.profile_id,
            body.hole_count,
            course_id=body.course_id,
            mulligans_allowed=body.mulligans_allowed,
        )
    except NoActiveProfileError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise _bad_request(e)
    return round_payload(session)


@router.get("/rounds/current")
def current_round(profile_id: int, service: RoundService = Depends(get_round_service)):
    return round_payload(service.session_for(profile_id))


@router.get("/rounds/current/stats")
def current_stats(profile_id: int, service: RoundService = Depends(get_round_service)):
    session = service.session_for(profile_id)
    return dataclasses.asdict(session.round_stats())


@router.post("/rounds/current/shots")
def record_shot(body: ShotIn, service: RoundService = Depends(get_round_service)):
    try:
        service.record_shot(body.profile_id, body.club, body.distance, body.direction)
    except ValidationError as e:
        raise _bad_request(e)
    return round_payload(service.session_for(body.profile_id))


@router.post("/rounds/current/undo")
def undo(body: ProfileAction, service: RoundService = Depends(get_round_service)):
    service.undo_last_shot(body.profile_id)
    return round_payload(service.session_for(body.profile_id))


@router.post("/rounds/current/mulligan")
def mulligan(body: ProfileAction, service: RoundService = Depends(get_round_service)):
    service.use_mulligan(body.profile_id)
    return round_payload(service.session_for(body.profile_id))


@router.post("/rounds/current/finish-hole")
def finish_hole(body: FinishHoleIn, service: RoundService = Depends(get_round_service)):
    service.finish_hole(body.profile_id, body.putts)
    return round_payload(service.session_for(body.profile_id))


@router.post("/rounds/current/skip-hole")
def skip_hole(body: ProfileAction, service: RoundService = Depends(get_round_service)):
    service.skip_hole(body.profile_id)
    return round_payload(service.session_for(body.profile_id))


@router.post("/courses")
def save_course(body: CourseIn, service: RoundService = Depends(get_round_service)):
    try:
        course = service.save_current_course(body.profile_id, body.name, body.description)
    except ValidationError as e:
        raise _bad_request(e)
    if course is None:
        raise HTTPException(status_code=400, detail="No active round to save")
    return {"id": course.id, "name": course.name, "hole_count": course.hole_count}


@router.post("/courses/{course_id}/share")
def share_course(course_id: int, body: ProfileAction, service: RoundService = Depends(get_round_service)):
    try:
        code = service.store.share_course(course_id, body.profile_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"share_code": code}


@router.get("/profiles/{profile_id}/courses")
def list_courses(profile_id: int, service: RoundService = Depends(get_round_service)):
    return [
        {
            "id": c.id,
            "name": c.name,
            "description": c.description,
            "hole_count": c.hole_count,
            "is_shared": c.is_shared,
            "share_code": c.share_code,
        }
        for c in service.store.list_courses(profile_id)
    ]


@router.delete("/courses/{course_id}")
def delete_course(course_id: int, service: RoundService = Depends(get_round_service)):
    if not service.store.delete_course(course_id):
        raise HTTPException(status_code=404, detail="Course not found")
    return {"deleted": True}


@router.post("/courses/join")
def join_course(body: JoinCourseIn, service: RoundService = Depends(get_round_service)):
    try:
        share_code = validate_share_code(body.share_code)
    except ValidationError as e:
        raise _bad_request(e)
    course_id = service.store.join_shared_course(share_code, body.profile_id)
    if course_id is None:
        raise HTTPException(status_code=404, detail="No shared course with that code")
    return {"course_id": course_id}


@router.get("/courses/{course_id}/leaderboard")
def leaderboard(course_id: int, service: RoundService = Depends(get_round_service)):
    return stats_service.course_leaderboard(service.store, course_id)


@router.get("/courses/{course_id}/participants")
def participants(course_id: int, service: RoundService = Depends(get_round_service)):
    return stats_service.active_participants(service.store, course_id)


@router.post("/sync")
def sync(service: RoundService = Depends(get_round_service)):
    return {"synced": service.sync(), "pending": len(service.offline.pending_shots())}
