"""API endpoints for the client calendar (strength and cardio sessions)."""

from __future__ import annotations

from datetime import date as date_type

from fastapi import APIRouter, Depends, Query, status
from loguru import logger
from pydantic import BaseModel

from app.api.dependencies.auth import get_current_coach_id
from app.calendar.schedule import WeeklyScheduleComposer
from app.calendar.schemas import CardioResults, CardioStructure, ScheduleItem, SessionKind
from app.calendar.write_service import CalendarWriteService
from app.db.session import get_session

router = APIRouter(prefix="/api/schedule", tags=["schedule"])


class StrengthScheduleRequest(BaseModel):
    client_id: str
    program_id: str
    day_id: str
    date: date_type


class CardioScheduleRequest(BaseModel):
    client_id: str
    date: date_type
    name: str
    description: str | None = None
    structure: CardioStructure = CardioStructure()


class CompletionRequest(BaseModel):
    completed: bool = True
    results: CardioResults | None = None


class ScheduledResponse(BaseModel):
    id: str
    kind: SessionKind
    date: date_type
    is_completed: bool


@router.get("", response_model=list[ScheduleItem])
def get_schedule(
    client_id: str = Query(...),
    start_date: date_type = Query(...),
    end_date: date_type = Query(...),
    _coach_id: str = Depends(get_current_coach_id),
) -> list[ScheduleItem]:
    """Strength and cardio sessions in [start_date, end_date], by date then insertion order."""
    with get_session() as session:
        return WeeklyScheduleComposer(session).get_schedule(client_id, start_date, end_date)


@router.post("/strength", response_model=ScheduledResponse, status_code=status.HTTP_201_CREATED)
def schedule_strength(
    request: StrengthScheduleRequest,
    coach_id: str = Depends(get_current_coach_id),
) -> ScheduledResponse:
    logger.info("Schedule strength requested", coach_id=coach_id, client_id=request.client_id)
    with get_session() as session:
        entry = CalendarWriteService(session).schedule_strength(
            coach_id=coach_id,
            client_id=request.client_id,
            program_id=request.program_id,
            day_id=request.day_id,
            session_date=request.date,
        )
        return ScheduledResponse(id=entry.id, kind="strength", date=entry.date, is_completed=entry.is_completed)


@router.post("/cardio", response_model=ScheduledResponse, status_code=status.HTTP_201_CREATED)
def schedule_cardio(
    request: CardioScheduleRequest,
    coach_id: str = Depends(get_current_coach_id),
) -> ScheduledResponse:
    logger.info("Schedule cardio requested", coach_id=coach_id, client_id=request.client_id)
    with get_session() as session:
        entry = CalendarWriteService(session).schedule_cardio(
            coach_id=coach_id,
            client_id=request.client_id,
            session_date=request.date,
            name=request.name,
            structure=request.structure,
            description=request.description,
        )
        return ScheduledResponse(id=entry.id, kind="cardio", date=entry.date, is_completed=entry.is_completed)


@router.post("/{kind}/{session_id}/complete", response_model=ScheduledResponse)
def complete_session(
    kind: SessionKind,
    session_id: str,
    request: CompletionRequest | None = None,
    coach_id: str = Depends(get_current_coach_id),
) -> ScheduledResponse:
    logger.info("Session completion requested", coach_id=coach_id, kind=kind, session_id=session_id)
    request = request or CompletionRequest()
    with get_session() as session:
        entry = CalendarWriteService(session).set_completed(kind, session_id, request.completed, request.results)
        return ScheduledResponse(id=entry.id, kind=kind, date=entry.date, is_completed=entry.is_completed)


@router.delete("/{kind}/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def unschedule_session(kind: SessionKind, session_id: str, coach_id: str = Depends(get_current_coach_id)) -> None:
    logger.info("Unschedule requested", coach_id=coach_id, kind=kind, session_id=session_id)
    with get_session() as session:
        CalendarWriteService(session).unschedule(kind, session_id)
