"""Calendar write service.

Single entry point for calendar writes: scheduling strength days and
cardio sessions, marking them complete and removing them.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.calendar.schemas import CardioResults, CardioStructure, SessionKind
from app.core.errors import NotFoundError, ValidationError
from app.db.models import CardioSession, ScheduledStrengthSession, TrainingDay
from app.db.session import write_guard
from app.plans import PlanLifecycleManager

_SESSION_MODELS: dict[str, type[ScheduledStrengthSession] | type[CardioSession]] = {
    "strength": ScheduledStrengthSession,
    "cardio": CardioSession,
}


def _validation_error(e: PydanticValidationError, prefix: str) -> ValidationError:
    first = e.errors()[0]
    path = prefix
    for part in first["loc"]:
        path += f"[{part}]" if isinstance(part, int) else f".{part}"
    return ValidationError(first["msg"], path=path)


class CalendarWriteService:
    """Writes to the client calendar.

    Strength entries only reference a program day; they are not copies of
    it, so later edits to the day show up in the calendar.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def schedule_strength(
        self,
        *,
        coach_id: str | None,
        client_id: str,
        program_id: str,
        day_id: str,
        session_date: date,
    ) -> ScheduledStrengthSession:
        """Put a program day on the client's calendar.

        Raises:
            NotFoundError: Unknown training program or day
            ValidationError: The day belongs to another program, or the
                program is for another client
        """
        program = PlanLifecycleManager(self.session).get(program_id, "training")
        if program.client_id != client_id:
            raise ValidationError(f"Program {program_id} belongs to another client", path="program_id")
        day = self.session.get(TrainingDay, day_id)
        if day is None:
            raise NotFoundError("Training day", day_id)
        if day.program_id != program_id:
            raise ValidationError(f"Day {day_id} does not belong to program {program_id}", path="day_id")

        with write_guard(self.session, "schedule strength session"):
            entry = ScheduledStrengthSession(
                client_id=client_id,
                coach_id=coach_id,
                program_id=program_id,
                day_id=day_id,
                date=session_date,
            )
            self.session.add(entry)

        logger.info(
            "Strength session scheduled",
            session_id=entry.id,
            client_id=client_id,
            program_id=program_id,
            day_id=day_id,
            date=session_date.isoformat(),
        )
        return entry

    def schedule_cardio(
        self,
        *,
        coach_id: str | None,
        client_id: str,
        session_date: date,
        name: str,
        structure: CardioStructure | dict[str, Any] | None = None,
        description: str | None = None,
    ) -> CardioSession:
        """Create a self-contained cardio session.

        Raises:
            ValidationError: Blank name or malformed blocks
        """
        if not name or not name.strip():
            raise ValidationError("Cardio session name cannot be empty", path="name")
        if not isinstance(structure, CardioStructure):
            try:
                structure = CardioStructure.model_validate(structure or {})
            except PydanticValidationError as e:
                raise _validation_error(e, "structure") from e

        with write_guard(self.session, "schedule cardio session"):
            entry = CardioSession(
                client_id=client_id,
                coach_id=coach_id,
                date=session_date,
                name=name.strip(),
                description=description,
                structure=structure.model_dump(mode="json"),
            )
            self.session.add(entry)

        logger.info(
            "Cardio session scheduled",
            session_id=entry.id,
            client_id=client_id,
            date=session_date.isoformat(),
            blocks=len(structure.blocks),
        )
        return entry

    def set_completed(
        self,
        kind: SessionKind,
        session_id: str,
        completed: bool = True,
        results: CardioResults | dict[str, Any] | None = None,
    ) -> ScheduledStrengthSession | CardioSession:
        """Mark a session done (or not done); cardio sessions also take results.

        Raises:
            NotFoundError: Unknown session
            ValidationError: Results given for a strength session, or invalid results
        """
        entry = self._get(kind, session_id)
        if results is not None and kind != "cardio":
            raise ValidationError("Only cardio sessions record results", path="results")
        if results is not None and not isinstance(results, CardioResults):
            try:
                results = CardioResults.model_validate(results)
            except PydanticValidationError as e:
                raise _validation_error(e, "results") from e

        with write_guard(self.session, "complete session"):
            entry.is_completed = completed
            if results is not None:
                entry.rpe = results.rpe
                entry.duration_minutes = results.duration_minutes
                entry.distance_km = results.distance_km
                entry.result_notes = results.notes

        logger.info("Session completion updated", kind=kind, session_id=session_id, completed=completed)
        return entry

    def unschedule(self, kind: SessionKind, session_id: str) -> None:
        """Remove a session from the calendar.

        Raises:
            NotFoundError: Unknown session
        """
        entry = self._get(kind, session_id)
        with write_guard(self.session, "unschedule session"):
            self.session.delete(entry)
        logger.info("Session unscheduled", kind=kind, session_id=session_id, client_id=entry.client_id)

    def _get(self, kind: str, session_id: str) -> ScheduledStrengthSession | CardioSession:
        model = _SESSION_MODELS.get(kind)
        if model is None:
            raise ValidationError(f"Unknown session kind: {kind}", path="kind")
        entry = self.session.get(model, session_id)
        if entry is None:
            raise NotFoundError(f"{kind.capitalize()} session", session_id)
        return entry
