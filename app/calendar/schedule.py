"""Weekly schedule composer.

Merges a client's strength sessions (references into a program day) and
cardio sessions (self-contained) over a date window into one list.
Pure read: nothing is written, dangling day references are reported,
not repaired.
"""

from __future__ import annotations

from datetime import date

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.calendar.schemas import CardioScheduleItem, CardioStructure, ScheduleItem, StrengthScheduleItem
from app.config.settings import settings
from app.core.errors import ValidationError
from app.db.models import CardioSession, Plan, ScheduledStrengthSession, TrainingDay


class WeeklyScheduleComposer:
    """Read-side view of a client's calendar."""

    def __init__(self, session: Session, *, missing_day_label: str | None = None) -> None:
        self.session = session
        self.missing_day_label = missing_day_label or settings.missing_day_label

    def get_schedule(self, client_id: str, start_date: date, end_date: date) -> list[ScheduleItem]:
        """Return every session of the client in [start_date, end_date].

        Items are sorted by date, then by insertion order. A strength
        session whose day no longer exists is still returned, labelled with
        the placeholder and ``resolved=False``.

        Raises:
            ValidationError: If start_date is after end_date
        """
        if start_date > end_date:
            raise ValidationError(f"start_date {start_date} is after end_date {end_date}", path="start_date")

        strength_rows = self.session.execute(
            select(ScheduledStrengthSession)
            .where(
                ScheduledStrengthSession.client_id == client_id,
                ScheduledStrengthSession.date >= start_date,
                ScheduledStrengthSession.date <= end_date,
            )
            .order_by(ScheduledStrengthSession.date, ScheduledStrengthSession.created_at)
        ).scalars().all()
        cardio_rows = self.session.execute(
            select(CardioSession)
            .where(
                CardioSession.client_id == client_id,
                CardioSession.date >= start_date,
                CardioSession.date <= end_date,
            )
            .order_by(CardioSession.date, CardioSession.created_at)
        ).scalars().all()

        items: list[StrengthScheduleItem | CardioScheduleItem] = self._resolve_strength(list(strength_rows))
        items.extend(self._to_cardio_item(row) for row in cardio_rows)
        # SQLite hands back naive timestamps
        items.sort(key=lambda item: (item.date, item.created_at.replace(tzinfo=None)))

        unresolved = sum(1 for item in items if item.kind == "strength" and not item.resolved)
        if unresolved:
            logger.warning("Schedule has sessions pointing at deleted days", client_id=client_id, count=unresolved)
        logger.debug(
            "Schedule composed",
            client_id=client_id,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
            strength=len(strength_rows),
            cardio=len(cardio_rows),
        )
        return items

    def _resolve_strength(self, rows: list[ScheduledStrengthSession]) -> list[StrengthScheduleItem]:
        """Look up day and program names for every row in two queries."""
        day_ids = {row.day_id for row in rows}
        program_ids = {row.program_id for row in rows}
        days = {}
        programs = {}
        if day_ids:
            days = {
                day.id: day
                for day in self.session.execute(select(TrainingDay).where(TrainingDay.id.in_(day_ids))).scalars()
            }
        if program_ids:
            programs = {
                plan.id: plan for plan in self.session.execute(select(Plan).where(Plan.id.in_(program_ids))).scalars()
            }

        items = []
        for row in rows:
            day = days.get(row.day_id)
            program = programs.get(row.program_id)
            resolved = day is not None and day.program_id == row.program_id
            items.append(
                StrengthScheduleItem(
                    id=row.id,
                    client_id=row.client_id,
                    date=row.date,
                    program_id=row.program_id,
                    day_id=row.day_id,
                    program_name=program.name if program is not None else None,
                    day_name=day.name if resolved else self.missing_day_label,
                    resolved=resolved,
                    is_completed=row.is_completed,
                    created_at=row.created_at,
                )
            )
        return items

    @staticmethod
    def _to_cardio_item(row: CardioSession) -> CardioScheduleItem:
        return CardioScheduleItem(
            id=row.id,
            client_id=row.client_id,
            date=row.date,
            name=row.name,
            description=row.description,
            structure=CardioStructure.model_validate(row.structure or {}),
            is_completed=row.is_completed,
            rpe=row.rpe,
            duration_minutes=row.duration_minutes,
            distance_km=row.distance_km,
            result_notes=row.result_notes,
            created_at=row.created_at,
        )
