"""Sparse cell matrix for training programs.

A program's per-week prescriptions and athlete results are stored as one
row per touched (exercise, column, week) triple. Most combinations are
never touched, so nothing is stored for them. Callers hydrate the matrix
with one bulk_load and index it by the triple.

Three observable states per triple:
- untouched: no row
- cleared: row with value NULL
- set: row with a value ("" included)
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Literal

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.db.models import TrainingCell, TrainingColumn, TrainingExercise, TrainingProgram
from app.db.session import write_guard

CellKey = tuple[str, str, int]
CellState = Literal["untouched", "cleared", "set"]
Actor = Literal["coach", "client"]


def index_cells(cells: Iterable[TrainingCell]) -> dict[CellKey, str | None]:
    """Index loaded cells by (exercise_id, column_id, week_index)."""
    return {(cell.exercise_id, cell.column_id, cell.week_index): cell.value for cell in cells}


def _normalize_value(value: str | int | float | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _is_numeric(value: str) -> bool:
    try:
        number = float(value.strip().replace(",", "."))
    except ValueError:
        return False
    return math.isfinite(number)


class CellMatrixStore:
    """Upsert and read cells keyed by (exercise, column, week)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_cell(self, exercise_id: str, column_id: str, week_index: int) -> str | None:
        """Return the stored value, or None when the cell is empty (untouched or cleared)."""
        cell = self.session.get(TrainingCell, (exercise_id, column_id, week_index))
        return cell.value if cell is not None else None

    def cell_state(self, exercise_id: str, column_id: str, week_index: int) -> CellState:
        """Tell apart a never-touched cell from one that was cleared."""
        cell = self.session.get(TrainingCell, (exercise_id, column_id, week_index))
        if cell is None:
            return "untouched"
        return "cleared" if cell.value is None else "set"

    def set_cell(
        self,
        exercise_id: str,
        column_id: str,
        week_index: int,
        value: str | int | float | None,
        *,
        actor: Actor | None = None,
    ) -> TrainingCell:
        """Write one cell, overwriting any previous value for the same triple.

        ``None`` clears the cell (the row is kept with a NULL value).
        Last write wins; there is no merge.

        Args:
            exercise_id: Exercise ID
            column_id: Column ID (must belong to the exercise's program)
            week_index: 1-based week, at most the program's total_weeks
            value: New value; numbers are stored as text
            actor: When given, the column must be editable by this actor

        Raises:
            NotFoundError: Unknown exercise or column
            ValidationError: Week out of range, column not cell-scoped,
                non-numeric value in a number column, or actor not allowed
        """
        value = _normalize_value(value)
        exercise = self.session.get(TrainingExercise, exercise_id)
        if exercise is None:
            raise NotFoundError("Exercise", exercise_id)
        column = self.session.get(TrainingColumn, column_id)
        if column is None:
            raise NotFoundError("Column", column_id)
        self._validate_write(exercise, column, week_index, value, actor)

        with write_guard(self.session, "set cell"):
            cell = self.session.get(TrainingCell, (exercise_id, column_id, week_index))
            if cell is None:
                cell = TrainingCell(
                    exercise_id=exercise_id,
                    column_id=column_id,
                    week_index=week_index,
                    program_id=exercise.program_id,
                    value=value,
                )
                self.session.add(cell)
            else:
                cell.value = value
                cell.updated_at = datetime.now(timezone.utc)

        logger.debug(
            "Cell written",
            exercise_id=exercise_id,
            column_id=column_id,
            week_index=week_index,
            cleared=value is None,
        )
        return cell

    def bulk_load(self, program_id: str, week_index: int | None = None) -> list[TrainingCell]:
        """Fetch every cell of a program (optionally a single week) in one query."""
        query = select(TrainingCell).where(TrainingCell.program_id == program_id)
        if week_index is not None:
            query = query.where(TrainingCell.week_index == week_index)
        query = query.order_by(TrainingCell.week_index, TrainingCell.exercise_id, TrainingCell.column_id)
        return list(self.session.execute(query).scalars().all())

    def delete_for_exercises(self, exercise_ids: list[str]) -> int:
        """Delete every cell of the given exercises across all weeks."""
        if not exercise_ids:
            return 0
        result = self.session.execute(delete(TrainingCell).where(TrainingCell.exercise_id.in_(exercise_ids)))
        return result.rowcount or 0

    def delete_for_program(self, program_id: str) -> int:
        """Delete every cell of a program."""
        result = self.session.execute(delete(TrainingCell).where(TrainingCell.program_id == program_id))
        return result.rowcount or 0

    def truncate_weeks(self, program_id: str, total_weeks: int) -> int:
        """Drop cells beyond the program's last week."""
        result = self.session.execute(
            delete(TrainingCell).where(
                TrainingCell.program_id == program_id,
                TrainingCell.week_index > total_weeks,
            )
        )
        removed = result.rowcount or 0
        if removed:
            logger.info("Dropped cells beyond last week", program_id=program_id, total_weeks=total_weeks, removed=removed)
        return removed

    def _validate_write(
        self,
        exercise: TrainingExercise,
        column: TrainingColumn,
        week_index: int,
        value: str | None,
        actor: Actor | None,
    ) -> None:
        if column.program_id != exercise.program_id:
            raise ValidationError(
                f"Column {column.id} does not belong to the program of exercise {exercise.id}",
                path="column_id",
            )
        if column.scope != "cell":
            raise ValidationError(
                f"Column '{column.label}' is exercise-scoped and has no per-week cells",
                path="column_id",
            )

        program = self.session.get(TrainingProgram, exercise.program_id)
        total_weeks = program.total_weeks if program is not None else None
        if total_weeks is None or not 1 <= week_index <= total_weeks:
            raise ValidationError(
                f"week_index {week_index} is outside 1..{total_weeks}",
                path="week_index",
            )

        if column.data_type == "number" and value is not None and value.strip() and not _is_numeric(value):
            raise ValidationError(f"Column '{column.label}' expects a number, got {value!r}", path="value")

        if actor is not None and column.editable_by not in (actor, "both"):
            logger.warning(
                "Cell write refused for actor",
                column_id=column.id,
                editable_by=column.editable_by,
                actor=actor,
            )
            raise ValidationError(f"Column '{column.label}' is not editable by {actor}", path="column_id")
