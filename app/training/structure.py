"""Training structure manager.

Owns the days, columns and exercises of a training program. Order indices
are renumbered densely (1..n) after every structural change; ties are
broken by insertion order.
"""

from __future__ import annotations

import uuid
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.db.models import TrainingCell, TrainingColumn, TrainingDay, TrainingExercise, TrainingProgram
from app.db.session import write_guard
from app.plans.registry import PlanTree
from app.training.cells import CellMatrixStore
from app.training.schemas import (
    CellSchema,
    ColumnSchema,
    DaySchema,
    ExerciseDefaults,
    ExerciseSchema,
    ProgramHeader,
    TrainingProgramFull,
)

# (key, label, data_type, scope, editable_by)
DEFAULT_COLUMNS: tuple[tuple[str, str, str, str, str], ...] = (
    ("exercise", "Ejercicio", "text", "exercise", "coach"),
    ("sets", "Series", "number", "cell", "coach"),
    ("reps", "Reps", "text", "cell", "coach"),
    ("rir", "RIR", "text", "cell", "coach"),
    ("rest", "Descanso", "text", "cell", "coach"),
    ("tips", "Tips", "text", "cell", "coach"),
    ("weight", "Peso", "number", "cell", "client"),
    ("reps_done", "Reps hechas", "number", "cell", "client"),
    ("notes", "Notas", "text", "cell", "both"),
)

_DATA_TYPES = ("text", "number")
_SCOPES = ("cell", "exercise")
_EDITORS = ("coach", "client", "both")
_EXERCISE_FIELDS = frozenset({"name", "sets", "reps", "rir", "rest_seconds", "notes"})


def _new_id() -> str:
    return str(uuid.uuid4())


def _require_name(name: str | None, path: str) -> str:
    if name is None or not name.strip():
        raise ValidationError("Name cannot be empty", path=path)
    return name.strip()


class TrainingStructureManager:
    """Structural edits on a program: days, columns, exercises."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.cells = CellMatrixStore(session)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_program(self, program_id: str) -> TrainingProgram:
        """Load a training program or raise NotFoundError."""
        program = self.session.get(TrainingProgram, program_id)
        if program is None:
            raise NotFoundError("Training program", program_id)
        return program

    def get_day(self, day_id: str) -> TrainingDay:
        day = self.session.get(TrainingDay, day_id)
        if day is None:
            raise NotFoundError("Training day", day_id)
        return day

    def get_exercise(self, exercise_id: str) -> TrainingExercise:
        exercise = self.session.get(TrainingExercise, exercise_id)
        if exercise is None:
            raise NotFoundError("Exercise", exercise_id)
        return exercise

    def list_days(self, program_id: str) -> list[TrainingDay]:
        query = (
            select(TrainingDay)
            .where(TrainingDay.program_id == program_id)
            .order_by(TrainingDay.order_index, TrainingDay.created_at, TrainingDay.id)
        )
        return list(self.session.execute(query).scalars().all())

    def list_columns(self, program_id: str) -> list[TrainingColumn]:
        query = (
            select(TrainingColumn)
            .where(TrainingColumn.program_id == program_id)
            .order_by(TrainingColumn.order_index, TrainingColumn.created_at, TrainingColumn.id)
        )
        return list(self.session.execute(query).scalars().all())

    def list_exercises(self, day_id: str) -> list[TrainingExercise]:
        query = (
            select(TrainingExercise)
            .where(TrainingExercise.day_id == day_id)
            .order_by(TrainingExercise.order_index, TrainingExercise.created_at, TrainingExercise.id)
        )
        return list(self.session.execute(query).scalars().all())

    def get_program_full(self, program_id: str) -> TrainingProgramFull:
        """Load program header, days, columns, exercises and all cells.

        Exercises are grouped by day order, then by their order within the day.
        """
        program = self.get_program(program_id)
        days = self.list_days(program_id)
        exercises = [exercise for day in days for exercise in self.list_exercises(day.id)]
        cells = self.cells.bulk_load(program_id)

        logger.debug(
            "Program loaded",
            program_id=program_id,
            days=len(days),
            exercises=len(exercises),
            cells=len(cells),
        )
        return TrainingProgramFull(
            program=ProgramHeader.model_validate(program),
            days=[DaySchema.model_validate(day) for day in days],
            columns=[ColumnSchema.model_validate(column) for column in self.list_columns(program_id)],
            exercises=[ExerciseSchema.model_validate(exercise) for exercise in exercises],
            cells=[CellSchema.model_validate(cell) for cell in cells],
        )

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def bootstrap_columns(self, program_id: str) -> list[TrainingColumn]:
        """Create the default column set when the program has none.

        Idempotent: existing columns are returned untouched.
        """
        self.get_program(program_id)
        existing = self.list_columns(program_id)
        if existing:
            logger.debug("Columns already present, skipping bootstrap", program_id=program_id, count=len(existing))
            return existing

        with write_guard(self.session, "bootstrap columns"):
            for order_index, (key, label, data_type, scope, editable_by) in enumerate(DEFAULT_COLUMNS, start=1):
                self.session.add(
                    TrainingColumn(
                        program_id=program_id,
                        key=key,
                        label=label,
                        data_type=data_type,
                        scope=scope,
                        editable_by=editable_by,
                        order_index=order_index,
                    )
                )

        logger.info("Default columns created", program_id=program_id, count=len(DEFAULT_COLUMNS))
        return self.list_columns(program_id)

    def add_column(
        self,
        program_id: str,
        label: str,
        *,
        data_type: str = "text",
        scope: str = "cell",
        editable_by: str = "coach",
        key: str | None = None,
    ) -> TrainingColumn:
        """Append a custom column after the existing ones."""
        self.get_program(program_id)
        label = _require_name(label, "label")
        if data_type not in _DATA_TYPES:
            raise ValidationError(f"Unknown column data type: {data_type}", path="data_type")
        if scope not in _SCOPES:
            raise ValidationError(f"Unknown column scope: {scope}", path="scope")
        if editable_by not in _EDITORS:
            raise ValidationError(f"Unknown column editor: {editable_by}", path="editable_by")

        count = self.session.execute(
            select(func.count()).select_from(TrainingColumn).where(TrainingColumn.program_id == program_id)
        ).scalar_one()
        with write_guard(self.session, "add column"):
            column = TrainingColumn(
                program_id=program_id,
                key=key,
                label=label,
                data_type=data_type,
                scope=scope,
                editable_by=editable_by,
                order_index=count + 1,
            )
            self.session.add(column)

        logger.info("Column added", program_id=program_id, column_id=column.id, label=label)
        return column

    # ------------------------------------------------------------------
    # Days
    # ------------------------------------------------------------------

    def replace_days(self, program_id: str, day_names: list[str]) -> list[TrainingDay]:
        """Replace the whole day set of a program.

        Existing days are deleted together with their exercises and cells,
        and the new days are inserted numbered 1..n in the given order.

        Raises:
            NotFoundError: Unknown program
            ValidationError: A day name is blank
        """
        self.get_program(program_id)
        names = [_require_name(name, f"days[{index}]") for index, name in enumerate(day_names)]

        with write_guard(self.session, "replace days"):
            removed_cells = self.cells.delete_for_program(program_id)
            self.session.execute(delete(TrainingExercise).where(TrainingExercise.program_id == program_id))
            self.session.execute(delete(TrainingDay).where(TrainingDay.program_id == program_id))
            for order_index, name in enumerate(names, start=1):
                self.session.add(TrainingDay(program_id=program_id, name=name, order_index=order_index))

        logger.info("Days replaced", program_id=program_id, days=len(names), removed_cells=removed_cells)
        return self.list_days(program_id)

    # ------------------------------------------------------------------
    # Exercises
    # ------------------------------------------------------------------

    def add_exercise(self, day_id: str, name: str, defaults: ExerciseDefaults | None = None) -> TrainingExercise:
        """Append an exercise at the end of a day."""
        day = self.get_day(day_id)
        name = _require_name(name, "name")
        defaults = defaults or ExerciseDefaults()

        count = self.session.execute(
            select(func.count()).select_from(TrainingExercise).where(TrainingExercise.day_id == day_id)
        ).scalar_one()
        with write_guard(self.session, "add exercise"):
            exercise = TrainingExercise(
                program_id=day.program_id,
                day_id=day_id,
                name=name,
                order_index=count + 1,
                **defaults.model_dump(),
            )
            self.session.add(exercise)

        logger.info("Exercise added", day_id=day_id, exercise_id=exercise.id, order_index=exercise.order_index)
        return exercise

    def update_exercise(self, exercise_id: str, **fields: Any) -> TrainingExercise:
        """Edit the name and scalar fields of an exercise."""
        exercise = self.get_exercise(exercise_id)
        for key in fields:
            if key not in _EXERCISE_FIELDS:
                raise ValidationError(f"Field {key} cannot be edited on an exercise", path=key)
        if "name" in fields:
            fields["name"] = _require_name(fields["name"], "name")
        try:
            scalars = ExerciseDefaults.model_validate({key: value for key, value in fields.items() if key != "name"})
        except PydanticValidationError as e:
            first = e.errors()[0]
            raise ValidationError(first["msg"], path=".".join(str(part) for part in first["loc"])) from e

        with write_guard(self.session, "update exercise"):
            for key in fields:
                value = fields["name"] if key == "name" else getattr(scalars, key)
                setattr(exercise, key, value)

        logger.info("Exercise updated", exercise_id=exercise_id, fields=sorted(fields))
        return exercise

    def remove_exercise(self, exercise_id: str) -> None:
        """Delete an exercise and its cells in every week, then close the gap."""
        exercise = self.get_exercise(exercise_id)
        day_id = exercise.day_id

        with write_guard(self.session, "remove exercise"):
            removed_cells = self.cells.delete_for_exercises([exercise_id])
            self.session.delete(exercise)
            self.session.flush()
            self._renumber(self.list_exercises(day_id))

        logger.info("Exercise removed", exercise_id=exercise_id, day_id=day_id, removed_cells=removed_cells)

    def reorder_exercise(self, exercise_id: str, new_index: int) -> list[TrainingExercise]:
        """Move an exercise to a 1-based position within its day."""
        exercise = self.get_exercise(exercise_id)
        siblings = self.list_exercises(exercise.day_id)
        if not 1 <= new_index <= len(siblings):
            raise ValidationError(f"Position {new_index} is outside 1..{len(siblings)}", path="order_index")

        siblings.remove(exercise)
        siblings.insert(new_index - 1, exercise)
        with write_guard(self.session, "reorder exercise"):
            self._renumber(siblings)

        logger.info("Exercise moved", exercise_id=exercise_id, day_id=exercise.day_id, order_index=new_index)
        return siblings

    @staticmethod
    def _renumber(rows: list[TrainingExercise]) -> None:
        for order_index, row in enumerate(rows, start=1):
            if row.order_index != order_index:
                row.order_index = order_index


def copy_program_tree(session: Session, source_id: str, target_id: str) -> None:
    """Deep-copy columns, days, exercises and cells of a program.

    Old->new id maps for columns and exercises are built before any cell
    is copied, since cells reference both by id.
    """
    manager = TrainingStructureManager(session)

    column_map: dict[str, str] = {}
    for column in manager.list_columns(source_id):
        column_map[column.id] = _new_id()
        session.add(
            TrainingColumn(
                id=column_map[column.id],
                program_id=target_id,
                key=column.key,
                label=column.label,
                data_type=column.data_type,
                scope=column.scope,
                editable_by=column.editable_by,
                order_index=column.order_index,
            )
        )

    exercise_map: dict[str, str] = {}
    new_exercises: list[TrainingExercise] = []
    for day in manager.list_days(source_id):
        new_day_id = _new_id()
        session.add(TrainingDay(id=new_day_id, program_id=target_id, name=day.name, order_index=day.order_index))
        for exercise in manager.list_exercises(day.id):
            exercise_map[exercise.id] = _new_id()
            new_exercises.append(
                TrainingExercise(
                    id=exercise_map[exercise.id],
                    program_id=target_id,
                    day_id=new_day_id,
                    name=exercise.name,
                    order_index=exercise.order_index,
                    sets=exercise.sets,
                    reps=exercise.reps,
                    rir=exercise.rir,
                    rest_seconds=exercise.rest_seconds,
                    notes=exercise.notes,
                )
            )
    session.flush()
    session.add_all(new_exercises)
    session.flush()

    copied = 0
    for cell in manager.cells.bulk_load(source_id):
        if cell.exercise_id not in exercise_map or cell.column_id not in column_map:
            continue
        session.add(
            TrainingCell(
                exercise_id=exercise_map[cell.exercise_id],
                column_id=column_map[cell.column_id],
                week_index=cell.week_index,
                program_id=target_id,
                value=cell.value,
            )
        )
        copied += 1

    logger.debug(
        "Program tree copied",
        source_program_id=source_id,
        program_id=target_id,
        columns=len(column_map),
        exercises=len(exercise_map),
        cells=copied,
    )


def delete_program_tree(session: Session, program_id: str) -> None:
    """Delete cells, exercises, days and columns of a program, in that order."""
    CellMatrixStore(session).delete_for_program(program_id)
    session.execute(delete(TrainingExercise).where(TrainingExercise.program_id == program_id))
    session.execute(delete(TrainingDay).where(TrainingDay.program_id == program_id))
    session.execute(delete(TrainingColumn).where(TrainingColumn.program_id == program_id))


PROGRAM_TREE = PlanTree(copy=copy_program_tree, delete=delete_program_tree)
