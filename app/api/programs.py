"""API endpoints for training program structure and the cell matrix."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from loguru import logger
from pydantic import BaseModel, Field

from app.api.dependencies.auth import get_current_coach_id
from app.db.session import get_session
from app.training.cells import CellMatrixStore
from app.training.schemas import (
    CellSchema,
    ColumnDataType,
    ColumnSchema,
    ColumnScope,
    DaySchema,
    EditableBy,
    ExerciseDefaults,
    ExerciseSchema,
    TrainingProgramFull,
)
from app.training.structure import TrainingStructureManager

router = APIRouter(prefix="/api", tags=["training"])


class ColumnCreateRequest(BaseModel):
    label: str
    data_type: ColumnDataType = "text"
    scope: ColumnScope = "cell"
    editable_by: EditableBy = "coach"
    key: str | None = None


class ReplaceDaysRequest(BaseModel):
    days: list[str]


class ExerciseCreateRequest(ExerciseDefaults):
    name: str


class ExerciseUpdateRequest(ExerciseDefaults):
    name: str | None = None


class ExercisePositionRequest(BaseModel):
    order_index: int = Field(ge=1)


class CellWriteRequest(BaseModel):
    """Upsert of one matrix cell. ``value=None`` clears it."""

    exercise_id: str
    column_id: str
    week_index: int
    value: str | int | float | None = None
    actor: Literal["coach", "client"] | None = None


# ---------------------------------------------------------------------------
# Program structure
# ---------------------------------------------------------------------------


@router.get("/programs/{program_id}/full", response_model=TrainingProgramFull)
def get_program_full(program_id: str, _coach_id: str = Depends(get_current_coach_id)) -> TrainingProgramFull:
    with get_session() as session:
        return TrainingStructureManager(session).get_program_full(program_id)


@router.post("/programs/{program_id}/columns/bootstrap", response_model=list[ColumnSchema])
def bootstrap_columns(program_id: str, coach_id: str = Depends(get_current_coach_id)) -> list[ColumnSchema]:
    logger.info("Bootstrap columns requested", coach_id=coach_id, program_id=program_id)
    with get_session() as session:
        columns = TrainingStructureManager(session).bootstrap_columns(program_id)
        return [ColumnSchema.model_validate(column) for column in columns]


@router.post("/programs/{program_id}/columns", response_model=ColumnSchema, status_code=status.HTTP_201_CREATED)
def add_column(
    program_id: str,
    request: ColumnCreateRequest,
    coach_id: str = Depends(get_current_coach_id),
) -> ColumnSchema:
    logger.info("Add column requested", coach_id=coach_id, program_id=program_id, label=request.label)
    with get_session() as session:
        column = TrainingStructureManager(session).add_column(
            program_id,
            request.label,
            data_type=request.data_type,
            scope=request.scope,
            editable_by=request.editable_by,
            key=request.key,
        )
        return ColumnSchema.model_validate(column)


@router.put("/programs/{program_id}/days", response_model=list[DaySchema])
def replace_days(
    program_id: str,
    request: ReplaceDaysRequest,
    coach_id: str = Depends(get_current_coach_id),
) -> list[DaySchema]:
    """Replace every day of the program. Exercises and cells of the old days are deleted."""
    logger.info("Replace days requested", coach_id=coach_id, program_id=program_id, days=len(request.days))
    with get_session() as session:
        days = TrainingStructureManager(session).replace_days(program_id, request.days)
        return [DaySchema.model_validate(day) for day in days]


@router.post("/days/{day_id}/exercises", response_model=ExerciseSchema, status_code=status.HTTP_201_CREATED)
def add_exercise(
    day_id: str,
    request: ExerciseCreateRequest,
    coach_id: str = Depends(get_current_coach_id),
) -> ExerciseSchema:
    logger.info("Add exercise requested", coach_id=coach_id, day_id=day_id)
    defaults = ExerciseDefaults.model_validate(request.model_dump(exclude={"name"}))
    with get_session() as session:
        exercise = TrainingStructureManager(session).add_exercise(day_id, request.name, defaults)
        return ExerciseSchema.model_validate(exercise)


@router.patch("/exercises/{exercise_id}", response_model=ExerciseSchema)
def update_exercise(
    exercise_id: str,
    request: ExerciseUpdateRequest,
    coach_id: str = Depends(get_current_coach_id),
) -> ExerciseSchema:
    fields = request.model_dump(exclude_unset=True)
    logger.info("Update exercise requested", coach_id=coach_id, exercise_id=exercise_id, fields=sorted(fields))
    with get_session() as session:
        exercise = TrainingStructureManager(session).update_exercise(exercise_id, **fields)
        return ExerciseSchema.model_validate(exercise)


@router.put("/exercises/{exercise_id}/position", response_model=list[ExerciseSchema])
def reorder_exercise(
    exercise_id: str,
    request: ExercisePositionRequest,
    coach_id: str = Depends(get_current_coach_id),
) -> list[ExerciseSchema]:
    """Move an exercise within its day; returns the day's exercises in their new order."""
    logger.info("Reorder exercise requested", coach_id=coach_id, exercise_id=exercise_id)
    with get_session() as session:
        exercises = TrainingStructureManager(session).reorder_exercise(exercise_id, request.order_index)
        return [ExerciseSchema.model_validate(exercise) for exercise in exercises]


@router.delete("/exercises/{exercise_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_exercise(exercise_id: str, coach_id: str = Depends(get_current_coach_id)) -> None:
    logger.info("Remove exercise requested", coach_id=coach_id, exercise_id=exercise_id)
    with get_session() as session:
        TrainingStructureManager(session).remove_exercise(exercise_id)


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------


@router.get("/programs/{program_id}/cells", response_model=list[CellSchema])
def get_cells(
    program_id: str,
    week_index: int | None = Query(default=None, ge=1),
    _coach_id: str = Depends(get_current_coach_id),
) -> list[CellSchema]:
    with get_session() as session:
        TrainingStructureManager(session).get_program(program_id)
        cells = CellMatrixStore(session).bulk_load(program_id, week_index)
        return [CellSchema.model_validate(cell) for cell in cells]


@router.put("/cells", response_model=CellSchema)
def set_cell(request: CellWriteRequest, coach_id: str = Depends(get_current_coach_id)) -> CellSchema:
    logger.debug("Cell write requested", coach_id=coach_id, exercise_id=request.exercise_id)
    with get_session() as session:
        cell = CellMatrixStore(session).set_cell(
            request.exercise_id,
            request.column_id,
            request.week_index,
            request.value,
            actor=request.actor,
        )
        return CellSchema.model_validate(cell)
