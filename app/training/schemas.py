"""Training program schemas (Pydantic).

Read models for matrix hydration and inputs for structural edits.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ColumnDataType = Literal["text", "number"]
ColumnScope = Literal["cell", "exercise"]
EditableBy = Literal["coach", "client", "both"]


class ExerciseDefaults(BaseModel):
    """Fixed scalar fields of an exercise (not part of the cell matrix)."""

    sets: int | None = Field(default=None, ge=0)
    reps: str | None = None
    rir: str | None = None
    rest_seconds: int | None = Field(default=None, ge=0)
    notes: str | None = None


class DaySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    program_id: str
    name: str
    order_index: int


class ColumnSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    program_id: str
    key: str | None
    label: str
    data_type: ColumnDataType
    scope: ColumnScope
    editable_by: EditableBy
    order_index: int


class ExerciseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    program_id: str
    day_id: str
    name: str
    order_index: int
    sets: int | None = None
    reps: str | None = None
    rir: str | None = None
    rest_seconds: int | None = None
    notes: str | None = None


class CellSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    exercise_id: str
    column_id: str
    week_index: int
    value: str | None


class ProgramHeader(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_id: str
    name: str | None
    status: str
    total_weeks: int
    effective_from: date
    effective_to: date | None


class TrainingProgramFull(BaseModel):
    """Everything needed to render a program matrix in one payload."""

    program: ProgramHeader
    days: list[DaySchema]
    columns: list[ColumnSchema]
    exercises: list[ExerciseSchema]
    cells: list[CellSchema]
