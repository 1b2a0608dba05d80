"""Calendar schemas (Pydantic).

Cardio sessions carry their own block structure; strength sessions only
point at a program day and are resolved when the schedule is read.
"""

from __future__ import annotations

import uuid
from datetime import date as date_type
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

SessionKind = Literal["strength", "cardio"]


def _block_id() -> str:
    return str(uuid.uuid4())


class _BlockBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=_block_id)
    notes: str | None = None


class ContinuousBlock(_BlockBase):
    """Steady effort (easy run, warm-up, cool-down)."""

    type: Literal["continuous"] = "continuous"
    duration: float | None = Field(default=None, ge=0, description="Minutes")
    distance: float | None = Field(default=None, ge=0, description="Kilometers")
    target_pace: str | None = None
    target_hr: str | None = None


class IntervalsBlock(_BlockBase):
    """Repeated work/rest bouts, e.g. 6x1000m."""

    type: Literal["intervals"] = "intervals"
    sets: int = Field(ge=1)
    work_distance: float | None = Field(default=None, ge=0)
    work_duration: float | None = Field(default=None, ge=0)
    work_target_pace: str | None = None
    work_target_hr: str | None = None
    rest_duration: float | None = Field(default=None, ge=0)
    rest_distance: float | None = Field(default=None, ge=0)
    rest_type: Literal["active", "passive"] = "passive"


class StationBlock(_BlockBase):
    type: Literal["station"] = "station"
    duration: float | None = Field(default=None, ge=0)


CardioBlock = Annotated[ContinuousBlock | IntervalsBlock | StationBlock, Field(discriminator="type")]


class CardioStructure(BaseModel):
    training_type: str | None = None
    blocks: list[CardioBlock] = Field(default_factory=list)


class CardioResults(BaseModel):
    """What the athlete reports after a cardio session."""

    rpe: int | None = Field(default=None, ge=1, le=10)
    duration_minutes: float | None = Field(default=None, ge=0)
    distance_km: float | None = Field(default=None, ge=0)
    notes: str | None = None


class StrengthScheduleItem(BaseModel):
    kind: Literal["strength"] = "strength"
    id: str
    client_id: str
    date: date_type
    program_id: str
    day_id: str
    program_name: str | None
    day_name: str
    resolved: bool
    is_completed: bool
    created_at: datetime


class CardioScheduleItem(BaseModel):
    kind: Literal["cardio"] = "cardio"
    id: str
    client_id: str
    date: date_type
    name: str
    description: str | None
    structure: CardioStructure
    is_completed: bool
    rpe: int | None = None
    duration_minutes: float | None = None
    distance_km: float | None = None
    result_notes: str | None = None
    created_at: datetime


ScheduleItem = Annotated[StrengthScheduleItem | CardioScheduleItem, Field(discriminator="kind")]
