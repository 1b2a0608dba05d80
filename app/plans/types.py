"""Plan lifecycle types.

A plan is any versioned, time-boxed prescription a coach gives a client:
macro targets, an option-based diet, or a strength program. All of them
share one status machine:

    draft ──activate──▶ active ──archive──▶ archived
      │                   ▲                    │
      └──────archive──────┼────────────────────┘
                          └──────activate──────┘

and at most one plan per (client, plan type) is active at a time.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PlanType = Literal["macro", "diet", "training"]
PlanStatus = Literal["draft", "active", "archived"]

PLAN_TYPES: tuple[str, ...] = ("macro", "diet", "training")

# Listing order: active first, then drafts, then history
STATUS_ORDER: dict[str, int] = {"active": 0, "draft": 1, "archived": 2}

# Allowed target statuses for each current status
TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"active", "archived"}),
    "active": frozenset({"archived"}),
    "archived": frozenset({"active"}),
}

# Specialization fields a coach may set at creation or edit later
PLAN_ATTRIBUTES: dict[str, frozenset[str]] = {
    "macro": frozenset({"kcal", "protein_g", "carbs_g", "fat_g", "steps_goal", "cardio_goal"}),
    "diet": frozenset({"diet_type"}),
    "training": frozenset({"total_weeks"}),
}
COMMON_ATTRIBUTES: frozenset[str] = frozenset({"name", "notes"})


class DuplicateOverrides(BaseModel):
    """Fields a coach can override when duplicating a plan.

    Attributes:
        name: New name; defaults to "<source name> (copy)"
        status: Status of the copy; defaults to draft
        effective_from: Start of the copy's window; defaults to today
        effective_to: End of the copy's window; defaults to open-ended
    """

    name: str | None = None
    status: Literal["draft", "active"] = "draft"
    effective_from: date | None = None
    effective_to: date | None = None


class PlanSummary(BaseModel):
    """Read model of a plan header, shared by every plan type."""

    id: str
    coach_id: str
    client_id: str
    plan_type: PlanType
    status: PlanStatus
    name: str | None = None
    notes: str | None = None
    effective_from: date
    effective_to: date | None = None
    attributes: dict[str, int | float | str | None] = Field(default_factory=dict)


# Set through explicit arguments or status transitions, never as attributes
RESERVED_FIELDS: frozenset[str] = frozenset(
    {"name", "notes", "status", "effective_from", "effective_to", "coach_id", "client_id"}
)


class PlanAttributes(BaseModel):
    """Header fields every plan type accepts."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    notes: str | None = None


class MacroAttributes(PlanAttributes):
    kcal: int | None = Field(default=None, ge=0)
    protein_g: float | None = Field(default=None, ge=0)
    carbs_g: float | None = Field(default=None, ge=0)
    fat_g: float | None = Field(default=None, ge=0)
    steps_goal: int | None = Field(default=None, ge=0)
    cardio_goal: str | None = None


class DietAttributes(PlanAttributes):
    diet_type: Literal["options", "macros", "hybrid"] | None = None


class TrainingAttributes(PlanAttributes):
    total_weeks: int | None = Field(default=None, ge=1)


ATTRIBUTE_MODELS: dict[str, type[PlanAttributes]] = {
    "macro": MacroAttributes,
    "diet": DietAttributes,
    "training": TrainingAttributes,
}


class EffectiveWindow(BaseModel):
    effective_from: date | None = None
    effective_to: date | None = None
