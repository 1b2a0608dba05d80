from __future__ import annotations

import uuid
from datetime import date as date_type
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class Plan(Base):
    """Versioned, time-boxed plan owned by a coach for one client.

    One table holds every plan kind; ``plan_type`` selects the mapped subclass
    (MacroPlan, DietPlan, TrainingProgram). Subclass-specific columns are
    nullable at the storage level and enforced by the lifecycle manager.

    Constraints:
    - At most one row with status='active' per (client_id, plan_type)
      (partial unique index; the lifecycle manager archives before activating)
    - effective_to, when set, is on or after effective_from
    """

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    coach_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    plan_type: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    effective_from: Mapped[date_type] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __mapper_args__ = {"polymorphic_on": "plan_type"}

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'active', 'archived')", name="ck_plans_status"),
        CheckConstraint("effective_to IS NULL OR effective_to >= effective_from", name="ck_plans_effective_window"),
        Index(
            "uq_plans_single_active",
            "client_id",
            "plan_type",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        Index("idx_plans_client_type_status", "client_id", "plan_type", "status"),
    )


class MacroPlan(Plan):
    """Daily macro targets (kcal, protein, carbs, fat) plus activity goals."""

    kcal: Mapped[int | None] = mapped_column(Integer, nullable=True)
    protein_g: Mapped[float | None] = mapped_column(Float, nullable=True)
    carbs_g: Mapped[float | None] = mapped_column(Float, nullable=True)
    fat_g: Mapped[float | None] = mapped_column(Float, nullable=True)
    steps_goal: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cardio_goal: Mapped[str | None] = mapped_column(String, nullable=True)

    __mapper_args__ = {"polymorphic_identity": "macro"}


class DietPlan(Plan):
    """Option-based diet plan; its meal tree lives in diet_meals."""

    diet_type: Mapped[str | None] = mapped_column(String, nullable=True, default="options")

    __mapper_args__ = {"polymorphic_identity": "diet"}


class TrainingProgram(Plan):
    """Strength program; structure lives in training_days/columns/exercises/cells."""

    total_weeks: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __mapper_args__ = {"polymorphic_identity": "training"}


class TrainingDay(Base):
    """A training day within a program. order_index is 1-based and dense."""

    __tablename__ = "training_days"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    program_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_training_days_program_order", "program_id", "order_index"),)


class TrainingColumn(Base):
    """A column of the program matrix.

    Schema:
    - key: stable slug (sets, reps, weight...) used when copying or importing
    - data_type: text | number
    - scope: cell (varies per week) | exercise (fixed for the exercise)
    - editable_by: coach | client | both
    """

    __tablename__ = "training_columns"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    program_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"), nullable=False, index=True)
    key: Mapped[str | None] = mapped_column(String, nullable=True)
    label: Mapped[str] = mapped_column(String, nullable=False)
    data_type: Mapped[str] = mapped_column(String, nullable=False, default="text")
    scope: Mapped[str] = mapped_column(String, nullable=False, default="cell")
    editable_by: Mapped[str] = mapped_column(String, nullable=False, default="coach")
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class TrainingExercise(Base):
    """An exercise row inside a training day.

    sets/reps/rir/rest_seconds/notes are fixed scalars, not matrix cells.
    """

    __tablename__ = "training_exercises"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    program_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"), nullable=False, index=True)
    day_id: Mapped[str] = mapped_column(String, ForeignKey("training_days.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    sets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reps: Mapped[str | None] = mapped_column(String, nullable=True)
    rir: Mapped[str | None] = mapped_column(String, nullable=True)
    rest_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class TrainingCell(Base):
    """One value of the sparse (exercise, column, week) matrix.

    The triple is the primary key: writing the same key overwrites.
    value=NULL means the cell was touched and then cleared.
    """

    __tablename__ = "training_cells"

    exercise_id: Mapped[str] = mapped_column(String, ForeignKey("training_exercises.id"), primary_key=True)
    column_id: Mapped[str] = mapped_column(String, ForeignKey("training_columns.id"), primary_key=True)
    week_index: Mapped[int] = mapped_column(Integer, primary_key=True)
    program_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"), nullable=False, index=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (CheckConstraint("week_index >= 1", name="ck_training_cells_week"),)


class DietMeal(Base):
    """A meal slot (Desayuno, Comida...) of a diet plan for one day type."""

    __tablename__ = "diet_meals"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"), nullable=False, index=True)
    day_type: Mapped[str] = mapped_column(String, nullable=False, default="default")
    name: Mapped[str] = mapped_column(String, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)


class DietMealOption(Base):
    """One interchangeable option for a meal."""

    __tablename__ = "diet_meal_options"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    meal_id: Mapped[str] = mapped_column(String, ForeignKey("diet_meals.id"), nullable=False, index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)


class DietOptionItem(Base):
    """A food (or free-text rule) inside a meal option."""

    __tablename__ = "diet_option_items"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    option_id: Mapped[str] = mapped_column(String, ForeignKey("diet_meal_options.id"), nullable=False, index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id"), nullable=False, index=True)
    item_type: Mapped[str] = mapped_column(String, nullable=False, default="food")
    name: Mapped[str] = mapped_column(String, nullable=False)
    quantity_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    quantity_unit: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)


class ScheduledStrengthSession(Base):
    """Calendar entry pointing at a program day.

    program_id/day_id are lookups, not foreign keys: the day can be deleted
    after scheduling and the entry must still render.
    """

    __tablename__ = "scheduled_strength_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    client_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    coach_id: Mapped[str | None] = mapped_column(String, nullable=True)
    program_id: Mapped[str] = mapped_column(String, nullable=False)
    day_id: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_strength_sessions_client_date", "client_id", "date"),)


class CardioSession(Base):
    """Self-contained cardio calendar entry; blocks are stored as JSON in structure."""

    __tablename__ = "cardio_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id, index=True)
    client_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    coach_id: Mapped[str | None] = mapped_column(String, nullable=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    structure: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rpe: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    distance_km: Mapped[float | None] = mapped_column(Float, nullable=True)
    result_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_cardio_sessions_client_date", "client_id", "date"),)
