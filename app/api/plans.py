"""API endpoints for the plan lifecycle (macro, diet and training plans)."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from app.api.dependencies.auth import get_current_coach_id
from app.db.session import get_session
from app.plans import DuplicateOverrides, PlanLifecycleManager, PlanStatus, PlanSummary, PlanType, plan_summary
from app.plans.types import RESERVED_FIELDS

router = APIRouter(prefix="/api/plans", tags=["plans"])


def _check_attribute_keys(attributes: dict[str, Any]) -> dict[str, Any]:
    reserved = sorted(RESERVED_FIELDS.intersection(attributes))
    if reserved:
        raise ValueError(f"{', '.join(reserved)} cannot be set through attributes")
    return attributes


class PlanCreateRequest(BaseModel):
    """Request body for creating a plan.

    ``attributes`` holds the type-specific fields (kcal, diet_type,
    total_weeks...).
    """

    plan_type: PlanType
    client_id: str
    status: PlanStatus = "draft"
    effective_from: date
    effective_to: date | None = None
    name: str | None = None
    notes: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("attributes")
    @classmethod
    def reject_reserved_keys(cls, attributes: dict[str, Any]) -> dict[str, Any]:
        return _check_attribute_keys(attributes)


class PlanUpdateRequest(BaseModel):
    effective_from: date | None = None
    effective_to: date | None = None
    name: str | None = None
    notes: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("attributes")
    @classmethod
    def reject_reserved_keys(cls, attributes: dict[str, Any]) -> dict[str, Any]:
        return _check_attribute_keys(attributes)


@router.post("", response_model=PlanSummary, status_code=status.HTTP_201_CREATED)
def create_plan(request: PlanCreateRequest, coach_id: str = Depends(get_current_coach_id)) -> PlanSummary:
    logger.info("Create plan requested", coach_id=coach_id, client_id=request.client_id, plan_type=request.plan_type)
    header: dict[str, Any] = {}
    if request.name is not None:
        header["name"] = request.name
    if request.notes is not None:
        header["notes"] = request.notes

    with get_session() as session:
        plan = PlanLifecycleManager(session).create(
            request.plan_type,
            coach_id=coach_id,
            client_id=request.client_id,
            status=request.status,
            effective_from=request.effective_from,
            effective_to=request.effective_to,
            **header,
            **request.attributes,
        )
        return plan_summary(plan)


@router.get("", response_model=list[PlanSummary])
def list_plans(
    client_id: str = Query(...),
    plan_type: PlanType = Query(...),
    _coach_id: str = Depends(get_current_coach_id),
) -> list[PlanSummary]:
    """List a client's plans of one type: active, then drafts, then archived."""
    with get_session() as session:
        return [plan_summary(plan) for plan in PlanLifecycleManager(session).list_for_client(client_id, plan_type)]


@router.get("/active", response_model=PlanSummary | None)
def get_active_plan(
    client_id: str = Query(...),
    plan_type: PlanType = Query(...),
    _coach_id: str = Depends(get_current_coach_id),
) -> PlanSummary | None:
    with get_session() as session:
        plan = PlanLifecycleManager(session).get_active(client_id, plan_type)
        return plan_summary(plan) if plan is not None else None


@router.get("/effective", response_model=PlanSummary | None)
def get_effective_plan(
    client_id: str = Query(...),
    plan_type: PlanType = Query(...),
    on_date: date = Query(..., description="Date that must fall inside the plan's effective window"),
    _coach_id: str = Depends(get_current_coach_id),
) -> PlanSummary | None:
    with get_session() as session:
        plan = PlanLifecycleManager(session).find_effective(client_id, plan_type, on_date)
        return plan_summary(plan) if plan is not None else None


@router.get("/{plan_id}", response_model=PlanSummary)
def get_plan(plan_id: str, _coach_id: str = Depends(get_current_coach_id)) -> PlanSummary:
    with get_session() as session:
        return plan_summary(PlanLifecycleManager(session).get(plan_id))


@router.patch("/{plan_id}", response_model=PlanSummary)
def update_plan(
    plan_id: str,
    request: PlanUpdateRequest,
    coach_id: str = Depends(get_current_coach_id),
) -> PlanSummary:
    changes = request.model_dump(exclude_unset=True, exclude={"attributes"})
    changes.update(request.attributes)
    logger.info("Update plan requested", coach_id=coach_id, plan_id=plan_id, fields=sorted(changes))
    with get_session() as session:
        return plan_summary(PlanLifecycleManager(session).update(plan_id, **changes))


@router.post("/{plan_id}/activate", response_model=PlanSummary)
def activate_plan(plan_id: str, coach_id: str = Depends(get_current_coach_id)) -> PlanSummary:
    logger.info("Activate plan requested", coach_id=coach_id, plan_id=plan_id)
    with get_session() as session:
        return plan_summary(PlanLifecycleManager(session).activate(plan_id))


@router.post("/{plan_id}/archive", response_model=PlanSummary)
def archive_plan(plan_id: str, coach_id: str = Depends(get_current_coach_id)) -> PlanSummary:
    logger.info("Archive plan requested", coach_id=coach_id, plan_id=plan_id)
    with get_session() as session:
        return plan_summary(PlanLifecycleManager(session).archive(plan_id))


@router.post("/{plan_id}/duplicate", response_model=PlanSummary, status_code=status.HTTP_201_CREATED)
def duplicate_plan(
    plan_id: str,
    overrides: DuplicateOverrides | None = Body(default=None),
    coach_id: str = Depends(get_current_coach_id),
) -> PlanSummary:
    logger.info("Duplicate plan requested", coach_id=coach_id, plan_id=plan_id)
    with get_session() as session:
        return plan_summary(PlanLifecycleManager(session).duplicate(plan_id, overrides))


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(plan_id: str, coach_id: str = Depends(get_current_coach_id)) -> None:
    logger.info("Delete plan requested", coach_id=coach_id, plan_id=plan_id)
    with get_session() as session:
        PlanLifecycleManager(session).delete(plan_id)
