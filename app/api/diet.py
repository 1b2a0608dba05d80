"""API endpoints for diet plan meal/option/item trees."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from loguru import logger

from app.api.dependencies.auth import get_current_coach_id
from app.db.session import get_session
from app.diet.options import DietOptionTreeManager
from app.diet.schemas import DietStructure, DietStructureInput

router = APIRouter(prefix="/api/diet-plans", tags=["diet"])


@router.get("/{plan_id}/structure", response_model=DietStructure)
def get_structure(plan_id: str, _coach_id: str = Depends(get_current_coach_id)) -> DietStructure:
    with get_session() as session:
        return DietOptionTreeManager(session).read_structure(plan_id)


@router.put("/{plan_id}/structure", response_model=DietStructure)
def save_structure(
    plan_id: str,
    request: DietStructureInput,
    coach_id: str = Depends(get_current_coach_id),
) -> DietStructure:
    """Replace the whole meal tree of a diet plan."""
    logger.info("Save diet structure requested", coach_id=coach_id, plan_id=plan_id, meals=len(request.meals))
    with get_session() as session:
        return DietOptionTreeManager(session).save_structure(plan_id, request.meals)
