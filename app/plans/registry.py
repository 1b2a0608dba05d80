"""Per-plan-type descendant trees.

The lifecycle manager is generic over plan types; the structure hanging
below a plan (program days/exercises/cells, diet meals/options/items) is
owned by the component that manages it. This registry tells the lifecycle
manager how to deep-copy and cascade-delete each kind of tree.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.db.models import DietPlan, MacroPlan, Plan, TrainingProgram


@dataclass(frozen=True)
class PlanTree:
    """Copy/delete hooks for the descendants of one plan type.

    Attributes:
        copy: Deep-copies the tree of ``source_id`` under ``target_id``
            minting new ids for every descendant
        delete: Deletes every descendant of ``plan_id`` in foreign-key order
    """

    copy: Callable[[Session, str, str], None]
    delete: Callable[[Session, str], None]


PLAN_MODELS: dict[str, type[Plan]] = {
    "macro": MacroPlan,
    "diet": DietPlan,
    "training": TrainingProgram,
}


def get_plan_tree(plan_type: str) -> PlanTree | None:
    """Return the descendant tree hooks for a plan type (None for flat plans).

    Imports are local: the training and diet modules import the lifecycle
    manager themselves.
    """
    if plan_type == "training":
        from app.training.structure import PROGRAM_TREE

        return PROGRAM_TREE
    if plan_type == "diet":
        from app.diet.options import DIET_TREE

        return DIET_TREE
    return None
