"""Plans module - generic plan lifecycle.

This module provides:
- The draft/active/archived state machine shared by macro, diet and training plans
- Single-active-plan enforcement per (client, plan type)
- Deep duplication and cascading deletion of plan trees
"""

from app.plans.lifecycle import PlanLifecycleManager, plan_summary, validate_effective_window
from app.plans.types import DuplicateOverrides, PlanStatus, PlanSummary, PlanType

__all__ = [
    "DuplicateOverrides",
    "PlanLifecycleManager",
    "PlanStatus",
    "PlanSummary",
    "PlanType",
    "plan_summary",
    "validate_effective_window",
]
