"""Plan lifecycle manager.

One status machine for macro plans, diet plans and training programs,
parameterized by plan type. The single-active-plan rule is enforced at
write time: every path that makes a plan active first archives the
current active plan of the same (client, plan type) in the same
transaction. What is active is always read back from the store.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import case, select
from sqlalchemy.exc import MultipleResultsFound
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from app.db.models import Plan
from app.db.session import write_guard
from app.plans.registry import PLAN_MODELS, get_plan_tree
from app.plans.types import (
    ATTRIBUTE_MODELS,
    COMMON_ATTRIBUTES,
    PLAN_ATTRIBUTES,
    PLAN_TYPES,
    STATUS_ORDER,
    TRANSITIONS,
    DuplicateOverrides,
    EffectiveWindow,
    PlanSummary,
)
from app.training.cells import CellMatrixStore

def validate_effective_window(effective_from: date | None, effective_to: date | None) -> None:
    """Validate a plan's effective window.

    Raises:
        ValidationError: If effective_from is missing or effective_to precedes it
    """
    if effective_from is None:
        raise ValidationError("effective_from is required", path="effective_from")
    if effective_to is not None and effective_to < effective_from:
        raise ValidationError(
            f"effective_to ({effective_to}) is before effective_from ({effective_from})",
            path="effective_to",
        )


def parse_effective_window(effective_from: Any, effective_to: Any) -> tuple[date | None, date | None]:
    """Coerce window bounds to dates (ISO strings are accepted).

    Raises:
        ValidationError: If a bound is not a date
    """
    try:
        window = EffectiveWindow(effective_from=effective_from, effective_to=effective_to)
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(first["msg"], path=str(first["loc"][0])) from e
    return window.effective_from, window.effective_to


def plan_summary(plan: Plan) -> PlanSummary:
    """Build the read model for a plan header."""
    return PlanSummary(
        id=plan.id,
        coach_id=plan.coach_id,
        client_id=plan.client_id,
        plan_type=plan.plan_type,
        status=plan.status,
        name=plan.name,
        notes=plan.notes,
        effective_from=plan.effective_from,
        effective_to=plan.effective_to,
        attributes={key: getattr(plan, key) for key in sorted(PLAN_ATTRIBUTES[plan.plan_type])},
    )


class PlanLifecycleManager:
    """Draft/active/archived state machine shared by every plan type.

    Operations flush through ``write_guard``; committing is left to the
    caller's session scope so that a request is one transaction.
    """

    def __init__(
        self,
        session: Session,
        *,
        today: Callable[[], date] = date.today,
        strict_archive: bool | None = None,
    ) -> None:
        self.session = session
        self._today = today
        self.strict_archive = settings.strict_archive if strict_archive is None else strict_archive

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, plan_id: str, plan_type: str | None = None) -> Plan:
        """Load a plan by id.

        Args:
            plan_id: Plan ID
            plan_type: When given, the plan must be of this type

        Raises:
            NotFoundError: If no plan (of that type) has this id
        """
        plan = self.session.get(Plan, plan_id)
        if plan is None or (plan_type is not None and plan.plan_type != plan_type):
            raise NotFoundError(f"{plan_type.capitalize()} plan" if plan_type else "Plan", plan_id)
        return plan

    def get_active(self, client_id: str, plan_type: str) -> Plan | None:
        """Return the active plan of (client, plan type), recomputed from the store."""
        self._check_plan_type(plan_type)
        query = select(Plan).where(
            Plan.client_id == client_id,
            Plan.plan_type == plan_type,
            Plan.status == "active",
        )
        try:
            return self.session.execute(query).scalar_one_or_none()
        except MultipleResultsFound as e:
            logger.error("More than one active plan found", client_id=client_id, plan_type=plan_type)
            raise ConflictError(f"Client {client_id} has more than one active {plan_type} plan") from e

    def find_effective(self, client_id: str, plan_type: str, on_date: date) -> Plan | None:
        """Return the plan whose effective window contains ``on_date``.

        The most recent effective_from wins when windows overlap.
        """
        self._check_plan_type(plan_type)
        query = (
            select(Plan)
            .where(
                Plan.client_id == client_id,
                Plan.plan_type == plan_type,
                Plan.effective_from <= on_date,
                (Plan.effective_to.is_(None)) | (Plan.effective_to >= on_date),
            )
            .order_by(Plan.effective_from.desc(), Plan.created_at.desc())
            .limit(1)
        )
        return self.session.execute(query).scalars().first()

    def list_for_client(self, client_id: str, plan_type: str) -> list[Plan]:
        """List plans of (client, plan type): active, then draft, then archived.

        Within a status, newest effective_from first.
        """
        self._check_plan_type(plan_type)
        status_rank = case(STATUS_ORDER, value=Plan.status, else_=len(STATUS_ORDER))
        query = (
            select(Plan)
            .where(Plan.client_id == client_id, Plan.plan_type == plan_type)
            .order_by(status_rank, Plan.effective_from.desc(), Plan.created_at.desc())
        )
        return list(self.session.execute(query).scalars().all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        plan_type: str,
        *,
        coach_id: str,
        client_id: str,
        status: str = "draft",
        effective_from: date,
        effective_to: date | None = None,
        **attributes: Any,
    ) -> Plan:
        """Create a plan as draft or active.

        Creating an active plan archives the current active plan of the
        same (client, plan type) before inserting, in one transaction.

        Raises:
            ValidationError: Unknown plan type, status other than draft/active,
                bad effective window or bad attributes
            ConflictError: A concurrent activation won the race
        """
        self._check_plan_type(plan_type)
        if status not in ("draft", "active"):
            raise ValidationError(f"Plans are created as draft or active, not {status}", path="status")
        effective_from, effective_to = parse_effective_window(effective_from, effective_to)
        validate_effective_window(effective_from, effective_to)
        if plan_type == "training" and attributes.get("total_weeks") is None:
            attributes["total_weeks"] = settings.default_program_weeks
        attributes = self._validate_attributes(plan_type, attributes, creating=True)

        model = PLAN_MODELS[plan_type]
        with write_guard(self.session, "create plan"):
            if status == "active":
                self._archive_current_active(client_id, plan_type)
            plan = model(
                coach_id=coach_id,
                client_id=client_id,
                status=status,
                effective_from=effective_from,
                effective_to=effective_to,
                **attributes,
            )
            self.session.add(plan)

        logger.info(
            "Plan created",
            plan_id=plan.id,
            plan_type=plan_type,
            client_id=client_id,
            status=status,
        )
        return plan

    def activate(self, plan_id: str) -> Plan:
        """Make a plan the active one for its (client, plan type).

        No-op when the plan is already active. The previously active plan,
        if any, is archived first. An active plan is open-ended, so
        effective_to is cleared.

        Raises:
            NotFoundError: Unknown plan id
            ConflictError: A concurrent activation won the race
        """
        plan = self.get(plan_id)
        if plan.status == "active":
            logger.debug("Plan already active", plan_id=plan_id)
            return plan
        self._check_transition(plan, "active")

        with write_guard(self.session, "activate plan"):
            archived = self._archive_current_active(plan.client_id, plan.plan_type, exclude_id=plan.id)
            plan.status = "active"
            plan.effective_to = None

        logger.info(
            "Plan activated",
            plan_id=plan_id,
            plan_type=plan.plan_type,
            client_id=plan.client_id,
            archived_plan_ids=archived,
        )
        return plan

    def archive(self, plan_id: str) -> Plan:
        """Archive a plan and close its effective window.

        Raises:
            NotFoundError: Unknown plan id
            InvalidTransitionError: Plan already archived (strict mode only)
        """
        plan = self.get(plan_id)
        if plan.status == "archived":
            if self.strict_archive:
                raise InvalidTransitionError(f"Plan {plan_id} is already archived")
            logger.debug("Plan already archived, nothing to do", plan_id=plan_id)
            return plan

        with write_guard(self.session, "archive plan"):
            self._archive(plan)

        logger.info("Plan archived", plan_id=plan_id, plan_type=plan.plan_type, client_id=plan.client_id)
        return plan

    def duplicate(self, plan_id: str, overrides: DuplicateOverrides | None = None) -> Plan:
        """Deep-copy a plan and its whole descendant tree with new ids.

        The copy is a draft starting today unless overridden. An ``active``
        override goes through the same archive-then-activate path as create.

        Raises:
            NotFoundError: Unknown plan id
            ValidationError: Overrides produce an invalid effective window
        """
        source = self.get(plan_id)
        overrides = overrides or DuplicateOverrides()

        name = overrides.name
        if name is None and source.name:
            name = f"{source.name} (copy)"
        attributes = {key: getattr(source, key) for key in PLAN_ATTRIBUTES[source.plan_type]}

        copy = self.create(
            source.plan_type,
            coach_id=source.coach_id,
            client_id=source.client_id,
            status=overrides.status,
            effective_from=overrides.effective_from or self._today(),
            effective_to=overrides.effective_to,
            name=name,
            notes=source.notes,
            **attributes,
        )

        tree = get_plan_tree(source.plan_type)
        if tree is not None:
            with write_guard(self.session, "duplicate plan tree"):
                tree.copy(self.session, source.id, copy.id)

        logger.info("Plan duplicated", source_plan_id=plan_id, plan_id=copy.id, status=copy.status)
        return copy

    def delete(self, plan_id: str) -> None:
        """Hard-delete an archived plan and all of its descendants.

        Raises:
            NotFoundError: Unknown plan id
            InvalidTransitionError: Plan is not archived
        """
        plan = self.get(plan_id)
        if plan.status != "archived":
            logger.warning("Refusing to delete non-archived plan", plan_id=plan_id, status=plan.status)
            raise InvalidTransitionError(f"Only archived plans can be deleted (plan {plan_id} is {plan.status})")

        tree = get_plan_tree(plan.plan_type)
        with write_guard(self.session, "delete plan"):
            if tree is not None:
                tree.delete(self.session, plan.id)
            self.session.delete(plan)

        logger.info("Plan deleted", plan_id=plan_id, plan_type=plan.plan_type, client_id=plan.client_id)

    def update(self, plan_id: str, **changes: Any) -> Plan:
        """Edit a plan's header and specialization fields.

        Status is changed only through activate/archive. Shrinking a
        program's total_weeks drops the cells of the removed weeks.

        Raises:
            NotFoundError: Unknown plan id
            ValidationError: Unknown field or invalid values
        """
        plan = self.get(plan_id)
        window_fields = {"effective_from", "effective_to"}
        attributes = self._validate_attributes(
            plan.plan_type,
            {k: v for k, v in changes.items() if k not in window_fields},
            creating=False,
        )

        effective_from, effective_to = parse_effective_window(
            changes.get("effective_from", plan.effective_from),
            changes.get("effective_to", plan.effective_to),
        )
        validate_effective_window(effective_from, effective_to)

        previous_weeks = getattr(plan, "total_weeks", None)
        with write_guard(self.session, "update plan"):
            plan.effective_from = effective_from
            plan.effective_to = effective_to
            for key, value in attributes.items():
                setattr(plan, key, value)
            new_weeks = attributes.get("total_weeks")
            if new_weeks is not None and previous_weeks is not None and new_weeks < previous_weeks:
                CellMatrixStore(self.session).truncate_weeks(plan.id, new_weeks)

        logger.info("Plan updated", plan_id=plan_id, fields=sorted(changes))
        return plan

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _archive_current_active(self, client_id: str, plan_type: str, exclude_id: str | None = None) -> list[str]:
        """Archive whatever is active for (client, plan type) and flush it.

        The flush runs before the caller activates or inserts another plan
        so the single-active index never sees two active rows.
        """
        query = select(Plan).where(
            Plan.client_id == client_id,
            Plan.plan_type == plan_type,
            Plan.status == "active",
        )
        if exclude_id is not None:
            query = query.where(Plan.id != exclude_id)

        archived: list[str] = []
        for current in self.session.execute(query).scalars().all():
            self._archive(current)
            archived.append(current.id)
        if archived:
            self.session.flush()
            logger.info("Archived previously active plans", client_id=client_id, plan_type=plan_type, plan_ids=archived)
        return archived

    def _archive(self, plan: Plan) -> None:
        """Set archived status and end the window today (never before it starts)."""
        today = self._today()
        plan.status = "archived"
        if plan.effective_to is None or plan.effective_to > today:
            plan.effective_to = max(today, plan.effective_from)

    def _check_transition(self, plan: Plan, target: str) -> None:
        if target not in TRANSITIONS[plan.status]:
            raise InvalidTransitionError(f"Cannot move plan {plan.id} from {plan.status} to {target}")

    @staticmethod
    def _check_plan_type(plan_type: str) -> None:
        if plan_type not in PLAN_TYPES:
            raise ValidationError(f"Unknown plan type: {plan_type}", path="plan_type")

    @staticmethod
    def _validate_attributes(plan_type: str, attributes: dict[str, Any], *, creating: bool) -> dict[str, Any]:
        """Validate specialization fields for a plan type.

        Returns the given fields coerced to their column types.
        """
        allowed = COMMON_ATTRIBUTES | PLAN_ATTRIBUTES[plan_type]
        for key in attributes:
            if key not in allowed:
                raise ValidationError(f"Field {key} does not apply to {plan_type} plans", path=key)

        try:
            parsed = ATTRIBUTE_MODELS[plan_type].model_validate(attributes)
        except PydanticValidationError as e:
            first = e.errors()[0]
            raise ValidationError(
                first["msg"], path=".".join(str(part) for part in first["loc"]) or plan_type
            ) from e
        values = parsed.model_dump(include=set(attributes))

        if plan_type == "training" and (creating or "total_weeks" in values):
            weeks = values.get("total_weeks")
            if weeks is None:
                raise ValidationError("total_weeks is required for training programs", path="total_weeks")
            if weeks > settings.max_program_weeks:
                raise ValidationError(
                    f"total_weeks must be between 1 and {settings.max_program_weeks}",
                    path="total_weeks",
                )

        name = values.get("name")
        if name is not None and not name.strip():
            raise ValidationError("name cannot be blank", path="name")
        return values
