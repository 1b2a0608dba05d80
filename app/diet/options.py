"""Diet option tree manager.

A diet plan's structure is a three-level tree: meal -> option -> item.
Saving replaces the whole tree (validate everything, delete, reinsert);
there is no partial merge.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.db.models import DietMeal, DietMealOption, DietOptionItem
from app.db.session import write_guard
from app.diet.schemas import DietStructure, ItemView, MealInput, MealView, OptionView
from app.plans import PlanLifecycleManager
from app.plans.registry import PlanTree


def _error_path(loc: Sequence[int | str], prefix: str = "meals") -> str:
    """Render a pydantic error location as ``meals[0].options[1].items[2].name``."""
    path = prefix
    for part in loc:
        path += f"[{part}]" if isinstance(part, int) else f".{part}"
    return path


def parse_meals(meals: Sequence[MealInput | dict[str, Any]]) -> list[MealInput]:
    """Parse raw meal dicts into input models, reporting the failing path."""
    parsed: list[MealInput] = []
    for meal_index, meal in enumerate(meals):
        if isinstance(meal, MealInput):
            parsed.append(meal)
            continue
        try:
            parsed.append(MealInput.model_validate(meal))
        except PydanticValidationError as e:
            first = e.errors()[0]
            raise ValidationError(first["msg"], path=_error_path([meal_index, *first["loc"]])) from e
    return parsed


def validate_meals(meals: list[MealInput]) -> None:
    """Check the tree shape: options per meal, items per option, item names.

    Raises:
        ValidationError: Pointing at the first offending node
    """
    for meal_index, meal in enumerate(meals):
        meal_path = f"meals[{meal_index}]"
        if not meal.name.strip():
            raise ValidationError("Meal name cannot be empty", path=meal_path)
        if not meal.options:
            raise ValidationError(f"Meal '{meal.name}' has no options", path=meal_path)
        for option_index, option in enumerate(meal.options):
            option_path = f"{meal_path}.options[{option_index}]"
            if not option.items:
                raise ValidationError("Option has no items", path=option_path)
            for item_index, item in enumerate(option.items):
                if item.name is None or not item.name.strip():
                    raise ValidationError("Item has no name", path=f"{option_path}.items[{item_index}]")


class DietOptionTreeManager:
    """Read and replace the meal/option/item tree of a diet plan."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.plans = PlanLifecycleManager(session)

    def save_structure(self, plan_id: str, meals: Sequence[MealInput | dict[str, Any]]) -> DietStructure:
        """Replace the plan's tree with ``meals``.

        Order indices are assigned 1..n per parent from the submitted order.
        Nothing is written if any node fails validation.

        Raises:
            NotFoundError: Unknown diet plan
            ValidationError: With the path of the first invalid node
        """
        self.plans.get(plan_id, "diet")
        parsed = parse_meals(meals)
        validate_meals(parsed)

        with write_guard(self.session, "save diet structure"):
            _delete_tree(self.session, plan_id)
            self.session.flush()
            _insert_tree(self.session, plan_id, parsed)

        logger.info(
            "Diet structure saved",
            plan_id=plan_id,
            meals=len(parsed),
            options=sum(len(meal.options) for meal in parsed),
        )
        return self.read_structure(plan_id)

    def read_structure(self, plan_id: str) -> DietStructure:
        """Load the full tree, each level ordered by order_index."""
        self.plans.get(plan_id, "diet")

        meals = self.session.execute(
            select(DietMeal).where(DietMeal.plan_id == plan_id).order_by(DietMeal.order_index)
        ).scalars().all()
        options = self.session.execute(
            select(DietMealOption).where(DietMealOption.plan_id == plan_id).order_by(DietMealOption.order_index)
        ).scalars().all()
        items = self.session.execute(
            select(DietOptionItem).where(DietOptionItem.plan_id == plan_id).order_by(DietOptionItem.order_index)
        ).scalars().all()

        items_by_option: dict[str, list[ItemView]] = defaultdict(list)
        for item in items:
            items_by_option[item.option_id].append(ItemView.model_validate(item))

        options_by_meal: dict[str, list[OptionView]] = defaultdict(list)
        for option in options:
            view = OptionView.model_validate(option)
            view.items = items_by_option[option.id]
            options_by_meal[option.meal_id].append(view)

        meal_views = []
        for meal in meals:
            view = MealView.model_validate(meal)
            view.options = options_by_meal[meal.id]
            meal_views.append(view)

        logger.debug("Diet structure loaded", plan_id=plan_id, meals=len(meal_views), items=len(items))
        return DietStructure(plan_id=plan_id, meals=meal_views)


def _insert_tree(session: Session, plan_id: str, meals: list[MealInput]) -> None:
    """Insert meals, then options, then items, flushing each level."""
    pending_options: list[tuple[DietMealOption, list]] = []
    for meal_index, meal in enumerate(meals, start=1):
        row = DietMeal(plan_id=plan_id, day_type=meal.day_type, name=meal.name.strip(), order_index=meal_index)
        session.add(row)
        session.flush()
        for option_index, option in enumerate(meal.options, start=1):
            option_row = DietMealOption(
                meal_id=row.id,
                plan_id=plan_id,
                name=(option.name or "").strip() or f"Opción {option_index}",
                notes=option.notes,
                order_index=option_index,
            )
            pending_options.append((option_row, option.items))
    session.add_all(option for option, _ in pending_options)
    session.flush()

    for option_row, items in pending_options:
        for item_index, item in enumerate(items, start=1):
            session.add(
                DietOptionItem(
                    option_id=option_row.id,
                    plan_id=plan_id,
                    item_type=item.item_type,
                    name=item.name.strip(),
                    quantity_value=item.quantity_value,
                    quantity_unit=item.quantity_unit,
                    notes=item.notes,
                    order_index=item_index,
                )
            )


def _delete_tree(session: Session, plan_id: str) -> None:
    session.execute(delete(DietOptionItem).where(DietOptionItem.plan_id == plan_id))
    session.execute(delete(DietMealOption).where(DietMealOption.plan_id == plan_id))
    session.execute(delete(DietMeal).where(DietMeal.plan_id == plan_id))


def copy_diet_tree(session: Session, source_id: str, target_id: str) -> None:
    """Copy the meal tree of one diet plan under another, with new ids."""
    structure = DietOptionTreeManager(session).read_structure(source_id)
    meals = [
        MealInput.model_validate(
            {
                "name": meal.name,
                "day_type": meal.day_type,
                "options": [
                    {
                        "name": option.name,
                        "notes": option.notes,
                        "items": [item.model_dump(exclude={"id", "order_index"}) for item in option.items],
                    }
                    for option in meal.options
                ],
            }
        )
        for meal in structure.meals
    ]
    session.flush()
    _insert_tree(session, target_id, meals)
    logger.debug("Diet tree copied", source_plan_id=source_id, plan_id=target_id, meals=len(meals))


DIET_TREE = PlanTree(copy=copy_diet_tree, delete=_delete_tree)
