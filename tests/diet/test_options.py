"""Tests for the diet meal/option/item tree."""

from datetime import date

import pytest
from sqlalchemy import func, select

from app.core.errors import NotFoundError, ValidationError
from app.db.models import DietMeal, DietMealOption, DietOptionItem
from app.diet.options import DietOptionTreeManager


@pytest.fixture
def diet_plan(lifecycle):
    return lifecycle.create(
        "diet",
        coach_id="coach-1",
        client_id="client-1",
        effective_from=date(2026, 3, 1),
        name="Opciones marzo",
    )


@pytest.fixture
def manager(db_session):
    return DietOptionTreeManager(db_session)


BREAKFAST = {
    "name": "Desayuno",
    "options": [
        {
            "name": "Avena",
            "items": [
                {"name": "Copos de avena", "quantity_value": 60, "quantity_unit": "g"},
                {"name": "Leche", "quantity_value": 250, "quantity_unit": "ml"},
            ],
        },
        {"items": [{"food_name": "Tostadas con aguacate"}]},
    ],
}
LUNCH = {
    "name": "Comida",
    "day_type": "training",
    "options": [{"name": "Arroz con pollo", "items": [{"name": "Arroz"}, {"name": "Pollo"}]}],
}


def _count(session, model, plan_id) -> int:
    return session.execute(select(func.count()).select_from(model).where(model.plan_id == plan_id)).scalar_one()


def test_save_and_read_in_submitted_order(manager, diet_plan):
    saved = manager.save_structure(diet_plan.id, [BREAKFAST, LUNCH])
    read = manager.read_structure(diet_plan.id)

    assert read == saved
    assert [(m.name, m.order_index) for m in read.meals] == [("Desayuno", 1), ("Comida", 2)]
    assert read.meals[1].day_type == "training"
    avena, tostadas = read.meals[0].options
    assert [(i.name, i.order_index) for i in avena.items] == [("Copos de avena", 1), ("Leche", 2)]
    assert avena.items[0].quantity_value == 60
    assert tostadas.name == "Opción 2"
    assert tostadas.items[0].name == "Tostadas con aguacate"
    assert tostadas.items[0].item_type == "food"


def test_save_replaces_whole_tree(db_session, manager, diet_plan):
    manager.save_structure(diet_plan.id, [BREAKFAST, LUNCH])
    manager.save_structure(diet_plan.id, [LUNCH])

    read = manager.read_structure(diet_plan.id)
    assert [m.name for m in read.meals] == ["Comida"]
    assert _count(db_session, DietMeal, diet_plan.id) == 1
    assert _count(db_session, DietMealOption, diet_plan.id) == 1
    assert _count(db_session, DietOptionItem, diet_plan.id) == 2


def test_item_without_name_rejected_with_path(db_session, manager, diet_plan):
    """Third item of the first option has no name: nothing is written."""
    meal = {
        "name": "Cena",
        "options": [{"name": "Pescado", "items": [{"name": "Merluza"}, {"name": "Patata"}, {"quantity_value": 100}]}],
    }
    with pytest.raises(ValidationError) as exc_info:
        manager.save_structure(diet_plan.id, [meal])

    assert exc_info.value.path == "meals[0].options[0].items[2]"
    assert _count(db_session, DietMeal, diet_plan.id) == 0


def test_failed_save_keeps_previous_tree(manager, diet_plan):
    manager.save_structure(diet_plan.id, [BREAKFAST])
    with pytest.raises(ValidationError):
        manager.save_structure(diet_plan.id, [{"name": "Merienda", "options": []}])
    assert [m.name for m in manager.read_structure(diet_plan.id).meals] == ["Desayuno"]


@pytest.mark.parametrize(
    ("meals", "path"),
    [
        ([{"name": "Merienda", "options": []}], "meals[0]"),
        ([BREAKFAST, {"name": "Comida", "options": [{"name": "Vacía", "items": []}]}], "meals[1].options[0]"),
        ([{"name": "Cena", "day_type": "holiday", "options": []}], "meals[0].day_type"),
        ([{"name": "Cena", "options": [{"items": [{"name": "Huevo", "item_type": "snack"}]}]}],
         "meals[0].options[0].items[0].item_type"),
    ],
)
def test_invalid_trees(manager, diet_plan, meals, path):
    with pytest.raises(ValidationError) as exc_info:
        manager.save_structure(diet_plan.id, meals)
    assert exc_info.value.path == path


def test_requires_diet_plan(manager, lifecycle):
    macro = lifecycle.create("macro", coach_id="coach-1", client_id="client-1", effective_from=date(2026, 1, 1))
    with pytest.raises(NotFoundError):
        manager.read_structure(macro.id)


def test_duplicate_copies_tree(manager, lifecycle, diet_plan):
    manager.save_structure(diet_plan.id, [BREAKFAST, LUNCH])

    copy = lifecycle.duplicate(diet_plan.id)

    source = manager.read_structure(diet_plan.id)
    copied = manager.read_structure(copy.id)
    assert copy.diet_type == "options"
    assert [m.name for m in copied.meals] == [m.name for m in source.meals]
    assert [len(o.items) for m in copied.meals for o in m.options] == [2, 1, 2]
    source_ids = {o.id for m in source.meals for o in m.options}
    assert source_ids.isdisjoint({o.id for m in copied.meals for o in m.options})


def test_delete_archived_diet_plan_removes_tree(db_session, manager, lifecycle, diet_plan):
    manager.save_structure(diet_plan.id, [BREAKFAST])
    lifecycle.archive(diet_plan.id)
    lifecycle.delete(diet_plan.id)

    for model in (DietMeal, DietMealOption, DietOptionItem):
        assert _count(db_session, model, diet_plan.id) == 0
