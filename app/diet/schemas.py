"""Diet option tree schemas (Pydantic).

Input models accept what coaches submit from the editor, including the
legacy ``food_name`` item key. Emptiness rules (meal without options,
option without items, item without name) are checked by the manager so
the error can point at the offending node.
"""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DayType = Literal["default", "training", "rest", "mon", "tue", "wed", "thu", "fri", "sat", "sun"]
ItemType = Literal["food", "free_text", "rule"]


class ItemInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(default=None, validation_alias=AliasChoices("name", "food_name"))
    item_type: ItemType = "food"
    quantity_value: float | None = Field(default=None, ge=0)
    quantity_unit: str | None = None
    notes: str | None = None


class OptionInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    notes: str | None = None
    items: list[ItemInput] = Field(default_factory=list)


class MealInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    day_type: DayType = "default"
    options: list[OptionInput] = Field(default_factory=list)


class DietStructureInput(BaseModel):
    meals: list[MealInput]


class ItemView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    item_type: ItemType
    name: str
    quantity_value: float | None = None
    quantity_unit: str | None = None
    notes: str | None = None
    order_index: int


class OptionView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    notes: str | None = None
    order_index: int
    items: list[ItemView] = Field(default_factory=list)


class MealView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    day_type: DayType
    name: str
    order_index: int
    options: list[OptionView] = Field(default_factory=list)


class DietStructure(BaseModel):
    plan_id: str
    meals: list[MealView]
