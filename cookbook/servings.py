"""Serving scaling and the ingredient labels shown next to each step.

A recipe stores quantities for its base servings. A reader may ask for a
different number of servings; every quantity is then multiplied by
``requested / base`` for display only. Nothing here touches the database.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .normalize import format_quantity, parse_optional_number


def parse_servings(value) -> Optional[float]:
    """Return the requested servings when it is a finite positive number."""
    number = parse_optional_number(value)
    if number is None or number <= 0:
        return None
    return number


def scale_ratio(requested, base_servings) -> Optional[float]:
    """Multiplier for ingredient quantities, or None to leave them unscaled."""
    requested = parse_servings(requested)
    if requested is None or not base_servings or base_servings <= 0:
        return None
    ratio = requested / base_servings
    return ratio if math.isfinite(ratio) else None


def scaled_quantity(quantity, ratio: Optional[float] = None) -> Optional[str]:
    """Display string for a quantity under ``ratio``.

    >>> scaled_quantity(1.333, 1)
    '1.33'
    >>> scaled_quantity(2, 0.5)
    '1'
    >>> scaled_quantity(None, 2) is None
    True
    """
    if quantity is None or isinstance(quantity, bool):
        return None
    if not math.isfinite(quantity) or quantity == 0:
        return None
    if not ratio:
        return format_quantity(quantity)
    scaled = quantity * ratio
    # Past the float range there is nothing sensible to show
    if not math.isfinite(scaled):
        return None
    return format_quantity(scaled)


def ingredient_label(ingredient, ratio: Optional[float] = None) -> str:
    quantity = scaled_quantity(ingredient.quantity, ratio)
    parts = [quantity, ingredient.unit, ingredient.ingredient_text]
    return " ".join(part for part in parts if part).strip()


def build_ingredient_lookup(ingredients: Iterable, ratio: Optional[float] = None) -> Dict[str, str]:
    """Map ingredient id (as a string) to its display label."""
    return {str(ingredient.id): ingredient_label(ingredient, ratio) for ingredient in ingredients}


def assign_step_ingredients(steps: Iterable, lookup: Dict[str, str]) -> List[List[str]]:
    """Labels of the ingredients each step references, one list per step.

    Ids missing from ``lookup`` are dropped.
    """
    assigned = []
    for step in steps:
        labels = [lookup.get(str(ingredient_id)) for ingredient_id in step.ingredient_ids]
        assigned.append([label for label in labels if label])
    return assigned


@dataclass
class ScaledIngredient:
    id: int
    label: str
    quantity: Optional[str]
    unit: Optional[str]
    ingredient_text: str
    note: Optional[str]
    is_optional: bool


@dataclass
class ScaledStep:
    id: int
    position: int
    content: str
    ingredients: List[str] = field(default_factory=list)


@dataclass
class ServingView:
    """A recipe's ingredients and steps as rendered for some servings."""

    base_servings: Optional[float]
    requested: Optional[str]
    is_valid_servings: bool
    ratio: Optional[float]
    ingredients: List[ScaledIngredient]
    steps: List[ScaledStep]

    @classmethod
    def build(cls, recipe, requested=None):
        """Build the view from a recipe detail (see ``schemas.RecipeDetail``).

        Without a request the base servings are shown.
        """
        base = recipe.servings
        if requested is None or str(requested).strip() == "":
            requested = format_quantity(base) if base else None
        ratio = scale_ratio(requested, base)
        lookup = build_ingredient_lookup(recipe.ingredients, ratio)
        ingredients = [
            ScaledIngredient(
                id=ingredient.id,
                label=lookup[str(ingredient.id)],
                quantity=scaled_quantity(ingredient.quantity, ratio),
                unit=ingredient.unit,
                ingredient_text=ingredient.ingredient_text,
                note=ingredient.note,
                is_optional=bool(ingredient.is_optional),
            )
            for ingredient in recipe.ingredients
        ]
        labels = assign_step_ingredients(recipe.steps, lookup)
        steps = [
            ScaledStep(id=step.id, position=step.position, content=step.content, ingredients=step_labels)
            for step, step_labels in zip(recipe.steps, labels)
        ]
        return cls(
            base_servings=base,
            requested=None if requested is None else str(requested),
            is_valid_servings=parse_servings(requested) is not None,
            ratio=ratio,
            ingredients=ingredients,
            steps=steps,
        )
