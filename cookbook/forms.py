"""Draft state behind the recipe create and edit forms.

A ``RecipeDraft`` holds what the user has typed so far. Rows carry local
temporary ids; only ``build_payload`` turns step assignments into the
1-based ingredient positions the API expects, so the wire format never
sees those ids. ``save`` sends the whole graph in one request.
"""

import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .exceptions import ApiError, ValidationError
from .logging_utils import get_logger
from .normalize import format_quantity, normalize_name, parse_optional_number

logger = get_logger(__name__)


def create_id() -> str:
    return str(uuid.uuid4())


@dataclass
class IngredientRow:
    id: str = field(default_factory=create_id)
    ingredient_text: str = ""
    quantity: str = ""
    unit: str = ""
    note: str = ""
    is_optional: bool = False
    assigned_step_ids: List[str] = field(default_factory=list)

    def has_content(self) -> bool:
        return any(
            value.strip() for value in (self.ingredient_text, self.quantity, self.unit, self.note)
        )


@dataclass
class StepRow:
    id: str = field(default_factory=create_id)
    content: str = ""


@dataclass
class Option:
    """A tag or category choice; ids starting with ``new-`` are not saved yet."""

    id: str
    name: str
    category: Optional[str] = None


def _text(value) -> str:
    if value is None or value == 0:
        return ""
    if isinstance(value, float):
        return format_quantity(value)
    return str(value)


def merge_options(fetched: List[Option], selected: List[Option]) -> List[Option]:
    """Fetched options plus any selected option the server did not return."""
    known = {normalize_name(option.name) for option in fetched}
    return list(fetched) + [o for o in selected if normalize_name(o.name) not in known]


def filter_options(options: List[Option], search: str) -> List[Option]:
    needle = normalize_name(search)
    if not needle:
        return list(options)
    return [option for option in options if needle in normalize_name(option.name)]


def _contains(options: List[Option], name: str) -> bool:
    key = normalize_name(name)
    return any(normalize_name(option.name) == key for option in options)


class RecipeDraft:
    """Client-held draft of one recipe."""

    def __init__(
        self,
        recipe_id=None,
        slug: Optional[str] = None,
        title: str = "",
        description: str = "",
        prep_minutes: str = "",
        cook_minutes: str = "",
        servings: str = "",
        ingredients: Optional[List[IngredientRow]] = None,
        steps: Optional[List[StepRow]] = None,
        tags: Optional[List[Option]] = None,
        categories: Optional[List[Option]] = None,
    ):
        self.recipe_id = recipe_id
        self.slug = slug
        self.title = title
        self.description = description
        self.prep_minutes = prep_minutes
        self.cook_minutes = cook_minutes
        self.servings = servings
        # Never fewer than one row of each
        self.ingredients = list(ingredients) if ingredients else [IngredientRow()]
        self.steps = list(steps) if steps else [StepRow()]
        self.selected_tags = list(tags or [])
        self.selected_categories = list(categories or [])
        self.available_tags = list(self.selected_tags)
        self.available_categories = list(self.selected_categories)

        self.is_saving = False
        self.error: Optional[str] = None
        self.status: Optional[str] = None
        self.redirect_to: Optional[str] = None

    @classmethod
    def from_recipe(cls, recipe: dict) -> "RecipeDraft":
        """Draft for editing, from the ``/api/recipes/{slug}/edit`` payload."""
        steps = [StepRow(id=str(step["id"]), content=step.get("content") or "") for step in recipe.get("steps", [])]
        assigned = {}
        for step in recipe.get("steps", []):
            for ingredient_id in step.get("ingredient_ids", []):
                assigned.setdefault(str(ingredient_id), []).append(str(step["id"]))
        ingredients = [
            IngredientRow(
                id=str(i["id"]),
                ingredient_text=i.get("ingredient_text") or "",
                quantity=_text(i.get("quantity")),
                unit=i.get("unit") or "",
                note=i.get("note") or "",
                is_optional=bool(i.get("is_optional")),
                assigned_step_ids=assigned.get(str(i["id"]), []),
            )
            for i in recipe.get("ingredients", [])
        ]
        return cls(
            recipe_id=recipe["id"],
            slug=recipe.get("slug"),
            title=recipe.get("title") or "",
            description=recipe.get("description") or "",
            prep_minutes=_text(recipe.get("prep_minutes")),
            cook_minutes=_text(recipe.get("cook_minutes")),
            servings=_text(recipe.get("servings")),
            ingredients=ingredients,
            steps=steps,
            tags=[Option(id=str(t["id"]), name=t["name"], category=t.get("category")) for t in recipe.get("tags", [])],
            categories=[Option(id=str(c["id"]), name=c["name"]) for c in recipe.get("categories", [])],
        )

    # Ingredient rows

    def add_ingredient(self) -> IngredientRow:
        row = IngredientRow()
        self.ingredients.append(row)
        return row

    def update_ingredient(self, row_id: str, **changes) -> None:
        for row in self.ingredients:
            if row.id == row_id:
                for name, value in changes.items():
                    if not hasattr(row, name) or name in ("id", "assigned_step_ids"):
                        raise AttributeError(f"Unknown ingredient field: {name}")
                    setattr(row, name, value)

    def remove_ingredient(self, row_id: str) -> None:
        if len(self.ingredients) <= 1:
            return
        self.ingredients = [row for row in self.ingredients if row.id != row_id]

    # Step rows

    def add_step(self) -> StepRow:
        row = StepRow()
        self.steps.append(row)
        return row

    def update_step(self, step_id: str, content: str) -> None:
        for step in self.steps:
            if step.id == step_id:
                step.content = content

    def remove_step(self, step_id: str) -> None:
        if len(self.steps) <= 1:
            return
        self.steps = [step for step in self.steps if step.id != step_id]
        for row in self.ingredients:
            row.assigned_step_ids = [s for s in row.assigned_step_ids if s != step_id]

    def toggle_ingredient_step(self, ingredient_id: str, step_id: str) -> None:
        for row in self.ingredients:
            if row.id != ingredient_id:
                continue
            if step_id in row.assigned_step_ids:
                row.assigned_step_ids = [s for s in row.assigned_step_ids if s != step_id]
            else:
                row.assigned_step_ids = row.assigned_step_ids + [step_id]

    # Tags and categories

    def load_tags(self, fetched: List[Option]) -> None:
        self.available_tags = merge_options(fetched, self.selected_tags)

    def load_categories(self, fetched: List[Option]) -> None:
        self.available_categories = merge_options(fetched, self.selected_categories)

    def fetch_options(self, client) -> None:
        """Load tag and category choices; on failure keep only the selected ones."""
        try:
            self.load_tags([Option(id=str(t["id"]), name=t["name"], category=t.get("category")) for t in client.list_tags()])
        except ApiError as exc:
            logger.warning("Loading tags failed: %s", exc.message)
            self.available_tags = list(self.selected_tags)
        try:
            self.load_categories([Option(id=str(c["id"]), name=c["name"]) for c in client.list_categories()])
        except ApiError as exc:
            logger.warning("Loading categories failed: %s", exc.message)
            self.available_categories = list(self.selected_categories)

    def select_tag(self, option_id: str) -> None:
        self._select(self.available_tags, self.selected_tags, option_id)

    def select_category(self, option_id: str) -> None:
        self._select(self.available_categories, self.selected_categories, option_id)

    def add_new_tag(self, name: str) -> Optional[Option]:
        return self._add_new(self.available_tags, self.selected_tags, name)

    def add_new_category(self, name: str) -> Optional[Option]:
        return self._add_new(self.available_categories, self.selected_categories, name)

    def remove_tag(self, name: str) -> None:
        key = normalize_name(name)
        self.selected_tags = [t for t in self.selected_tags if normalize_name(t.name) != key]

    def remove_category(self, name: str) -> None:
        key = normalize_name(name)
        self.selected_categories = [c for c in self.selected_categories if normalize_name(c.name) != key]

    @staticmethod
    def _select(available: List[Option], selected: List[Option], option_id: str) -> None:
        match = next((option for option in available if option.id == option_id), None)
        if match is not None and not _contains(selected, match.name):
            selected.append(match)

    @staticmethod
    def _add_new(available: List[Option], selected: List[Option], name: str) -> Optional[Option]:
        trimmed = (name or "").strip()
        if not trimmed:
            return None
        key = normalize_name(trimmed)
        option = next((o for o in available if normalize_name(o.name) == key), None)
        if option is None:
            option = Option(id=f"new-{create_id()}", name=trimmed)
            available.append(option)
        if not _contains(selected, option.name):
            selected.append(option)
        return option

    # Saving

    def build_payload(self, status: str) -> dict:
        """Validate the draft and build the request body.

        Raises:
            ValidationError: with the message shown above the form.
        """
        if not self.title.strip():
            raise ValidationError("Add a recipe title before saving.")

        entries = [row for row in self.ingredients if row.has_content()]
        positions = {row.id: index for index, row in enumerate(entries, start=1)}

        steps = []
        for step in self.steps:
            content = step.content.strip()
            if not content:
                continue
            steps.append({
                "content": content,
                # Ingredient declaration order, not assignment order
                "ingredient_positions": [positions[row.id] for row in entries if step.id in row.assigned_step_ids],
            })

        if not entries:
            raise ValidationError("Add at least one ingredient before saving.")
        if not steps:
            raise ValidationError("Add at least one preparation step before saving.")

        return {
            "title": self.title.strip(),
            "description": self.description.strip(),
            "prep_minutes": parse_optional_number(self.prep_minutes),
            "cook_minutes": parse_optional_number(self.cook_minutes),
            "servings": parse_optional_number(self.servings),
            "status": status,
            "tags": [tag.name for tag in self.selected_tags],
            "categories": [category.name for category in self.selected_categories],
            "ingredients": [
                {
                    "ingredient_text": row.ingredient_text.strip(),
                    "quantity": row.quantity.strip(),
                    "unit": row.unit.strip(),
                    "note": row.note.strip(),
                    "is_optional": row.is_optional,
                }
                for row in entries
            ],
            "steps": steps,
        }

    def save(self, client, status: str = "published", on_redirect: Callable[[str], None] = None) -> bool:
        """Send the draft; return True on success.

        On failure the message lands in ``error`` and the draft is kept
        as typed so the user can retry.
        """
        self.error = None
        self.status = None
        try:
            payload = self.build_payload(status)
        except ValidationError as exc:
            self.error = exc.message
            return False

        self.is_saving = True
        try:
            if self.recipe_id is None:
                result = client.create_recipe(payload)
            else:
                result = client.update_recipe(self.recipe_id, payload)
        except ApiError as exc:
            logger.warning("Saving recipe %s failed: %s", self.recipe_id, exc.message)
            self.error = exc.message
            return False
        finally:
            self.is_saving = False

        self.recipe_id = result.get("id", self.recipe_id)
        next_slug = result.get("slug") or self.slug
        if status == "published":
            self.status = "Recipe saved and published."
        else:
            self.status = "Draft saved successfully."
        if next_slug != self.slug:
            self.slug = next_slug
            self.redirect_to = f"/recipes/{next_slug}/edit"
            if on_redirect is not None:
                on_redirect(self.redirect_to)
        return True
