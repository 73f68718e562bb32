from datetime import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Number = Union[float, str, None]


class TagOut(BaseModel):
    id: int
    name: str
    category: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CategoryOut(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class IngredientIn(BaseModel):
    ingredient_text: str = Field("", json_schema_extra={"example": "Water"})
    # Kept as typed; blanks and non-numbers are stored as NULL
    quantity: Number = Field(None, json_schema_extra={"example": "2"})
    unit: Optional[str] = Field(None, json_schema_extra={"example": "cups"})
    note: Optional[str] = None
    is_optional: bool = False


class StepIn(BaseModel):
    content: str = Field("", json_schema_extra={"example": "Boil it"})
    # 1-based positions into the payload's ingredient list
    ingredient_positions: List[int] = Field(default_factory=list)


class RecipePayload(BaseModel):
    """Whole recipe graph as sent by the create and edit forms."""

    title: Optional[str] = Field(None, json_schema_extra={"example": "Test Soup"})
    slug: Optional[str] = None
    description: Optional[str] = None
    prep_minutes: Number = None
    cook_minutes: Number = None
    servings: Number = None
    status: Optional[Literal["draft", "published"]] = None
    tags: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    ingredients: List[IngredientIn] = Field(default_factory=list)
    steps: List[StepIn] = Field(default_factory=list)

    @field_validator("steps", mode="before")
    @classmethod
    def _steps_from_text(cls, value):
        # The create form posts bare strings
        if isinstance(value, list):
            return [{"content": item} if isinstance(item, str) else item for item in value]
        return value


class RecipeSaved(BaseModel):
    id: int
    slug: str


class IngredientOut(BaseModel):
    id: int
    position: int
    ingredient_text: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    note: Optional[str] = None
    is_optional: bool = False

    model_config = ConfigDict(from_attributes=True)


class StepOut(BaseModel):
    id: int
    position: int
    content: str
    ingredient_ids: List[int] = Field(default_factory=list)


class RecipeSummary(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    prep_minutes: Optional[float] = None
    cook_minutes: Optional[float] = None
    servings: Optional[float] = None
    status: str
    created_at: Optional[datetime] = None
    tags: List[TagOut] = Field(default_factory=list)
    categories: List[CategoryOut] = Field(default_factory=list)


class RecipeDetail(RecipeSummary):
    ingredients: List[IngredientOut] = Field(default_factory=list)
    steps: List[StepOut] = Field(default_factory=list)


class MealRecipeOut(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    prep_minutes: Optional[float] = None
    cook_minutes: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class MealSummary(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    recipe_count: int = 0


class MealDetail(MealSummary):
    recipes: List[MealRecipeOut] = Field(default_factory=list)


class MealAssignment(BaseModel):
    meal_id: Optional[int] = None
    new_meal_title: Optional[str] = None


class ShoppingListItemOut(BaseModel):
    id: int
    ingredient_text: str
    is_checked: bool
    recipe_id: Optional[int] = None
    recipe_title: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ShoppingListItemCreate(BaseModel):
    ingredient_text: Optional[str] = None
    recipe_id: Optional[int] = None
    recipe_title: Optional[str] = None


class ShoppingListItemUpdate(BaseModel):
    # Checked in the handler so a non-boolean gets the documented message
    is_checked: Any = None
