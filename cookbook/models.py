from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Table, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


def utc_now():
    return datetime.now(timezone.utc)


RECIPE_STATUSES = ("draft", "published")

# Many-to-many link tables; none carries attributes of its own
recipe_tags = Table(
    "recipe_tags", Base.metadata,
    Column("recipe_id", Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

recipe_categories = Table(
    "recipe_categories", Base.metadata,
    Column("recipe_id", Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

step_ingredients = Table(
    "recipe_instruction_step_ingredients", Base.metadata,
    Column(
        "step_id", Integer,
        ForeignKey("recipe_instruction_steps.id", ondelete="CASCADE"), primary_key=True,
    ),
    Column(
        "ingredient_id", Integer,
        ForeignKey("recipe_ingredients.id", ondelete="CASCADE"), primary_key=True,
    ),
)


class Recipe(Base):
    __tablename__ = "recipes"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(220), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    prep_minutes = Column(Float, nullable=True)
    cook_minutes = Column(Float, nullable=True)
    servings = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default="draft")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)

    ingredients = relationship(
        "RecipeIngredient", back_populates="recipe",
        order_by="RecipeIngredient.position", cascade="all, delete-orphan",
    )
    steps = relationship(
        "InstructionStep", back_populates="recipe",
        order_by="InstructionStep.position", cascade="all, delete-orphan",
    )
    tags = relationship("Tag", secondary=recipe_tags, order_by="Tag.name")
    # Loaded only when the category tables exist (see db.schema_capabilities)
    categories = relationship("Category", secondary=recipe_categories, order_by="Category.name")


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"
    __table_args__ = (UniqueConstraint("recipe_id", "position"),)
    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    ingredient_text = Column(String(500), nullable=False, default="")
    quantity = Column(Float, nullable=True)
    unit = Column(String(50), nullable=True)
    note = Column(String(500), nullable=True)
    is_optional = Column(Boolean, nullable=False, default=False)

    recipe = relationship("Recipe", back_populates="ingredients")


class InstructionStep(Base):
    __tablename__ = "recipe_instruction_steps"
    __table_args__ = (UniqueConstraint("recipe_id", "position"),)
    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)

    recipe = relationship("Recipe", back_populates="steps")
    # Declaration order of the ingredients, not the order they were assigned
    ingredients = relationship(
        "RecipeIngredient", secondary=step_ingredients, order_by="RecipeIngredient.position",
    )


class Tag(Base):
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    category = Column(String(100), nullable=True)


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)


class Meal(Base):
    __tablename__ = "meals"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(220), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    meal_recipes = relationship(
        "MealRecipe", back_populates="meal",
        order_by=lambda: [MealRecipe.created_at, MealRecipe.id], cascade="all, delete-orphan",
    )


class MealRecipe(Base):
    __tablename__ = "meal_recipes"
    id = Column(Integer, primary_key=True, index=True)
    meal_id = Column(Integer, ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    meal = relationship("Meal", back_populates="meal_recipes")
    recipe = relationship("Recipe")


class User(Base):
    __tablename__ = "users"
    id = Column(String(64), primary_key=True)
    email = Column(String(320), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class AuthSession(Base):
    __tablename__ = "auth_sessions"
    token = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class ShoppingListItem(Base):
    __tablename__ = "shopping_list_items"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    ingredient_text = Column(String(500), nullable=False)
    is_checked = Column(Boolean, nullable=False, default=False)
    # No foreign key: rows outlive the recipe and keep the title snapshot
    recipe_id = Column(Integer, nullable=True)
    recipe_title = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
