from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .db import schema_capabilities
from .exceptions import NotFound, SlugConflict, ValidationError
from .logging_utils import get_logger, log_operation
from .normalize import normalize_name, parse_optional_number, slugify, unique_names

logger = get_logger(__name__)


def _categories_enabled(db: Session) -> bool:
    return schema_capabilities(db.get_bind()).categories


def _recipe_query(db: Session, detail: bool = False):
    options = [selectinload(models.Recipe.tags)]
    if _categories_enabled(db):
        options.append(selectinload(models.Recipe.categories))
    if detail:
        options.append(selectinload(models.Recipe.ingredients))
        options.append(
            selectinload(models.Recipe.steps).selectinload(models.InstructionStep.ingredients)
        )
    return db.query(models.Recipe).options(*options)


def _summary_fields(recipe: models.Recipe, with_categories: bool) -> dict:
    return {
        "id": recipe.id,
        "title": recipe.title,
        "slug": recipe.slug,
        "description": recipe.description,
        "prep_minutes": recipe.prep_minutes,
        "cook_minutes": recipe.cook_minutes,
        "servings": recipe.servings,
        "status": recipe.status,
        "created_at": recipe.created_at,
        "tags": [schemas.TagOut.model_validate(tag) for tag in recipe.tags],
        # Same shape with or without the category tables
        "categories": (
            [schemas.CategoryOut.model_validate(c) for c in recipe.categories]
            if with_categories else []
        ),
    }


def _to_detail(recipe: models.Recipe, with_categories: bool) -> schemas.RecipeDetail:
    return schemas.RecipeDetail(
        **_summary_fields(recipe, with_categories),
        ingredients=[schemas.IngredientOut.model_validate(i) for i in recipe.ingredients],
        steps=[
            schemas.StepOut(
                id=step.id,
                position=step.position,
                content=step.content,
                ingredient_ids=[ingredient.id for ingredient in step.ingredients],
            )
            for step in recipe.steps
        ],
    )


def _contains_pattern(text: str) -> str:
    # Typed % and _ are literals, not wildcards
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_recipes(
    db: Session, query: Optional[str] = None, include_drafts: bool = False
) -> List[schemas.RecipeSummary]:
    """Published recipes, newest first, optionally filtered by title."""
    q = _recipe_query(db)
    if not include_drafts:
        q = q.filter(models.Recipe.status == "published")
    if query and query.strip():
        q = q.filter(models.Recipe.title.ilike(_contains_pattern(query.strip()), escape="\\"))
    q = q.order_by(models.Recipe.created_at.desc(), models.Recipe.id.desc())
    with_categories = _categories_enabled(db)
    return [schemas.RecipeSummary(**_summary_fields(r, with_categories)) for r in q.all()]


def get_published_recipes(db: Session) -> List[schemas.RecipeSummary]:
    return search_recipes(db)


def get_recipe_by_slug(db: Session, slug: str) -> Optional[schemas.RecipeDetail]:
    recipe = (
        _recipe_query(db, detail=True)
        .filter(models.Recipe.status == "published", models.Recipe.slug == slug)
        .first()
    )
    if recipe is None:
        return None
    return _to_detail(recipe, _categories_enabled(db))


def get_recipe_for_edit_by_slug(db: Session, slug: str) -> Optional[schemas.RecipeDetail]:
    # Drafts are editable too
    recipe = _recipe_query(db, detail=True).filter(models.Recipe.slug == slug).first()
    if recipe is None:
        return None
    return _to_detail(recipe, _categories_enabled(db))


def list_tags(db: Session) -> List[schemas.TagOut]:
    tags = db.query(models.Tag).order_by(models.Tag.name, models.Tag.id).all()
    return [schemas.TagOut.model_validate(t) for t in tags]


def list_categories(db: Session) -> List[schemas.CategoryOut]:
    if not _categories_enabled(db):
        return []
    categories = db.query(models.Category).order_by(models.Category.name, models.Category.id).all()
    return [schemas.CategoryOut.model_validate(c) for c in categories]


def _has_content(ingredient: schemas.IngredientIn) -> bool:
    fields = (ingredient.ingredient_text, ingredient.quantity, ingredient.unit, ingredient.note)
    return any(str(f).strip() for f in fields if f is not None)


def clean_recipe_payload(payload: schemas.RecipePayload) -> schemas.RecipePayload:
    """Drop empty rows and reject payloads without title, ingredients or steps."""
    if not payload.title or not payload.title.strip():
        raise ValidationError("Title is required.")
    ingredients = [i for i in payload.ingredients if _has_content(i)]
    if not ingredients:
        raise ValidationError("At least one ingredient is required.")
    steps = [s for s in payload.steps if s.content and s.content.strip()]
    if not steps:
        raise ValidationError("At least one preparation step is required.")
    return payload.model_copy(update={"ingredients": ingredients, "steps": steps})


def _resolve_names(db: Session, model, names: List[str]):
    """Existing rows for ``names`` (matched case-insensitively), creating the rest."""
    if not names:
        return []
    # Matched in Python: SQLite lower() only folds ASCII
    by_key = {}
    for row in db.query(model).order_by(model.id).all():
        by_key.setdefault(normalize_name(row.name), row)
    rows = []
    for name in names:
        row = by_key.get(normalize_name(name))
        if row is None:
            row = model(name=name)
            db.add(row)
            by_key[normalize_name(name)] = row
        rows.append(row)
    return rows


def _write_children(db: Session, recipe: models.Recipe, payload: schemas.RecipePayload):
    ingredients = [
        models.RecipeIngredient(
            position=index,
            ingredient_text=(ingredient.ingredient_text or "").strip(),
            quantity=parse_optional_number(ingredient.quantity),
            unit=(ingredient.unit or "").strip() or None,
            note=(ingredient.note or "").strip() or None,
            is_optional=ingredient.is_optional,
        )
        for index, ingredient in enumerate(payload.ingredients, start=1)
    ]
    recipe.ingredients = ingredients

    steps = []
    for index, step in enumerate(payload.steps, start=1):
        linked = []
        for position in step.ingredient_positions:
            # Positions outside this payload would point at another recipe's rows
            if 1 <= position <= len(ingredients) and ingredients[position - 1] not in linked:
                linked.append(ingredients[position - 1])
        steps.append(
            models.InstructionStep(position=index, content=step.content.strip(), ingredients=linked)
        )
    recipe.steps = steps

    recipe.tags = _resolve_names(db, models.Tag, unique_names(payload.tags))
    if _categories_enabled(db):
        recipe.categories = _resolve_names(db, models.Category, unique_names(payload.categories))


def _commit_recipe(db: Session, slug: str):
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        log_operation(logger, operation="save_recipe", outcome="slug_conflict", slug=slug)
        raise SlugConflict(slug) from exc


def create_recipe(db: Session, payload: schemas.RecipePayload) -> schemas.RecipeSaved:
    payload = clean_recipe_payload(payload)
    title = payload.title.strip()
    slug = (payload.slug or "").strip() or slugify(title)
    if not slug:
        raise ValidationError("Title must contain letters or numbers.")

    recipe = models.Recipe(
        title=title,
        slug=slug,
        description=(payload.description or "").strip() or None,
        prep_minutes=parse_optional_number(payload.prep_minutes),
        cook_minutes=parse_optional_number(payload.cook_minutes),
        servings=parse_optional_number(payload.servings),
        status=payload.status or "draft",
    )
    db.add(recipe)
    _write_children(db, recipe, payload)
    _commit_recipe(db, slug)
    db.refresh(recipe)
    log_operation(logger, operation="create_recipe", outcome="success", recipe_id=recipe.id, slug=slug)
    return schemas.RecipeSaved(id=recipe.id, slug=recipe.slug)


def update_recipe(db: Session, recipe_id: int, payload: schemas.RecipePayload) -> schemas.RecipeSaved:
    """Replace a recipe and its whole graph.

    Ingredients, steps, tag links and category links are deleted and
    reinserted; there is no merge, so the last save wins. The slug follows
    the new title.
    """
    payload = clean_recipe_payload(payload)
    recipe = db.get(models.Recipe, recipe_id)
    if recipe is None:
        raise NotFound("Recipe not found.")

    title = payload.title.strip()
    slug = slugify(title)
    if not slug:
        raise ValidationError("Title must contain letters or numbers.")

    # Old rows must be gone before positions are reused
    recipe.steps = []
    recipe.ingredients = []
    db.flush()

    recipe.title = title
    recipe.slug = slug
    recipe.description = (payload.description or "").strip() or None
    recipe.prep_minutes = parse_optional_number(payload.prep_minutes)
    recipe.cook_minutes = parse_optional_number(payload.cook_minutes)
    recipe.servings = parse_optional_number(payload.servings)
    recipe.status = payload.status or "published"
    _write_children(db, recipe, payload)
    _commit_recipe(db, slug)
    log_operation(logger, operation="update_recipe", outcome="success", recipe_id=recipe.id, slug=slug)
    return schemas.RecipeSaved(id=recipe.id, slug=recipe.slug)


def get_meals(db: Session) -> List[schemas.MealSummary]:
    meals = (
        db.query(models.Meal)
        .options(selectinload(models.Meal.meal_recipes))
        .order_by(models.Meal.created_at.desc(), models.Meal.id.desc())
        .all()
    )
    return [
        schemas.MealSummary(
            id=m.id, title=m.title, slug=m.slug, description=m.description,
            created_at=m.created_at, recipe_count=len(m.meal_recipes),
        )
        for m in meals
    ]


def get_meal_by_slug(db: Session, slug: str) -> Optional[schemas.MealDetail]:
    meal = (
        db.query(models.Meal)
        .options(selectinload(models.Meal.meal_recipes).selectinload(models.MealRecipe.recipe))
        .filter(models.Meal.slug == slug)
        .first()
    )
    if meal is None:
        return None
    recipes = [schemas.MealRecipeOut.model_validate(mr.recipe) for mr in meal.meal_recipes if mr.recipe]
    return schemas.MealDetail(
        id=meal.id, title=meal.title, slug=meal.slug, description=meal.description,
        created_at=meal.created_at, recipe_count=len(recipes), recipes=recipes,
    )


def create_meal(db: Session, title: str, description: Optional[str] = None) -> models.Meal:
    slug = slugify(title or "")
    if not slug:
        raise ValidationError("Enter a meal name to continue.")
    meal = models.Meal(title=title.strip(), slug=slug, description=description)
    db.add(meal)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise SlugConflict(slug, kind="meal") from exc
    return meal


def add_recipe_to_meal(db: Session, recipe_id: int, assignment: schemas.MealAssignment) -> models.Meal:
    """Attach a recipe to an existing meal, or to a new one made from a title."""
    recipe = db.get(models.Recipe, recipe_id)
    if recipe is None:
        raise NotFound("Recipe not found.")
    if assignment.meal_id:
        meal = db.get(models.Meal, assignment.meal_id)
        if meal is None:
            raise NotFound("Meal not found.")
    elif assignment.new_meal_title and assignment.new_meal_title.strip():
        meal = create_meal(db, assignment.new_meal_title)
    else:
        raise ValidationError("Choose a meal or enter a new meal name.")

    db.add(models.MealRecipe(meal=meal, recipe=recipe))
    db.commit()
    db.refresh(meal)
    log_operation(logger, operation="add_recipe_to_meal", outcome="success", recipe_id=recipe.id, meal_id=meal.id)
    return meal


def list_shopping_items(db: Session, user_id: str) -> List[models.ShoppingListItem]:
    return (
        db.query(models.ShoppingListItem)
        .filter(models.ShoppingListItem.user_id == user_id)
        .order_by(models.ShoppingListItem.created_at, models.ShoppingListItem.id)
        .all()
    )


def add_shopping_item(db: Session, user_id: str, item: schemas.ShoppingListItemCreate) -> models.ShoppingListItem:
    text = (item.ingredient_text or "").strip()
    if not text:
        raise ValidationError("Ingredient text is required.")
    db_item = models.ShoppingListItem(
        user_id=user_id,
        ingredient_text=text,
        recipe_id=item.recipe_id,
        recipe_title=item.recipe_title,
    )
    db.add(db_item)
    db.commit()
    db.refresh(db_item)
    log_operation(logger, operation="add_shopping_item", outcome="success", user_id=user_id, item_id=db_item.id)
    return db_item


def set_shopping_item_checked(db: Session, user_id: str, item_id: int, is_checked) -> models.ShoppingListItem:
    if not isinstance(is_checked, bool):
        raise ValidationError("is_checked must be a boolean.")
    db_item = (
        db.query(models.ShoppingListItem)
        .filter(models.ShoppingListItem.id == item_id, models.ShoppingListItem.user_id == user_id)
        .first()
    )
    if db_item is None:
        raise NotFound("Shopping list item not found.")
    db_item.is_checked = is_checked
    db.commit()
    db.refresh(db_item)
    return db_item


def delete_shopping_item(db: Session, user_id: str, item_id: int) -> int:
    deleted = (
        db.query(models.ShoppingListItem)
        .filter(models.ShoppingListItem.id == item_id, models.ShoppingListItem.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def clear_shopping_list(db: Session, user_id: str) -> int:
    deleted = (
        db.query(models.ShoppingListItem)
        .filter(models.ShoppingListItem.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    log_operation(logger, operation="clear_shopping_list", outcome="success", user_id=user_id, deleted=deleted)
    return deleted
