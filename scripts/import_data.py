"""Seed the database from data/recipes.json.

Each entry is a recipe payload as accepted by ``POST /api/admin/recipes``.
Entries whose slug already exists are skipped.
"""

from pathlib import Path

from cookbook import crud, schemas
from cookbook.config import settings
from cookbook.db import SessionLocal, init_db
from cookbook.exceptions import CookbookError
from cookbook.logging_utils import configure_logging, get_logger
from cookbook.recipes import load_recipes

logger = get_logger(__name__)


def main():
    configure_logging(settings.log_level)
    init_db()
    p = Path(__file__).resolve().parents[1] / "data" / "recipes.json"
    data = load_recipes(p)
    if not data:
        logger.warning("No recipes found in %s", p)
        return
    db = SessionLocal()
    added = 0
    try:
        for entry in data:
            entry.setdefault("status", "published")
            try:
                crud.create_recipe(db, schemas.RecipePayload(**entry))
            except CookbookError as exc:
                logger.warning("Skipped %r: %s", entry.get("title"), exc.message)
                continue
            added += 1
    finally:
        db.close()
    logger.info("Imported %d recipes", added)


if __name__ == "__main__":
    main()
