from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings
from .logging_utils import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = None):
    # Import models so every table is registered on Base.metadata
    from . import models  # noqa: F401

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    schema_capabilities.cache_clear()
    caps = schema_capabilities(bind)
    logger.info("Database ready (categories=%s)", caps.categories)


@dataclass(frozen=True)
class SchemaCapabilities:
    """Optional parts of the schema that are present on a database."""

    categories: bool


@lru_cache(maxsize=None)
def schema_capabilities(bind: Engine) -> SchemaCapabilities:
    """Probe the database once for optional tables.

    Databases created before the category migration have neither
    ``categories`` nor ``recipe_categories``; readers and writers skip the
    category relation there instead of failing.
    """
    inspector = inspect(bind)
    categories = inspector.has_table("categories") and inspector.has_table("recipe_categories")
    if not categories:
        logger.warning("Category tables are missing; category data will be skipped")
    return SchemaCapabilities(categories=categories)
