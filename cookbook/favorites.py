"""Favorites kept on the local machine, independent of the database.

Each favorite is a snapshot of the recipe taken when it was starred; it is
not refreshed when the recipe changes.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class FavoriteRecipe:
    id: Union[int, str]
    slug: str
    title: str
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "FavoriteRecipe":
        return cls(
            id=data["id"],
            slug=data.get("slug", ""),
            title=data.get("title", ""),
            description=data.get("description"),
            tags=list(data.get("tags") or []),
        )


class FavoritesStore:
    """Favorites persisted to a JSON file, most recently starred first.

    ``is_hydrated`` stays False until ``load`` has run, so callers can tell
    "not loaded yet" apart from "loaded and empty".
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.favorites: List[FavoriteRecipe] = []
        self.is_hydrated = False

    def load(self) -> List[FavoriteRecipe]:
        self.favorites = self._read()
        self.is_hydrated = True
        return self.favorites

    def _read(self) -> List[FavoriteRecipe]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable favorites file %s: %s", self.path, exc)
            return []
        if not isinstance(data, list):
            return []
        return [FavoriteRecipe.from_dict(item) for item in data if isinstance(item, dict) and "id" in item]

    def _persist(self, favorites: List[FavoriteRecipe]) -> None:
        self.favorites = favorites
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps([asdict(f) for f in favorites]), encoding="utf-8")

    def _ensure_loaded(self) -> None:
        # Writing before the file is read would drop what it holds
        if not self.is_hydrated:
            self.load()

    def is_favorite(self, recipe_id) -> bool:
        self._ensure_loaded()
        # Ids are compared as strings; snapshots may hold either type
        return any(str(f.id) == str(recipe_id) for f in self.favorites)

    def toggle(self, recipe: FavoriteRecipe) -> bool:
        """Add or remove ``recipe``; return True when it is now a favorite."""
        self._ensure_loaded()
        if self.is_favorite(recipe.id):
            self._persist([f for f in self.favorites if str(f.id) != str(recipe.id)])
            return False
        self._persist([recipe] + self.favorites)
        return True
