import json
from pathlib import Path
from typing import Iterable, List


def load_recipes(path):
    """Load recipes from a JSON file and return a list of dicts.

    Args:
        path (str or Path): Path to the JSON file.

    Returns:
        list: list of recipe dictionaries, empty when the file is missing.
    """
    p = Path(path)
    if not p.exists():
        return []
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def tag_names(recipe) -> List[str]:
    names = []
    for tag in getattr(recipe, "tags", None) or []:
        name = tag if isinstance(tag, str) else getattr(tag, "name", None)
        if name:
            names.append(name)
    return names


def available_tag_names(recipes: Iterable) -> List[str]:
    """Sorted, distinct tag names across ``recipes``."""
    names = set()
    for recipe in recipes:
        names.update(tag_names(recipe))
    return sorted(names)


def filter_recipes(recipes: Iterable, search: str = "", tags: Iterable[str] = ()) -> list:
    """Recipes whose title or description contains ``search`` and carry every tag."""
    needle = (search or "").strip().lower()
    wanted = list(tags or [])
    matches = []
    for recipe in recipes:
        if needle:
            title = (recipe.title or "").lower()
            description = (recipe.description or "").lower()
            if needle not in title and needle not in description:
                continue
        if wanted:
            names = tag_names(recipe)
            if not all(tag in names for tag in wanted):
                continue
        matches.append(recipe)
    return matches
