"""Client-side shopping list with optimistic updates.

Toggling, removing and clearing change ``items`` first and then call the
server; when the call fails the previous state is put back and the
server's message is kept in ``error``.
"""

from typing import Callable, List, Optional

from .exceptions import ApiError
from .logging_utils import get_logger

logger = get_logger(__name__)


class ShoppingListStore:
    def __init__(self, client):
        self.client = client
        self.items: List[dict] = []
        self.error: Optional[str] = None
        self.is_loading = True
        self.pending = set()

    @property
    def checked_count(self) -> int:
        return len([item for item in self.items if item["is_checked"]])

    def load(self) -> None:
        try:
            self.items = self.client.fetch_shopping_list()
        except ApiError as exc:
            self.error = exc.message
        finally:
            self.is_loading = False

    def add(self, ingredient_text: str, recipe_id=None, recipe_title=None) -> Optional[dict]:
        trimmed = (ingredient_text or "").strip()
        if not trimmed:
            self.error = "Enter an ingredient to add."
            return None
        self.error = None
        try:
            created = self.client.create_shopping_list_item(trimmed, recipe_id, recipe_title)
        except ApiError as exc:
            self.error = exc.message
            return None
        self.items = self.items + [created]
        return created

    def toggle(self, item_id) -> None:
        item = next((entry for entry in self.items if entry["id"] == item_id), None)
        if item is None:
            return
        previous = item["is_checked"]
        self.error = None
        self.pending.add(item_id)
        self._set_checked(item_id, not previous)
        try:
            self.client.update_shopping_list_item(item_id, not previous)
        except ApiError as exc:
            logger.warning("Reverting shopping list item %s: %s", item_id, exc.message)
            self._set_checked(item_id, previous)
            self.error = exc.message
        finally:
            self.pending.discard(item_id)

    def _set_checked(self, item_id, is_checked: bool) -> None:
        self.items = [
            dict(entry, is_checked=is_checked) if entry["id"] == item_id else entry
            for entry in self.items
        ]

    def remove(self, item_id) -> None:
        previous = self.items
        self.error = None
        self.pending.add(item_id)
        self.items = [entry for entry in self.items if entry["id"] != item_id]
        try:
            self.client.delete_shopping_list_item(item_id)
        except ApiError as exc:
            self.items = previous
            self.error = exc.message
        finally:
            self.pending.discard(item_id)

    def clear(self, confirm: Callable[[str], bool]) -> bool:
        """Empty the list once ``confirm`` agrees; return True if it was cleared."""
        if not self.items:
            return False
        if not confirm("Clear the entire shopping list? This cannot be undone."):
            return False
        previous = self.items
        self.error = None
        self.items = []
        try:
            self.client.clear_shopping_list()
        except ApiError as exc:
            self.items = previous
            self.error = exc.message
            return False
        return True
