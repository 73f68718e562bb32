"""Thin HTTP client for the cookbook JSON API.

Used by the form state and the shopping list store. Any object with a
``requests``-style ``request(method, url, json=...)`` method works as the
transport, which lets tests pass FastAPI's ``TestClient`` directly.
"""

from typing import Optional

import requests

from .exceptions import ApiError


class CookbookClient:
    def __init__(self, base_url: str = "", session=None, timeout: Optional[float] = 30):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, fallback: str, json=None, params=None):
        kwargs = {}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = params
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        response = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        return self._handle(response, fallback)

    @staticmethod
    def _handle(response, fallback: str):
        if 200 <= response.status_code < 300:
            return response.json()
        message = fallback
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("error"):
            message = data["error"]
        raise ApiError(message, status_code=response.status_code)

    def list_tags(self):
        return self._request("GET", "/api/admin/tags", "Unable to load tags.").get("tags", [])

    def list_categories(self):
        data = self._request("GET", "/api/admin/categories", "Unable to load categories.")
        return data.get("categories", [])

    def create_recipe(self, payload: dict) -> dict:
        return self._request("POST", "/api/admin/recipes", "Unable to create recipe.", json=payload)

    def update_recipe(self, recipe_id, payload: dict) -> dict:
        return self._request(
            "PUT", f"/api/admin/recipes/{recipe_id}", "Unable to update recipe.", json=payload
        )

    def get_recipe_for_edit(self, slug: str) -> dict:
        return self._request("GET", f"/api/recipes/{slug}/edit", "Unable to load recipe.")

    def fetch_shopping_list(self):
        data = self._request("GET", "/api/shopping-list", "Unable to load items.")
        return data["items"]

    def create_shopping_list_item(self, ingredient_text: str, recipe_id=None, recipe_title=None):
        payload = {
            "ingredient_text": ingredient_text,
            "recipe_id": recipe_id,
            "recipe_title": recipe_title,
        }
        return self._request("POST", "/api/shopping-list", "Unable to add item.", json=payload)["item"]

    def update_shopping_list_item(self, item_id, is_checked: bool):
        data = self._request(
            "PATCH", f"/api/shopping-list/{item_id}", "Unable to update item.",
            json={"is_checked": is_checked},
        )
        return data["item"]

    def delete_shopping_list_item(self, item_id):
        self._request("DELETE", f"/api/shopping-list/{item_id}", "Unable to remove item.")

    def clear_shopping_list(self):
        self._request("DELETE", "/api/shopping-list", "Unable to clear list.")
