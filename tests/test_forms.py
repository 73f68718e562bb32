import pytest

from cookbook.client import CookbookClient
from cookbook.exceptions import ApiError
from cookbook.forms import Option, RecipeDraft, filter_options


def soup_draft():
    draft = RecipeDraft(title="Test Soup", servings="2")
    water = draft.ingredients[0]
    draft.update_ingredient(water.id, ingredient_text="Water", quantity="2", unit="cups")
    draft.add_ingredient()
    salt = draft.add_ingredient()
    draft.update_ingredient(salt.id, ingredient_text="Salt")
    step = draft.steps[0]
    draft.update_step(step.id, "Boil it")
    # Assigned out of order on purpose
    draft.toggle_ingredient_step(salt.id, step.id)
    draft.toggle_ingredient_step(water.id, step.id)
    return draft


@pytest.fixture
def api(client):
    return CookbookClient(session=client, timeout=None)


def test_new_draft_keeps_one_row_of_each():
    draft = RecipeDraft()
    assert len(draft.ingredients) == 1 and len(draft.steps) == 1
    draft.remove_ingredient(draft.ingredients[0].id)
    draft.remove_step(draft.steps[0].id)
    assert len(draft.ingredients) == 1 and len(draft.steps) == 1


def test_removing_a_step_clears_its_assignments():
    draft = soup_draft()
    extra = draft.add_step()
    first = draft.steps[0]
    water = draft.ingredients[0]
    draft.toggle_ingredient_step(water.id, extra.id)
    assert water.assigned_step_ids == [first.id, extra.id]

    draft.remove_step(first.id)
    assert [s.id for s in draft.steps] == [extra.id]
    assert water.assigned_step_ids == [extra.id]


def test_toggle_twice_unassigns():
    draft = soup_draft()
    water, step = draft.ingredients[0], draft.steps[0]
    draft.toggle_ingredient_step(water.id, step.id)
    assert step.id not in water.assigned_step_ids


def test_unknown_ingredient_field():
    draft = RecipeDraft()
    with pytest.raises(AttributeError):
        draft.update_ingredient(draft.ingredients[0].id, colour="red")


def test_build_payload_uses_declaration_order():
    payload = soup_draft().build_payload("published")
    assert [i["ingredient_text"] for i in payload["ingredients"]] == ["Water", "Salt"]
    assert payload["steps"] == [{"content": "Boil it", "ingredient_positions": [1, 2]}]
    assert payload["servings"] == 2.0
    assert payload["prep_minutes"] is None
    assert payload["status"] == "published"


@pytest.mark.parametrize("change, message", [
    (lambda d: setattr(d, "title", "  "), "Add a recipe title before saving."),
    (lambda d: setattr(d, "ingredients", d.ingredients[1:2]), "Add at least one ingredient before saving."),
    (lambda d: d.update_step(d.steps[0].id, " "), "Add at least one preparation step before saving."),
])
def test_save_rejects_incomplete_drafts(change, message):
    draft = soup_draft()
    change(draft)
    assert draft.save(client=None) is False
    assert draft.error == message


def test_tags_are_reused_case_insensitively():
    draft = RecipeDraft()
    draft.load_tags([Option(id="1", name="Dinner"), Option(id="2", name="Quick")])

    option = draft.add_new_tag("dinner")
    assert option.id == "1"
    new = draft.add_new_tag("Spicy")
    assert new.id.startswith("new-")
    draft.add_new_tag("SPICY")
    assert draft.add_new_tag("   ") is None
    assert [t.name for t in draft.selected_tags] == ["Dinner", "Spicy"]

    draft.select_tag("2")
    draft.select_tag("2")
    draft.remove_tag("DINNER")
    assert [t.name for t in draft.selected_tags] == ["Spicy", "Quick"]


def test_fetch_options_falls_back_to_selected():
    class FailingClient:
        def list_tags(self):
            raise ApiError("Unable to load tags.")

        def list_categories(self):
            return [{"id": 3, "name": "Starters"}]

    draft = RecipeDraft(tags=[Option(id="9", name="Dinner")])
    draft.fetch_options(FailingClient())
    assert [t.name for t in draft.available_tags] == ["Dinner"]
    assert [c.name for c in draft.available_categories] == ["Starters"]


def test_save_create_then_edit_with_new_slug(api):
    draft = soup_draft()
    draft.add_new_tag("Dinner")
    assert draft.save(api, status="draft") is True
    assert draft.status == "Draft saved successfully."
    assert draft.slug == "test-soup"
    assert draft.redirect_to == "/recipes/test-soup/edit"

    editing = RecipeDraft.from_recipe(api.get_recipe_for_edit("test-soup"))
    assert editing.ingredients[0].quantity == "2"
    assert len(editing.ingredients[0].assigned_step_ids) == 1
    assert [t.name for t in editing.selected_tags] == ["Dinner"]

    redirects = []
    editing.title = "Better Soup"
    assert editing.save(api, on_redirect=redirects.append) is True
    assert editing.status == "Recipe saved and published."
    assert redirects == ["/recipes/better-soup/edit"]
    assert api.get_recipe_for_edit("better-soup")["status"] == "published"


def test_failed_save_keeps_the_draft(api):
    assert soup_draft().save(api) is True

    draft = soup_draft()
    assert draft.save(api) is False
    assert draft.error == "A recipe with slug 'test-soup' already exists."
    assert draft.recipe_id is None
    assert draft.title == "Test Soup"
    assert draft.is_saving is False


def test_filter_options():
    options = [Option(id="1", name="Dinner"), Option(id="2", name="Quick"), Option(id="3", name="Sunday dinner")]
    assert [o.id for o in filter_options(options, "DIN")] == ["1", "3"]
    assert [o.id for o in filter_options(options, "  ")] == ["1", "2", "3"]
    assert filter_options(options, "brunch") == []
