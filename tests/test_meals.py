def create_recipe(client, payload, title):
    res = client.post("/api/admin/recipes", json=dict(payload, title=title))
    assert res.status_code == 201
    return res.json()["id"]


def test_add_recipes_to_new_and_existing_meal(client, soup_payload):
    soup = create_recipe(client, soup_payload, "Test Soup")
    bread = create_recipe(client, soup_payload, "Soda Bread")

    res = client.post(f"/api/recipes/{soup}/meals", json={"new_meal_title": "Sunday Lunch"})
    assert res.status_code == 200
    meal = res.json()["meal"]
    assert meal["slug"] == "sunday-lunch"
    assert res.json()["message"] == "Added the recipe to the meal."

    res = client.post(f"/api/recipes/{bread}/meals", json={"meal_id": meal["id"]})
    assert res.status_code == 200

    meals = client.get("/api/meals").json()["meals"]
    assert [(m["title"], m["recipe_count"]) for m in meals] == [("Sunday Lunch", 2)]

    detail = client.get("/api/meals/sunday-lunch").json()
    assert [r["title"] for r in detail["recipes"]] == ["Test Soup", "Soda Bread"]

    page = client.get("/meals/sunday-lunch")
    assert page.status_code == 200
    assert "Soda Bread" in page.text
    assert "Sunday Lunch" in client.get("/meals").text


def test_meal_assignment_errors(client, soup_payload):
    soup = create_recipe(client, soup_payload, "Test Soup")

    res = client.post(f"/api/recipes/{soup}/meals", json={})
    assert res.status_code == 400
    assert res.json() == {"error": "Choose a meal or enter a new meal name."}

    res = client.post(f"/api/recipes/{soup}/meals", json={"new_meal_title": "!!!"})
    assert res.json() == {"error": "Enter a meal name to continue."}

    res = client.post(f"/api/recipes/{soup}/meals", json={"meal_id": 42})
    assert res.status_code == 404
    assert res.json() == {"error": "Meal not found."}

    res = client.post("/api/recipes/999/meals", json={"new_meal_title": "Brunch"})
    assert res.status_code == 404
    assert res.json() == {"error": "Recipe not found."}


def test_duplicate_meal_title(client, soup_payload):
    soup = create_recipe(client, soup_payload, "Test Soup")
    client.post(f"/api/recipes/{soup}/meals", json={"new_meal_title": "Brunch"})
    res = client.post(f"/api/recipes/{soup}/meals", json={"new_meal_title": "brunch"})
    assert res.status_code == 409
    assert res.json() == {"error": "A meal with slug 'brunch' already exists."}


def test_unknown_meal(client):
    assert client.get("/api/meals/nothing").status_code == 404
    assert client.get("/meals/nothing").status_code == 404
