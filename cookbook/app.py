from contextlib import asynccontextmanager
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import auth, crud, schemas
from .config import settings
from .db import SessionLocal, init_db
from .exceptions import CookbookError, DatabaseError, NotFound, Unauthorized
from .logging_utils import get_logger
from .recipes import available_tag_names, filter_recipes
from .servings import ServingView

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables and probe optional ones once at startup
    init_db()
    yield


app = FastAPI(title="Cookbook", lifespan=lifespan)
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

# Allow CORS for API clients (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class LoginRequired(Exception):
    """Raised by the admin page gate; answered with a redirect to /login."""


def get_current_user_id(request: Request, db: Session = Depends(get_db)) -> Optional[str]:
    return auth.get_session_user_id(db, auth.session_token(request))


def require_user(user_id: Optional[str] = Depends(get_current_user_id)) -> str:
    if not user_id:
        raise Unauthorized()
    return user_id


def require_admin_page(user_id: Optional[str] = Depends(get_current_user_id)) -> str:
    if not user_id:
        raise LoginRequired()
    return user_id


def admin_api_guard(user_id: Optional[str] = Depends(get_current_user_id)) -> None:
    # Off by default: the admin API has historically been open
    if settings.admin_api_requires_session and not user_id:
        raise Unauthorized()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(CookbookError)
def cookbook_error_handler(request: Request, exc: CookbookError):
    if isinstance(exc, NotFound) and not request.url.path.startswith("/api"):
        return templates.TemplateResponse(
            request, "not_found.html", {"message": exc.message}, status_code=404
        )
    return _error(exc.message, exc.status_code)


@app.exception_handler(SQLAlchemyError)
def database_error_handler(request: Request, exc: SQLAlchemyError):
    error = DatabaseError(str(getattr(exc, "orig", None) or exc), original_error=exc)
    logger.error("Database error on %s %s: %s", request.method, request.url.path, error.message)
    return _error(error.message, error.status_code)


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request.") if errors else "Invalid request."
    return _error(message, 400)


@app.exception_handler(LoginRequired)
def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(url="/login", status_code=303)


@app.middleware("http")
async def forward_oauth_code(request: Request, call_next):
    # Providers redirect to the site root with ?code=...
    if request.url.path == "/" and "code" in request.query_params:
        return RedirectResponse(url=f"/auth/callback?{request.url.query}", status_code=307)
    return await call_next(request)


# Pages

@app.get("/", response_class=HTMLResponse)
def read_root(request: Request, db: Session = Depends(get_db)):
    recipes = crud.get_published_recipes(db)
    return templates.TemplateResponse(request, "index.html", {"recipes": recipes})


@app.get("/recipes", response_class=HTMLResponse)
def recipes_page(
    request: Request, q: str = "", tag: Optional[List[str]] = Query(None), db: Session = Depends(get_db)
):
    recipes = crud.search_recipes(db)
    selected = tag or []
    matches = filter_recipes(recipes, q, selected)
    return templates.TemplateResponse(
        request,
        "recipes.html",
        {
            "recipes": matches,
            "total": len(recipes),
            "search": q,
            "selected_tags": selected,
            "available_tags": available_tag_names(recipes),
        },
    )


@app.get("/recipes/{slug}", response_class=HTMLResponse)
def recipe_page(request: Request, slug: str, servings: Optional[str] = None, db: Session = Depends(get_db)):
    recipe = crud.get_recipe_by_slug(db, slug)
    if recipe is None:
        raise NotFound("Recipe not found.")
    view = ServingView.build(recipe, servings)
    return templates.TemplateResponse(
        request,
        "recipe_detail.html",
        {"recipe": recipe, "view": view, "meals": crud.get_meals(db)},
    )


@app.get("/meals", response_class=HTMLResponse)
def meals_page(request: Request, db: Session = Depends(get_db)):
    return templates.TemplateResponse(request, "meals.html", {"meals": crud.get_meals(db)})


@app.get("/meals/{slug}", response_class=HTMLResponse)
def meal_page(request: Request, slug: str, db: Session = Depends(get_db)):
    meal = crud.get_meal_by_slug(db, slug)
    if meal is None:
        raise NotFound("Meal not found.")
    return templates.TemplateResponse(request, "meal_detail.html", {"meal": meal})


@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {})


admin_pages = APIRouter(prefix="/admin", dependencies=[Depends(require_admin_page)])


@admin_pages.get("/recipes", response_class=HTMLResponse)
def admin_recipes_page(request: Request, db: Session = Depends(get_db)):
    recipes = crud.search_recipes(db, include_drafts=True)
    return templates.TemplateResponse(request, "admin_recipes.html", {"recipes": recipes})


app.include_router(admin_pages)


# Auth

@app.get("/auth/callback")
def auth_callback(request: Request, code: Optional[str] = None, db: Session = Depends(get_db)):
    base_url = settings.public_base_url(str(request.base_url).rstrip("/"))
    response = RedirectResponse(url=f"{base_url}/", status_code=307)
    if code:
        try:
            token = auth.exchange_code_for_session(db, code)
        except Unauthorized as exc:
            # Land on the home page signed out, as if no code was sent
            logger.warning("OAuth callback failed: %s", exc.message)
        else:
            response.set_cookie(settings.session_cookie, token, httponly=True, samesite="lax")
    return response


@app.post("/auth/signout")
def sign_out(request: Request, db: Session = Depends(get_db)):
    auth.sign_out(db, auth.session_token(request))
    response = RedirectResponse(url="/", status_code=303)
    response.delete_cookie(settings.session_cookie)
    return response


# Admin API

admin_api = APIRouter(prefix="/api/admin", dependencies=[Depends(admin_api_guard)])


@admin_api.get("/tags")
def list_tags(db: Session = Depends(get_db)):
    return {"tags": crud.list_tags(db)}


@admin_api.get("/categories")
def list_categories(db: Session = Depends(get_db)):
    return {"categories": crud.list_categories(db)}


@admin_api.post("/recipes", response_model=schemas.RecipeSaved, status_code=201)
def create_recipe(payload: schemas.RecipePayload, db: Session = Depends(get_db)):
    return crud.create_recipe(db, payload)


@admin_api.put("/recipes/{recipe_id}", response_model=schemas.RecipeSaved)
def update_recipe(recipe_id: int, payload: schemas.RecipePayload, db: Session = Depends(get_db)):
    return crud.update_recipe(db, recipe_id, payload)


app.include_router(admin_api)


# Public API

@app.get("/api/recipes")
def api_list_recipes(q: Optional[str] = None, db: Session = Depends(get_db)):
    items = crud.search_recipes(db, q)
    return {"items": items, "total": len(items)}


@app.get("/api/recipes/{slug}")
def api_get_recipe(slug: str, servings: Optional[str] = None, db: Session = Depends(get_db)):
    recipe = crud.get_recipe_by_slug(db, slug)
    if recipe is None:
        raise NotFound("Recipe not found.")
    view = ServingView.build(recipe, servings)
    return {"recipe": recipe, "view": jsonable_encoder(asdict(view))}


@app.get("/api/recipes/{slug}/edit", response_model=schemas.RecipeDetail)
def api_get_recipe_for_edit(slug: str, db: Session = Depends(get_db)):
    recipe = crud.get_recipe_for_edit_by_slug(db, slug)
    if recipe is None:
        raise NotFound("Recipe not found.")
    return recipe


@app.post("/api/recipes/{recipe_id}/meals")
def api_add_recipe_to_meal(recipe_id: int, assignment: schemas.MealAssignment, db: Session = Depends(get_db)):
    meal = crud.add_recipe_to_meal(db, recipe_id, assignment)
    return {
        "meal": {"id": meal.id, "title": meal.title, "slug": meal.slug},
        "message": "Added the recipe to the meal.",
    }


@app.get("/api/meals")
def api_list_meals(db: Session = Depends(get_db)):
    return {"meals": crud.get_meals(db)}


@app.get("/api/meals/{slug}", response_model=schemas.MealDetail)
def api_get_meal(slug: str, db: Session = Depends(get_db)):
    meal = crud.get_meal_by_slug(db, slug)
    if meal is None:
        raise NotFound("Meal not found.")
    return meal


# Shopping list (per signed-in user)

@app.get("/api/shopping-list")
def api_list_shopping_items(user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    items = crud.list_shopping_items(db, user_id)
    return {"items": [schemas.ShoppingListItemOut.model_validate(i) for i in items]}


@app.post("/api/shopping-list")
def api_add_shopping_item(
    item: schemas.ShoppingListItemCreate,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    created = crud.add_shopping_item(db, user_id, item)
    return {"item": schemas.ShoppingListItemOut.model_validate(created)}


@app.delete("/api/shopping-list")
def api_clear_shopping_list(user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    crud.clear_shopping_list(db, user_id)
    return {"ok": True}


@app.patch("/api/shopping-list/{item_id}")
def api_update_shopping_item(
    item_id: int,
    update: schemas.ShoppingListItemUpdate,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    item = crud.set_shopping_item_checked(db, user_id, item_id, update.is_checked)
    return {"item": schemas.ShoppingListItemOut.model_validate(item)}


@app.delete("/api/shopping-list/{item_id}")
def api_delete_shopping_item(item_id: int, user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    crud.delete_shopping_item(db, user_id, item_id)
    return {"ok": True}
