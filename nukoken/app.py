import asyncio
import contextlib
import functools
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from databases import Database
from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.applications import Starlette
from starlette.datastructures import UploadFile
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from nukoken import config, db
from nukoken.domain import filters
from nukoken.domain.filters import Criteria, SortKey
from nukoken.domain.forms import (
    BlogPostForm,
    Failed,
    Form,
    RecipeForm,
    Saved,
    SetField,
    check_fields,
    from_fields,
    reduce,
    validate,
)
from nukoken.domain.ingredients import clamp_servings, scale_groups
from nukoken.domain.models import BlogCategory, RecipeCategory, category_icon
from nukoken.errors import ValidationError
from nukoken.logs import setup_logging
from nukoken.services import ContactMessage, send_contact_email, store_upload
from nukoken.session import CONSENT_COOKIE, CONSENT_MAX_AGE, AdminSession, Consent

F = TypeVar("F", bound=Form)


logger = logging.getLogger(__name__)


INVALID_REQUEST = "Ongeldige aanvraag"
NOT_LOGGED_IN = "Niet ingelogd"
WRONG_PASSWORD = "Onjuist wachtwoord"
SERVER_CONFIG = "Server configuratie fout"
INVALID_ID = "Ongeldig ID"
UNKNOWN_BLOG_CATEGORY = "Onbekende categorie"
RECIPE_NOT_FOUND = "Recept niet gevonden"
POST_NOT_FOUND = "Blog post niet gevonden"
SAVE_FAILED = "Er ging iets mis bij het opslaan"
DELETE_FAILED = "Er ging iets mis bij het verwijderen"
UPLOAD_FAILED = "Er ging iets mis bij het uploaden"
MAIL_FAILED = "Er ging iets mis bij het versturen van de email"
MAIL_SENT = "Email succesvol verzonden"


def aHTMLResponse(route: Callable[..., Awaitable[str | tuple[str, int]]]):
    @functools.wraps(route)
    async def wrapper(*args: Any, **kwargs: Any) -> HTMLResponse:
        resp = await route(*args, **kwargs)
        if not isinstance(resp, tuple):
            html, code = resp, 200
        else:
            html, code = resp
        return HTMLResponse(html, status_code=code)

    return wrapper


def admin_only(route: Callable[[Request], Awaitable[Response]]):
    @functools.wraps(route)
    async def wrapper(request: Request) -> Response:
        if not AdminSession(request.session).is_authenticated:
            return RedirectResponse("/admin/login", status_code=303)
        return await route(request)

    return wrapper


def api_admin_only(route: Callable[[Request], Awaitable[Response]]):
    @functools.wraps(route)
    async def wrapper(request: Request) -> Response:
        if not AdminSession(request.session).is_authenticated:
            return error(NOT_LOGGED_IN, 401)
        return await route(request)

    return wrapper


def error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def settings(request: Request) -> config.Config:
    return request.app.state.config


def recipes_repo(request: Request) -> db.RecipesRepository:
    return request.app.state.recipes


def posts_repo(request: Request) -> db.BlogPostsRepository:
    return request.app.state.posts


def render(request: Request, name: str, **context: Any) -> str:
    templates: Environment = request.app.state.templates
    cfg = settings(request)
    return templates.get_template(name).render(
        request=request,
        consent=Consent.from_cookies(request.cookies),
        is_admin=AdminSession(request.session).is_authenticated,
        gtm_id=cfg.gtm_id,
        cloudflare_token=cfg.cloudflare_token,
        **context,
    )


def path_id(request: Request) -> int | None:
    try:
        return int(request.path_params["id"])
    except ValueError:
        return None


async def json_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None  # pyright: ignore[reportUnknownVariableType]


# Pages


@aHTMLResponse
async def homepage(request: Request) -> str:
    cfg = settings(request)
    repo = recipes_repo(request)
    popular, everything = await asyncio.gather(
        repo.popular(cfg.popular_limit),
        repo.list(),
    )
    return render(
        request,
        "index.html",
        popular=popular,
        latest=everything[: cfg.latest_limit],
        categories=list(RecipeCategory),
    )


@aHTMLResponse
async def recipe_list(request: Request) -> str:
    criteria = Criteria.from_query(request.query_params)
    everything = await recipes_repo(request).list()
    results = filters.apply(everything, criteria)
    return render(
        request,
        "recipe-list.html",
        criteria=criteria,
        recipes=results,
        total=len(everything),
        tags=filters.all_tags(everything)[:20],
        categories=list(RecipeCategory),
        sort_keys=list(SortKey),
    )


@aHTMLResponse
async def recipe_detail(request: Request) -> str | tuple[str, int]:
    recipe = await recipes_repo(request).get_by_slug(request.path_params["slug"])
    if recipe is None:
        return render(request, "not-found.html", message=RECIPE_NOT_FOUND), 404
    servings = clamp_servings(request.query_params.get("personen"), recipe.servings)
    return render(
        request,
        "recipe-detail.html",
        recipe=recipe,
        servings=servings,
        groups=scale_groups(recipe.ingredient_groups, servings, recipe.servings),
        steps=recipe.instruction_steps,
    )


@aHTMLResponse
async def sourdough(request: Request) -> str:
    featured = await posts_repo(request).featured(settings(request).featured_limit)
    return render(
        request,
        "sourdough.html",
        blog_categories=list(BlogCategory),
        featured=featured,
    )


@aHTMLResponse
async def sourdough_category(request: Request) -> str | tuple[str, int]:
    category = BlogCategory.lookup(request.path_params["category"])
    if category is None:
        return render(request, "not-found.html", message="Categorie niet gevonden"), 404
    posts = await posts_repo(request).by_category(category)
    return render(request, "sourdough-category.html", category=category, posts=posts)


@aHTMLResponse
async def blog_post(request: Request) -> str | tuple[str, int]:
    post = await posts_repo(request).get_by_slug(request.path_params["slug"])
    visible = post is not None and (
        post.is_published or AdminSession(request.session).is_authenticated
    )
    if post is None or not visible:
        return render(request, "not-found.html", message=POST_NOT_FOUND), 404
    return render(request, "blog-post.html", post=post)


@aHTMLResponse
async def info_page(request: Request) -> str:
    name = request.url.path.strip("/")
    return render(request, f"{name}.html")


@aHTMLResponse
async def contact(request: Request) -> str | tuple[str, int]:
    if request.method == "GET":
        return render(request, "contact.html", values={})

    async with request.form() as form:
        values = {k: str(form.get(k, "")) for k in ("name", "email", "subject", "message")}
    try:
        message = ContactMessage.create(**values)
        await send_contact_email(message, config=settings(request))
    except ValidationError as e:
        return render(request, "contact.html", values=values, error=e.message), 400
    except Exception:
        logger.exception("Email error")
        return render(request, "contact.html", values=values, error=MAIL_FAILED), 500
    return render(request, "contact.html", values={}, success=MAIL_SENT)


async def consent(request: Request) -> Response:
    async with request.form() as form:
        value = parse_consent(str(form.get("consent", "")))
    response = RedirectResponse(request.headers.get("referer", "/"), status_code=303)
    set_consent(response, value)
    return response


def parse_consent(choice: str) -> Consent:
    try:
        return Consent(choice)
    except ValueError:
        return Consent.unset


def set_consent(response: Response, value: Consent) -> None:
    if value is Consent.unset:
        response.delete_cookie(CONSENT_COOKIE)
    else:
        response.set_cookie(
            CONSENT_COOKIE, value.value, max_age=CONSENT_MAX_AGE, samesite="lax"
        )


# Admin pages


async def admin_login(request: Request) -> Response:
    if request.method == "GET":
        return HTMLResponse(render(request, "admin-login.html"))

    async with request.form() as form:
        password = str(form.get("password", ""))
    try:
        ok = AdminSession(request.session).login(password, settings(request).admin_password)
    except RuntimeError:
        logger.error("NUKOKEN_ADMIN_PASSWORD is not set")
        return HTMLResponse(render(request, "admin-login.html", error=SERVER_CONFIG), 500)
    if not ok:
        return HTMLResponse(render(request, "admin-login.html", error=WRONG_PASSWORD), 401)
    return RedirectResponse("/admin", status_code=303)


async def admin_logout(request: Request) -> Response:
    AdminSession(request.session).logout()
    return RedirectResponse("/", status_code=303)


async def posted_form(request: Request, form_cls: type[F], id: int | None) -> F:
    """Form state from a submitted admin form, with the image stored."""
    async with request.form() as data:
        values: dict[str, Any] = {k: v for k, v in data.items() if isinstance(v, str)}
        if form_cls is RecipeForm:
            values["categories"] = [c for c in data.getlist("categories") if isinstance(c, str)]
        form = from_fields(form_cls, values, id=id)
        image = data.get("image")
        if isinstance(image, UploadFile) and image.size:
            try:
                url = await store_upload(
                    image.filename,
                    image.content_type,
                    await image.read(),
                    config=settings(request),
                )
            except ValidationError as e:
                return reduce(form, Failed(e.message))
            form = reduce(form, SetField("image_url", url))
    return form


async def save_form(request: Request, form: F) -> F:
    """Validate and store a posted form, returning the next form state."""
    if form.message is not None:
        return form
    problem = validate(form)
    if problem:
        return reduce(form, Failed(problem))

    if isinstance(form, BlogPostForm) and BlogCategory.lookup(form.category) is None:
        return reduce(form, Failed(UNKNOWN_BLOG_CATEGORY))

    repo = recipes_repo(request) if isinstance(form, RecipeForm) else posts_repo(request)
    if form.id is None:
        record = await repo.create(form.payload())
    else:
        record = await repo.update(form.id, form.payload())
    if record is None:
        return reduce(form, Failed(SAVE_FAILED))
    return reduce(form, Saved(record.to_dict()))


def form_status(form: Form) -> int:
    if form.message is None or form.message.kind == "success":
        return 200
    return 400


@admin_only
async def admin_recipes(request: Request) -> Response:
    form = RecipeForm()
    if request.method == "POST":
        form = await save_form(request, await posted_form(request, RecipeForm, None))
    recipes = await recipes_repo(request).list()
    return HTMLResponse(
        render(
            request,
            "admin-recipes.html",
            form=form,
            recipes=recipes,
            categories=list(RecipeCategory),
        ),
        status_code=form_status(form),
    )


@admin_only
async def admin_recipe_edit(request: Request) -> Response:
    id = path_id(request)
    recipe = None if id is None else await recipes_repo(request).get_by_id(id)
    if id is None or recipe is None:
        return HTMLResponse(
            render(request, "not-found.html", message=RECIPE_NOT_FOUND), 404
        )

    form = from_fields(RecipeForm, recipe.to_dict(), id=recipe.id)
    if request.method == "POST":
        form = await save_form(request, await posted_form(request, RecipeForm, id))
    return HTMLResponse(
        render(
            request,
            "admin-recipe-edit.html",
            form=form,
            slug=form.saved_slug or recipe.slug,
            categories=list(RecipeCategory),
        ),
        status_code=form_status(form),
    )


@admin_only
async def admin_recipe_delete(request: Request) -> Response:
    id = path_id(request)
    async with request.form() as data:
        confirmed = data.get("confirm") == "ja"
    if id is None:
        return HTMLResponse(render(request, "not-found.html", message=RECIPE_NOT_FOUND), 404)
    if not confirmed:
        return RedirectResponse(f"/admin/bewerk/{id}", status_code=303)

    repo = recipes_repo(request)
    if await repo.delete(id):
        return RedirectResponse(RecipeForm.list_path, status_code=303)

    recipe = await repo.get_by_id(id)
    if recipe is None:
        return HTMLResponse(render(request, "not-found.html", message=RECIPE_NOT_FOUND), 404)
    form = reduce(
        from_fields(RecipeForm, recipe.to_dict(), id=id),
        Failed(RecipeForm.delete_failed_text),
    )
    return HTMLResponse(
        render(
            request,
            "admin-recipe-edit.html",
            form=form,
            slug=recipe.slug,
            categories=list(RecipeCategory),
        ),
        status_code=500,
    )


@admin_only
async def admin_blog(request: Request) -> Response:
    form = BlogPostForm()
    if request.method == "POST":
        form = await save_form(request, await posted_form(request, BlogPostForm, None))
    posts = await posts_repo(request).list(published_only=False)
    return HTMLResponse(
        render(
            request,
            "admin-blog.html",
            form=form,
            posts=posts,
            blog_categories=list(BlogCategory),
        ),
        status_code=form_status(form),
    )


@admin_only
async def admin_blog_edit(request: Request) -> Response:
    id = path_id(request)
    post = None if id is None else await posts_repo(request).get_by_id(id)
    if id is None or post is None:
        return HTMLResponse(render(request, "not-found.html", message=POST_NOT_FOUND), 404)

    form = from_fields(BlogPostForm, post.to_dict(), id=post.id)
    if request.method == "POST":
        form = await save_form(request, await posted_form(request, BlogPostForm, id))
    return HTMLResponse(
        render(
            request,
            "admin-blog-edit.html",
            form=form,
            slug=form.saved_slug or post.slug,
            blog_categories=list(BlogCategory),
        ),
        status_code=form_status(form),
    )


@admin_only
async def admin_blog_delete(request: Request) -> Response:
    id = path_id(request)
    async with request.form() as data:
        confirmed = data.get("confirm") == "ja"
    if id is None:
        return HTMLResponse(render(request, "not-found.html", message=POST_NOT_FOUND), 404)
    if not confirmed:
        return RedirectResponse(f"/admin/blog/bewerk/{id}", status_code=303)

    repo = posts_repo(request)
    if await repo.delete(id):
        return RedirectResponse(BlogPostForm.list_path, status_code=303)

    post = await repo.get_by_id(id)
    if post is None:
        return HTMLResponse(render(request, "not-found.html", message=POST_NOT_FOUND), 404)
    form = reduce(
        from_fields(BlogPostForm, post.to_dict(), id=id),
        Failed(BlogPostForm.delete_failed_text),
    )
    return HTMLResponse(
        render(
            request,
            "admin-blog-edit.html",
            form=form,
            slug=post.slug,
            blog_categories=list(BlogCategory),
        ),
        status_code=500,
    )


# JSON API


async def api_recipes(request: Request) -> Response:
    repo = recipes_repo(request)
    if request.method == "GET":
        return JSONResponse({"recipes": [r.to_dict() for r in await repo.list()]})

    if not AdminSession(request.session).is_authenticated:
        return error(NOT_LOGGED_IN, 401)
    body = await json_body(request)
    if body is None:
        return error(INVALID_REQUEST, 400)
    try:
        form = from_fields(RecipeForm, check_fields(RecipeForm, body))
    except ValidationError as e:
        return error(e.message, 400)
    problem = validate(form)
    if problem:
        return error(problem, 400)
    recipe = await repo.create(form.payload())
    if recipe is None:
        return error("Er ging iets mis bij het opslaan van het recept", 500)
    return JSONResponse({"success": True, "recipe": recipe.to_dict()}, status_code=201)


async def api_recipe(request: Request) -> Response:
    id = path_id(request)
    if id is None:
        return error("Ongeldig recept ID", 400)
    repo = recipes_repo(request)

    if request.method == "GET":
        recipe = await repo.get_by_id(id)
        if recipe is None:
            return error(RECIPE_NOT_FOUND, 404)
        return JSONResponse({"recipe": recipe.to_dict()})

    if not AdminSession(request.session).is_authenticated:
        return error(NOT_LOGGED_IN, 401)

    if await repo.get_by_id(id) is None:
        return error(RECIPE_NOT_FOUND, 404)

    if request.method == "DELETE":
        if not await repo.delete(id):
            return error("Er ging iets mis bij het verwijderen van het recept", 500)
        return JSONResponse({"success": True, "message": "Recept verwijderd"})

    body = await json_body(request)
    if body is None:
        return error(INVALID_REQUEST, 400)
    try:
        fields = check_fields(RecipeForm, body)
    except ValidationError as e:
        return error(e.message, 400)
    recipe = await repo.update(id, fields)
    if recipe is None:
        return error("Er ging iets mis bij het bijwerken van het recept", 500)
    return JSONResponse({"success": True, "recipe": recipe.to_dict()})


async def api_blog(request: Request) -> Response:
    repo = posts_repo(request)
    is_admin = AdminSession(request.session).is_authenticated
    if request.method == "GET":
        published_only = not (request.query_params.get("all") == "true" and is_admin)
        posts = await repo.list(published_only=published_only)
        return JSONResponse({"posts": [p.to_dict() for p in posts]})

    if not is_admin:
        return error(NOT_LOGGED_IN, 401)
    body = await json_body(request)
    if body is None:
        return error(INVALID_REQUEST, 400)
    try:
        form = from_fields(BlogPostForm, check_fields(BlogPostForm, body))
    except ValidationError as e:
        return error(e.message, 400)
    problem = validate(form)
    if problem:
        return error(problem, 400)
    if BlogCategory.lookup(form.category) is None:
        return error(UNKNOWN_BLOG_CATEGORY, 400)
    post = await repo.create(form.payload())
    if post is None:
        return error("Er ging iets mis bij het aanmaken van de blog post", 500)
    return JSONResponse({"success": True, "post": post.to_dict()}, status_code=201)


async def api_blog_post(request: Request) -> Response:
    id = path_id(request)
    if id is None:
        return error(INVALID_ID, 400)
    repo = posts_repo(request)
    is_admin = AdminSession(request.session).is_authenticated

    if request.method == "GET":
        post = await repo.get_by_id(id)
        if post is None or not (post.is_published or is_admin):
            return error(POST_NOT_FOUND, 404)
        return JSONResponse({"post": post.to_dict()})

    if not is_admin:
        return error(NOT_LOGGED_IN, 401)

    if await repo.get_by_id(id) is None:
        return error(POST_NOT_FOUND, 404)

    if request.method == "DELETE":
        if not await repo.delete(id):
            return error(DELETE_FAILED, 500)
        return JSONResponse({"success": True, "message": "Blog post verwijderd"})

    body = await json_body(request)
    if body is None:
        return error(INVALID_REQUEST, 400)
    try:
        fields = check_fields(BlogPostForm, body)
    except ValidationError as e:
        return error(e.message, 400)
    if "category" in fields and BlogCategory.lookup(str(fields["category"])) is None:
        return error(UNKNOWN_BLOG_CATEGORY, 400)
    post = await repo.update(id, fields)
    if post is None:
        return error(SAVE_FAILED, 500)
    return JSONResponse({"success": True, "post": post.to_dict()})


@api_admin_only
async def api_upload(request: Request) -> Response:
    async with request.form() as form:
        file = form.get("file")
        if not isinstance(file, UploadFile):
            return error("Geen bestand geüpload", 400)
        data = await file.read()
        try:
            url = await store_upload(
                file.filename, file.content_type, data, config=settings(request)
            )
        except ValidationError as e:
            return error(e.message, 400)
        except OSError:
            logger.exception("Upload error")
            return error(UPLOAD_FAILED, 500)
    return JSONResponse({"success": True, "url": url, "filename": url.rsplit("/", 1)[1]})


async def api_contact(request: Request) -> Response:
    body = await json_body(request)
    if body is None:
        return error(INVALID_REQUEST, 400)
    try:
        message = ContactMessage.create(
            *(str(body.get(k) or "") for k in ("name", "email", "subject", "message"))
        )
        await send_contact_email(message, config=settings(request))
    except ValidationError as e:
        return error(e.message, 400)
    except Exception:
        logger.exception("Email error")
        return error(MAIL_FAILED, 500)
    return JSONResponse({"message": MAIL_SENT})


async def api_auth(request: Request) -> Response:
    session = AdminSession(request.session)
    if request.method == "DELETE":
        session.logout()
        return JSONResponse({"success": True})

    body = await json_body(request)
    if body is None:
        return error(INVALID_REQUEST, 400)
    try:
        ok = session.login(str(body.get("password") or ""), settings(request).admin_password)
    except RuntimeError:
        logger.error("NUKOKEN_ADMIN_PASSWORD is not set")
        return error(SERVER_CONFIG, 500)
    if not ok:
        return error(WRONG_PASSWORD, 401)
    return JSONResponse({"success": True})


async def api_consent(request: Request) -> Response:
    body = await json_body(request)
    if body is None:
        return error(INVALID_REQUEST, 400)
    value = parse_consent(str(body.get("consent") or ""))
    response = JSONResponse({"consent": value.value})
    set_consent(response, value)
    return response


def create_app(cfg: config.Config | None = None) -> Starlette:
    cfg = config.Config() if cfg is None else cfg

    database = Database(cfg.db_url)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        setup_logging()
        cfg.upload_dir.mkdir(parents=True, exist_ok=True)
        await database.connect()
        try:
            await db.create_tables(database)
        except Exception:
            logger.exception("Could not create tables.")
        yield
        await database.disconnect()

    app = Starlette(
        debug=cfg.debug,
        routes=[
            Route("/", homepage),
            Route("/recepten", recipe_list),
            Route("/recepten/{slug}", recipe_detail),
            Route("/sourdough", sourdough),
            Route("/sourdough/post/{slug}", blog_post),
            Route("/sourdough/{category}", sourdough_category),
            Route("/over", info_page),
            Route("/privacy", info_page),
            Route("/disclaimer", info_page),
            Route("/contact", contact, methods=["GET", "POST"]),
            Route("/consent", consent, methods=["POST"]),
            Route("/admin/login", admin_login, methods=["GET", "POST"]),
            Route("/admin/logout", admin_logout, methods=["POST"]),
            Route("/admin", admin_recipes, methods=["GET", "POST"]),
            Route("/admin/bewerk/{id}", admin_recipe_edit, methods=["GET", "POST"]),
            Route("/admin/bewerk/{id}/verwijder", admin_recipe_delete, methods=["POST"]),
            Route("/admin/blog", admin_blog, methods=["GET", "POST"]),
            Route("/admin/blog/bewerk/{id}", admin_blog_edit, methods=["GET", "POST"]),
            Route(
                "/admin/blog/bewerk/{id}/verwijder", admin_blog_delete, methods=["POST"]
            ),
            Route("/api/recepten", api_recipes, methods=["GET", "POST"]),
            Route("/api/recepten/{id}", api_recipe, methods=["GET", "PUT", "DELETE"]),
            Route("/api/blog", api_blog, methods=["GET", "POST"]),
            Route("/api/blog/{id}", api_blog_post, methods=["GET", "PUT", "DELETE"]),
            Route("/api/upload", api_upload, methods=["POST"]),
            Route("/api/contact", api_contact, methods=["POST"]),
            Route("/api/auth", api_auth, methods=["POST", "DELETE"]),
            Route("/api/consent", api_consent, methods=["POST"]),
            Mount("/static", StaticFiles(directory=cfg.static_dir, check_dir=False)),
            Mount(
                cfg.upload_url_prefix,
                StaticFiles(directory=cfg.upload_dir, check_dir=False),
            ),
        ],
        middleware=[
            Middleware(SessionMiddleware, secret_key=cfg.secret_key, same_site="lax"),
        ],
        lifespan=lifespan,
    )

    templates = Environment(
        loader=FileSystemLoader(cfg.html_dir),
        autoescape=select_autoescape(),
    )
    templates.globals["category_icon"] = category_icon

    app.state.config = cfg
    app.state.templates = templates
    app.state.db = database
    app.state.recipes = db.RecipesRepository(database)
    app.state.posts = db.BlogPostsRepository(database)
    return app


app = create_app()
