import json
from typing import Any, Callable

import httpx
import pytest

from nukoken.admin import GENERIC_ERROR, NO_CONNECTION, AdminClient
from nukoken.domain.forms import REQUIRED_CATEGORY, BlogPostForm, Message, RecipeForm


Handler = Callable[[httpx.Request], httpx.Response]


def admin_client(handler: Handler) -> AdminClient:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://test"
    )
    return AdminClient(client)


def recipe_form(**kwargs: object) -> RecipeForm:
    values: dict[str, object] = {
        "title": "Pasta",
        "description": "Lekker",
        "ingredients": "200 g pasta",
        "instructions": "Koken",
        "categories": ("Pasta",),
    }
    values.update(kwargs)
    return RecipeForm(**values)  # pyright: ignore[reportArgumentType]


@pytest.mark.asyncio
async def test_submit_validates_before_sending() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={})

    admin = admin_client(handler)
    got = await admin.submit(recipe_form(categories=()))
    await admin.aclose()

    assert requests == []
    assert got.message == Message("error", REQUIRED_CATEGORY)
    assert got.title == "Pasta"


@pytest.mark.asyncio
async def test_submit_create() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/recepten"
        body = json.loads(request.content)
        assert body["categories"] == ["Pasta"]
        record = {"id": 1, "slug": "pasta", **body}
        return httpx.Response(201, json={"success": True, "recipe": record})

    admin = admin_client(handler)
    got = await admin.submit(recipe_form())
    await admin.aclose()

    assert got.title == ""
    assert got.saved_slug == "pasta"
    assert got.message is not None and got.message.kind == "success"


@pytest.mark.asyncio
async def test_submit_update() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PUT"
        assert request.url.path == "/api/blog/4"
        body = json.loads(request.content)
        record = {"id": 4, "slug": "starter", **body}
        return httpx.Response(200, json={"success": True, "post": record})

    admin = admin_client(handler)
    form = BlogPostForm(
        id=4, title="Starter", excerpt="e", content="c", category="recepten"
    )
    got = await admin.submit(form)
    await admin.aclose()

    assert got.id == 4
    assert got.title == "Starter"
    assert got.message == Message("success", BlogPostForm.updated_text)


@pytest.mark.asyncio
async def test_submit_server_error_keeps_fields() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Titel bestaat al"})

    admin = admin_client(handler)
    form = recipe_form()
    got = await admin.submit(form)
    await admin.aclose()

    assert got.message == Message("error", "Titel bestaat al")
    assert got.title == form.title
    assert got.categories == form.categories


@pytest.mark.asyncio
async def test_submit_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    admin = admin_client(handler)
    got = await admin.submit(recipe_form())
    await admin.aclose()

    assert got.message == Message("error", NO_CONNECTION)


@pytest.mark.asyncio
async def test_load() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/recepten/7"
        record = {"id": 7, "title": "Soep", "categories": ["Soep"], "servings": 6}
        return httpx.Response(200, json={"recipe": record})

    admin = admin_client(handler)
    got = await admin.load(RecipeForm(), 7)
    await admin.aclose()

    assert got.id == 7
    assert got.title == "Soep"
    assert got.servings == 6


@pytest.mark.asyncio
async def test_delete_requires_confirmation() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"success": True})

    admin = admin_client(handler)
    form = recipe_form(id=3)

    got, navigate = await admin.delete(form, confirmed=False)
    assert requests == []
    assert got == form
    assert navigate is None

    got, navigate = await admin.delete(form, confirmed=True)
    await admin.aclose()
    assert [r.method for r in requests] == ["DELETE"]
    assert requests[0].url.path == "/api/recepten/3"
    assert navigate == "/recepten"


@pytest.mark.asyncio
async def test_delete_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    admin = admin_client(handler)
    got, navigate = await admin.delete(BlogPostForm(id=2), confirmed=True)
    await admin.aclose()

    assert navigate is None
    assert got.message == Message("error", BlogPostForm.delete_failed_text)


@pytest.mark.asyncio
async def test_login() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        ok = json.loads(request.content)["password"] == "geheim"
        return httpx.Response(200 if ok else 401, json={})

    admin = admin_client(handler)
    assert await admin.login("geheim")
    assert not await admin.login("fout")
    await admin.aclose()


@pytest.mark.parametrize(
    "body",
    (
        {"json": {"success": True}},
        {"json": ["pasta"]},
        {"json": {"recipe": "pasta"}},
        {"text": "<html>"},
    ),
)
@pytest.mark.asyncio
async def test_unexpected_success_body(body: dict[str, Any]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, **body)

    admin = admin_client(handler)
    form = recipe_form()
    saved = await admin.submit(form)
    loaded = await admin.load(RecipeForm(), 1)
    await admin.aclose()

    assert saved.message == Message("error", GENERIC_ERROR)
    assert saved.title == form.title
    assert loaded.message == Message("error", GENERIC_ERROR)
    assert loaded.id is None
