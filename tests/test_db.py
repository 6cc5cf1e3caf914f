from pathlib import Path
from typing import AsyncIterator

from databases import Database
import pytest
import pytest_asyncio

from nukoken import db
from nukoken.domain.models import BlogCategory
from nukoken.seed import INITIAL_RECIPES, seed


RECIPE = {
    "title": "Romige Pasta Carbonara",
    "description": "Authentieke carbonara",
    "categories": ["Pasta"],
    "prep_time": 15,
    "cook_time": 20,
    "servings": 4,
    "tags": "pasta, snel",
    "ingredients": "400 g spaghetti\n4 eieren",
    "instructions": "Kook de pasta\nMeng alles",
    "is_popular": True,
}

POST = {
    "title": "Je eerste starter",
    "excerpt": "Zo begin je",
    "content": "# Dag 1",
    "category": "starter-van-scratch",
    "is_published": True,
}


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncIterator[Database]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.connect()
    await db.create_tables(database)
    yield database
    await database.disconnect()


@pytest.mark.asyncio
async def test_recipe_create_and_get(database: Database) -> None:
    repo = db.RecipesRepository(database)
    created = await repo.create(RECIPE)
    assert created is not None
    assert created.slug == "romige-pasta-carbonara"
    assert created.image_url == "/placeholder-recipe.jpg"

    got = await repo.get_by_slug("romige-pasta-carbonara")
    assert got is not None
    assert got.id == created.id
    assert got.title == RECIPE["title"]
    assert got.categories == ["Pasta"]
    assert got.total_time == 35
    assert got.is_popular is True

    assert await repo.get_by_slug("bestaat-niet") is None


@pytest.mark.asyncio
async def test_recipe_duplicate_slug_fails(database: Database) -> None:
    repo = db.RecipesRepository(database)
    assert await repo.create(RECIPE) is not None
    assert await repo.create(RECIPE) is None


@pytest.mark.asyncio
async def test_recipe_partial_update(database: Database) -> None:
    repo = db.RecipesRepository(database)
    created = await repo.create(RECIPE)
    assert created is not None

    updated = await repo.update(created.id, {"servings": 2, "tags": "pasta"})
    assert updated is not None
    assert updated.servings == 2
    assert updated.tags == "pasta"
    assert updated.title == RECIPE["title"]
    assert updated.slug == created.slug
    assert updated.description == RECIPE["description"]
    assert updated.prep_time == 15
    assert updated.categories == ["Pasta"]

    renamed = await repo.update(created.id, {"title": "Pasta Carbonara"})
    assert renamed is not None
    assert renamed.slug == "pasta-carbonara"
    assert renamed.servings == 2

    assert await repo.update(999, {"servings": 1}) is None


@pytest.mark.asyncio
async def test_recipe_delete(database: Database) -> None:
    repo = db.RecipesRepository(database)
    created = await repo.create(RECIPE)
    assert created is not None

    assert await repo.delete(created.id)
    assert await repo.get_by_id(created.id) is None
    assert not await repo.delete(created.id)


@pytest.mark.asyncio
async def test_recipe_queries(database: Database) -> None:
    repo = db.RecipesRepository(database)
    await repo.create(RECIPE)
    await repo.create(
        {**RECIPE, "title": "Groentesoep", "categories": ["Soep"], "is_popular": False}
    )

    assert [r.title for r in await repo.list()] == ["Groentesoep", RECIPE["title"]]
    assert [r.title for r in await repo.popular(6)] == [RECIPE["title"]]
    assert [r.title for r in await repo.by_category("soep")] == ["Groentesoep"]
    assert await repo.by_category("Rijst") == []


@pytest.mark.asyncio
async def test_store_failures_become_empty_results(tmp_path: Path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    await database.connect()
    repo = db.RecipesRepository(database)
    try:
        assert await repo.list() == []
        assert await repo.get_by_slug("x") is None
        assert await repo.create(RECIPE) is None
        assert not await repo.delete(1)
    finally:
        await database.disconnect()


@pytest.mark.parametrize(
    "row,expected",
    (
        ({"categories": '["Pasta", "Soep"]'}, ["Pasta", "Soep"]),
        ({"categories": '"Pasta"'}, ["Pasta"]),
        ({"categories": ["Rijst"]}, ["Rijst"]),
        ({"categories": None, "category": "Soep"}, ["Soep"]),
        ({"categories": "", "category": None}, []),
        ({}, []),
    ),
)
def test_normalize_categories(row: dict[str, object], expected: list[str]) -> None:
    assert db.normalize_categories(row) == expected


@pytest.mark.asyncio
async def test_blog_posts(database: Database) -> None:
    repo = db.BlogPostsRepository(database)
    published = await repo.create({**POST, "is_featured": True})
    draft = await repo.create({**POST, "title": "Concept", "is_published": False})
    assert published is not None and draft is not None
    assert published.category is BlogCategory.STARTER_VAN_SCRATCH

    assert [p.title for p in await repo.list()] == [POST["title"]]
    assert len(await repo.list(published_only=False)) == 2
    assert [p.title for p in await repo.featured(3)] == [POST["title"]]
    assert len(await repo.by_category(BlogCategory.STARTER_VAN_SCRATCH)) == 1
    assert await repo.by_category(BlogCategory.RECEPTEN) == []

    updated = await repo.update(draft.id, {"is_published": True})
    assert updated is not None
    assert updated.is_published is True
    assert updated.title == "Concept"

    assert await repo.delete(draft.id)
    assert await repo.get_by_id(draft.id) is None


@pytest.mark.asyncio
async def test_seed_carries_on_after_failures(database: Database) -> None:
    # The second carbonara clashes on its slug.
    recipes = [INITIAL_RECIPES[0], INITIAL_RECIPES[0], INITIAL_RECIPES[1]]
    created = await seed(database, recipes)
    assert created == 2
    titles = sorted(r.title for r in await db.RecipesRepository(database).list())
    assert titles == ["Romige Pasta Carbonara", "Verse Groentesoep"]
