"""Recipe and blog post tables.

Every accessor recovers from store failures at this boundary: reads log and
return an empty result, writes log and return ``None`` or ``False``.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from typing import Any, Mapping

from databases import Database

from nukoken.domain.models import BlogCategory, BlogPost, Recipe, slugify


logger = logging.getLogger(__name__)


CREATE_RECIPES_TABLE = """
CREATE TABLE IF NOT EXISTS recepten (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title VARCHAR(256) NOT NULL,
    slug VARCHAR(256) NOT NULL UNIQUE,
    description TEXT NOT NULL,
    image_url TEXT NOT NULL DEFAULT '',
    categories TEXT NOT NULL DEFAULT '[]',
    prep_time INTEGER NOT NULL DEFAULT 0,
    cook_time INTEGER NOT NULL DEFAULT 0,
    servings INTEGER NOT NULL DEFAULT 4,
    tags TEXT NOT NULL DEFAULT '',
    ingredients TEXT NOT NULL DEFAULT '',
    instructions TEXT NOT NULL DEFAULT '',
    serving_suggestions TEXT NOT NULL DEFAULT '',
    is_popular BOOLEAN NOT NULL DEFAULT 0,
    created_at VARCHAR(64) NOT NULL,
    updated_at VARCHAR(64) NOT NULL
)
"""


CREATE_BLOG_POSTS_TABLE = """
CREATE TABLE IF NOT EXISTS blog_posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title VARCHAR(256) NOT NULL,
    slug VARCHAR(256) NOT NULL UNIQUE,
    excerpt TEXT NOT NULL,
    content TEXT NOT NULL,
    image_url TEXT NOT NULL DEFAULT '',
    category VARCHAR(64) NOT NULL,
    tags TEXT NOT NULL DEFAULT '',
    is_featured BOOLEAN NOT NULL DEFAULT 0,
    is_published BOOLEAN NOT NULL DEFAULT 0,
    created_at VARCHAR(64) NOT NULL,
    updated_at VARCHAR(64) NOT NULL
)
"""


LIST_RECIPES = "SELECT * FROM recepten ORDER BY created_at DESC"

POPULAR_RECIPES = """
SELECT * FROM recepten WHERE is_popular = :flag ORDER BY created_at DESC LIMIT :limit
"""

RECIPES_BY_CATEGORY = """
SELECT * FROM recepten WHERE categories LIKE :pattern ORDER BY created_at DESC
"""

GET_RECIPE_BY_SLUG = "SELECT * FROM recepten WHERE slug = :slug LIMIT 1"

GET_RECIPE_BY_ID = "SELECT * FROM recepten WHERE id = :id LIMIT 1"

CREATE_RECIPE = """
INSERT INTO recepten (
    title, slug, description, image_url, categories,
    prep_time, cook_time, servings,
    tags, ingredients, instructions, serving_suggestions, is_popular,
    created_at, updated_at
) VALUES (
    :title, :slug, :description, :image_url, :categories,
    :prep_time, :cook_time, :servings,
    :tags, :ingredients, :instructions, :serving_suggestions, :is_popular,
    :created_at, :updated_at
)
"""

UPDATE_RECIPE = """
UPDATE recepten SET
    title = COALESCE(:title, title),
    slug = COALESCE(:slug, slug),
    description = COALESCE(:description, description),
    image_url = COALESCE(:image_url, image_url),
    categories = COALESCE(:categories, categories),
    prep_time = COALESCE(:prep_time, prep_time),
    cook_time = COALESCE(:cook_time, cook_time),
    servings = COALESCE(:servings, servings),
    tags = COALESCE(:tags, tags),
    ingredients = COALESCE(:ingredients, ingredients),
    instructions = COALESCE(:instructions, instructions),
    serving_suggestions = COALESCE(:serving_suggestions, serving_suggestions),
    is_popular = COALESCE(:is_popular, is_popular),
    updated_at = :updated_at
WHERE id = :id
"""

DELETE_RECIPE = "DELETE FROM recepten WHERE id = :id"


LIST_BLOG_POSTS = "SELECT * FROM blog_posts ORDER BY created_at DESC"

LIST_PUBLISHED_BLOG_POSTS = """
SELECT * FROM blog_posts WHERE is_published = :flag ORDER BY created_at DESC
"""

FEATURED_BLOG_POSTS = """
SELECT * FROM blog_posts
WHERE is_featured = :flag AND is_published = :flag
ORDER BY created_at DESC
LIMIT :limit
"""

BLOG_POSTS_BY_CATEGORY = """
SELECT * FROM blog_posts
WHERE category = :category AND is_published = :flag
ORDER BY created_at DESC
"""

GET_BLOG_POST_BY_SLUG = "SELECT * FROM blog_posts WHERE slug = :slug LIMIT 1"

GET_BLOG_POST_BY_ID = "SELECT * FROM blog_posts WHERE id = :id LIMIT 1"

CREATE_BLOG_POST = """
INSERT INTO blog_posts (
    title, slug, excerpt, content, image_url, category,
    tags, is_featured, is_published,
    created_at, updated_at
) VALUES (
    :title, :slug, :excerpt, :content, :image_url, :category,
    :tags, :is_featured, :is_published,
    :created_at, :updated_at
)
"""

UPDATE_BLOG_POST = """
UPDATE blog_posts SET
    title = COALESCE(:title, title),
    slug = COALESCE(:slug, slug),
    excerpt = COALESCE(:excerpt, excerpt),
    content = COALESCE(:content, content),
    image_url = COALESCE(:image_url, image_url),
    category = COALESCE(:category, category),
    tags = COALESCE(:tags, tags),
    is_featured = COALESCE(:is_featured, is_featured),
    is_published = COALESCE(:is_published, is_published),
    updated_at = :updated_at
WHERE id = :id
"""

DELETE_BLOG_POST = "DELETE FROM blog_posts WHERE id = :id"


RECIPE_FIELDS = (
    "title",
    "description",
    "image_url",
    "categories",
    "prep_time",
    "cook_time",
    "servings",
    "tags",
    "ingredients",
    "instructions",
    "serving_suggestions",
    "is_popular",
)

BLOG_POST_FIELDS = (
    "title",
    "excerpt",
    "content",
    "image_url",
    "category",
    "tags",
    "is_featured",
    "is_published",
)


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def normalize_categories(row: Mapping[str, Any]) -> list[str]:
    """Categories as a list, whatever shape the row stored them in.

    Current rows hold a JSON array string. Rows from before multi-select have
    a single ``category`` column instead.
    """
    raw = row.get("categories")
    if isinstance(raw, str) and raw:
        parsed = json.loads(raw)
        return [str(c) for c in parsed] if isinstance(parsed, list) else [str(parsed)]
    if isinstance(raw, (list, tuple)):
        return [str(c) for c in raw]  # pyright: ignore[reportUnknownVariableType, reportUnknownArgumentType]
    legacy = row.get("category")
    return [str(legacy)] if legacy else []


def row_to_recipe(row: Mapping[str, Any]) -> Recipe:
    return Recipe(
        id=int(row["id"]),
        title=row["title"],
        slug=row["slug"],
        description=row["description"],
        image_url=row.get("image_url") or "",
        categories=normalize_categories(row),
        prep_time=int(row.get("prep_time") or 0),
        cook_time=int(row.get("cook_time") or 0),
        servings=int(row.get("servings") or 4),
        tags=row.get("tags") or "",
        ingredients=row.get("ingredients") or "",
        instructions=row.get("instructions") or "",
        serving_suggestions=row.get("serving_suggestions") or "",
        is_popular=bool(row.get("is_popular")),
        created_at=_timestamp(row["created_at"]),
        updated_at=_timestamp(row["updated_at"]),
    )


def row_to_post(row: Mapping[str, Any]) -> BlogPost:
    return BlogPost(
        id=int(row["id"]),
        title=row["title"],
        slug=row["slug"],
        excerpt=row["excerpt"],
        content=row["content"],
        image_url=row.get("image_url") or "",
        category=BlogCategory(row["category"]),
        tags=row.get("tags") or "",
        is_featured=bool(row.get("is_featured")),
        is_published=bool(row.get("is_published")),
        created_at=_timestamp(row["created_at"]),
        updated_at=_timestamp(row["updated_at"]),
    )


def _mapping(record: Any) -> Mapping[str, Any]:
    return record._mapping  # pyright: ignore[reportUnknownMemberType]


async def create_tables(db: Database) -> None:
    await db.execute(query=CREATE_RECIPES_TABLE)  # pyright: ignore[reportUnknownMemberType]
    await db.execute(query=CREATE_BLOG_POSTS_TABLE)  # pyright: ignore[reportUnknownMemberType]


class RecipesRepository:
    """Recipes repository."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def _fetch_all(self, query: str, values: dict[str, Any] | None = None) -> list[Recipe]:
        rows = await self.db.fetch_all(query, values=values)  # pyright: ignore[reportUnknownMemberType]
        return [row_to_recipe(_mapping(r)) for r in rows]

    async def _fetch_one(self, query: str, values: dict[str, Any]) -> Recipe | None:
        row = await self.db.fetch_one(query, values=values)  # pyright: ignore[reportUnknownMemberType]
        return None if row is None else row_to_recipe(_mapping(row))

    async def list(self) -> list[Recipe]:
        try:
            logger.info("Fetching all recipes...")
            recipes = await self._fetch_all(LIST_RECIPES)
        except Exception:
            logger.exception("Error fetching recipes")
            return []
        logger.info("Found %d recipes", len(recipes))
        return recipes

    async def popular(self, limit: int = 6) -> list[Recipe]:
        try:
            logger.info("Fetching popular recipes...")
            recipes = await self._fetch_all(POPULAR_RECIPES, {"flag": True, "limit": limit})
        except Exception:
            logger.exception("Error fetching popular recipes")
            return []
        logger.info("Found %d popular recipes", len(recipes))
        return recipes

    async def by_category(self, category: str) -> list[Recipe]:
        try:
            logger.info("Fetching recipes for category: %s", category)
            candidates = await self._fetch_all(
                RECIPES_BY_CATEGORY, {"pattern": f"%{category}%"}
            )
        except Exception:
            logger.exception("Error fetching recipes by category")
            return []
        wanted = category.lower()
        # LIKE also hits substrings of other labels.
        recipes = [r for r in candidates if wanted in (c.lower() for c in r.categories)]
        logger.info("Found %d recipes in category %s", len(recipes), category)
        return recipes

    async def get_by_slug(self, slug: str) -> Recipe | None:
        try:
            logger.info("Fetching recipe with slug: %s", slug)
            return await self._fetch_one(GET_RECIPE_BY_SLUG, {"slug": slug})
        except Exception:
            logger.exception("Error fetching recipe by slug")
            return None

    async def get_by_id(self, id: int) -> Recipe | None:
        try:
            logger.info("Fetching recipe with id: %s", id)
            return await self._fetch_one(GET_RECIPE_BY_ID, {"id": id})
        except Exception:
            logger.exception("Error fetching recipe by id")
            return None

    async def create(self, fields: Mapping[str, Any]) -> Recipe | None:
        slug = slugify(fields["title"])
        timestamp = now()
        values = {
            "title": fields["title"],
            "slug": slug,
            "description": fields["description"],
            "image_url": fields.get("image_url") or "/placeholder-recipe.jpg",
            "categories": json.dumps(list(fields.get("categories") or [])),
            "prep_time": fields.get("prep_time") or 0,
            "cook_time": fields.get("cook_time") or 0,
            "servings": 4 if fields.get("servings") is None else fields["servings"],
            "tags": fields.get("tags") or "",
            "ingredients": fields.get("ingredients") or "",
            "instructions": fields.get("instructions") or "",
            "serving_suggestions": fields.get("serving_suggestions") or "",
            "is_popular": bool(fields.get("is_popular")),
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        try:
            logger.info("Creating recipe: %s with slug: %s", fields["title"], slug)
            await self.db.execute(CREATE_RECIPE, values=values)  # pyright: ignore[reportUnknownMemberType]
            recipe = await self._fetch_one(GET_RECIPE_BY_SLUG, {"slug": slug})
        except Exception:
            logger.exception("Error creating recipe")
            return None
        logger.info("Recipe created successfully: %s", fields["title"])
        return recipe

    async def update(self, id: int, fields: Mapping[str, Any]) -> Recipe | None:
        """Merge `fields` into the stored recipe. Absent fields are kept."""
        values: dict[str, Any] = {name: fields.get(name) for name in RECIPE_FIELDS}
        values["slug"] = slugify(values["title"]) if values["title"] else None
        if values["categories"] is not None:
            values["categories"] = json.dumps(list(values["categories"]))
        if values["is_popular"] is not None:
            values["is_popular"] = bool(values["is_popular"])
        values["updated_at"] = now()
        values["id"] = id
        try:
            logger.info("Updating recipe with id: %s", id)
            if await self._fetch_one(GET_RECIPE_BY_ID, {"id": id}) is None:
                logger.info("Recipe with id %s not found", id)
                return None
            await self.db.execute(UPDATE_RECIPE, values=values)  # pyright: ignore[reportUnknownMemberType]
            recipe = await self._fetch_one(GET_RECIPE_BY_ID, {"id": id})
        except Exception:
            logger.exception("Error updating recipe")
            return None
        logger.info("Recipe updated successfully: %s", recipe.title if recipe else id)
        return recipe

    async def delete(self, id: int) -> bool:
        try:
            logger.info("Deleting recipe with id: %s", id)
            if await self._fetch_one(GET_RECIPE_BY_ID, {"id": id}) is None:
                logger.info("Recipe %s not found", id)
                return False
            await self.db.execute(DELETE_RECIPE, values={"id": id})  # pyright: ignore[reportUnknownMemberType]
        except Exception:
            logger.exception("Error deleting recipe")
            return False
        logger.info("Recipe %s deleted", id)
        return True


class BlogPostsRepository:
    """Blog posts repository."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def _fetch_all(self, query: str, values: dict[str, Any] | None = None) -> list[BlogPost]:
        rows = await self.db.fetch_all(query, values=values)  # pyright: ignore[reportUnknownMemberType]
        return [row_to_post(_mapping(r)) for r in rows]

    async def _fetch_one(self, query: str, values: dict[str, Any]) -> BlogPost | None:
        row = await self.db.fetch_one(query, values=values)  # pyright: ignore[reportUnknownMemberType]
        return None if row is None else row_to_post(_mapping(row))

    async def list(self, published_only: bool = True) -> list[BlogPost]:
        try:
            logger.info("Fetching all blog posts...")
            if published_only:
                posts = await self._fetch_all(LIST_PUBLISHED_BLOG_POSTS, {"flag": True})
            else:
                posts = await self._fetch_all(LIST_BLOG_POSTS)
        except Exception:
            logger.exception("Error fetching blog posts")
            return []
        logger.info("Found %d blog posts", len(posts))
        return posts

    async def featured(self, limit: int = 3) -> list[BlogPost]:
        try:
            logger.info("Fetching featured blog posts...")
            posts = await self._fetch_all(FEATURED_BLOG_POSTS, {"flag": True, "limit": limit})
        except Exception:
            logger.exception("Error fetching featured blog posts")
            return []
        logger.info("Found %d featured blog posts", len(posts))
        return posts

    async def by_category(self, category: BlogCategory) -> list[BlogPost]:
        try:
            logger.info("Fetching blog posts for category: %s", category.value)
            posts = await self._fetch_all(
                BLOG_POSTS_BY_CATEGORY, {"category": category.value, "flag": True}
            )
        except Exception:
            logger.exception("Error fetching blog posts by category")
            return []
        logger.info("Found %d blog posts in category %s", len(posts), category.value)
        return posts

    async def get_by_slug(self, slug: str) -> BlogPost | None:
        try:
            logger.info("Fetching blog post with slug: %s", slug)
            return await self._fetch_one(GET_BLOG_POST_BY_SLUG, {"slug": slug})
        except Exception:
            logger.exception("Error fetching blog post by slug")
            return None

    async def get_by_id(self, id: int) -> BlogPost | None:
        try:
            logger.info("Fetching blog post with id: %s", id)
            return await self._fetch_one(GET_BLOG_POST_BY_ID, {"id": id})
        except Exception:
            logger.exception("Error fetching blog post by id")
            return None

    async def create(self, fields: Mapping[str, Any]) -> BlogPost | None:
        slug = slugify(fields["title"])
        timestamp = now()
        values = {
            "title": fields["title"],
            "slug": slug,
            "excerpt": fields["excerpt"],
            "content": fields["content"],
            "image_url": fields.get("image_url") or "",
            "category": fields["category"],
            "tags": fields.get("tags") or "",
            "is_featured": bool(fields.get("is_featured")),
            "is_published": bool(fields.get("is_published")),
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        try:
            logger.info("Creating blog post: %s with slug: %s", fields["title"], slug)
            await self.db.execute(CREATE_BLOG_POST, values=values)  # pyright: ignore[reportUnknownMemberType]
            post = await self._fetch_one(GET_BLOG_POST_BY_SLUG, {"slug": slug})
        except Exception:
            logger.exception("Error creating blog post")
            return None
        logger.info("Blog post created successfully: %s", fields["title"])
        return post

    async def update(self, id: int, fields: Mapping[str, Any]) -> BlogPost | None:
        values: dict[str, Any] = {name: fields.get(name) for name in BLOG_POST_FIELDS}
        values["slug"] = slugify(values["title"]) if values["title"] else None
        for flag in ("is_featured", "is_published"):
            if values[flag] is not None:
                values[flag] = bool(values[flag])
        values["updated_at"] = now()
        values["id"] = id
        try:
            logger.info("Updating blog post with id: %s", id)
            if await self._fetch_one(GET_BLOG_POST_BY_ID, {"id": id}) is None:
                logger.info("Blog post with id %s not found", id)
                return None
            await self.db.execute(UPDATE_BLOG_POST, values=values)  # pyright: ignore[reportUnknownMemberType]
            post = await self._fetch_one(GET_BLOG_POST_BY_ID, {"id": id})
        except Exception:
            logger.exception("Error updating blog post")
            return None
        logger.info("Blog post updated successfully: %s", post.title if post else id)
        return post

    async def delete(self, id: int) -> bool:
        try:
            logger.info("Deleting blog post with id: %s", id)
            if await self._fetch_one(GET_BLOG_POST_BY_ID, {"id": id}) is None:
                logger.info("Blog post %s not found", id)
                return False
            await self.db.execute(DELETE_BLOG_POST, values={"id": id})  # pyright: ignore[reportUnknownMemberType]
        except Exception:
            logger.exception("Error deleting blog post")
            return False
        logger.info("Blog post %s deleted", id)
        return True
