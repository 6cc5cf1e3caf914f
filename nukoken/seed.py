"""Insert the starter recipes: ``python -m nukoken.seed``."""

import asyncio
import logging
from typing import Any

from databases import Database

from nukoken import db
from nukoken.config import Config
from nukoken.logs import setup_logging


logger = logging.getLogger(__name__)


INITIAL_RECIPES: list[dict[str, Any]] = [
    {
        "title": "Romige Pasta Carbonara",
        "description": "Authentieke Italiaanse carbonara met ei, kaas en spek",
        "image_url": "https://images.unsplash.com/photo-1612874742237-6526221588e3?w=400",
        "categories": ["Pasta"],
        "tags": "pasta, italiaans, comfort food, snel, makkelijk",
        "prep_time": 15,
        "cook_time": 20,
        "servings": 4,
        "ingredients": "\n".join(
            [
                "400g spaghetti",
                "200g guanciale of pancetta",
                "4 eieren",
                "100g Pecorino Romano",
                "Zwarte peper",
            ]
        ),
        "instructions": "\n".join(
            [
                "Kook de pasta volgens de verpakking",
                "Bak de guanciale knapperig",
                "Meng eieren met kaas",
                "Combineer alles met pastawater",
            ]
        ),
        "is_popular": True,
    },
    {
        "title": "Verse Groentesoep",
        "description": "Gezonde soep vol met seizoensgroenten",
        "image_url": "https://images.unsplash.com/photo-1547592166-23ac45744acd?w=400",
        "categories": ["Soep", "Groenten"],
        "tags": "soep, vegetarisch, gezond, winter, makkelijk",
        "prep_time": 20,
        "cook_time": 30,
        "servings": 6,
        "ingredients": "\n".join(
            [
                "2 uien, gesnipperd",
                "3 wortels, in blokjes",
                "2 stengels bleekselderij",
                "1 liter groentebouillon",
                "Verse kruiden",
            ]
        ),
        "instructions": "\n".join(
            [
                "Fruit de ui glazig",
                "Voeg groenten toe en bak 5 minuten",
                "Giet er bouillon bij",
                "Laat 25 minuten sudderen",
                "Breng op smaak met kruiden",
            ]
        ),
    },
]


async def seed(database: Database, recipes: list[dict[str, Any]] = INITIAL_RECIPES) -> int:
    """Create each recipe, carrying on past failures. Returns how many were created."""
    await db.create_tables(database)
    repo = db.RecipesRepository(database)
    created = 0
    for fields in recipes:
        if await repo.create(fields) is None:
            logger.error("Failed: %s", fields["title"])
            continue
        logger.info("Created: %s", fields["title"])
        created += 1
    return created


async def main() -> None:
    setup_logging()
    cfg = Config()
    logger.info("Starting data migration...")
    async with Database(cfg.db_url) as database:
        created = await seed(database)
    logger.info("Data migration completed: %d of %d recipes", created, len(INITIAL_RECIPES))


if __name__ == "__main__":
    asyncio.run(main())
