from datetime import datetime
from enum import Enum
import re
from typing import Any
import unicodedata

import markdown2  # pyright: ignore[reportMissingTypeStubs]
from markupsafe import Markup

from nukoken.domain.ingredients import IngredientGroup, group_ingredients, split_instructions


DEFAULT_CATEGORY_ICON = "🍽️"


class RecipeCategory(Enum):
    PASTA = "Pasta"
    OVENSCHOTEL = "Ovenschotel"
    RIJST = "Rijst"
    AARDAPPEL = "Aardappel"
    GROENTEN = "Groenten"
    EIGERECHTEN = "Eigerechten"
    SALADES = "Salades"
    SAUZEN = "Sauzen"
    SOEP = "Soep"
    TAARTEN_CAKES = "Taarten & Cakes"
    KOEKJES = "Koekjes"
    DRANKJES = "Drankjes"
    BROOD = "Brood"
    ZOETE_SNACKS = "Zoete snacks"
    HARTIGE_SNACKS = "Hartige snacks"

    @property
    def icon(self) -> str:
        return _RECIPE_ICONS[self]

    @classmethod
    def lookup(cls, name: str) -> "RecipeCategory | None":
        name = name.strip().lower()
        for category in cls:
            if category.value.lower() == name:
                return category
        return None


_RECIPE_ICONS: dict[RecipeCategory, str] = {
    RecipeCategory.PASTA: "🍝",
    RecipeCategory.OVENSCHOTEL: "🥘",
    RecipeCategory.RIJST: "🍚",
    RecipeCategory.AARDAPPEL: "🥔",
    RecipeCategory.GROENTEN: "🥦",
    RecipeCategory.EIGERECHTEN: "🍳",
    RecipeCategory.SALADES: "🥗",
    RecipeCategory.SAUZEN: "🫕",
    RecipeCategory.SOEP: "🍲",
    RecipeCategory.TAARTEN_CAKES: "🎂",
    RecipeCategory.KOEKJES: "🍪",
    RecipeCategory.DRANKJES: "🥤",
    RecipeCategory.BROOD: "🍞",
    RecipeCategory.ZOETE_SNACKS: "🧁",
    RecipeCategory.HARTIGE_SNACKS: "🥨",
}


def category_icon(name: str) -> str:
    category = RecipeCategory.lookup(name)
    return DEFAULT_CATEGORY_ICON if category is None else category.icon


class BlogCategory(Enum):
    STARTER_VAN_SCRATCH = "starter-van-scratch"
    VOOR_BEGINNERS = "voor-beginners"
    TIPS_EN_TRICKS = "tips-en-tricks"
    RECEPTEN = "recepten"

    @property
    def slug(self) -> str:
        return self.value

    @property
    def title(self) -> str:
        return _BLOG_STYLES[self][0]

    @property
    def icon(self) -> str:
        return _BLOG_STYLES[self][1]

    @property
    def color(self) -> str:
        return _BLOG_STYLES[self][2]

    @property
    def icon_bg(self) -> str:
        return _BLOG_STYLES[self][3]

    @classmethod
    def lookup(cls, slug: str) -> "BlogCategory | None":
        try:
            return cls(slug)
        except ValueError:
            return None


# title, icon, card colour, icon background
_BLOG_STYLES: dict[BlogCategory, tuple[str, str, str, str]] = {
    BlogCategory.STARTER_VAN_SCRATCH: (
        "Sourdough Starter van Scratch",
        "🧪",
        "bg-amber-50 border-amber-200",
        "bg-amber-100",
    ),
    BlogCategory.VOOR_BEGINNERS: (
        "Voor Beginners",
        "🌱",
        "bg-green-50 border-green-200",
        "bg-green-100",
    ),
    BlogCategory.TIPS_EN_TRICKS: (
        "Tips & Tricks",
        "💡",
        "bg-blue-50 border-blue-200",
        "bg-blue-100",
    ),
    BlogCategory.RECEPTEN: (
        "Sourdough Recepten",
        "🍞",
        "bg-orange-50 border-orange-200",
        "bg-orange-100",
    ),
}


def slugify(title: str) -> str:
    """'Romige Pasta Carbonara' -> 'romige-pasta-carbonara'."""
    text = unicodedata.normalize("NFD", title.lower())
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("- \t\n")


class Recipe:
    def __init__(
        self,
        *,
        id: int,
        title: str,
        slug: str,
        description: str,
        image_url: str = "",
        categories: list[str] | None = None,
        prep_time: int = 0,
        cook_time: int = 0,
        servings: int = 4,
        tags: str = "",
        ingredients: str = "",
        instructions: str = "",
        serving_suggestions: str = "",
        is_popular: bool = False,
        created_at: datetime,
        updated_at: datetime,
    ) -> None:
        self.id = id
        self.title = title
        self.slug = slug
        self.description = description
        self.image_url = image_url
        self.categories = [] if categories is None else list(categories)
        self.prep_time = prep_time
        self.cook_time = cook_time
        self.servings = servings
        self.tags = tags
        self.ingredients = ingredients
        self.instructions = instructions
        self.serving_suggestions = serving_suggestions
        self.is_popular = is_popular
        self.created_at = created_at
        self.updated_at = updated_at

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, slug={self.slug})>"

    @property
    def total_time(self) -> int:
        return self.prep_time + self.cook_time

    @property
    def tag_list(self) -> list[str]:
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    @property
    def ingredient_groups(self) -> list[IngredientGroup]:
        return group_ingredients(self.ingredients)

    @property
    def instruction_steps(self) -> list[str]:
        return split_instructions(self.instructions)

    @property
    def intro(self) -> str:
        return (
            f"Wil je {self.title.lower()} maken? Dit recept staat binnen "
            f"{self.total_time} minuten op tafel en is perfect voor "
            f"{self.servings} personen. Eet smakelijk!"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "image_url": self.image_url,
            "categories": list(self.categories),
            "prep_time": self.prep_time,
            "cook_time": self.cook_time,
            "servings": self.servings,
            "tags": self.tags,
            "ingredients": self.ingredients,
            "instructions": self.instructions,
            "serving_suggestions": self.serving_suggestions,
            "is_popular": self.is_popular,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class BlogPost:
    def __init__(
        self,
        *,
        id: int,
        title: str,
        slug: str,
        excerpt: str,
        content: str,
        category: BlogCategory,
        image_url: str = "",
        tags: str = "",
        is_featured: bool = False,
        is_published: bool = False,
        created_at: datetime,
        updated_at: datetime,
    ) -> None:
        self.id = id
        self.title = title
        self.slug = slug
        self.excerpt = excerpt
        self.content = content
        self.category = category
        self.image_url = image_url
        self.tags = tags
        self.is_featured = is_featured
        self.is_published = is_published
        self.created_at = created_at
        self.updated_at = updated_at

    def __repr__(self) -> str:
        return f"<BlogPost(id={self.id}, slug={self.slug})>"

    @property
    def html(self) -> Markup:
        return Markup(
            markdown2.markdown(  # pyright: ignore[reportUnknownArgumentType, reportUnknownMemberType]
                self.content, extras=["fenced-code-blocks", "tables"]
            )
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "excerpt": self.excerpt,
            "content": self.content,
            "image_url": self.image_url,
            "category": self.category.value,
            "tags": self.tags,
            "is_featured": self.is_featured,
            "is_published": self.is_published,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
