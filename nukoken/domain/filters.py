"""Search, filter and sort the recipe collection.

The browse page is a pure function of its query string: `Criteria` is read
from the query, applied to the full list of recipes, and written back into
every link the page renders.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping
import unicodedata
from urllib.parse import urlencode

from nukoken.domain.models import Recipe


class SortKey(Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    ALPHABETICAL = "alphabetical"
    POPULAR = "popular"
    TIME_ASC = "time-asc"
    TIME_DESC = "time-desc"
    SERVINGS_ASC = "servings-asc"
    SERVINGS_DESC = "servings-desc"

    @classmethod
    def parse(cls, value: str | None) -> "SortKey":
        try:
            return cls(value or cls.NEWEST.value)
        except ValueError:
            return cls.NEWEST

    @property
    def label(self) -> str:
        return _SORT_LABELS[self]


_SORT_LABELS = {
    SortKey.NEWEST: "Nieuwste eerst",
    SortKey.OLDEST: "Oudste eerst",
    SortKey.POPULAR: "Populairst",
    SortKey.ALPHABETICAL: "Alfabetisch",
    SortKey.TIME_ASC: "Snelste eerst",
    SortKey.TIME_DESC: "Langste eerst",
    SortKey.SERVINGS_ASC: "Minste personen",
    SortKey.SERVINGS_DESC: "Meeste personen",
}


# Criteria field -> query parameter.
QUERY_PARAMS = {
    "search": "search",
    "category": "category",
    "tag": "tag",
    "ingredient": "ingredient",
    "max_servings": "servings",
    "max_time": "maxTime",
}


def parse_bound(value: str) -> int | None:
    """Numeric filter bound. Anything unparseable switches the filter off."""
    try:
        return int(value.strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class Criteria:
    search: str = ""
    category: str = ""
    tag: str = ""
    ingredient: str = ""
    max_servings: str = ""
    max_time: str = ""
    sort: SortKey = SortKey.NEWEST

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "Criteria":
        values = {
            name: (query.get(param) or "").strip()
            for name, param in QUERY_PARAMS.items()
        }
        # Old links still carry ?difficulty=, which now lives in the tags.
        if not values["tag"]:
            values["tag"] = (query.get("difficulty") or "").strip()
        return cls(**values, sort=SortKey.parse(query.get("sort")))

    @property
    def servings_bound(self) -> int | None:
        return parse_bound(self.max_servings) if self.max_servings else None

    @property
    def time_bound(self) -> int | None:
        return parse_bound(self.max_time) if self.max_time else None

    @property
    def is_active(self) -> bool:
        return any(getattr(self, name) for name in QUERY_PARAMS)

    def with_value(self, name: str, value: str) -> "Criteria":
        if name == "sort":
            return replace(self, sort=SortKey.parse(value))
        return replace(self, **{name: value})

    def without(self, name: str) -> "Criteria":
        return self.with_value(name, "")

    def to_query(self) -> dict[str, str]:
        query = {
            param: getattr(self, name)
            for name, param in QUERY_PARAMS.items()
            if getattr(self, name)
        }
        if self.sort != SortKey.NEWEST:
            query["sort"] = self.sort.value
        return query

    def url(self, base: str = "/recepten") -> str:
        query = self.to_query()
        return f"{base}?{urlencode(query)}" if query else base


def matches(recipe: Recipe, criteria: Criteria) -> bool:
    if criteria.search:
        needle = criteria.search.lower()
        haystacks = (
            recipe.title,
            recipe.description,
            recipe.tags,
            recipe.ingredients,
        )
        if not any(needle in h.lower() for h in haystacks):
            return False

    if criteria.category:
        wanted = criteria.category.lower()
        if wanted not in (c.lower() for c in recipe.categories):
            return False

    if criteria.tag and criteria.tag.lower() not in recipe.tags.lower():
        return False

    if (
        criteria.ingredient
        and criteria.ingredient.lower() not in recipe.ingredients.lower()
    ):
        return False

    servings_bound = criteria.servings_bound
    if servings_bound is not None and recipe.servings > servings_bound:
        return False

    time_bound = criteria.time_bound
    if time_bound is not None and recipe.total_time > time_bound:
        return False

    return True


def filter_recipes(recipes: Iterable[Recipe], criteria: Criteria) -> list[Recipe]:
    return [r for r in recipes if matches(r, criteria)]


def _title_key(recipe: Recipe) -> tuple[str, str]:
    # Accents sort with their base letter, case only breaks ties.
    decomposed = unicodedata.normalize("NFKD", recipe.title)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return base.casefold(), recipe.title


def _created(recipe: Recipe) -> datetime:
    return recipe.created_at


def sort_recipes(recipes: Iterable[Recipe], key: SortKey) -> list[Recipe]:
    """Stable sort; ties keep their input order."""
    recipes = list(recipes)
    match key:
        case SortKey.NEWEST:
            return sorted(recipes, key=_created, reverse=True)
        case SortKey.OLDEST:
            return sorted(recipes, key=_created)
        case SortKey.ALPHABETICAL:
            return sorted(recipes, key=_title_key)
        case SortKey.POPULAR:
            return sorted(recipes, key=lambda r: not r.is_popular)
        case SortKey.TIME_ASC:
            return sorted(recipes, key=lambda r: r.total_time)
        case SortKey.TIME_DESC:
            return sorted(recipes, key=lambda r: r.total_time, reverse=True)
        case SortKey.SERVINGS_ASC:
            return sorted(recipes, key=lambda r: r.servings)
        case SortKey.SERVINGS_DESC:
            return sorted(recipes, key=lambda r: r.servings, reverse=True)


def apply(recipes: Iterable[Recipe], criteria: Criteria) -> list[Recipe]:
    return sort_recipes(filter_recipes(recipes, criteria), criteria.sort)


def all_tags(recipes: Iterable[Recipe]) -> list[str]:
    tags: set[str] = set()
    for recipe in recipes:
        tags.update(t.lower() for t in recipe.tag_list)
    return sorted(tags)
