"""Ingredient blocks as stored on a recipe.

A block is plain text, one ingredient per line. A line that is nothing but
``[Name]`` opens a named subgroup::

    200 g spaghetti
    [Saus]
    2 eieren
    50 g pecorino

Quantities at the start of a line can be rescaled for a different number of
servings. Lines without a leading quantity ("zout naar smaak") never change.
"""

from dataclasses import dataclass, field
import math
import re


GROUP_HEADER = re.compile(r"^\[(.+)\]$")
LEADING_QUANTITY = re.compile(r"^([\d.,/]+)(.*)$", re.DOTALL)


@dataclass
class IngredientGroup:
    name: str | None
    items: list[str] = field(default_factory=list)


def group_ingredients(text: str) -> list[IngredientGroup]:
    groups: list[IngredientGroup] = []
    current = IngredientGroup(name=None)

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        header = GROUP_HEADER.match(line)
        if header:
            # Headers without items are dropped.
            if current.items:
                groups.append(current)
            current = IngredientGroup(name=header.group(1))
        else:
            current.items.append(line)

    if current.items:
        groups.append(current)

    return groups


def parse_quantity(token: str) -> float | None:
    """'2' -> 2.0, '1,5' -> 1.5, '1/2' -> 0.5. Anything else is None."""
    try:
        if "/" in token:
            numerator, denominator = token.split("/")
            value = _to_float(numerator) / _to_float(denominator)
        else:
            value = _to_float(token)
    except (ValueError, ZeroDivisionError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _to_float(text: str) -> float:
    return float(text.replace(",", "."))


def format_quantity(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}".replace(".", ",")


def scale_ingredient(line: str, multiplier: float) -> str:
    if multiplier == 1:
        return line

    match = LEADING_QUANTITY.match(line)
    if not match:
        return line

    token, rest = match.groups()
    value = parse_quantity(token)
    if value is None:
        return line

    return f"{format_quantity(value * multiplier)}{rest}"


def scale_groups(
    groups: list[IngredientGroup],
    servings: int,
    baseline: int,
) -> list[IngredientGroup]:
    multiplier = servings / baseline
    return [
        IngredientGroup(
            name=group.name,
            items=[scale_ingredient(item, multiplier) for item in group.items],
        )
        for group in groups
    ]


def split_instructions(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def clamp_servings(value: str | None, default: int) -> int:
    """Servings asked for on the detail page. Never below one."""
    if not value:
        return default
    try:
        servings = int(value)
    except ValueError:
        return default
    return max(1, servings)
