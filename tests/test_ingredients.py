import pytest

from nukoken.domain.ingredients import (
    IngredientGroup,
    clamp_servings,
    format_quantity,
    group_ingredients,
    parse_quantity,
    scale_groups,
    scale_ingredient,
    split_instructions,
)


def test_group_ingredients() -> None:
    text = "200 g spaghetti\n[Saus]\n2 eieren\n50 g pecorino\n"
    got = group_ingredients(text)
    assert got == [
        IngredientGroup(name=None, items=["200 g spaghetti"]),
        IngredientGroup(name="Saus", items=["2 eieren", "50 g pecorino"]),
    ]


def test_group_ingredients_drops_empty_groups() -> None:
    text = "[Leeg]\n\n[Deeg]\n  500 g bloem  \n\n[Ook leeg]"
    got = group_ingredients(text)
    assert got == [IngredientGroup(name="Deeg", items=["500 g bloem"])]


def test_group_ingredients_trailing_empty_group() -> None:
    text = "boter\n[Marinade]\nsojasaus\ngember\n[EmptyGroup]"
    got = group_ingredients(text)
    assert got == [
        IngredientGroup(name=None, items=["boter"]),
        IngredientGroup(name="Marinade", items=["sojasaus", "gember"]),
    ]


def test_group_ingredients_empty() -> None:
    assert group_ingredients("") == []
    assert group_ingredients("\n  \n") == []


@pytest.mark.parametrize(
    "token,expected",
    (
        ("2", 2.0),
        ("1,5", 1.5),
        ("1.5", 1.5),
        ("1/2", 0.5),
        ("1/0", None),
        ("1/2/3", None),
        (".", None),
        (",,", None),
        ("", None),
    ),
)
def test_parse_quantity(token: str, expected: float | None) -> None:
    assert parse_quantity(token) == expected


@pytest.mark.parametrize(
    "value,expected",
    (
        (2.0, "2"),
        (0.5, "0,5"),
        (1.33, "1,3"),
        (300.0, "300"),
    ),
)
def test_format_quantity(value: float, expected: str) -> None:
    assert format_quantity(value) == expected


@pytest.mark.parametrize(
    "line,multiplier,expected",
    (
        ("200 g spaghetti", 2, "400 g spaghetti"),
        ("200g spaghetti", 0.5, "100g spaghetti"),
        ("1/2 ui", 2, "1 ui"),
        ("1/2 citroen", 3, "1,5 citroen"),
        ("1,5 dl room", 2, "3 dl room"),
        ("3 eieren", 0.5, "1,5 eieren"),
        ("zout naar smaak", 2, "zout naar smaak"),
        ("1/0 kopje", 2, "1/0 kopje"),
        ("2", 3, "6"),
    ),
)
def test_scale_ingredient(line: str, multiplier: float, expected: str) -> None:
    assert scale_ingredient(line, multiplier) == expected


@pytest.mark.parametrize(
    "line",
    ("200 g spaghetti", "1/2 ui", "1,25 l melk", "snufje zout", "1/0 kopje"),
)
def test_scale_ingredient_identity(line: str) -> None:
    assert scale_ingredient(line, 1) == line


@pytest.mark.parametrize("multiplier", (0.25, 0.5, 1, 1.5, 2, 3))
def test_scale_ingredient_without_quantity(multiplier: float) -> None:
    assert scale_ingredient("zout naar smaak", multiplier) == "zout naar smaak"


def test_scale_groups_keeps_structure() -> None:
    groups = group_ingredients("4 eieren\n[Saus]\n100 g kaas\npeper")
    got = scale_groups(groups, 2, 4)
    assert [g.name for g in got] == [None, "Saus"]
    assert got[0].items == ["2 eieren"]
    assert got[1].items == ["50 g kaas", "peper"]
    # Input is left alone.
    assert groups[0].items == ["4 eieren"]


def test_split_instructions() -> None:
    got = split_instructions("Kook de pasta\n\n  Bak het spek  \nMeng alles\n")
    assert got == ["Kook de pasta", "Bak het spek", "Meng alles"]


@pytest.mark.parametrize(
    "value,expected",
    (
        (None, 4),
        ("", 4),
        ("6", 6),
        ("0", 1),
        ("-3", 1),
        ("veel", 4),
    ),
)
def test_clamp_servings(value: str | None, expected: int) -> None:
    assert clamp_servings(value, 4) == expected
