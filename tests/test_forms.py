from typing import Any

import pytest

from nukoken.domain.forms import (
    INVALID_VALUE,
    MIN_SERVINGS,
    NEGATIVE_TIME,
    REQUIRED_BLOG,
    REQUIRED_CATEGORY,
    REQUIRED_RECIPE,
    BlogPostForm,
    Failed,
    Loaded,
    Message,
    RecipeForm,
    Reset,
    Saved,
    SetField,
    ToggleCategory,
    check_fields,
    from_fields,
    reduce,
    validate,
)
from nukoken.errors import ValidationError


def filled_recipe(**kwargs: object) -> RecipeForm:
    form = RecipeForm(
        title="Pasta",
        description="Lekker",
        ingredients="200 g pasta",
        instructions="Koken",
        categories=("Pasta",),
    )
    for name, value in kwargs.items():
        form = reduce(form, SetField(name, value))
    return form


def test_toggle_category() -> None:
    form = RecipeForm()
    form = reduce(form, ToggleCategory("Pasta"))
    form = reduce(form, ToggleCategory("Soep"))
    assert form.categories == ("Pasta", "Soep")
    form = reduce(form, ToggleCategory("Pasta"))
    assert form.categories == ("Soep",)


def test_toggle_twice_is_identity() -> None:
    form = filled_recipe()
    twice = reduce(reduce(form, ToggleCategory("Soep")), ToggleCategory("Soep"))
    assert twice == form


def test_toggle_category_on_blog_form() -> None:
    with pytest.raises(ValueError):
        reduce(BlogPostForm(), ToggleCategory("Pasta"))


def test_set_field_coerces() -> None:
    form = reduce(RecipeForm(), SetField("servings", "6"))
    assert form.servings == 6
    form = reduce(form, SetField("servings", "veel"))
    assert form.servings == 6
    form = reduce(form, SetField("is_popular", "on"))
    assert form.is_popular is True


@pytest.mark.parametrize("name", ("id", "message", "saved_slug", "nope"))
def test_set_field_rejects_state(name: str) -> None:
    with pytest.raises(ValueError):
        reduce(RecipeForm(), SetField(name, "x"))


@pytest.mark.parametrize(
    "form,expected",
    (
        (filled_recipe(), None),
        (filled_recipe(title="  "), REQUIRED_RECIPE),
        (filled_recipe(instructions=""), REQUIRED_RECIPE),
        (filled_recipe(categories=()), REQUIRED_CATEGORY),
        (filled_recipe(servings=0), MIN_SERVINGS),
        (filled_recipe(servings=-2), MIN_SERVINGS),
        (filled_recipe(prep_time=-5), NEGATIVE_TIME),
        (filled_recipe(cook_time=-1), NEGATIVE_TIME),
        (BlogPostForm(), REQUIRED_BLOG),
        (
            BlogPostForm(
                title="Starter",
                excerpt="Kort",
                content="Lang",
                category="voor-beginners",
            ),
            None,
        ),
    ),
)
def test_validate(form: RecipeForm | BlogPostForm, expected: str | None) -> None:
    assert validate(form) == expected


def test_failed_keeps_fields() -> None:
    form = filled_recipe()
    failed = reduce(form, Failed("Kapot"))
    assert failed.message == Message("error", "Kapot")
    assert failed.title == form.title
    assert failed.categories == form.categories


def test_saved_create_resets() -> None:
    form = filled_recipe()
    saved = reduce(form, Saved({"id": 3, "slug": "pasta", "title": "Pasta"}))
    assert saved.title == ""
    assert saved.categories == ()
    assert saved.id is None
    assert saved.saved_slug == "pasta"
    assert saved.message == Message("success", RecipeForm.created_text)


def test_saved_edit_reloads() -> None:
    form = from_fields(RecipeForm, {"title": "Oud"}, id=3)
    record = {
        "id": 3,
        "slug": "nieuw",
        "title": "Nieuw",
        "description": "d",
        "categories": ["Soep"],
        "servings": 2,
        "is_popular": True,
    }
    saved = reduce(form, Saved(record))
    assert saved.id == 3
    assert saved.title == "Nieuw"
    assert saved.categories == ("Soep",)
    assert saved.servings == 2
    assert saved.is_popular is True
    assert saved.message == Message("success", RecipeForm.updated_text)


def test_loaded_and_reset() -> None:
    record = {
        "id": 9,
        "title": "Starter",
        "excerpt": "e",
        "content": "c",
        "category": "recepten",
        "is_published": True,
        "created_at": "2024-01-01T00:00:00+00:00",
    }
    form = reduce(BlogPostForm(), Loaded(record))
    assert form.id == 9
    assert form.category == "recepten"
    assert form.is_published is True
    assert form.is_featured is False
    assert reduce(form, Reset()) == BlogPostForm()


def test_from_fields_reads_posted_checkboxes() -> None:
    form = from_fields(
        RecipeForm,
        {"title": "Pasta", "prep_time": "10", "categories": ["Pasta", "Soep"]},
    )
    assert form.prep_time == 10
    assert form.categories == ("Pasta", "Soep")
    assert form.is_popular is False


def test_payload() -> None:
    form = filled_recipe(servings=2)
    payload = form.payload()
    assert payload["categories"] == ["Pasta"]
    assert payload["servings"] == 2
    assert "id" not in payload
    assert "message" not in payload


@pytest.mark.parametrize(
    "value,expected",
    (
        (5, ()),
        ({"a": 1}, ()),
        (None, ()),
        ([1, "Soep", ""], ("Soep",)),
    ),
)
def test_from_fields_ignores_malformed_categories(
    value: Any, expected: tuple[str, ...]
) -> None:
    form = from_fields(RecipeForm, {"title": "Pasta", "categories": value})
    assert form.categories == expected


def test_check_fields_keeps_present_fields() -> None:
    got = check_fields(
        RecipeForm,
        {
            "servings": "2",
            "tags": "pasta",
            "categories": [" Soep "],
            "is_popular": "false",
            "title": None,
            "id": 7,
            "unknown": "x",
        },
    )
    assert got == {
        "servings": 2,
        "tags": "pasta",
        "categories": ["Soep"],
        "is_popular": False,
    }


@pytest.mark.parametrize(
    "form_cls,body,expected",
    (
        (RecipeForm, {"categories": "Soep"}, INVALID_VALUE.format(name="categories")),
        (RecipeForm, {"categories": 5}, INVALID_VALUE.format(name="categories")),
        (RecipeForm, {"categories": ["Soep", 3]}, INVALID_VALUE.format(name="categories")),
        (RecipeForm, {"categories": []}, REQUIRED_CATEGORY),
        (RecipeForm, {"title": ""}, REQUIRED_RECIPE),
        (RecipeForm, {"description": "  "}, REQUIRED_RECIPE),
        (RecipeForm, {"title": 123}, INVALID_VALUE.format(name="title")),
        (RecipeForm, {"servings": "veel"}, INVALID_VALUE.format(name="servings")),
        (RecipeForm, {"servings": True}, INVALID_VALUE.format(name="servings")),
        (RecipeForm, {"servings": 0}, MIN_SERVINGS),
        (RecipeForm, {"cook_time": -10}, NEGATIVE_TIME),
        (RecipeForm, {"is_popular": [True]}, INVALID_VALUE.format(name="is_popular")),
        (BlogPostForm, {"content": ""}, REQUIRED_BLOG),
        (BlogPostForm, {"category": 5}, INVALID_VALUE.format(name="category")),
    ),
)
def test_check_fields_rejects(
    form_cls: type[RecipeForm] | type[BlogPostForm],
    body: dict[str, Any],
    expected: str,
) -> None:
    with pytest.raises(ValidationError) as e:
        check_fields(form_cls, body)
    assert e.value.message == expected


@pytest.mark.parametrize(
    "value,expected",
    (("false", False), ("true", True), (0, False), (True, True)),
)
def test_check_fields_reads_flags(value: Any, expected: bool) -> None:
    assert check_fields(BlogPostForm, {"is_published": value}) == {"is_published": expected}
