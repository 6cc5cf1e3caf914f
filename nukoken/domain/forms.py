"""Admin form state.

A form is an immutable snapshot of one recipe or blog post being edited.
Every change goes through `reduce`, so the same rules apply to the HTML
admin pages and to `nukoken.admin.AdminClient`.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, ClassVar, Literal, Mapping, TypeVar

from nukoken.errors import ValidationError


REQUIRED_RECIPE = "Titel, beschrijving, ingrediënten en bereidingswijze zijn verplicht"
REQUIRED_CATEGORY = "Selecteer minimaal één categorie"
REQUIRED_BLOG = "Titel, excerpt, inhoud en categorie zijn verplicht"
INVALID_VALUE = "Ongeldige waarde voor {name}"
MIN_SERVINGS = "Aantal personen moet minimaal 1 zijn"
NEGATIVE_TIME = "Bereidingstijden kunnen niet negatief zijn"

TRUTHY = {"true", "on", "1", "ja", "yes"}


@dataclass(frozen=True)
class Message:
    kind: Literal["success", "error"]
    text: str


def _to_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUTHY


@dataclass(frozen=True)
class RecipeForm:
    endpoint: ClassVar[str] = "/api/recepten"
    record_key: ClassVar[str] = "recipe"
    detail_path: ClassVar[str] = "/recepten"
    list_path: ClassVar[str] = "/recepten"
    created_text: ClassVar[str] = "Recept succesvol toegevoegd!"
    updated_text: ClassVar[str] = "Recept succesvol bijgewerkt!"
    delete_failed_text: ClassVar[str] = "Kon recept niet verwijderen"
    int_fields: ClassVar[tuple[str, ...]] = ("prep_time", "cook_time", "servings")
    bool_fields: ClassVar[tuple[str, ...]] = ("is_popular",)
    required_fields: ClassVar[tuple[str, ...]] = (
        "title",
        "description",
        "ingredients",
        "instructions",
    )
    required_text: ClassVar[str] = REQUIRED_RECIPE

    id: int | None = None
    title: str = ""
    description: str = ""
    image_url: str = ""
    categories: tuple[str, ...] = ()
    prep_time: int = 0
    cook_time: int = 0
    servings: int = 4
    tags: str = ""
    ingredients: str = ""
    instructions: str = ""
    serving_suggestions: str = ""
    is_popular: bool = False
    message: Message | None = None
    saved_slug: str | None = None

    def payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
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
        }


@dataclass(frozen=True)
class BlogPostForm:
    endpoint: ClassVar[str] = "/api/blog"
    record_key: ClassVar[str] = "post"
    detail_path: ClassVar[str] = "/sourdough/post"
    list_path: ClassVar[str] = "/admin/blog"
    created_text: ClassVar[str] = "Blog post succesvol aangemaakt!"
    updated_text: ClassVar[str] = "Blog post succesvol bijgewerkt!"
    delete_failed_text: ClassVar[str] = "Kon blog post niet verwijderen"
    int_fields: ClassVar[tuple[str, ...]] = ()
    bool_fields: ClassVar[tuple[str, ...]] = ("is_featured", "is_published")
    required_fields: ClassVar[tuple[str, ...]] = ("title", "excerpt", "content", "category")
    required_text: ClassVar[str] = REQUIRED_BLOG

    id: int | None = None
    title: str = ""
    excerpt: str = ""
    content: str = ""
    image_url: str = ""
    category: str = ""
    tags: str = ""
    is_featured: bool = False
    is_published: bool = False
    message: Message | None = None
    saved_slug: str | None = None

    def payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "excerpt": self.excerpt,
            "content": self.content,
            "image_url": self.image_url,
            "category": self.category,
            "tags": self.tags,
            "is_featured": self.is_featured,
            "is_published": self.is_published,
        }


Form = RecipeForm | BlogPostForm
F = TypeVar("F", bound=Form)

_STATE_FIELDS = {"id", "message", "saved_slug"}


def _coerce(form: Form, name: str, value: Any) -> Any:
    if name in form.int_fields:
        return _to_int(value, getattr(form, name))
    if name in form.bool_fields:
        return _to_bool(value)
    if name == "categories":
        if isinstance(value, str):
            return (value,) if value else ()
        if isinstance(value, (list, tuple)):
            return tuple(c for c in value if isinstance(c, str) and c)  # pyright: ignore[reportUnknownVariableType]
        return ()
    return "" if value is None else str(value)


def _strict_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(INVALID_VALUE.format(name=name))
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(INVALID_VALUE.format(name=name))


def _strict_bool(name: str, value: Any) -> bool:
    if isinstance(value, (bool, str)) or value in (0, 1):
        return _to_bool(value)
    raise ValidationError(INVALID_VALUE.format(name=name))


def check_fields(form_cls: type[Form], body: Mapping[str, Any]) -> dict[str, Any]:
    """Known, present fields of a JSON body, type-checked for storage.

    Absent or null fields are left out, so the result can be merged into a
    stored record. Raises `ValidationError` for a wrong type, a blank
    required field, an empty category list or an out-of-range number.
    """
    values: dict[str, Any] = {}
    for f in fields(form_cls):
        name = f.name
        if name in _STATE_FIELDS or body.get(name) is None:
            continue
        value = body[name]
        if name in form_cls.int_fields:
            values[name] = _strict_int(name, value)
        elif name in form_cls.bool_fields:
            values[name] = _strict_bool(name, value)
        elif name == "categories":
            if not isinstance(value, list) or not all(
                isinstance(c, str) and c.strip() for c in value  # pyright: ignore[reportUnknownVariableType]
            ):
                raise ValidationError(INVALID_VALUE.format(name=name))
            if not value:
                raise ValidationError(REQUIRED_CATEGORY)
            values[name] = [c.strip() for c in value]  # pyright: ignore[reportUnknownVariableType, reportUnknownMemberType]
        elif not isinstance(value, str):
            raise ValidationError(INVALID_VALUE.format(name=name))
        elif name in form_cls.required_fields and not value.strip():
            raise ValidationError(form_cls.required_text)
        else:
            values[name] = value

    problem = _range_problem(values)
    if problem:
        raise ValidationError(problem)
    return values


def _range_problem(values: Mapping[str, Any]) -> str | None:
    if "servings" in values and values["servings"] < 1:
        return MIN_SERVINGS
    if any(values.get(name, 0) < 0 for name in ("prep_time", "cook_time")):
        return NEGATIVE_TIME
    return None


def from_fields(
    form_cls: type[F],
    data: Mapping[str, Any],
    *,
    id: int | None = None,
) -> F:
    """Build a form from a JSON record or posted form fields.

    Missing fields keep their defaults. Unchecked checkboxes are absent from
    posted forms, so booleans are read as "present and truthy".
    """
    form = form_cls(id=id)
    values: dict[str, Any] = {}
    for f in fields(form_cls):
        if f.name in _STATE_FIELDS:
            continue
        if f.name in form.bool_fields:
            values[f.name] = _to_bool(data.get(f.name, False))
        elif f.name in data and data[f.name] is not None:
            values[f.name] = _coerce(form, f.name, data[f.name])
    return replace(form, **values)


@dataclass(frozen=True)
class SetField:
    name: str
    value: Any


@dataclass(frozen=True)
class ToggleCategory:
    name: str


@dataclass(frozen=True)
class Loaded:
    record: Mapping[str, Any]


@dataclass(frozen=True)
class Saved:
    record: Mapping[str, Any]


@dataclass(frozen=True)
class Failed:
    text: str


@dataclass(frozen=True)
class Reset:
    pass


Action = SetField | ToggleCategory | Loaded | Saved | Failed | Reset


def reduce(form: F, action: Action) -> F:
    match action:
        case SetField(name=name, value=value):
            if name in _STATE_FIELDS or not hasattr(form, name):
                raise ValueError(f"Not an editable field: {name}")
            return replace(form, **{name: _coerce(form, name, value)})
        case ToggleCategory(name=name):
            if not isinstance(form, RecipeForm):
                raise ValueError("Only recipes have multiple categories.")
            if name in form.categories:
                categories = tuple(c for c in form.categories if c != name)
            else:
                categories = form.categories + (name,)
            return replace(form, categories=categories)
        case Loaded(record=record):
            return from_fields(type(form), record, id=record.get("id"))
        case Saved(record=record):
            slug = record.get("slug")
            if form.id is None:
                saved = type(form)()
                text = form.created_text
            else:
                saved = from_fields(type(form), record, id=record.get("id", form.id))
                text = form.updated_text
            return replace(saved, message=Message("success", text), saved_slug=slug)
        case Failed(text=text):
            return replace(form, message=Message("error", text))
        case Reset():
            return type(form)()


def validate(form: Form) -> str | None:
    if isinstance(form, RecipeForm):
        required = (form.title, form.description, form.ingredients, form.instructions)
        if not all(v.strip() for v in required):
            return REQUIRED_RECIPE
        if not form.categories:
            return REQUIRED_CATEGORY
        return _range_problem(
            {
                "servings": form.servings,
                "prep_time": form.prep_time,
                "cook_time": form.cook_time,
            }
        )
    required = (form.title, form.excerpt, form.content, form.category)
    if not all(v.strip() for v in required):
        return REQUIRED_BLOG
    return None
