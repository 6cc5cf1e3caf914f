"""Drive the admin forms against the JSON API.

Each call takes a form snapshot and returns the next one. Validation runs
before anything is sent; a failed request leaves the fields as they were and
only sets the error message, so the same form can be submitted again.
"""

import logging
from typing import Any, Mapping, TypeVar

import httpx

from nukoken.domain.forms import Failed, Form, Loaded, Saved, reduce, validate

F = TypeVar("F", bound=Form)


logger = logging.getLogger(__name__)


NO_CONNECTION = "Kon geen verbinding maken met de server"
GENERIC_ERROR = "Er ging iets mis"
NOT_FOUND = "Niet gevonden"


def _error_text(resp: httpx.Response, default: str) -> str:
    try:
        data: Any = resp.json()
    except ValueError:
        return default
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])  # pyright: ignore[reportUnknownArgumentType]
    return default


def _record(resp: httpx.Response, key: str) -> Mapping[str, Any] | None:
    try:
        data: Any = resp.json()
    except ValueError:
        return None
    record = data.get(key) if isinstance(data, dict) else None  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
    return record if isinstance(record, dict) else None  # pyright: ignore[reportUnknownVariableType]


class AdminClient:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = "http://localhost:8000",
    ) -> None:
        self.client = httpx.AsyncClient(base_url=base_url) if client is None else client

    async def aclose(self) -> None:
        await self.client.aclose()

    async def login(self, password: str) -> bool:
        try:
            resp = await self.client.post("/api/auth", json={"password": password})
        except httpx.HTTPError:
            logger.exception("Login request failed")
            return False
        return resp.is_success

    async def load(self, form: F, id: int) -> F:
        """Fill `form` with the stored record `id`."""
        try:
            resp = await self.client.get(f"{form.endpoint}/{id}")
        except httpx.HTTPError:
            logger.exception("Loading %s/%s failed", form.endpoint, id)
            return reduce(form, Failed(NO_CONNECTION))
        if resp.status_code == 404:
            return reduce(form, Failed(_error_text(resp, NOT_FOUND)))
        if not resp.is_success:
            return reduce(form, Failed(_error_text(resp, GENERIC_ERROR)))
        record = _record(resp, form.record_key)
        if record is None:
            logger.error("Unexpected response from %s/%s", form.endpoint, id)
            return reduce(form, Failed(GENERIC_ERROR))
        return reduce(form, Loaded(record))

    async def submit(self, form: F) -> F:
        error = validate(form)
        if error:
            return reduce(form, Failed(error))

        try:
            if form.id is None:
                resp = await self.client.post(form.endpoint, json=form.payload())
            else:
                resp = await self.client.put(
                    f"{form.endpoint}/{form.id}", json=form.payload()
                )
        except httpx.HTTPError:
            logger.exception("Saving to %s failed", form.endpoint)
            return reduce(form, Failed(NO_CONNECTION))

        if not resp.is_success:
            return reduce(form, Failed(_error_text(resp, GENERIC_ERROR)))
        record = _record(resp, form.record_key)
        if record is None:
            logger.error("Unexpected response from %s", form.endpoint)
            return reduce(form, Failed(GENERIC_ERROR))
        return reduce(form, Saved(record))

    async def delete(self, form: F, *, confirmed: bool) -> tuple[F, str | None]:
        """Delete the record behind `form`.

        Returns the form and, on success, the path to navigate to. Nothing is
        sent unless the deletion was confirmed.
        """
        if not confirmed or form.id is None:
            return form, None

        try:
            resp = await self.client.delete(f"{form.endpoint}/{form.id}")
        except httpx.HTTPError:
            logger.exception("Deleting %s/%s failed", form.endpoint, form.id)
            return reduce(form, Failed(NO_CONNECTION)), None

        if not resp.is_success:
            return reduce(form, Failed(_error_text(resp, form.delete_failed_text))), None
        return form, form.list_path
