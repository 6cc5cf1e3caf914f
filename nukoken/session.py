"""Per-request admin and consent state.

Both live on the request: the admin flag in the signed session cookie, the
consent choice in its own cookie. Nothing is kept in module globals.
"""

from enum import Enum
import logging
import secrets
from typing import Any, Mapping, MutableMapping


logger = logging.getLogger(__name__)


ADMIN_KEY = "nukoken_admin_auth"
CONSENT_COOKIE = "cookieConsent"
CONSENT_MAX_AGE = 60 * 60 * 24 * 365


class AdminSession:
    def __init__(self, session: MutableMapping[str, Any]) -> None:
        self.session = session

    @property
    def is_authenticated(self) -> bool:
        return self.session.get(ADMIN_KEY) is True

    def login(self, password: str, expected: str) -> bool:
        if not expected:
            raise RuntimeError("Admin password is not configured.")
        if secrets.compare_digest(password.encode(), expected.encode()):
            self.session[ADMIN_KEY] = True
            logger.info("Admin logged in")
            return True
        logger.warning("Admin login rejected")
        return False

    def logout(self) -> None:
        self.session.pop(ADMIN_KEY, None)


class Consent(Enum):
    unset = "unset"
    accepted = "accepted"
    declined = "declined"

    @classmethod
    def from_cookies(cls, cookies: Mapping[str, str]) -> "Consent":
        try:
            return cls(cookies.get(CONSENT_COOKIE, cls.unset.value))
        except ValueError:
            return cls.unset

    @property
    def analytics_enabled(self) -> bool:
        return self is Consent.accepted

    @property
    def show_banner(self) -> bool:
        return self is Consent.unset
