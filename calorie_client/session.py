from __future__ import annotations

import logging
import re
import threading
from typing import Protocol

from calorie_client.credentials import CredentialStore

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    def current_location(self) -> str: ...

    def navigate(self, location: str) -> None: ...


class InMemoryNavigator:
    """Headless navigator that just remembers where it was sent."""

    def __init__(self, location: str = "/"):
        self._location = location
        self._lock = threading.Lock()
        self.history: list[str] = []

    def current_location(self) -> str:
        with self._lock:
            return self._location

    def navigate(self, location: str) -> None:
        with self._lock:
            self._location = location
            self.history.append(location)


class SessionTeardown:
    def __init__(self, store: CredentialStore, navigator: Navigator, sign_in_location: str = "/sign-in"):
        self._store = store
        self._navigator = navigator
        self._sign_in_location = sign_in_location
        self._sign_in_pattern = re.compile(rf"^{re.escape(sign_in_location)}\b")

    @property
    def navigator(self) -> Navigator:
        return self._navigator

    def run(self) -> None:
        self._store.clear()
        self.redirect_to_sign_in()

    def redirect_to_sign_in(self) -> bool:
        """Navigate to the sign-in entry point unless already there.

        Returns True when a navigation was issued. Navigator errors are
        logged; the session is already cleared at this point.
        """
        try:
            location = self._navigator.current_location() or ""
            if self._sign_in_pattern.match(location):
                logger.debug("Already at %s, skipping redirect", location)
                return False
            logger.info("Redirecting to %s", self._sign_in_location)
            self._navigator.navigate(self._sign_in_location)
        except Exception:
            logger.exception("Navigation to %s failed", self._sign_in_location)
            return False
        return True
