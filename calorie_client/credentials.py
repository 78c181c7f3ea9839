from __future__ import annotations

import json
import logging
import os
import threading

from msal_extensions import CrossPlatLock, FilePersistence, FilePersistenceWithDataProtection
from msal_extensions.persistence import PersistenceNotFound

from calorie_client.logging_utils import redact_credential
from calorie_client.models import Credentials

logger = logging.getLogger(__name__)

ACCESS_KEY = "access_token"
REFRESH_KEY = "refresh_token"
PENDING_KEY = "pending_email"


class CredentialStore:
    """Persisted holder of the access/refresh credentials and pending marker.

    Only sign-in, refresh success and teardown write here; everything else
    reads through :meth:`credentials` or the properties.
    """

    def __init__(self, path: str):
        self._persistence = self._build_persistence(path)
        self._lock_path = f"{path}.lockfile"
        self._lock = threading.RLock()
        self._values: dict[str, str] = self._load()

    @staticmethod
    def _build_persistence(path: str):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            return FilePersistenceWithDataProtection(path)
        except Exception:
            return FilePersistence(path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self._persistence.load()
        except PersistenceNotFound:
            return {}
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Credential store at %s is unreadable, starting empty", self._persistence.get_location())
            return {}
        if not isinstance(data, dict):
            return {}
        return {key: value for key, value in data.items() if isinstance(value, str)}

    def _save(self) -> None:
        with CrossPlatLock(self._lock_path):
            self._persistence.save(json.dumps(self._values))

    def credentials(self) -> Credentials:
        with self._lock:
            return Credentials(
                access=self._values.get(ACCESS_KEY),
                refresh=self._values.get(REFRESH_KEY),
                pending_marker=self._values.get(PENDING_KEY),
            )

    @property
    def access_credential(self) -> str | None:
        with self._lock:
            return self._values.get(ACCESS_KEY)

    @property
    def refresh_credential(self) -> str | None:
        with self._lock:
            return self._values.get(REFRESH_KEY)

    @property
    def pending_marker(self) -> str | None:
        with self._lock:
            return self._values.get(PENDING_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self.credentials().is_authenticated

    def sign_in(self, access: str, refresh: str | None) -> None:
        with self._lock:
            self._values[ACCESS_KEY] = access
            if refresh:
                self._values[REFRESH_KEY] = refresh
            else:
                self._values.pop(REFRESH_KEY, None)
            self._save()
        logger.info("Stored credentials for new session (access=%s)", redact_credential(access))

    def store_refreshed(self, token_type: str, access_token: str, refresh_token: str | None = None) -> None:
        with self._lock:
            self._values[ACCESS_KEY] = f"{token_type} {access_token}"
            if isinstance(refresh_token, str):
                self._values[REFRESH_KEY] = refresh_token
            self._save()
        logger.debug(
            "Stored refreshed access credential %s (refresh rotated=%s)",
            redact_credential(access_token),
            isinstance(refresh_token, str),
        )

    def set_pending_marker(self, value: str) -> None:
        with self._lock:
            self._values[PENDING_KEY] = value
            self._save()

    def clear_pending_marker(self) -> None:
        with self._lock:
            if self._values.pop(PENDING_KEY, None) is not None:
                self._save()

    def clear(self) -> None:
        with self._lock:
            for key in (ACCESS_KEY, REFRESH_KEY, PENDING_KEY):
                self._values.pop(key, None)
            self._save()
        logger.info("Cleared stored credentials")
