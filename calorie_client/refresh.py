from __future__ import annotations

from concurrent.futures import Future
import logging
import threading
from typing import Any

from calorie_client.config import AppSettings
from calorie_client.credentials import CredentialStore
from calorie_client.errors import ApiError, RefreshFailed, normalize
from calorie_client.http import HttpTransport, decode_payload
from calorie_client.models import RequestDescriptor
from calorie_client.session import SessionTeardown

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Single-flight access credential refresh.

    Every caller that hits a 401 calls :meth:`ensure_fresh`. The first one
    becomes the initiator and performs the refresh request; callers that
    arrive while it is running wait on the same future and see the same
    outcome. The in-flight future is dropped before anyone is released, so
    the next expiry starts a new refresh.
    """

    def __init__(
        self,
        settings: AppSettings,
        transport: HttpTransport,
        store: CredentialStore,
        teardown: SessionTeardown,
    ):
        self._settings = settings
        self._transport = transport
        self._store = store
        self._teardown = teardown
        self._lock = threading.Lock()
        self._in_flight: Future[None] | None = None
        self._refresh_count = 0

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight is not None

    @property
    def refresh_count(self) -> int:
        with self._lock:
            return self._refresh_count

    def ensure_fresh(self, stale_credential: str | None = None) -> None:
        """Refresh unless the stored credential already replaced ``stale_credential``.

        ``stale_credential`` is the Authorization value the failed request
        carried; a 401 that arrives after another caller's refresh finished
        is then satisfied by a plain retry.
        """
        with self._lock:
            future = self._in_flight
            if future is None and stale_credential is not None:
                current = self._store.access_credential
                if current and current != stale_credential:
                    logger.debug("Access credential already refreshed, skipping refresh")
                    return
            initiator = future is None
            if initiator:
                future = Future()
                future.set_running_or_notify_cancel()
                self._in_flight = future

        if not initiator:
            logger.debug("Refresh already in flight, waiting for its outcome")
            future.result()
            return

        try:
            self._refresh()
        except BaseException as exc:
            self._settle(future, exc)
            raise
        self._settle(future, None)

    def _settle(self, future: Future[None], error: BaseException | None) -> None:
        with self._lock:
            self._in_flight = None
        if error is None:
            future.set_result(None)
        else:
            future.set_exception(error)

    def _refresh(self) -> None:
        refresh_token = self._store.refresh_credential
        if not refresh_token:
            logger.warning("Access credential expired and no refresh credential is stored")
            self._teardown.run()
            raise RefreshFailed(status=401, message="No refresh token")

        with self._lock:
            self._refresh_count += 1

        try:
            payload = self._request_refresh(refresh_token)
            token_type, access_token, new_refresh = self._parse_refresh_payload(payload)
        except ApiError as exc:
            logger.warning("Refresh failed (%s): %s", exc.status, exc.message)
            self._teardown.run()
            raise RefreshFailed.from_error(exc) from exc

        self._store.store_refreshed(token_type, access_token, new_refresh)
        logger.info("Access credential refreshed")

    def _request_refresh(self, refresh_token: str) -> Any:
        request = RequestDescriptor(
            path=self._settings.refresh_path,
            method="POST",
            headers={"Content-Type": "application/json"},
            body={"refresh_token": refresh_token},
        )
        response = self._transport.send(request)
        payload = decode_payload(response.body)
        if not response.ok:
            raise normalize(response.status, payload)
        return payload

    def _parse_refresh_payload(self, payload: Any) -> tuple[str, str, str | None]:
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise RefreshFailed(status=200, message="Malformed refresh response", raw_payload=payload)

        access_token = data.get("access_token")
        token_type = data.get("token_type")
        if not isinstance(access_token, str) or not access_token or not isinstance(token_type, str) or not token_type:
            raise RefreshFailed(status=200, message="Malformed refresh response", raw_payload=payload)

        new_refresh = data.get("refresh_token")
        if not isinstance(new_refresh, str) or not new_refresh:
            if self._settings.refresh_rotation == "require":
                raise RefreshFailed(
                    status=200,
                    message="Refresh response did not rotate the refresh token",
                    raw_payload=payload,
                )
            new_refresh = None
        return token_type, access_token, new_refresh
