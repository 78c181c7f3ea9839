from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from calorie_client.config import AppSettings
from calorie_client.credentials import CredentialStore
from calorie_client.errors import normalize
from calorie_client.http import HttpTransport, decode_payload
from calorie_client.models import RequestDescriptor
from calorie_client.refresh import RefreshCoordinator
from calorie_client.session import SessionTeardown

logger = logging.getLogger(__name__)


class AuthenticatedClient:
    """Entry point for requests that need the stored access credential.

    A 401 on the first attempt runs the shared refresh and retries the
    request once with the new credential. Whatever the retry returns is
    final, including another 401.
    """

    def __init__(
        self,
        settings: AppSettings,
        transport: HttpTransport,
        store: CredentialStore,
        coordinator: RefreshCoordinator,
        teardown: SessionTeardown,
    ):
        self._settings = settings
        self._transport = transport
        self._store = store
        self._coordinator = coordinator
        self._teardown = teardown
        eligible = {401}
        if settings.refresh_on_forbidden:
            eligible.add(403)
        self._refresh_statuses = frozenset(eligible)

    @property
    def store(self) -> CredentialStore:
        return self._store

    def call(
        self,
        path: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        return self.request(RequestDescriptor(path=path, method=method, headers=headers or {}, body=body, params=params or {}))

    def request(self, descriptor: RequestDescriptor) -> Any:
        first_attempt = descriptor.with_authorization(self._store.access_credential)
        response = self._transport.send(first_attempt)
        payload = decode_payload(response.body)
        if response.ok:
            return payload

        if response.status not in self._refresh_statuses:
            raise normalize(response.status, payload)

        logger.info("%s %s returned %s, refreshing session", descriptor.method, descriptor.path, response.status)
        self._coordinator.ensure_fresh(first_attempt.headers.get("Authorization"))

        retry_attempt = descriptor.with_authorization(self._store.access_credential)
        response = self._transport.send(retry_attempt)
        payload = decode_payload(response.body)
        if response.ok:
            return payload
        raise normalize(response.status, payload)

    async def acall(
        self,
        path: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        # Runs in a worker thread; cancelling the awaiting task leaves a shared refresh running.
        return await asyncio.to_thread(self.call, path, method, headers, body, params)

    def public_call(
        self,
        path: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        descriptor = RequestDescriptor(path=path, method=method, headers=headers or {}, body=body, params=params or {})
        response = self._transport.send(descriptor)
        payload = decode_payload(response.body)
        if not response.ok:
            raise normalize(response.status, payload)
        return payload

    def sign_in(self, access: str, refresh: str | None) -> None:
        self._store.sign_in(access, refresh)

    def sign_out(self) -> None:
        self._teardown.run()
