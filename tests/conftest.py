from __future__ import annotations

import json
import threading
from typing import Any, Callable

import pytest

from calorie_client.client import AuthenticatedClient
from calorie_client.config import AppSettings
from calorie_client.credentials import CredentialStore
from calorie_client.models import RequestDescriptor, TransportResponse
from calorie_client.refresh import RefreshCoordinator
from calorie_client.session import InMemoryNavigator, SessionTeardown

REFRESH_PATH = "/auth/refresh-token"


def json_response(status: int, payload: Any) -> TransportResponse:
    return TransportResponse(status=status, body=json.dumps(payload).encode("utf-8"))


def refresh_success(access_token: str = "new-access", refresh_token: str | None = None) -> TransportResponse:
    data = {"access_token": access_token, "token_type": "Bearer"}
    if refresh_token is not None:
        data["refresh_token"] = refresh_token
    return json_response(200, {"data": data})


class FakeTransport:
    """Scripted transport: a handler maps each request to a response."""

    def __init__(self, handler: Callable[[RequestDescriptor], TransportResponse] | None = None):
        self.handler = handler or (lambda request: json_response(200, {}))
        self.requests: list[RequestDescriptor] = []
        self._lock = threading.Lock()

    def send(self, request: RequestDescriptor) -> TransportResponse:
        with self._lock:
            self.requests.append(request)
        return self.handler(request)

    def calls_to(self, path: str) -> list[RequestDescriptor]:
        with self._lock:
            return [request for request in self.requests if request.path == path]


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        base_url="https://api.example.test",
        refresh_path=REFRESH_PATH,
        sign_in_path="/auth/sign-in",
        sign_in_location="/sign-in",
        verify_email_location="/verify-email",
        timeout_seconds=5,
        credential_store_path=str(tmp_path / "credentials.bin"),
        refresh_on_forbidden=False,
        refresh_rotation="keep_if_absent",
        log_level="DEBUG",
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def store(settings) -> CredentialStore:
    return CredentialStore(settings.credential_store_path)


@pytest.fixture
def navigator() -> InMemoryNavigator:
    return InMemoryNavigator("/calories")


@pytest.fixture
def teardown(store, navigator, settings) -> SessionTeardown:
    return SessionTeardown(store, navigator, settings.sign_in_location)


@pytest.fixture
def coordinator(settings, transport, store, teardown) -> RefreshCoordinator:
    return RefreshCoordinator(settings, transport, store, teardown)


@pytest.fixture
def client(settings, transport, store, coordinator, teardown) -> AuthenticatedClient:
    return AuthenticatedClient(settings, transport, store, coordinator, teardown)
