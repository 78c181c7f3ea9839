from __future__ import annotations

from typing import Any

import requests

from calorie_client.apis import AppsApi, AuthApi, CaloriesApi
from calorie_client.client import AuthenticatedClient
from calorie_client.config import AppSettings
from calorie_client.credentials import CredentialStore
from calorie_client.http import HttpTransport
from calorie_client.logging_utils import configure_logging
from calorie_client.models import AuthState
from calorie_client.refresh import RefreshCoordinator
from calorie_client.session import InMemoryNavigator, Navigator, SessionTeardown

HOME_LOCATION = "/"


class SessionService:
    def __init__(
        self,
        settings: AppSettings,
        client: AuthenticatedClient,
        teardown: SessionTeardown,
        auth_api: AuthApi,
        apps_api: AppsApi,
        calories_api: CaloriesApi,
    ):
        self._settings = settings
        self._client = client
        self._teardown = teardown
        self._auth_api = auth_api
        self._apps_api = apps_api
        self._calories_api = calories_api

    @property
    def client(self) -> AuthenticatedClient:
        return self._client

    @property
    def apps(self) -> AppsApi:
        return self._apps_api

    @property
    def calories(self) -> CaloriesApi:
        return self._calories_api

    def auth_state(self) -> AuthState:
        credentials = self._client.store.credentials()
        return AuthState(
            is_signed_in=credentials.is_authenticated,
            pending_email=credentials.pending_marker,
        )

    def sign_in(self, username: str, password: str) -> AuthState:
        tokens = self._extract_tokens(self._auth_api.sign_in(username, password))
        self._client.sign_in(tokens["access"], tokens["refresh"])

        me = self.get_me()
        store = self._client.store
        if me.get("is_verified"):
            store.clear_pending_marker()
            self._navigate(HOME_LOCATION)
        else:
            store.set_pending_marker(str(me.get("email") or username))
            self._navigate(self._settings.verify_email_location)

        state = self.auth_state()
        return AuthState(
            is_signed_in=state.is_signed_in,
            pending_email=state.pending_email,
            username=me.get("username") or username,
        )

    def sign_up(self, username: str, email: str, password: str, repeat_password: str) -> AuthState:
        if password != repeat_password:
            raise ValueError("Passwords do not match")

        self._auth_api.sign_up(username, email, password, repeat_password)

        tokens = self._extract_tokens(self._auth_api.sign_in(email, password))
        self._client.sign_in(tokens["access"], tokens["refresh"])
        self._client.store.set_pending_marker(email)

        self._auth_api.send_email_verification_code()
        self._navigate(self._settings.verify_email_location)
        return self.auth_state()

    def resend_verification_code(self) -> None:
        self._auth_api.send_email_verification_code()

    def verify_email(self, code: str | int) -> None:
        digits = "".join(ch for ch in str(code) if ch.isdigit())
        if len(digits) != 6:
            raise ValueError("Enter the 6-digit code")

        self._auth_api.verify_email(int(digits))
        self._client.store.clear_pending_marker()
        self._navigate(HOME_LOCATION)

    def update_avatar(self, file_name: str, content: bytes, content_type: str = "application/octet-stream") -> dict[str, Any]:
        self._auth_api.update_avatar(file_name, content, content_type)
        return self.get_me()

    def delete_avatar(self) -> dict[str, Any]:
        self._auth_api.delete_avatar()
        return self.get_me()

    def get_me(self) -> dict[str, Any]:
        result = self._auth_api.get_me()
        data = result.get("data") if isinstance(result, dict) else None
        return data if isinstance(data, dict) else {}

    def sign_out(self) -> None:
        self._client.sign_out()

    def _navigate(self, location: str) -> None:
        self._teardown.navigator.navigate(location)

    @staticmethod
    def _extract_tokens(result: Any) -> dict[str, str | None]:
        data = result.get("data") if isinstance(result, dict) else None
        if not isinstance(data, dict):
            raise RuntimeError("Sign-in response did not include token data")

        access_token = str(data.get("access_token") or "").strip()
        token_type = str(data.get("token_type") or "").strip()
        if not access_token or not token_type:
            raise RuntimeError("Sign-in response did not include an access token")

        refresh_token = data.get("refresh_token")
        return {
            "access": f"{token_type} {access_token}",
            "refresh": refresh_token if isinstance(refresh_token, str) and refresh_token else None,
        }


def build_service(
    settings: AppSettings | None = None,
    navigator: Navigator | None = None,
    session: requests.Session | None = None,
) -> SessionService:
    settings = settings or AppSettings.from_env()
    configure_logging(settings.log_level)

    transport = HttpTransport(settings, session=session)
    store = CredentialStore(settings.credential_store_path)
    teardown = SessionTeardown(store, navigator or InMemoryNavigator(), settings.sign_in_location)
    coordinator = RefreshCoordinator(settings, transport, store, teardown)
    client = AuthenticatedClient(settings, transport, store, coordinator, teardown)
    return SessionService(
        settings=settings,
        client=client,
        teardown=teardown,
        auth_api=AuthApi(settings, client),
        apps_api=AppsApi(client),
        calories_api=CaloriesApi(client),
    )
