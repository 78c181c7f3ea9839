from __future__ import annotations

from typing import Any

from calorie_client.client import AuthenticatedClient
from calorie_client.config import AppSettings
from calorie_client.models import MultipartBody

AVATAR_PATH = "/auth/avatar"


class AuthApi:
    def __init__(self, settings: AppSettings, client: AuthenticatedClient):
        self._settings = settings
        self._client = client

    def sign_in(self, username: str, password: str) -> dict[str, Any]:
        return self._client.public_call(
            self._settings.sign_in_path,
            method="POST",
            body={"username": username, "password": password},
        )

    def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        return self._client.public_call(
            self._settings.refresh_path,
            method="POST",
            body={"refresh_token": refresh_token},
        )

    def sign_up(self, username: str, email: str, password: str, repeat_password: str) -> dict[str, Any]:
        return self._client.public_call(
            "/auth/sign-up",
            method="POST",
            body={
                "username": username,
                "email": email,
                "password": password,
                "repeat_password": repeat_password,
            },
        )

    def get_me(self) -> dict[str, Any]:
        return self._client.call("/auth/me")

    def get_users(self) -> dict[str, Any]:
        return self._client.call("/auth/users")

    def send_email_verification_code(self) -> dict[str, Any]:
        return self._client.call("/auth/email/verification-code", method="POST")

    def verify_email(self, code: int) -> dict[str, Any]:
        return self._client.call("/auth/email/verify", method="POST", body={"code": int(code)})

    def update_avatar(self, file_name: str, content: bytes, content_type: str = "application/octet-stream") -> dict[str, Any]:
        body = MultipartBody(files={"file": (file_name, content, content_type)})
        return self._client.call(AVATAR_PATH, method="POST", body=body)

    def delete_avatar(self) -> dict[str, Any]:
        return self._client.call(AVATAR_PATH, method="DELETE")
