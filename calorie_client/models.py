from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Credentials:
    access: str | None = None
    refresh: str | None = None
    pending_marker: str | None = None

    @property
    def is_authenticated(self) -> bool:
        # No access credential means signed out, even if a refresh credential lingers.
        return bool(self.access)


@dataclass(frozen=True)
class RequestDescriptor:
    path: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def with_authorization(self, value: str | None) -> "RequestDescriptor":
        headers = {k: v for k, v in self.headers.items() if k.lower() != "authorization"}
        if value:
            headers["Authorization"] = value
        return RequestDescriptor(
            path=self.path, method=self.method, headers=headers, body=self.body, params=self.params
        )


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class AuthState:
    is_signed_in: bool
    pending_email: str | None = None
    username: str | None = None


@dataclass(frozen=True)
class MultipartBody:
    files: Mapping[str, Any]
    data: Mapping[str, Any] | None = None
