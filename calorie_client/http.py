from __future__ import annotations

import logging
from typing import Any

import requests

from calorie_client.config import AppSettings
from calorie_client.errors import TransportFailure
from calorie_client.models import MultipartBody, RequestDescriptor, TransportResponse

logger = logging.getLogger(__name__)


def decode_payload(body: bytes | str | None) -> Any:
    """Decode a response body, keeping the raw text when it is not JSON."""
    if not body:
        return None
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    if not text.strip():
        return None
    try:
        return requests.models.complexjson.loads(text)
    except ValueError:
        return text


class HttpTransport:
    def __init__(self, settings: AppSettings, session: requests.Session | None = None):
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def send(self, request: RequestDescriptor) -> TransportResponse:
        url = self._build_url(request.path)
        headers = dict(request.headers)
        kwargs: dict[str, Any] = {
            "headers": headers,
            "timeout": self._settings.timeout_seconds,
        }
        if request.params:
            kwargs["params"] = dict(request.params)

        body = request.body
        if isinstance(body, MultipartBody):
            # requests sets the multipart boundary header itself
            kwargs["files"] = dict(body.files)
            kwargs["data"] = dict(body.data or {})
        elif isinstance(body, (bytes, str)):
            headers.setdefault("Content-Type", "application/json")
            kwargs["data"] = body
        elif body is not None:
            kwargs["json"] = body
        else:
            headers.setdefault("Content-Type", "application/json")

        logger.debug("%s %s", request.method, url)
        try:
            response = self._session.request(request.method, url, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", request.method, url, exc)
            raise TransportFailure(f"Request failed: {exc}") from exc

        logger.debug("%s %s -> %s", request.method, url, response.status_code)
        return TransportResponse(
            status=response.status_code,
            body=response.content or b"",
            headers=dict(response.headers),
        )

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._settings.base_url}{path}"
