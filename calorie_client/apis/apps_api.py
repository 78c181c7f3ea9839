from __future__ import annotations

import re
from typing import Any

from calorie_client.client import AuthenticatedClient

API_PREFIX = "/api"

_ABSOLUTE_IMAGE_URL = re.compile(r"^(https?:|data:|blob:)", re.IGNORECASE)


def resolve_app_image_url(image: str, api_prefix: str = API_PREFIX) -> str:
    trimmed = image.strip()
    if not trimmed:
        return ""
    if _ABSOLUTE_IMAGE_URL.match(trimmed):
        return trimmed
    if trimmed.startswith("/"):
        return f"{api_prefix}{trimmed}"
    return trimmed


class AppsApi:
    def __init__(self, client: AuthenticatedClient):
        self._client = client

    def get_apps(self) -> list[dict[str, Any]]:
        result = self._client.call("/apps")
        data = result.get("data") if isinstance(result, dict) else None
        if data is None:
            return []
        # backend returns either a single app or a list under "data"
        return data if isinstance(data, list) else [data]
