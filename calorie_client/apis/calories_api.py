from __future__ import annotations

from datetime import date
from typing import Any

from calorie_client.client import AuthenticatedClient

TREND_TYPES = ("weight", "calorie")


class CaloriesApi:
    def __init__(self, client: AuthenticatedClient):
        self._client = client

    def get_trend_items(self, start_date: date | str, end_date: date | str, trend_type: str) -> list[dict[str, Any]]:
        if trend_type not in TREND_TYPES:
            raise ValueError("trend_type must be one of: " + ", ".join(TREND_TYPES))

        params = {
            "start_date": _format_date(start_date),
            "end_date": _format_date(end_date),
            "type": trend_type,
        }
        result = self._client.call("/calorie/trend/items", params=params)
        data = result.get("data") if isinstance(result, dict) else None
        return data if isinstance(data, list) else []


def _format_date(value: date | str) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()
