"""Error taxonomy and payload normalization.

Backends behind this client emit several error shapes (custom
``{"error": {...}}`` bodies, FastAPI ``detail`` strings and validation
lists, plain ``message`` objects, or bare text). :func:`normalize` folds
all of them into one :class:`ApiError` so that callers only ever look at
``form_error`` and ``field_errors``.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping


class ApiError(RuntimeError):
    def __init__(
        self,
        status: int,
        message: str,
        field_errors: Mapping[str, str] | None = None,
        raw_payload: Any = None,
    ):
        super().__init__(message)
        self._status = status
        self._message = message
        self._field_errors = MappingProxyType(dict(field_errors or {}))
        self._raw_payload = raw_payload

    @property
    def status(self) -> int:
        return self._status

    @property
    def message(self) -> str:
        return self._message

    @property
    def field_errors(self) -> Mapping[str, str]:
        return self._field_errors

    @property
    def form_error(self) -> str | None:
        if self._field_errors:
            return None
        return self._message

    @property
    def raw_payload(self) -> Any:
        return self._raw_payload

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": type(self).__name__,
            "status": self._status,
            "message": self._message,
            "form_error": self.form_error,
            "field_errors": dict(self._field_errors),
            "raw_payload": self._raw_payload,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self._status!r}, message={self._message!r})"


class TransportFailure(ApiError):
    """No response was obtained (connection refused, timeout, DNS)."""

    def __init__(self, message: str):
        super().__init__(status=0, message=message)


class AuthExpired(ApiError):
    pass


class RefreshFailed(ApiError):
    @classmethod
    def from_error(cls, error: ApiError) -> "RefreshFailed":
        return cls(
            status=error.status,
            message=error.message,
            field_errors=error.field_errors,
            raw_payload=error.raw_payload,
        )


class ValidationError(ApiError):
    pass


class GenericHttpError(ApiError):
    pass


GENERIC_FIELD_MESSAGE = "Invalid value"


def normalize(status: int, payload: Any) -> ApiError:
    message, field_errors = _parse_payload(status, payload)
    if status == 401:
        error_cls: type[ApiError] = AuthExpired
    elif field_errors or status == 422:
        error_cls = ValidationError
    else:
        error_cls = GenericHttpError
    return error_cls(status=status, message=message, field_errors=field_errors, raw_payload=payload)


def _parse_payload(status: int, payload: Any) -> tuple[str, dict[str, str]]:
    fallback = _fallback_message(status, payload)

    if not isinstance(payload, dict):
        if isinstance(payload, str) and payload.strip():
            return payload, {}
        return fallback, {}

    error = payload.get("error")
    if isinstance(error, dict):
        field = _get_string(error.get("field"))
        message = _get_string(error.get("message")) or fallback
        if field:
            return message, {field: message}
        return message, {}

    detail = payload.get("detail")
    detail_text = _get_string(detail)
    if detail_text:
        return detail_text, {}

    if isinstance(detail, list):
        field_errors: dict[str, str] = {}
        for item in detail:
            if not isinstance(item, dict):
                continue
            field = _field_from_loc(item.get("loc"))
            msg = _get_string(item.get("msg"))
            if field and msg and field not in field_errors:
                field_errors[field] = msg
        if field_errors:
            return next(iter(field_errors.values())), field_errors

    message = _get_string(payload.get("message"))
    if message:
        return message, {}

    return f"HTTP {status}", {}


def _fallback_message(status: int, payload: Any) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = _get_string(error.get("message"))
            if message:
                return message
        message = _get_string(payload.get("message"))
        if message:
            return message
    return f"HTTP {status}"


def _get_string(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _field_from_loc(loc: Any) -> str | None:
    if not isinstance(loc, (list, tuple)) or not loc:
        return None
    last = loc[-1]
    return last if isinstance(last, str) and last else None
