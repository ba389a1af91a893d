"""Terminal response values and the JSON envelope helpers handlers build them with."""

from __future__ import annotations

import json
import logging
import traceback
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json; charset=utf-8"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"

DEFAULT_ERROR_MESSAGES = {
    400: "400 Bad Request",
    404: "404 Not Found",
    500: "500 Internal Server Error",
}


class Response(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""
    media_type: str = TEXT_MEDIA_TYPE

    def json_body(self) -> Any:
        return json.loads(self.body) if self.body else None

    def with_default_headers(self, defaults: dict[str, str]) -> Response:
        merged = dict(defaults)
        merged.update(self.headers)
        return self.model_copy(update={"headers": merged})


def json_response(
    payload: Any,
    status: int = 200,
    headers: dict[str, str] | None = None,
    *,
    ensure_ascii: bool = False,
) -> Response:
    return Response(
        status=status,
        headers=dict(headers or {}),
        body=json.dumps(payload, ensure_ascii=ensure_ascii, default=str),
        media_type=JSON_MEDIA_TYPE,
    )


def text_response(text: str, status: int = 200, headers: dict[str, str] | None = None) -> Response:
    return Response(status=status, headers=dict(headers or {}), body=text, media_type=TEXT_MEDIA_TYPE)


def default_error_response(status: int) -> Response:
    message = DEFAULT_ERROR_MESSAGES.get(status, f"HTTP {status}")
    return json_response({"code": status, "message": message}, status=status)


def coerce_response(result: Any, status: int = 200) -> Response:
    """Turn a handler return value into a Response.

    ``Response`` passes through, ``dict``/``list`` become JSON, ``str``
    becomes text and ``None`` an empty body.
    """
    if isinstance(result, Response):
        return result
    if result is None:
        return text_response("", status=status)
    if isinstance(result, (dict, list)):
        return json_response(result, status=status)
    if isinstance(result, str):
        return text_response(result, status=status)
    raise TypeError(f"Handler returned unsupported type {type(result).__name__}")


def _envelope(success: bool, message: str, data: Any = None, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": success, "message": message}
    if data is not None:
        payload["data"] = data
    payload.update(extra)
    return payload


def success(data: Any = None, message: str = "OK", status: int = 200) -> Response:
    return json_response(_envelope(True, message, data), status=status)


def error(message: str = "Request failed", data: Any = None, status: int = 400, headers: dict[str, str] | None = None) -> Response:
    return json_response(_envelope(False, message, data), status=status, headers=headers)


def paginated(data: list[Any], pagination: dict[str, Any], message: str = "OK", status: int = 200) -> Response:
    return json_response(_envelope(True, message, data, pagination=pagination), status=status)


def method_not_allowed(allowed: str = "") -> Response:
    message = "Method not allowed"
    headers = None
    if allowed:
        message = f"{message}. Allowed methods: {allowed}"
        headers = {"Allow": allowed}
    return error(message, status=405, headers=headers)


def validation_error(message: str = "Validation failed", errors: Any = None) -> Response:
    return error(message, errors, status=422)


def unauthorized(message: str = "Unauthorized") -> Response:
    return error(message, status=401)


def forbidden(message: str = "Forbidden") -> Response:
    return error(message, status=403)


def not_found(message: str = "Resource not found") -> Response:
    return error(message, status=404)


def server_error(message: str = "Internal server error", data: Any = None, *, debug: bool = False) -> Response:
    if data is not None:
        logger.error("Server error: %s - data: %s", message, data)
    else:
        logger.error("Server error: %s", message)
    return error(message, data if debug else None, status=500)


def status_for_exception(exc: BaseException) -> int:
    if isinstance(exc, ValueError):
        return 400
    if isinstance(exc, PermissionError):
        return 401
    if isinstance(exc, LookupError):
        return 404
    return 500


def from_exception(exc: BaseException, message: str | None = None, *, debug: bool = False) -> Response:
    """Map an exception raised inside a handler to an error envelope.

    File, line and traceback are only included when ``debug`` is set.
    """
    logger.error("Exception handled: %s", exc, exc_info=(type(exc), exc, exc.__traceback__))
    data = None
    if debug:
        frames = traceback.extract_tb(exc.__traceback__)
        last = frames[-1] if frames else None
        data = {
            "file": last.filename if last else None,
            "line": last.lineno if last else None,
            "trace": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
    return error(message or str(exc), data, status=status_for_exception(exc))
