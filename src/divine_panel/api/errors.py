"""Error responses in the `{ok: false, error}` shape used by every endpoint."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from divine_panel.services.access_store import InvalidIdentifierError
from divine_panel.services.site_state import InvalidBroadcastError


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code, headers=headers)


def describe_validation_errors(errors: Sequence[Any]) -> str:
    """Turn pydantic validation errors into one short message for the client."""
    if not errors:
        return "invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = loc[-1] if loc else "body"
    kind = first.get("type", "")
    if kind == "missing":
        return f"{field} required"
    if kind == "extra_forbidden":
        return f"unexpected field {field}"
    if kind == "json_invalid":
        return "invalid JSON body"
    if kind == "value_error":
        error = first.get("ctx", {}).get("error")
        if error is not None:
            return str(error)
    return f"{field}: {first.get('msg', 'invalid value')}"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, describe_validation_errors(exc.errors()))


async def bad_input_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that render errors as `{ok: false, error}`."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidIdentifierError, bad_input_handler)
    app.add_exception_handler(InvalidBroadcastError, bad_input_handler)
