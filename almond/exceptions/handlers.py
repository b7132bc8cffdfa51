"""
FastAPI exception handlers rendering the error envelope:

    {"status": "failure" | "error", "error": {"message": ...} | {field: message, ...}}

A `stack` member is added only in diagnostic (development) mode.
"""

import traceback
from typing import Any

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from almond.core.constants import LOCALE_COOKIE, REFRESH_COOKIE
from almond.core.i18n import get_locale, translate
from almond.core.logging import get_logger
from almond.exceptions.http import AccessTokenExpired, AppError

logger = get_logger(__name__)

# Request-body field -> {pydantic error type | "missing" | "*": message key}
FIELD_ERROR_KEYS: dict[str, dict[str, str]] = {
    "email": {"missing": "email_empty", "*": "invalid_email"},
    "first_name": {"*": "invalid_first_name"},
    "family_name": {"*": "invalid_family_name"},
    "password": {"missing": "short_password", "string_too_long": "long_password", "*": "short_password"},
    "new_password": {"missing": "short_password", "string_too_long": "long_password", "*": "short_password"},
    "phone_number": {"*": "invalid_phone_number"},
    "country_code": {"*": "invalid_country_code"},
}


def _diagnostic(request: Request) -> bool:
    return request.app.state.settings.diagnostic_mode


def _envelope(request: Request, status_name: str, error: dict[str, Any], exc: BaseException | None = None) -> dict:
    body: dict[str, Any] = {"status": status_name, "error": error}
    if exc is not None and _diagnostic(request):
        body["stack"] = "".join(traceback.format_exception(exc))
    return body


def _field_key(field: str, error: dict[str, Any]) -> str | None:
    mapping = FIELD_ERROR_KEYS.get(field)
    if mapping is None:
        return None
    kind = "missing" if error.get("type") == "missing" or error.get("input") in ("", None) else error.get("type")
    return mapping.get(kind) or mapping.get("*")


async def app_error_handler(request: Request, exc: AppError) -> Response:
    if isinstance(exc, AccessTokenExpired):
        return Response(status_code=exc.status_code)

    locale = get_locale(request.cookies.get(LOCALE_COOKIE))
    if exc.fields:
        error: dict[str, Any] = {field: translate(key, locale) for field, key in exc.fields.items()}
    else:
        error = {"message": translate(exc.key, locale)}
    if exc.is_token_error:
        error["is_token_error"] = True

    if exc.status_code >= 500:
        logger.error("Dependency failure on %s %s: %r", request.method, request.url.path, exc)

    response = JSONResponse(status_code=exc.status_code, content=_envelope(request, exc.status, error, exc))
    if exc.clear_refresh_cookie:
        response.delete_cookie(REFRESH_COOKIE)
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Collect every invalid field so the client can fix them all in one round-trip."""
    locale = get_locale(request.cookies.get(LOCALE_COOKIE))
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = loc[0] if loc else "body"
        if field in errors:
            continue
        key = _field_key(field, error)
        errors[field] = translate(key, locale) if key else error.get("msg", translate("invalid_field", locale))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"status": "failure", "error": errors})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    locale = get_locale(request.cookies.get(LOCALE_COOKIE))
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = translate("route_not_found", locale)
    else:
        message = str(exc.detail)
    status_name = "failure" if exc.status_code < 500 else "error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": status_name, "error": {"message": message}},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    locale = get_locale(request.cookies.get(LOCALE_COOKIE))
    error = {"message": translate("something_went_wrong", locale)}
    if _diagnostic(request):
        error["detail"] = repr(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_envelope(request, "error", error, exc)
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
