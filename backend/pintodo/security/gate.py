"""
Access gate: per-request trust classification in front of every route.

The gate is installed as HTTP middleware so the main page and static client
are covered as well as the JSON API. With no PIN configured it hands the
request straight on.
"""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.responses import Response

from pintodo.security.sessions import PIN_HEADER_NAME, SESSION_COOKIE_NAME, is_trusted

LOGIN_PATH = "/login.html"
HOME_PATH = "/"

LOGIN_PATHS = {LOGIN_PATH, "/login"}

# Reachable without a trust token, or the PIN form can never load.
PUBLIC_PATHS = LOGIN_PATHS | {
    "/login.js",
    "/styles.css",
    "/favicon.svg",
    "/api/pin-required",
    "/api/verify-pin",
    "/api/logout",
    "/health",
}


def wants_json(request: Request) -> bool:
    if request.url.path.startswith("/api/"):
        return True
    return request.headers.get("x-requested-with", "").lower() == "xmlhttprequest"


async def access_gate(request: Request, call_next) -> Response:
    settings = request.app.state.settings
    if not settings.pin_required:
        return await call_next(request)

    path = request.url.path
    trusted = is_trusted(
        request.cookies.get(SESSION_COOKIE_NAME),
        request.headers.get(PIN_HEADER_NAME),
        settings,
        request.app.state.sessions,
    )

    if path in LOGIN_PATHS:
        if trusted:
            return RedirectResponse(HOME_PATH, status_code=status.HTTP_302_FOUND)
        return await call_next(request)

    if trusted or path in PUBLIC_PATHS:
        return await call_next(request)

    if wants_json(request):
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Unauthorized"})
    return RedirectResponse(LOGIN_PATH, status_code=status.HTTP_302_FOUND)


__all__ = ["HOME_PATH", "LOGIN_PATH", "PUBLIC_PATHS", "access_gate", "wants_json"]
