# backend/pintodo/main.py
import asyncio
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.responses import Response

from pintodo.core.limits import limiter, rate_limit_handler
from pintodo.core.settings import Settings, get_settings
from pintodo.routers import pin, todos
from pintodo.security.attempts import AttemptTracker
from pintodo.security.gate import access_gate
from pintodo.security.logger import app_logger, auth_logger
from pintodo.security.sessions import SessionStore
from pintodo.store import StoreError, TodoStore

STATIC_DIR = Path(__file__).resolve().parent / "static"

# ---- Default security headers ----
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "frame-ancestors 'none'; "
        "object-src 'none'; "
        "base-uri 'self'; "
        "form-action 'self'"
    ),
}


async def _sweep_forever(app: FastAPI, interval: float) -> None:
    tracker: AttemptTracker = app.state.attempts
    sessions: SessionStore = app.state.sessions
    while True:
        await asyncio.sleep(interval)
        try:
            evicted = tracker.sweep()
            expired = sessions.prune()
        except Exception:
            auth_logger.exception("attempt sweep failed")
            continue
        if evicted or expired:
            auth_logger.info(f"Sweep evicted {evicted} attempt record(s) and {expired} expired session(s)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    app.state.store.init()
    app_logger.info(f"PIN protection: {'enabled' if settings.pin_required else 'disabled'}")
    sweeper = asyncio.create_task(_sweep_forever(app, settings.sweep_interval_seconds))
    try:
        yield
    finally:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app. Serve with `uvicorn pintodo.main:create_app --factory` or `python -m pintodo`."""
    settings = settings or get_settings()

    app = FastAPI(title="pintodo", lifespan=lifespan)
    app.state.settings = settings
    app.state.attempts = AttemptTracker.from_settings(settings)
    app.state.sessions = SessionStore(settings.session_max_age_seconds)
    app.state.store = TodoStore(settings.data_file)
    app.state.limiter = limiter

    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    @app.exception_handler(StoreError)
    def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": str(exc)})

    # Registered first so it runs innermost, after hardening and headers.
    app.middleware("http")(access_gate)

    # ---- HTTP Hardening Middleware ----
    @app.middleware("http")
    async def check_http_hardening(request: Request, call_next):
        if request.method in ["PUT", "DELETE"]:
            return JSONResponse(
                status_code=405,
                content={"detail": "Method Not Allowed"},
                headers={"Allow": "GET, POST"},
            )

        if request.method == "POST":
            content_type = request.headers.get("content-type", "")
            if not content_type.lower().startswith("application/json"):
                return JSONResponse(
                    status_code=415,
                    content={"detail": "Unsupported Media Type. Must be application/json"},
                )

        response: Response = await call_next(request)
        return response

    # ---- Security headers middleware ----
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # ---- Health endpoint (used by tests and curl) ----
    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/login", include_in_schema=False)
    def login_page():
        return FileResponse(STATIC_DIR / "login.html")

    app.include_router(pin.router)
    app.include_router(todos.router)

    # Last, so API routes win over static files.
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
    return app

