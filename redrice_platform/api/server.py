from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from redrice_platform import __version__
from redrice_platform.api.routes import auth, reservations, restaurants, users
from redrice_platform.auth.crud import bootstrap_admin_if_needed
from redrice_platform.config import Config, load_config
from redrice_platform.db import init_db
from redrice_platform.restaurants.storage import S3ImageUploader


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


def _validation_detail(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid_body"
    first = errors[0]
    # loc looks like ("body", "email") or ("path", "id")
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    msg = str(first.get("msg", "invalid")).lower()
    return f"invalid_body: {field} {msg}".strip() if field else f"invalid_body: {msg}"


def create_app(cfg: Optional[Config] = None, uploader: Optional[Any] = None) -> FastAPI:
    """Build the API with its services wired onto ``app.state``.

    ``uploader`` is anything with ``upload(data, filename, content_type) -> url``;
    it defaults to the S3 uploader built from ``cfg``.
    """
    cfg = cfg or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Ensure schema exists.
        init_db(cfg.DB_DSN)

        # Bootstrap first admin if needed (only when users table is empty)
        boot = bootstrap_admin_if_needed(cfg)
        if boot:
            _debug(f"Bootstrapped initial admin user: email={boot.get('email')} role={boot.get('role')}")
        yield

    app = FastAPI(title="RedRice Reservation API", version=__version__, lifespan=lifespan)
    app.state.cfg = cfg
    app.state.uploader = uploader or S3ImageUploader(cfg)

    # CORS is mainly needed for local development (frontend dev server -> API).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Every error leaves the API as {"error": "<message>"}.
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _validation_detail(exc)})

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        _debug(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
        return JSONResponse(status_code=500, content={"error": "internal_error"})

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(restaurants.router)
    app.include_router(reservations.router)
    return app
