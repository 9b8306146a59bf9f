"""GameZone portal API: accounts, Steam sign-in and cached Steam/gg.deals proxies."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from gamezone.cache import TTLCache
from gamezone.config import Settings, settings
from gamezone.db import UserStore
from gamezone.errors import NotFoundError, register_error_handlers
from gamezone.routes import auth as auth_routes
from gamezone.routes import health
from gamezone.routes import steam as steam_routes

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# httpx logs full request URLs at INFO, and those carry the API keys.
logging.getLogger("httpx").setLevel(logging.WARNING)
log = logging.getLogger("gamezone")


async def _sweep_loop(cache: TTLCache, interval: int, max_age: int) -> None:
    """Drop entries no TTL can still consider fresh."""
    while True:
        try:
            await asyncio.sleep(interval)
            removed = cache.sweep(max_age)
        except asyncio.CancelledError:
            break
        if removed:
            log.info("Swept %d stale cache entries", removed)


def create_app(
    app_settings: Settings = settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    cache: TTLCache | None = None,
) -> FastAPI:
    """Build the app; *transport* and *cache* are injectable for tests."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(app_settings.HTTP_TIMEOUT),
            transport=transport,
        )
        app.state.http = client
        app.state.users = UserStore(app_settings.DATABASE_PATH)

        sweeper = asyncio.create_task(
            _sweep_loop(
                app.state.cache,
                app_settings.CACHE_SWEEP_INTERVAL,
                app_settings.max_ttl(),
            )
        )

        app_settings.validate()
        log.info("GameZone started on port %s", app_settings.PORT)
        yield

        sweeper.cancel()
        await asyncio.gather(sweeper, return_exceptions=True)
        await client.aclose()
        app.state.users.close()
        log.info("GameZone shutdown complete")

    app = FastAPI(title="GameZone API", version="1.0.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.cache = (
        cache if cache is not None else TTLCache(max_entries=app_settings.CACHE_MAX_ENTRIES)
    )

    # Cookie outlives the longest ("remember me") session; the real
    # expiry is checked against the timestamp stored in the session.
    app.add_middleware(
        SessionMiddleware,
        secret_key=app_settings.SESSION_SECRET,
        session_cookie="gamezone_session",
        max_age=app_settings.REMEMBER_MAX_AGE,
        same_site="lax",
        https_only=app_settings.COOKIE_SECURE,
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(auth_routes.router)
    app.include_router(steam_routes.router)

    @app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def api_not_found(path: str):
        raise NotFoundError("Endpoint not found")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gamezone.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level="info",
    )
