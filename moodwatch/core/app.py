from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from moodwatch.api.main import api_router
from moodwatch.core.exceptions import CacheUnavailableError
from moodwatch.services.discovery import DiscoveryService
from moodwatch.services.result_cache import ResultCache

from .config import settings
from .version import __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Own the result cache for the lifetime of the process: open it, run the
    expiry sweeper, and close both on shutdown.
    """
    cache: ResultCache = app.state.result_cache
    try:
        await cache.init()
    except CacheUnavailableError as exc:
        # Operations re-attempt the open lazily
        logger.warning(f"Result cache unavailable at startup: {exc}")

    if settings.CACHE_SWEEP_ENABLED:
        cache.start_sweeper(settings.CACHE_SWEEP_INTERVAL_SECONDS)

    yield

    await cache.shutdown()


def create_app(cache: ResultCache | None = None) -> FastAPI:
    application = FastAPI(
        title="Moodwatch",
        description="Mood-based movie and TV discovery with cached rankings",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if settings.APP_ENV == "production" else "/docs",
        redoc_url=None if settings.APP_ENV == "production" else "/redoc",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    result_cache = cache or ResultCache()
    application.state.result_cache = result_cache
    application.state.discovery_service = DiscoveryService(result_cache)

    application.include_router(api_router)
    return application


app = create_app()
