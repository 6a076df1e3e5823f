"""
FastAPI Production Application

Main entry point for the media tracker API.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from redis.exceptions import RedisError

from mediatrack.analytics import SummaryEngine, SummaryRefresher
from mediatrack.config import get_settings
from mediatrack.config.logging import configure_logging
from mediatrack.database.connection import close_database, get_session_factory, init_database
from mediatrack.database.store import EntityStore
from mediatrack.serving.api.context import build_services
from mediatrack.serving.api.graphql import build_schema, create_graphql_router
from mediatrack.serving.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from mediatrack.serving.api.routes import health_router
from mediatrack.serving.cache import close_redis, init_redis

settings = get_settings()
logger = structlog.get_logger(__name__)

# Built at import so that duplicated operation names stop the process before
# it binds a port.
schema = build_schema()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting media tracker", version=settings.version, environment=settings.app_env)

    await init_database()

    try:
        cache = await init_redis()
    except (RedisError, OSError) as e:
        cache = None
        logger.warning("Redis unavailable, caching disabled", error=str(e))

    store = EntityStore(get_session_factory())
    summaries = SummaryEngine(store)

    app.state.settings = settings
    app.state.store = store
    app.state.summaries = summaries
    app.state.cache = cache
    app.state.services = build_services(store, settings, cache)

    refresher = None
    if settings.summary.refresh_interval_seconds > 0:
        refresher = SummaryRefresher(
            summaries,
            settings.summary.refresh_interval_seconds,
            settings.summary.refresh_concurrency,
        )
        refresher.start()

    yield

    logger.info("Shutting down...")
    if refresher is not None:
        await refresher.stop()
    await store.drain()
    await close_redis()
    await close_database()


app = FastAPI(
    title="Media Tracker API",
    description="Track books, movies, shows, video games, audio books and podcasts",
    version=settings.version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

app.include_router(health_router, prefix="/api/v1", tags=["Health"])
app.include_router(create_graphql_router(schema), prefix="/graphql", tags=["GraphQL"])


@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "environment": settings.app_env,
        "graphql": "/graphql",
    }
