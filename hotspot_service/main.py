from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hotspot_service.api.core.exceptions.base import register_exception_handlers
from hotspot_service.api.core.middleware.logging import logging_middleware
from hotspot_service.api.router import api_router
from hotspot_service.cache.geo_cache import HotspotCache
from hotspot_service.database.connection import (
    create_engine_and_sessionmaker,
    create_tables,
)
from hotspot_service.modules.hotspot.store import InMemoryRecordStore, SqlRecordStore
from hotspot_service.services.geospatial.service import GeospatialService
from hotspot_service.services.hotspot.service import HotspotService
from hotspot_service.utils.logger import setup_logging
from hotspot_service.utils.settings.app import AppSettings
from hotspot_service.utils.settings.database import DatabaseSettings, StoreBackend
from hotspot_service.utils.settings.geo import ClusteringSettings, GeoSettings
from hotspot_service.utils.settings.redis import RedisSettings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    app_settings = AppSettings()
    app_settings.validate_prod()
    logger = setup_logging(app_settings.is_production, app_settings.DEBUG)
    logger.info("Starting hotspot service...")

    geo_settings = GeoSettings()
    cache = await HotspotCache.connect(RedisSettings(), geo_settings)

    db_settings = DatabaseSettings()
    engine = None
    if db_settings.STORE_BACKEND == StoreBackend.SQL:
        engine, session_factory = create_engine_and_sessionmaker(db_settings)
        await create_tables(engine)
        store = SqlRecordStore(session_factory)
    else:
        store = InMemoryRecordStore()
    logger.info(f"Record store backend: {db_settings.STORE_BACKEND.value}")

    hotspot_service = HotspotService(store, cache)
    app.state.cache = cache
    app.state.store_backend = db_settings.STORE_BACKEND.value
    app.state.hotspot_service = hotspot_service
    app.state.geospatial_service = GeospatialService(
        store, cache, hotspot_service, geo_settings, ClusteringSettings()
    )

    yield

    # Shutdown
    logger.info("Shutting down hotspot service...")
    await cache.close()
    if engine is not None:
        await engine.dispose()


def create_app() -> FastAPI:
    app_settings = AppSettings()
    is_production = app_settings.is_production

    app = FastAPI(
        title="Hotspot Service",
        description="Geospatial search and clustering for community hotspots",
        version=app_settings.API_VERSION,
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(logging_middleware)

    app.include_router(api_router)
    return app


app = create_app()


def run_dev_server():
    """Run development server with auto-reload."""
    uvicorn.run(
        "hotspot_service.main:app", host="0.0.0.0", port=8010, reload=True, access_log=False
    )


def run_prod_server():
    """Run production server."""
    uvicorn.run(
        "hotspot_service.main:app", host="0.0.0.0", port=8010, reload=False, access_log=False
    )
