"""Global test configuration and fixtures for the hotspot service."""

from collections.abc import AsyncGenerator

import fakeredis
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from hotspot_service.cache.geo_cache import HotspotCache
from hotspot_service.database.connection import (
    create_engine_and_sessionmaker,
    create_tables,
)
from hotspot_service.modules.hotspot.store import InMemoryRecordStore, SqlRecordStore
from hotspot_service.services.geospatial.service import GeospatialService
from hotspot_service.services.hotspot.service import HotspotService
from hotspot_service.utils.settings.database import DatabaseSettings, StoreBackend
from hotspot_service.utils.settings.geo import ClusteringSettings, GeoSettings

from tests.factories import HotspotFactory


@pytest.fixture
def hotspot_factory():
    return HotspotFactory


@pytest.fixture
def geo_settings() -> GeoSettings:
    return GeoSettings()


@pytest.fixture
def clustering_settings() -> ClusteringSettings:
    return ClusteringSettings()


# Cache fixtures
@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """In-process Redis with geo command support."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def cache(redis_client, geo_settings) -> HotspotCache:
    return HotspotCache(redis_client, geo_settings)


@pytest.fixture
def disabled_cache(geo_settings) -> HotspotCache:
    """Cache that behaves as if Redis were unreachable."""
    return HotspotCache(None, geo_settings)


# Store fixtures
@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest_asyncio.fixture
async def sql_store(tmp_path) -> AsyncGenerator[SqlRecordStore, None]:
    """SQL store on a throwaway SQLite file."""
    settings = DatabaseSettings(
        STORE_BACKEND=StoreBackend.SQL,
        DATABASE_URL=f"sqlite:///{tmp_path}/hotspots.db",
    )
    engine, session_factory = create_engine_and_sessionmaker(settings)
    await create_tables(engine)
    yield SqlRecordStore(session_factory)
    await engine.dispose()


# Service fixtures
@pytest.fixture
def hotspot_service(store, cache) -> HotspotService:
    return HotspotService(store, cache)


@pytest.fixture
def geospatial_service(
    store, cache, hotspot_service, geo_settings, clustering_settings
) -> GeospatialService:
    return GeospatialService(
        store, cache, hotspot_service, geo_settings, clustering_settings
    )


@pytest.fixture
def uncached_geospatial_service(
    store, disabled_cache, geo_settings, clustering_settings
) -> GeospatialService:
    return GeospatialService(
        store,
        disabled_cache,
        HotspotService(store, disabled_cache),
        geo_settings,
        clustering_settings,
    )


# Application fixtures
@pytest_asyncio.fixture
async def app(monkeypatch) -> AsyncGenerator[FastAPI, None]:
    """FastAPI application with lifespan, in-memory store and no Redis."""
    monkeypatch.setenv("REDIS_ENABLED", "false")
    monkeypatch.setenv("STORE_BACKEND", "memory")

    from hotspot_service.main import create_app

    app = create_app()
    async with LifespanManager(app):
        yield app


@pytest_asyncio.fixture
async def cached_app(app: FastAPI, redis_client, geo_settings) -> FastAPI:
    """Same application rewired onto the in-process Redis."""
    cache = HotspotCache(redis_client, geo_settings)
    store = InMemoryRecordStore()
    hotspot_service = HotspotService(store, cache)
    app.state.cache = cache
    app.state.hotspot_service = hotspot_service
    app.state.geospatial_service = GeospatialService(store, cache, hotspot_service)
    return app


@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client without a caller identity."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-hotspot-service",
    ) as ac:
        yield ac


@pytest.fixture
def client_factory(app: FastAPI):
    """Factory for HTTP clients acting as a given user."""

    def create_client_for_user(user_id: str) -> AsyncClient:
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test-hotspot-service",
            headers={"X-User-Id": user_id},
        )

    return create_client_for_user


@pytest_asyncio.fixture
async def authorized_client(client_factory) -> AsyncGenerator[AsyncClient, None]:
    async with client_factory("alice") as ac:
        yield ac
