"""Tests for the record store implementations."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from hotspot_service.modules.hotspot.store import (
    HotspotNotFoundError,
    RecordStoreError,
    SqlRecordStore,
)

from tests.factories import HotspotFactory


@pytest.fixture(params=["memory", "sql"])
def any_store(request, store, sql_store):
    return store if request.param == "memory" else sql_store


@pytest.mark.asyncio
async def test_put_then_get(any_store):
    hotspot = HotspotFactory(tags=["coffee", "study"])
    await any_store.put(hotspot)

    loaded = await any_store.get(hotspot.id)

    assert loaded == hotspot


@pytest.mark.asyncio
async def test_get_missing_raises(any_store):
    with pytest.raises(HotspotNotFoundError) as exc_info:
        await any_store.get("missing")
    assert exc_info.value.hotspot_id == "missing"


@pytest.mark.asyncio
async def test_put_overwrites(any_store):
    hotspot = HotspotFactory()
    await any_store.put(hotspot)
    await any_store.put(hotspot.model_copy(update={"name": "Renamed"}))

    assert (await any_store.get(hotspot.id)).name == "Renamed"
    assert len(await any_store.scan()) == 1


@pytest.mark.asyncio
async def test_get_many_keeps_order_and_skips_missing(any_store):
    first, second, third = HotspotFactory(), HotspotFactory(), HotspotFactory()
    for hotspot in (first, second, third):
        await any_store.put(hotspot)

    loaded = await any_store.get_many([third.id, "missing", first.id])

    assert [h.id for h in loaded] == [third.id, first.id]
    assert await any_store.get_many([]) == []


@pytest.mark.asyncio
async def test_list_by_owner(any_store):
    mine = HotspotFactory(created_by="alice")
    await any_store.put(mine)
    await any_store.put(HotspotFactory(created_by="bob"))

    owned = await any_store.list_by_owner("alice")

    assert [h.id for h in owned] == [mine.id]


@pytest.mark.asyncio
async def test_delete(any_store):
    hotspot = HotspotFactory()
    await any_store.put(hotspot)

    assert await any_store.delete(hotspot.id) is True
    assert await any_store.delete(hotspot.id) is False
    with pytest.raises(HotspotNotFoundError):
        await any_store.get(hotspot.id)


@pytest.mark.asyncio
async def test_sql_failure_is_wrapped():
    def broken_factory():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    store = SqlRecordStore(MagicMock(side_effect=broken_factory))

    with pytest.raises(RecordStoreError):
        await store.get("anything")
    with pytest.raises(RecordStoreError):
        await store.scan()
