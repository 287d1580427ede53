"""Keyed record storage for hotspots."""

import asyncio
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hotspot_service.database.connection import session_scope
from hotspot_service.database.models import HotspotRecord
from hotspot_service.modules.hotspot.models import Hotspot

_STORE_ERRORS = (SQLAlchemyError, OSError)


class RecordStoreError(Exception):
    """The backing store failed; the operation may succeed if retried later."""


class HotspotNotFoundError(LookupError):
    def __init__(self, hotspot_id: str):
        self.hotspot_id = hotspot_id
        super().__init__(f"Hotspot {hotspot_id} not found")


class RecordStore(Protocol):
    """Opaque keyed store of hotspot records.

    No transactional consistency is promised across calls.
    """

    async def get(self, hotspot_id: str) -> Hotspot: ...

    async def get_many(self, hotspot_ids: list[str]) -> list[Hotspot]: ...

    async def list_by_owner(self, owner_id: str) -> list[Hotspot]: ...

    async def put(self, hotspot: Hotspot) -> Hotspot: ...

    async def delete(self, hotspot_id: str) -> bool: ...

    async def scan(self) -> list[Hotspot]: ...


class InMemoryRecordStore:
    """Process-local store holding each record as its JSON document."""

    def __init__(self):
        self._records: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, hotspot_id: str) -> Hotspot:
        raw = self._records.get(hotspot_id)
        if raw is None:
            raise HotspotNotFoundError(hotspot_id)
        return Hotspot.model_validate_json(raw)

    async def get_many(self, hotspot_ids: list[str]) -> list[Hotspot]:
        return [
            Hotspot.model_validate_json(self._records[hotspot_id])
            for hotspot_id in hotspot_ids
            if hotspot_id in self._records
        ]

    async def list_by_owner(self, owner_id: str) -> list[Hotspot]:
        return [h for h in await self.scan() if h.created_by == owner_id]

    async def put(self, hotspot: Hotspot) -> Hotspot:
        async with self._lock:
            self._records[hotspot.id] = hotspot.model_dump_json()
        return hotspot

    async def delete(self, hotspot_id: str) -> bool:
        async with self._lock:
            return self._records.pop(hotspot_id, None) is not None

    async def scan(self) -> list[Hotspot]:
        return [Hotspot.model_validate_json(raw) for raw in list(self._records.values())]


class SqlRecordStore:
    """SQLAlchemy-backed store; one row per hotspot."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def _to_model(record: HotspotRecord) -> Hotspot:
        return Hotspot.model_validate(record.document)

    async def get(self, hotspot_id: str) -> Hotspot:
        try:
            async with session_scope(self.session_factory) as session:
                record = await session.get(HotspotRecord, hotspot_id)
        except _STORE_ERRORS as e:
            raise RecordStoreError(f"Failed to load hotspot {hotspot_id}") from e
        if record is None:
            raise HotspotNotFoundError(hotspot_id)
        return self._to_model(record)

    async def get_many(self, hotspot_ids: list[str]) -> list[Hotspot]:
        if not hotspot_ids:
            return []
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(
                    select(HotspotRecord).where(HotspotRecord.id.in_(hotspot_ids))
                )
                records = {r.id: r for r in result.scalars().all()}
        except _STORE_ERRORS as e:
            raise RecordStoreError("Failed to load hotspots") from e
        # Keep caller order; the geo index returns IDs nearest first
        return [
            self._to_model(records[hotspot_id])
            for hotspot_id in hotspot_ids
            if hotspot_id in records
        ]

    async def list_by_owner(self, owner_id: str) -> list[Hotspot]:
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(
                    select(HotspotRecord)
                    .where(HotspotRecord.created_by == owner_id)
                    .order_by(HotspotRecord.created_at)
                )
                records = result.scalars().all()
        except _STORE_ERRORS as e:
            raise RecordStoreError(f"Failed to list hotspots of {owner_id}") from e
        return [self._to_model(r) for r in records]

    async def put(self, hotspot: Hotspot) -> Hotspot:
        try:
            async with session_scope(self.session_factory) as session:
                record = await session.get(HotspotRecord, hotspot.id)
                if record is None:
                    record = HotspotRecord(id=hotspot.id, created_at=hotspot.created_at)
                    session.add(record)
                record.created_by = hotspot.created_by
                record.latitude = hotspot.location.latitude
                record.longitude = hotspot.location.longitude
                record.is_active = hotspot.is_active
                record.document = hotspot.model_dump(mode="json")
        except _STORE_ERRORS as e:
            raise RecordStoreError(f"Failed to save hotspot {hotspot.id}") from e
        return hotspot

    async def delete(self, hotspot_id: str) -> bool:
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(
                    delete(HotspotRecord).where(HotspotRecord.id == hotspot_id)
                )
        except _STORE_ERRORS as e:
            raise RecordStoreError(f"Failed to delete hotspot {hotspot_id}") from e
        return result.rowcount > 0

    async def scan(self) -> list[Hotspot]:
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(select(HotspotRecord))
                records = result.scalars().all()
        except _STORE_ERRORS as e:
            raise RecordStoreError("Failed to scan hotspots") from e
        return [self._to_model(r) for r in records]
