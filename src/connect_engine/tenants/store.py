"""Namespaced key-value store of tenant installation records."""

import logging
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from connect_engine.common.database import DatabaseManager
from connect_engine.common.exceptions import StorageError
from connect_engine.common.models import utcnow
from connect_engine.tenants.models import TenantRecordModel

logger = logging.getLogger(__name__)

SHARED_SECRET_FIELD = "sharedSecret"

_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class TenantStore:
    """Tenant key -> installation record, scoped to one add-on namespace.

    Records are stored verbatim and replaced wholesale; there is no partial
    update. Every backend failure surfaces as StorageError.
    """

    def __init__(self, db: DatabaseManager, namespace: str):
        self.db = db
        self.namespace = namespace

    async def put(self, tenant_key: str, record: dict[str, Any]) -> None:
        """Insert or replace a record. Concurrent writers: last write wins."""
        try:
            async with self.db.get_session() as session:
                insert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
                if insert is not None:
                    await session.execute(
                        self._upsert(insert, tenant_key, dict(record))
                    )
                    return
            # Backends without ON CONFLICT: insert, then update on a key clash.
            await self._insert_or_update(tenant_key, dict(record))
        except SQLAlchemyError as exc:
            logger.exception("Failed to store tenant %s", tenant_key)
            raise StorageError(f"Could not store tenant record: {exc}") from exc

    def _upsert(self, insert, tenant_key: str, data: dict[str, Any]):
        now = utcnow()
        stmt = insert(TenantRecordModel).values(
            namespace=self.namespace,
            tenant_key=tenant_key,
            data=data,
            created_at=now,
            updated_at=now,
        )
        return stmt.on_conflict_do_update(
            index_elements=[TenantRecordModel.namespace, TenantRecordModel.tenant_key],
            set_={"data": stmt.excluded.data, "updated_at": stmt.excluded.updated_at},
        )

    async def _insert_or_update(self, tenant_key: str, data: dict[str, Any]) -> None:
        try:
            async with self.db.get_session() as session:
                existing = await session.get(
                    TenantRecordModel, (self.namespace, tenant_key)
                )
                if existing is None:
                    session.add(TenantRecordModel(
                        namespace=self.namespace, tenant_key=tenant_key, data=data,
                    ))
                else:
                    existing.data = data
        except IntegrityError:
            async with self.db.get_session() as session:
                await session.execute(
                    update(TenantRecordModel)
                    .where(
                        TenantRecordModel.namespace == self.namespace,
                        TenantRecordModel.tenant_key == tenant_key,
                    )
                    .values(data=data, updated_at=utcnow())
                )

    async def get(self, tenant_key: str) -> Optional[dict[str, Any]]:
        try:
            async with self.db.get_session() as session:
                row = await session.get(
                    TenantRecordModel, (self.namespace, tenant_key)
                )
                return dict(row.data) if row is not None else None
        except SQLAlchemyError as exc:
            logger.exception("Failed to load tenant %s", tenant_key)
            raise StorageError(f"Could not load tenant record: {exc}") from exc

    async def delete(self, tenant_key: str) -> bool:
        """Remove a tenant record. Returns False if there was nothing to remove."""
        try:
            async with self.db.get_session() as session:
                row = await session.get(
                    TenantRecordModel, (self.namespace, tenant_key)
                )
                if row is None:
                    return False
                await session.delete(row)
                return True
        except SQLAlchemyError as exc:
            logger.exception("Failed to delete tenant %s", tenant_key)
            raise StorageError(f"Could not delete tenant record: {exc}") from exc

    async def get_field(self, tenant_key: str, field_name: str) -> Any:
        record = await self.get(tenant_key)
        if record is None:
            return None
        return record.get(field_name)

    async def get_shared_secret(self, tenant_key: str) -> Optional[str]:
        return await self.get_field(tenant_key, SHARED_SECRET_FIELD)

    async def list_keys(self) -> list[str]:
        try:
            async with self.db.get_session() as session:
                result = await session.execute(
                    select(TenantRecordModel.tenant_key)
                    .where(TenantRecordModel.namespace == self.namespace)
                    .order_by(TenantRecordModel.tenant_key)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not list tenant records: {exc}") from exc
