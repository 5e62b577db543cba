"""
PostgreSQL tenant directory and schema-per-tenant storage.

Each tenant namespace is its own schema (tenant_<tenant_id>) holding one
JSONB document table per collection. Tables are declared once against the
placeholder schema "tenant" and mapped to the real schema with
schema_translate_map.
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import BigInteger, Column, DateTime, MetaData, Table, func, select, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.schema import CreateSchema, DropSchema

from auditdna.application.exceptions import StorageError
from auditdna.application.tenant_repository import TENANT_COLLECTIONS, IndexSpec
from auditdna.domain.models.tenant import Tenant
from auditdna.infrastructure.database.models import TenantRow

SCHEMA_PLACEHOLDER = "tenant"
SCHEMA_PREFIX = "tenant_"

_SAFE_IDENTIFIER = re.compile(r"^[a-z0-9_]+$")

tenant_metadata = MetaData(schema=SCHEMA_PLACEHOLDER)

TENANT_TABLES: Dict[str, Table] = {
    name: Table(
        name,
        tenant_metadata,
        Column("id", BigInteger, primary_key=True, autoincrement=True),
        Column("data", JSONB, nullable=False),
        Column("created_at", DateTime(timezone=True), server_default=func.now()),
    )
    for name in TENANT_COLLECTIONS
}


def schema_for(tenant_id: str) -> str:
    schema = f"{SCHEMA_PREFIX}{tenant_id}"
    if not _SAFE_IDENTIFIER.match(schema):
        raise StorageError(f"Tenant id '{tenant_id}' cannot be used as a schema name")
    return schema


class DbTenantRepository:
    """Implements TenantRepository over the shared tenants table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, tenant_id: str) -> Optional[Tenant]:
        async with self._session_factory() as session:
            row = await session.get(TenantRow, tenant_id)
            return Tenant.from_dict(row.payload) if row is not None else None

    async def get_by_domain(self, domain: str) -> Optional[Tenant]:
        async with self._session_factory() as session:
            stmt = select(TenantRow).where(func.lower(TenantRow.domain) == domain.lower())
            row = (await session.execute(stmt)).scalar_one_or_none()
            return Tenant.from_dict(row.payload) if row is not None else None

    async def save(self, tenant: Tenant) -> Tenant:
        async with self._session_factory() as session:
            row = await session.get(TenantRow, tenant.tenant_id)
            if row is None:
                row = TenantRow(tenant_id=tenant.tenant_id)
                session.add(row)
            row.domain = tenant.domain
            row.active = tenant.active
            row.suspended = tenant.suspended
            row.payload = tenant.to_dict(include_secrets=True)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise StorageError(f"Domain '{tenant.domain}' already belongs to another tenant") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(f"Tenant write failed: {e}") from e
        return tenant

    async def list_all(self) -> List[Tenant]:
        async with self._session_factory() as session:
            rows = (await session.execute(select(TenantRow))).scalars().all()
            return [Tenant.from_dict(row.payload) for row in rows]


class SqlTenantStorage:
    """Implements TenantStorage for one tenant schema."""

    def __init__(self, tenant_id: str, engine: AsyncEngine) -> None:
        self.tenant_id = tenant_id
        self.schema = schema_for(tenant_id)
        self._engine = engine.execution_options(schema_translate_map={SCHEMA_PLACEHOLDER: self.schema})
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError(f"Storage handle for tenant '{self.tenant_id}' is closed")

    def _table(self, collection: str) -> Table:
        table = TENANT_TABLES.get(collection)
        if table is None:
            raise StorageError(f"Unknown tenant collection '{collection}'")
        return table

    async def create(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.execute(CreateSchema(self.schema, if_not_exists=True))
                await conn.run_sync(tenant_metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not create namespace {self.schema}: {e}") from e

    async def ensure_indexes(self, indexes: Sequence[IndexSpec]) -> None:
        self._check_open()
        statements = []
        for index in indexes:
            self._table(index.collection)
            columns = ", ".join(
                f"((data->>'{field}')) {'ASC' if direction > 0 else 'DESC'}"
                for field, direction in index.keys
                if _SAFE_IDENTIFIER.match(field)
            )
            unique = "UNIQUE " if index.unique else ""
            statements.append(
                f'CREATE {unique}INDEX IF NOT EXISTS "{index.name}" '
                f'ON "{self.schema}"."{index.collection}" ({columns})'
            )
        try:
            async with self._engine.begin() as conn:
                for statement in statements:
                    await conn.execute(text(statement))
        except SQLAlchemyError as e:
            raise StorageError(f"Index creation failed in {self.schema}: {e}") from e

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> None:
        self._check_open()
        table = self._table(collection)
        try:
            async with self._engine.begin() as conn:
                await conn.execute(table.insert().values(data=dict(document)))
        except IntegrityError as e:
            raise StorageError(f"Duplicate key in {collection}: {e.orig}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Insert into {collection} failed: {e}") from e

    async def find(
        self, collection: str, criteria: Optional[Mapping[str, Any]] = None, limit: int = 100
    ) -> List[Dict[str, Any]]:
        self._check_open()
        table = self._table(collection)
        stmt = select(table.c.data).order_by(table.c.id).limit(limit)
        if criteria:
            stmt = stmt.where(table.c.data.contains(dict(criteria)))
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            return [dict(row) for row in result.scalars().all()]

    async def drop(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.execute(DropSchema(self.schema, cascade=True, if_exists=True))
        except SQLAlchemyError as e:
            raise StorageError(f"Could not drop namespace {self.schema}: {e}") from e

    async def close(self) -> None:
        # The engine pool is shared; a closed handle only refuses further use.
        self._closed = True


class SqlTenantStorageFactory:
    """Implements TenantStorageFactory. Opening creates the schema and tables if missing."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def open(self, tenant_id: str) -> SqlTenantStorage:
        storage = SqlTenantStorage(tenant_id, self._engine)
        await storage.create()
        return storage
