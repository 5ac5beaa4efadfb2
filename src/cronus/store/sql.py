"""SQLAlchemy registry store.

One row per registry id with the hosts mapping in a JSON column (JSONB on
PostgreSQL) and an integer version bumped by every write. The conditional
replace is an ``UPDATE ... WHERE version = :seen`` whose row count tells the
registry whether it won the race.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, String, create_engine, func, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from cronus.config import settings
from cronus.core.model import HostSlots, RegistryDocument, copy_hosts
from cronus.errors import ConfigurationError, StoreError
from cronus.store.base import RegistryStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for registry ORM models."""

    pass


class RegistryTable(Base):
    """Process registry documents."""

    __tablename__ = "process_registry"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # {encoded hostname: {pid: expiry}}
    hosts: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )

    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<RegistryTable(id={self.id!r}, version={self.version})>"


class SqlAlchemyStore(RegistryStore):
    """Registry store on any SQLAlchemy-supported database."""

    def __init__(
        self,
        engine: Engine | None = None,
        database_url: str | None = None,
        create_tables: bool = True,
    ):
        if engine is None:
            url = database_url or settings.database_url
            if not url:
                raise ConfigurationError("DATABASE_URL is required for store_backend='sql'")
            engine = create_engine(url, pool_pre_ping=True)

        self.engine = engine
        self._session_factory = sessionmaker(engine, expire_on_commit=False)

        if create_tables:
            Base.metadata.create_all(engine)

    @staticmethod
    def _to_document(row: RegistryTable) -> RegistryDocument:
        return RegistryDocument.from_dict({"id": row.id, "hosts": row.hosts}, version=row.version)

    def find(self, registry_id: str) -> RegistryDocument | None:
        with self._session_factory() as session:
            row = session.scalar(select(RegistryTable).where(RegistryTable.id == registry_id))
            return self._to_document(row) if row is not None else None

    def fetch_or_create(self, registry_id: str) -> RegistryDocument:
        existing = self.find(registry_id)
        if existing is not None:
            return existing

        try:
            with self._session_factory.begin() as session:
                session.add(RegistryTable(id=registry_id, hosts={}, version=0))
            logger.debug(f"Created registry document '{registry_id}'")
        except IntegrityError:
            # Another writer inserted it first
            logger.debug(f"Registry document '{registry_id}' created concurrently")

        created = self.find(registry_id)
        if created is None:
            raise StoreError(f"registry document {registry_id!r} vanished after upsert")
        return created

    def replace_if_unchanged(
        self,
        snapshot: RegistryDocument,
        hosts: Mapping[str, Mapping[str, int]],
    ) -> int:
        stmt = (
            update(RegistryTable)
            .where(RegistryTable.id == snapshot.id, RegistryTable.version == snapshot.version)
            .values(
                hosts=copy_hosts(hosts),
                version=RegistryTable.version + 1,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        with self._session_factory.begin() as session:
            result = session.execute(stmt)
            return int(result.rowcount)  # type: ignore[attr-defined]

    def _update_slot(
        self,
        registry_id: str,
        mutate: Callable[[dict[str, HostSlots]], bool],
    ) -> None:
        """Apply a field update in one transaction holding the row lock.

        ``SELECT ... FOR UPDATE`` holds other writers off the row until
        commit; SQLite serialises writers on its own.
        """
        with self._session_factory.begin() as session:
            row = session.scalar(
                select(RegistryTable).where(RegistryTable.id == registry_id).with_for_update()
            )
            if row is None:
                return
            hosts = copy_hosts(self._to_document(row).hosts)
            if not mutate(hosts):
                return
            session.execute(
                update(RegistryTable)
                .where(RegistryTable.id == registry_id)
                .values(
                    hosts=hosts,
                    version=RegistryTable.version + 1,
                    updated_at=func.now(),
                )
                .execution_options(synchronize_session=False)
            )

    def set_slot(self, registry_id: str, hostname: str, pid: str, expiry: int) -> None:
        def mutate(hosts: dict[str, HostSlots]) -> bool:
            hosts.setdefault(hostname, {})[pid] = expiry
            return True

        self._update_slot(registry_id, mutate)

    def unset_slot(self, registry_id: str, hostname: str, pid: str) -> None:
        def mutate(hosts: dict[str, HostSlots]) -> bool:
            return hosts.get(hostname, {}).pop(pid, None) is not None

        self._update_slot(registry_id, mutate)

    def close(self) -> None:
        self.engine.dispose()
