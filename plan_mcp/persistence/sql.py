"""SQLAlchemy implementation of the transactional entity store.

Live entities live in ``entities`` (JSON body plus a version counter);
pre-edit snapshots are appended to ``entity_versions`` and never updated.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from datetime import timezone
from typing import Any

from pydantic import ValidationError
from sqlalchemy import JSON
from sqlalchemy import DateTime
from sqlalchemy import ForeignKey
from sqlalchemy import Integer
from sqlalchemy import String
from sqlalchemy import UniqueConstraint
from sqlalchemy import create_engine
from sqlalchemy import select
from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import Session
from sqlalchemy.orm import mapped_column
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import Settings
from ..config import get_settings
from ..context import ToolContext
from ..exceptions import EntityValidationError
from ..models import VersionInfo
from ..models import VersionSnapshot
from .base import E
from .base import EntityStore
from .base import StoredEntity
from .base import StoredSnapshot
from .base import StoreTransaction
from .base import TransactionalStore
from .coordinator import VersionedPersistenceCoordinator

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class EntityRecord(Base):
    """Live state of a versioned entity."""

    __tablename__ = "entities"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    domain: Mapped[str] = mapped_column(String, nullable=False, index=True)
    owner_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class EntityVersionRecord(Base):
    """Immutable snapshot of an entity taken before a commit."""

    __tablename__ = "entity_versions"
    __table_args__ = (UniqueConstraint("entity_id", "version", name="uq_entity_versions_entity_version"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_id: Mapped[str] = mapped_column(String, ForeignKey("entities.id"), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


def create_engine_from_settings(settings: Settings | None = None) -> Engine:
    """Build the engine for ``settings.database_url``."""
    settings = settings or get_settings()
    kwargs: dict[str, Any] = {"echo": settings.database_echo}
    if settings.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in settings.database_url or settings.database_url.rstrip("/") == "sqlite:":
            # One shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_recycle"] = 3600
    logger.info("Initializing database engine: %s", settings.database_url)
    return create_engine(settings.database_url, **kwargs)


class SqlStoreTransaction(StoreTransaction):
    def __init__(self, session: Session):
        self.session = session

    def load_live(self, entity_id: str, for_update: bool = False) -> StoredEntity | None:
        stmt = select(EntityRecord).where(EntityRecord.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        record = self.session.execute(stmt).scalar_one_or_none()
        if record is None:
            return None
        return StoredEntity(
            entity_id=record.id,
            version=record.version,
            state=copy.deepcopy(record.data),
            domain=record.domain,
            owner_id=record.owner_id,
            updated_at=record.updated_at,
        )

    def append_snapshot(self, entity_id: str, version: int, state: dict[str, Any], actor_id: str | None) -> None:
        self.session.add(
            EntityVersionRecord(entity_id=entity_id, version=version, data=copy.deepcopy(state), actor_id=actor_id)
        )
        self.session.flush()

    def update_live(self, entity_id: str, state: dict[str, Any], expected_version: int) -> bool:
        result = self.session.execute(
            update(EntityRecord)
            .where(EntityRecord.id == entity_id, EntityRecord.version == expected_version)
            .values(data=copy.deepcopy(state), version=expected_version + 1, updated_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def insert_live(self, entity: StoredEntity) -> None:
        self.session.add(
            EntityRecord(
                id=entity.entity_id,
                domain=entity.domain or "entity",
                owner_id=entity.owner_id,
                version=entity.version,
                data=copy.deepcopy(entity.state),
            )
        )
        self.session.flush()

    def list_snapshots(self, entity_id: str, limit: int) -> list[StoredSnapshot]:
        stmt = (
            select(EntityVersionRecord)
            .where(EntityVersionRecord.entity_id == entity_id)
            .order_by(EntityVersionRecord.version.desc())
            .limit(limit)
        )
        return [self._snapshot(r) for r in self.session.execute(stmt).scalars()]

    def get_snapshot(self, entity_id: str, version: int) -> StoredSnapshot | None:
        stmt = select(EntityVersionRecord).where(
            EntityVersionRecord.entity_id == entity_id, EntityVersionRecord.version == version
        )
        record = self.session.execute(stmt).scalar_one_or_none()
        return self._snapshot(record) if record is not None else None

    @staticmethod
    def _snapshot(record: EntityVersionRecord) -> StoredSnapshot:
        return StoredSnapshot(
            id=record.id,
            entity_id=record.entity_id,
            version=record.version,
            state=copy.deepcopy(record.data),
            actor_id=record.actor_id,
            created_at=record.created_at,
        )


class SqlTransactionalStore(TransactionalStore):
    """One SQLAlchemy session per transaction: commit on success, rollback on error."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextmanager
    def transaction(self) -> Generator[SqlStoreTransaction, None, None]:
        session = self._session_factory()
        try:
            yield SqlStoreTransaction(session)
            session.commit()
        except Exception:
            logger.debug("Rolling back store transaction", exc_info=True)
            session.rollback()
            raise
        finally:
            session.close()


class SqlEntityStore(EntityStore[E]):
    """Entity store for one domain, mapping entities to JSON state and back.

    ``from_state`` receives the stored JSON with ``id`` and ``version``
    overwritten from the live row; ``to_state`` must return JSON-safe data.
    When ``owner_field`` is set, the row's ``owner_id`` column is the owner of
    record and is copied into that field on every read.
    """

    def __init__(
        self,
        store: SqlTransactionalStore,
        domain: str,
        from_state: Callable[[dict[str, Any]], E],
        to_state: Callable[[E], dict[str, Any]],
        owner_field: str | None = None,
    ):
        self.store = store
        self.domain = domain
        self.from_state = from_state
        self.to_state = to_state
        self.owner_field = owner_field
        self.coordinator = VersionedPersistenceCoordinator(store)

    def _load(self, entity_id: str) -> StoredEntity | None:
        with self.store.transaction() as tx:
            live = tx.load_live(entity_id)
        if live is None or live.domain != self.domain:
            return None
        return live

    async def resolve_entity(self, entity_id: str, context: ToolContext | None = None) -> E | None:
        live = self._load(entity_id)
        if live is None:
            return None
        state = dict(live.state)
        state["id"] = live.entity_id
        state["version"] = live.version
        if self.owner_field:
            state[self.owner_field] = live.owner_id
        return self.from_state(state)

    async def get_owner(self, entity_id: str) -> str | None:
        live = self._load(entity_id)
        return live.owner_id if live is not None else None

    async def save_entity(
        self,
        entity_id: str,
        entity: E,
        context: ToolContext | None = None,
        *,
        prior_state: dict[str, Any] | None = None,
        expected_version: int | None = None,
    ) -> int:
        state = self.to_state(entity)
        try:
            self.from_state(copy.deepcopy(state))
        except ValidationError as e:
            raise EntityValidationError(f"Refusing to save an unloadable {self.domain}: {e}", entity_id) from e
        return await self.coordinator.commit(
            entity_id,
            state,
            prior_state,
            actor_id=context.actor_id if context else None,
            expected_version=expected_version,
        )

    async def create_entity(self, entity_id: str, entity: E, owner_id: str | None = None) -> str:
        """Insert ``entity`` at its version (default 1).

        The owner defaults to the entity's ``owner_field`` value; an explicit
        ``owner_id`` wins and is written back into the stored state.
        """
        state = self.to_state(entity)
        if self.owner_field:
            owner_id = owner_id if owner_id is not None else state.get(self.owner_field)
            state[self.owner_field] = owner_id
        with self.store.transaction() as tx:
            tx.insert_live(
                StoredEntity(
                    entity_id=entity_id,
                    version=int(state.get("version") or 1),
                    state=state,
                    domain=self.domain,
                    owner_id=owner_id,
                )
            )
        logger.info("Created %s entity %s", self.domain, entity_id)
        return entity_id

    async def list_versions(self, entity_id: str, limit: int | None = None) -> list[VersionInfo]:
        return await self.coordinator.list_versions(entity_id, limit)

    async def get_version(self, entity_id: str, version: int) -> VersionSnapshot:
        return await self.coordinator.get_version(entity_id, version)

    async def restore_version(self, entity_id: str, version: int, actor_id: str | None = None) -> int:
        return await self.coordinator.restore_version(entity_id, version, actor_id)
