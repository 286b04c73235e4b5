"""Versioned persistence: store interfaces, the commit coordinator and the SQL store.

Usage:
    from plan_mcp.persistence import get_store, SqlEntityStore

    plans = SqlEntityStore(get_store(), "plan", Plan.model_validate, lambda p: p.model_dump(mode="json"))
    plan = await plans.resolve_entity("plan_1")
"""

from .base import EntityStore
from .base import StoredEntity
from .base import StoredSnapshot
from .base import StoreTransaction
from .base import TransactionalStore
from .coordinator import VersionedPersistenceCoordinator
from .factory import get_store
from .factory import reset_store
from .sql import Base
from .sql import EntityRecord
from .sql import EntityVersionRecord
from .sql import SqlEntityStore
from .sql import SqlTransactionalStore
from .sql import create_engine_from_settings

__all__ = [
    "Base",
    "EntityRecord",
    "EntityStore",
    "EntityVersionRecord",
    "SqlEntityStore",
    "SqlTransactionalStore",
    "StoreTransaction",
    "StoredEntity",
    "StoredSnapshot",
    "TransactionalStore",
    "VersionedPersistenceCoordinator",
    "create_engine_from_settings",
    "get_store",
    "reset_store",
]
