"""Process-wide transactional store built from settings."""

from __future__ import annotations

from .sql import SqlTransactionalStore
from .sql import create_engine_from_settings

# Singleton instance for the application
_store_instance: SqlTransactionalStore | None = None


def get_store(create_tables: bool = True) -> SqlTransactionalStore:
    """Get the global store, creating the engine (and tables) on first call."""
    global _store_instance

    if _store_instance is None:
        _store_instance = SqlTransactionalStore(create_engine_from_settings())
        if create_tables:
            _store_instance.create_all()

    return _store_instance


def reset_store() -> None:
    """Dispose of the global store (for testing)."""
    global _store_instance
    if _store_instance is not None:
        _store_instance.engine.dispose()
    _store_instance = None
