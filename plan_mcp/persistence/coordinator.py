"""Snapshot-then-update commits and version history.

Every commit writes a snapshot of the pre-edit state and bumps the live
version by one inside a single store transaction. The update is guarded by
the version read at the start of the transaction, so two modification cycles
racing on the same entity cannot both land.
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import get_settings
from ..exceptions import PersistenceError
from ..exceptions import PlanMCPError
from ..exceptions import SnapshotNotFoundError
from ..exceptions import VersionConflictError
from ..models import VersionInfo
from ..models import VersionSnapshot
from .base import StoredSnapshot
from .base import TransactionalStore

logger = logging.getLogger(__name__)


def _to_snapshot(record: StoredSnapshot) -> VersionSnapshot:
    return VersionSnapshot(
        id=record.id,
        entity_id=record.entity_id,
        version=record.version,
        state=record.state,
        actor_id=record.actor_id,
        created_at=record.created_at,
    )


class VersionedPersistenceCoordinator:
    """Atomic snapshot + versioned update on top of a ``TransactionalStore``."""

    def __init__(self, store: TransactionalStore):
        self.store = store

    async def commit(
        self,
        entity_id: str,
        new_state: dict[str, Any],
        prior_state: dict[str, Any] | None = None,
        *,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> int:
        """Snapshot the prior state and write ``new_state`` as the next version.

        Args:
            entity_id: ID of the live entity
            new_state: Full state to store
            prior_state: State captured when the entity was resolved; defaults
                to the live state read inside the transaction
            actor_id: Identity recorded on the snapshot
            expected_version: Version the caller resolved; a mismatch is a conflict

        Returns:
            The new live version (prior version + 1)

        Raises:
            VersionConflictError: If the live version moved underneath the caller
            PersistenceError: For any other store failure; nothing is written
        """
        try:
            with self.store.transaction() as tx:
                live = tx.load_live(entity_id, for_update=True)
                if live is None:
                    raise PersistenceError(entity_id, f"entity {entity_id} does not exist", error_code="ENTITY_NOT_FOUND")
                if expected_version is not None and live.version != expected_version:
                    raise VersionConflictError(entity_id, expected_version, live.version)

                snapshot_state = prior_state if prior_state is not None else live.state
                tx.append_snapshot(entity_id, live.version, snapshot_state, actor_id)

                if not tx.update_live(entity_id, new_state, live.version):
                    raise VersionConflictError(entity_id, live.version, None)
                new_version = live.version + 1
        except PlanMCPError:
            raise
        except Exception as e:
            raise PersistenceError(entity_id, str(e)) from e

        logger.info("Committed %s at version %d (actor=%s)", entity_id, new_version, actor_id)
        return new_version

    async def list_versions(self, entity_id: str, limit: int | None = None) -> list[VersionInfo]:
        """Snapshot listing, newest first."""
        limit = limit or get_settings().snapshot_history_limit
        with self.store.transaction() as tx:
            records = tx.list_snapshots(entity_id, limit)
        return [
            VersionInfo(entity_id=r.entity_id, version=r.version, actor_id=r.actor_id, created_at=r.created_at)
            for r in records
        ]

    async def get_version(self, entity_id: str, version: int) -> VersionSnapshot:
        with self.store.transaction() as tx:
            record = tx.get_snapshot(entity_id, version)
        if record is None:
            raise SnapshotNotFoundError(entity_id, version)
        return _to_snapshot(record)

    async def restore_version(self, entity_id: str, version: int, actor_id: str | None = None) -> int:
        """Commit a snapshot's state as a new version.

        The current state is snapshotted first, so history is only ever appended to.
        """
        snapshot = await self.get_version(entity_id, version)
        new_version = await self.commit(entity_id, dict(snapshot.state), actor_id=actor_id)
        logger.info("Restored %s to the state of version %d as version %d", entity_id, version, new_version)
        return new_version
