"""Abstract interfaces for entity persistence.

``TransactionalStore`` is the external collaborator: anything offering an
atomic multi-statement transaction with the three primitives below.
``EntityStore`` is what a modification tool talks to.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from typing import TYPE_CHECKING
from typing import Any
from typing import Generic
from typing import TypeVar

if TYPE_CHECKING:
    from ..context import ToolContext

E = TypeVar("E")


@dataclass
class StoredEntity:
    """Live row of an entity as seen inside a transaction."""

    entity_id: str
    version: int
    state: dict[str, Any]
    domain: str | None = None
    owner_id: str | None = None
    updated_at: datetime | None = None


@dataclass
class StoredSnapshot:
    """Append-only record of an entity's state before a commit."""

    id: int
    entity_id: str
    version: int
    state: dict[str, Any]
    actor_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class StoreTransaction(ABC):
    """Operations available inside one atomic transaction."""

    @abstractmethod
    def load_live(self, entity_id: str, for_update: bool = False) -> StoredEntity | None:
        """Load the live row, locking it for update where the backend supports it."""
        pass

    @abstractmethod
    def append_snapshot(self, entity_id: str, version: int, state: dict[str, Any], actor_id: str | None) -> None:
        """Write an immutable snapshot tagged with the pre-edit version."""
        pass

    @abstractmethod
    def update_live(self, entity_id: str, state: dict[str, Any], expected_version: int) -> bool:
        """Replace the live state and set ``version = expected_version + 1``.

        Returns:
            False if no row had ``expected_version`` (nothing was written)
        """
        pass

    @abstractmethod
    def insert_live(self, entity: StoredEntity) -> None:
        pass

    @abstractmethod
    def list_snapshots(self, entity_id: str, limit: int) -> list[StoredSnapshot]:
        """Snapshots newest first."""
        pass

    @abstractmethod
    def get_snapshot(self, entity_id: str, version: int) -> StoredSnapshot | None:
        pass


class TransactionalStore(ABC):
    """A store whose ``transaction()`` commits on clean exit and rolls back on error."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[StoreTransaction]:
        pass


class EntityStore(ABC, Generic[E]):
    """Entity-level adapter used by the tool façade."""

    @abstractmethod
    async def resolve_entity(self, entity_id: str, context: ToolContext | None = None) -> E | None:
        """Load an entity, or None if it does not exist."""
        pass

    @abstractmethod
    async def save_entity(
        self,
        entity_id: str,
        entity: E,
        context: ToolContext | None = None,
        *,
        prior_state: dict[str, Any] | None = None,
        expected_version: int | None = None,
    ) -> int:
        """Snapshot the prior state and commit ``entity`` atomically.

        Returns:
            The new live version
        """
        pass

