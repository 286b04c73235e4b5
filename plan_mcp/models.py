"""Pydantic models returned by the modification tools and the version history."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from pydantic import Field

from .batch.models import ItemOutcome


class EntitySummary(BaseModel):
    """Canonical post-commit view of a modified entity."""

    entity_id: str = Field(..., description="ID of the modified entity")
    version: int = Field(..., description="Live version after the commit")
    modifications_applied: int = Field(default=0, description="Items that succeeded")
    errors: list[str] = Field(default_factory=list, description="Rendered failure lines")
    data: dict[str, Any] | None = Field(default=None, description="Domain-specific summary fields")


class ModificationResult(BaseModel):
    """Uniform result of a tool invocation.

    Fatal errors are carried in ``error``/``error_code`` rather than raised, so
    callers always receive one of these.
    """

    success: bool = Field(..., description="False only for fatal errors")
    message: str = Field(..., description="Human-readable summary")
    updated: EntitySummary | dict[str, Any] | None = Field(default=None, description="Updated entity view")
    affected_count: int | None = Field(default=None, description="Number of items applied")
    error: str | None = Field(default=None, description="Fatal error message")
    error_code: str | None = Field(default=None, description="Machine-readable error code")
    outcomes: list[ItemOutcome] = Field(default_factory=list, description="Per-item outcomes in input order")


class VersionSnapshot(BaseModel):
    """Immutable record of an entity's full state before a commit."""

    id: int
    entity_id: str
    version: int = Field(..., description="Version the entity had before the commit")
    state: dict[str, Any]
    actor_id: str | None = None
    created_at: datetime


class VersionInfo(BaseModel):
    """Lightweight listing entry for the version history."""

    entity_id: str
    version: int
    actor_id: str | None = None
    created_at: datetime
