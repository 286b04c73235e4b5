"""Invocation context threaded through every modification cycle."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from dataclasses import field
from typing import Any


@dataclass
class ToolContext:
    """Acting identity and per-call metadata for one tool invocation.

    The engine reads ``effective_user_id`` for the ownership check and
    ``signal`` for cooperative cancellation; everything else is passed
    through untouched to handlers and hooks.
    """

    user_id: str | None = None
    coach_id: str | None = None
    athlete_id: str | None = None
    client_id: str | None = None
    is_admin: bool = False
    domain: str | None = None
    locale: str = "en"
    route: str | None = None
    signal: asyncio.Event | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def effective_user_id(self) -> str | None:
        return get_effective_user_id(self)

    @property
    def actor_id(self) -> str | None:
        """Identity recorded on version snapshots (the caller, not the subject)."""
        return self.user_id or self.coach_id or self.effective_user_id

    @property
    def cancelled(self) -> bool:
        return self.signal is not None and self.signal.is_set()


def get_effective_user_id(context: ToolContext | None) -> str | None:
    """Return the user an operation acts on: athlete, then client, then caller."""
    if context is None:
        return None
    return context.athlete_id or context.client_id or context.user_id
