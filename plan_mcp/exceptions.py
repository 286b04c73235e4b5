"""Exception hierarchy for the Plan MCP system.

Entity-level errors (not found, unauthorized, invalid entity, empty request)
and persistence errors are fatal for a modification cycle. Item-level errors
(unknown action, invalid target/changes, handler failure) are collected as
per-item outcomes by the executor and never abort sibling items.
"""

from __future__ import annotations

from typing import Any


class PlanMCPError(Exception):
    """Base exception for all Plan MCP errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.user_message = user_message or message

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for structured responses."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
        }


# === Fatal, entity-level errors ===


class EntityNotFoundError(PlanMCPError):
    """Raised when an entity id does not resolve."""

    def __init__(self, domain: str, entity_id: str, details: dict[str, Any] | None = None):
        merged = {"domain": domain, "entity_id": entity_id, **(details or {})}
        super().__init__(
            message=f"{domain} entity with ID {entity_id} not found",
            error_code="ENTITY_NOT_FOUND",
            details=merged,
            user_message=f"The {domain} '{entity_id}' does not exist.",
        )


class UnauthorizedError(PlanMCPError):
    """Raised when the entity does not belong to the acting identity."""

    def __init__(self, domain: str, entity_id: str, actor_id: str | None):
        super().__init__(
            message=f"Unauthorized: {domain} {entity_id} does not belong to user {actor_id}",
            error_code="UNAUTHORIZED",
            details={"domain": domain, "entity_id": entity_id, "actor_id": actor_id},
            user_message=f"You are not allowed to modify this {domain}.",
        )


class EntityValidationError(PlanMCPError):
    """Raised when the optional entity validator rejects an entity."""

    def __init__(self, reason: str, entity_id: str | None = None):
        super().__init__(
            message=reason,
            error_code="ENTITY_VALIDATION_FAILED",
            details={"entity_id": entity_id} if entity_id else {},
        )


class NoModificationSpecifiedError(PlanMCPError):
    """Raised when neither a single action nor a non-empty batch was given."""

    def __init__(self):
        super().__init__(
            message="No modification specified. Provide action+target or batch array.",
            error_code="NO_MODIFICATION_SPECIFIED",
        )


class InvalidRequestError(PlanMCPError):
    """Raised when the request envelope itself is malformed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, error_code="INVALID_REQUEST", details=details)


class ModificationCancelledError(PlanMCPError):
    """Raised when the abort signal is set during a modification cycle."""

    def __init__(self, stage: str):
        super().__init__(
            message=f"Modification cancelled during {stage}",
            error_code="MODIFICATION_CANCELLED",
            details={"stage": stage},
        )


# === Item-level errors (recorded, not propagated) ===


class UnknownActionError(PlanMCPError):
    """Raised when an item names an action absent from the registry."""

    def __init__(self, action: str):
        super().__init__(
            message=f"Unknown action: {action}",
            error_code="UNKNOWN_ACTION",
            details={"action": action},
        )


class TargetValidationError(PlanMCPError):
    """Raised when an item's target fails its action's target contract."""

    def __init__(self, action: str, reason: str):
        super().__init__(
            message=f"Invalid target for {action}: {reason}",
            error_code="TARGET_VALIDATION_FAILED",
            details={"action": action},
        )


class ChangesValidationError(PlanMCPError):
    """Raised when an item's changes fail its action's changes contract."""

    def __init__(self, action: str, reason: str):
        super().__init__(
            message=f"Invalid changes for {action}: {reason}",
            error_code="CHANGES_VALIDATION_FAILED",
            details={"action": action},
        )


class NewDataValidationError(PlanMCPError):
    """Raised when an item's new_data fails its action's new-data contract."""

    def __init__(self, action: str, reason: str):
        super().__init__(
            message=f"Invalid new_data for {action}: {reason}",
            error_code="NEW_DATA_VALIDATION_FAILED",
            details={"action": action},
        )


class HandlerExecutionError(PlanMCPError):
    """Wraps an exception raised by an action handler."""

    def __init__(self, action: str, cause: BaseException):
        super().__init__(
            message=f"{action} failed: {cause}",
            error_code="HANDLER_EXECUTION_FAILED",
            details={"action": action, "cause_type": type(cause).__name__},
        )
        self.cause = cause


class TargetNotFoundError(PlanMCPError):
    """Raised by handlers when a target address does not resolve."""

    def __init__(self, kind: str, reference: Any, available: int | None = None):
        details: dict[str, Any] = {"kind": kind, "reference": reference}
        if available is not None:
            details["available"] = available
        super().__init__(
            message=f"{kind} '{reference}' not found",
            error_code="TARGET_NOT_FOUND",
            details=details,
            user_message=f"The {kind} '{reference}' does not exist.",
        )


# === Persistence errors ===


class PersistenceError(PlanMCPError):
    """Raised when the snapshot-then-update transaction fails."""

    def __init__(
        self,
        entity_id: str,
        reason: str,
        error_code: str = "PERSISTENCE_FAILED",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=f"Save failed: {reason}",
            error_code=error_code,
            details={"entity_id": entity_id, **(details or {})},
        )
        self.entity_id = entity_id


class VersionConflictError(PersistenceError):
    """Raised when the live version no longer matches the expected version."""

    def __init__(self, entity_id: str, expected_version: int, actual_version: int | None):
        super().__init__(
            entity_id,
            f"version conflict on {entity_id}: expected {expected_version}, found {actual_version}",
            error_code="VERSION_CONFLICT",
            details={"expected_version": expected_version, "actual_version": actual_version},
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class SnapshotNotFoundError(PlanMCPError):
    """Raised when a requested version snapshot does not exist."""

    def __init__(self, entity_id: str, version: int):
        super().__init__(
            message=f"Version {version} not found for entity {entity_id}",
            error_code="SNAPSHOT_NOT_FOUND",
            details={"entity_id": entity_id, "version": version},
            user_message=f"Version {version} does not exist.",
        )
