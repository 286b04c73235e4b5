"""Registry of named modification actions.

Each action carries its own target/changes/new_data contracts. The registry
is built once when a tool is constructed and never changes afterwards, so the
set of valid action names is fixed for the tool's lifetime.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any
from typing import Literal
from typing import Union

from pydantic import BaseModel
from pydantic import ValidationError

from ..exceptions import ChangesValidationError
from ..exceptions import NewDataValidationError
from ..exceptions import TargetValidationError


def format_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic ValidationError into one readable line."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "value"
        parts.append(f"{location}: {detail.get('msg', 'invalid')}")
    return "; ".join(parts)


@dataclass(frozen=True)
class ActionParams:
    """Validated inputs handed to an action handler."""

    target: Any
    changes: Any = None
    new_data: Any = None


@dataclass(frozen=True)
class ActionDefinition:
    """A named edit operation and its input contracts.

    ``execute(entity, params, context)`` may mutate ``entity`` in place and
    return None, or return a replacement entity. It may be sync or async.
    """

    name: str
    execute: Callable[..., Any]
    description: str = ""
    target_schema: type[BaseModel] | None = None
    changes_schema: type[BaseModel] | None = None
    new_data_schema: type[BaseModel] | None = None

    def parse_target(self, raw: dict[str, Any] | None) -> Any:
        # A missing target is validated as an empty address
        raw = raw or {}
        if self.target_schema is None:
            return raw
        try:
            return self.target_schema.model_validate(raw)
        except ValidationError as e:
            raise TargetValidationError(self.name, format_validation_error(e)) from e

    def parse_changes(self, raw: dict[str, Any] | None) -> Any:
        if raw is None or self.changes_schema is None:
            return raw
        try:
            return self.changes_schema.model_validate(raw)
        except ValidationError as e:
            raise ChangesValidationError(self.name, format_validation_error(e)) from e

    def parse_new_data(self, raw: dict[str, Any] | None) -> Any:
        if raw is None or self.new_data_schema is None:
            return raw
        try:
            return self.new_data_schema.model_validate(raw)
        except ValidationError as e:
            raise NewDataValidationError(self.name, format_validation_error(e)) from e


def define_action(
    name: str,
    execute: Callable[..., Any],
    *,
    description: str = "",
    target: type[BaseModel] | None = None,
    changes: type[BaseModel] | None = None,
    new_data: type[BaseModel] | None = None,
) -> ActionDefinition:
    """Convenience constructor mirroring how tools declare their actions."""
    return ActionDefinition(
        name=name,
        execute=execute,
        description=description,
        target_schema=target,
        changes_schema=changes,
        new_data_schema=new_data,
    )


def _collapse(schemas: list[type[BaseModel]]) -> Any:
    if not schemas:
        return dict[str, Any]
    if len(schemas) == 1:
        return schemas[0]
    return Union[tuple(schemas)]  # noqa: UP007


class ActionRegistry:
    """Immutable mapping of action name to ``ActionDefinition``."""

    def __init__(self, actions: Mapping[str, ActionDefinition] | Iterable[ActionDefinition]):
        definitions: dict[str, ActionDefinition] = {}
        if isinstance(actions, Mapping):
            items = []
            for key, definition in actions.items():
                if definition.name != key:
                    definition = dataclasses.replace(definition, name=key)
                items.append(definition)
        else:
            items = list(actions)

        for definition in items:
            if definition.name in definitions:
                raise ValueError(f"Duplicate action name: {definition.name}")
            definitions[definition.name] = definition

        if not definitions:
            raise ValueError("An action registry needs at least one action")

        self._actions = MappingProxyType(definitions)

    @property
    def names(self) -> list[str]:
        return list(self._actions.keys())

    def get(self, name: str) -> ActionDefinition | None:
        return self._actions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self):
        return iter(self._actions.values())

    def action_enum(self) -> Any:
        """``Literal`` type over the registered names, for request validation."""
        return Literal[tuple(self.names)]

    def _unique(self, attribute: str) -> list[type[BaseModel]]:
        seen: list[type[BaseModel]] = []
        for definition in self._actions.values():
            schema = getattr(definition, attribute)
            if schema is not None and schema not in seen:
                seen.append(schema)
        return seen

    def target_contract(self) -> Any:
        """Union of every registered target contract (collapsed)."""
        return _collapse(self._unique("target_schema"))

    def changes_contract(self) -> Any:
        return _collapse(self._unique("changes_schema"))

    def new_data_contract(self) -> Any:
        return _collapse(self._unique("new_data_schema"))

    def describe(self) -> str:
        lines = []
        for definition in self._actions.values():
            if definition.description:
                lines.append(f"- {definition.name}: {definition.description}")
            else:
                lines.append(f"- {definition.name}")
        return "\n".join(lines)
