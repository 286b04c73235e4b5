"""Shared helpers: fuzzy target matching and contract builders."""

from .fuzzy_matching import fuzzy_find
from .fuzzy_matching import fuzzy_find_all
from .fuzzy_matching import fuzzy_find_index
from .fuzzy_matching import fuzzy_match
from .fuzzy_matching import resolve_index
from .schema_builders import ContractModel
from .schema_builders import Macros
from .schema_builders import Priority
from .schema_builders import SetFields
from .schema_builders import SetGroupFields
from .schema_builders import Status
from .schema_builders import changed_fields
from .schema_builders import create_range_fields
from .schema_builders import create_target_schema
from .schema_builders import generate_id
from .schema_builders import require_changes_for_update

__all__ = [
    "ContractModel",
    "Macros",
    "Priority",
    "SetFields",
    "SetGroupFields",
    "Status",
    "changed_fields",
    "create_range_fields",
    "create_target_schema",
    "fuzzy_find",
    "fuzzy_find_all",
    "fuzzy_find_index",
    "fuzzy_match",
    "generate_id",
    "require_changes_for_update",
    "resolve_index",
]
