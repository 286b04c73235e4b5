"""Plan MCP: action-based modification tools for versioned hierarchical entities."""

__version__ = "1.0.0"

from .batch import ActionDefinition
from .batch import ActionRegistry
from .batch import FailurePolicy
from .batch import ModificationExecutor
from .batch import define_action
from .context import ToolContext
from .models import EntitySummary
from .models import ModificationResult
from .persistence import SqlEntityStore
from .persistence import VersionedPersistenceCoordinator
from .response import ResponseAccumulator
from .tools import AgenticToolConfig
from .tools import create_agentic_tool
from .tools import create_crud_tool
from .tools import register_agentic_tool

__all__ = [
    "ActionDefinition",
    "ActionRegistry",
    "AgenticToolConfig",
    "EntitySummary",
    "FailurePolicy",
    "ModificationExecutor",
    "ModificationResult",
    "ResponseAccumulator",
    "SqlEntityStore",
    "ToolContext",
    "VersionedPersistenceCoordinator",
    "__version__",
    "create_agentic_tool",
    "create_crud_tool",
    "define_action",
    "register_agentic_tool",
]
