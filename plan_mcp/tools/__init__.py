"""Modification tools and their MCP registration."""

from .agentic_tool import AgenticTool
from .agentic_tool import AgenticToolConfig
from .agentic_tool import create_agentic_tool
from .agentic_tool import define_action
from .crud_tool import CRUD_OPERATIONS
from .crud_tool import CrudTool
from .crud_tool import CrudToolConfig
from .crud_tool import create_crud_tool
from .registration import register_agentic_tool
from .registration import register_crud_tool

__all__ = [
    "AgenticTool",
    "AgenticToolConfig",
    "CRUD_OPERATIONS",
    "CrudTool",
    "CrudToolConfig",
    "create_agentic_tool",
    "create_crud_tool",
    "define_action",
    "register_agentic_tool",
    "register_crud_tool",
]
