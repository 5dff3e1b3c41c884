"""Tools for the conversational assistant."""

from toolgate.tools.base import ToolContext, ToolDescriptor, ToolServices, create_tool_services
from toolgate.tools.confirmation import ConfirmationResolver, get_confirmation_resolver
from toolgate.tools.errors import DuplicateToolError, ToolSchemaError, UnknownToolError
from toolgate.tools.registry import ToolRegistry, get_tool_registry

__all__ = [
    "ConfirmationResolver",
    "DuplicateToolError",
    "ToolContext",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolSchemaError",
    "ToolServices",
    "UnknownToolError",
    "create_tool_services",
    "get_confirmation_resolver",
    "get_tool_registry",
]
