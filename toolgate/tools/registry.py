"""Tools registry for managing the assistant's tools."""

from typing import Any

from toolgate.tools.base import ToolDescriptor
from toolgate.tools.cloudflare_rules import create_custom_rule_tool
from toolgate.tools.errors import DuplicateToolError
from toolgate.tools.image import create_generate_image_tool
from toolgate.tools.local_time import create_local_time_tool
from toolgate.tools.pokemon import create_search_pokemon_tool
from toolgate.tools.weather import create_weather_tool
from toolgate.tools.webhook import create_send_webhook_tool
from toolgate.tools.workers import create_do_worker_tool, create_graphql_worker_tool
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """Registry of tool descriptors keyed by name.

    Built once at startup and read-only afterwards.
    """

    def __init__(self, tools: list[ToolDescriptor] | None = None):
        self._tools: dict[str, ToolDescriptor] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDescriptor) -> None:
        """Register a new tool in the registry."""
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: name={tool.name} requires_confirmation={tool.requires_confirmation}")

    def lookup(self, name: str) -> ToolDescriptor | None:
        """Get a tool descriptor by name, or None if unknown."""
        tool = self._tools.get(name)
        if tool is None:
            logger.debug(f"Tool lookup missed: name={name}")
        return tool

    def list_descriptors(self) -> list[ToolDescriptor]:
        """All descriptors, in registration order."""
        return list(self._tools.values())

    def requires_confirmation(self, name: str) -> bool:
        tool = self._tools.get(name)
        return tool is not None and tool.requires_confirmation

    def confirmation_required_names(self) -> list[str]:
        return [name for name, tool in self._tools.items() if tool.requires_confirmation]

    def tool_specs(self) -> list[dict[str, Any]]:
        """Tool definitions advertised to the chat model."""
        return [tool.as_spec() for tool in self._tools.values()]

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_default_registry() -> ToolRegistry:
    """Register the default tool catalog."""
    return ToolRegistry(
        [
            create_weather_tool(),
            create_local_time_tool(),
            create_generate_image_tool(),
            create_search_pokemon_tool(),
            create_send_webhook_tool(),
            create_do_worker_tool(),
            create_graphql_worker_tool(),
            create_custom_rule_tool(),
        ]
    )


_tool_registry: ToolRegistry | None = None


def get_tool_registry() -> ToolRegistry:
    """Get or create the process-wide tool registry."""
    global _tool_registry
    if _tool_registry is None:
        _tool_registry = build_default_registry()
        logger.info(f"Tool registry initialized with {len(_tool_registry)} tools")
    return _tool_registry
