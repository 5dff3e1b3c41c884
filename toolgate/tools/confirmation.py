"""Deferred executions for tools that need a human decision."""

from collections.abc import Awaitable, Callable
from typing import Any

from toolgate.tools.base import ToolContext
from toolgate.tools.errors import DuplicateToolError, UnknownToolError
from toolgate.tools.registry import ToolRegistry, get_tool_registry
from toolgate.tools.weather import get_weather_information
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)

ConfirmedExecution = Callable[[Any, ToolContext], Awaitable[Any]]


class ConfirmationResolver:
    """Maps confirmation-required tool names to the code run once a call is approved."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry
        self._executions: dict[str, ConfirmedExecution] = {}

    def register(self, name: str, execution: ConfirmedExecution) -> None:
        """Attach the approved-path execution for ``name``.

        Raises:
            UnknownToolError: If the registry has no such tool
            ValueError: If the tool already runs without confirmation
            DuplicateToolError: If an execution is already attached
        """
        tool = self.registry.lookup(name)
        if tool is None:
            raise UnknownToolError(name)
        if not tool.requires_confirmation:
            raise ValueError(f"Tool '{name}' executes automatically and cannot take a confirmed execution")
        if name in self._executions:
            raise DuplicateToolError(name)

        self._executions[name] = execution

    def has(self, name: str) -> bool:
        return name in self._executions

    def names(self) -> list[str]:
        return list(self._executions)

    async def resolve(self, name: str, args: dict[str, Any], context: ToolContext) -> Any:
        """Validate ``args`` and run the approved execution.

        Validation and execution errors propagate to the caller.
        """
        execution = self._executions.get(name)
        tool = self.registry.lookup(name)
        if execution is None or tool is None:
            raise UnknownToolError(name)

        parsed = tool.parse_input(args)
        logger.info(f"Invoking confirmed execution: tool={name} call_id={context.tool_call_id}")
        return await execution(parsed, context)


def build_default_resolver(registry: ToolRegistry) -> ConfirmationResolver:
    resolver = ConfirmationResolver(registry)
    resolver.register("getWeatherInformation", get_weather_information)
    return resolver


_resolver: ConfirmationResolver | None = None


def get_confirmation_resolver() -> ConfirmationResolver:
    """Get or create the process-wide resolver over the default registry."""
    global _resolver
    if _resolver is None:
        _resolver = build_default_resolver(get_tool_registry())
    return _resolver
