"""Errors raised by the tool layer."""


class ToolError(Exception):
    """Base class for tool registry and resolution errors."""


class DuplicateToolError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool already registered: '{tool_name}'")
        self.tool_name = tool_name


class UnknownToolError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool not registered: '{tool_name}'")
        self.tool_name = tool_name


class ToolSchemaError(ToolError):
    """Tool invocation data that does not match what the tool layer accepts."""
