"""Custom exceptions for Aura."""


class AuraError(Exception):
    """Base exception for Aura."""

    pass


class ConfigurationError(AuraError):
    """Configuration-related errors."""

    pass


class ResponderError(AuraError):
    """The responder rejected a submission or could not be reached."""

    pass


class ResponderAPIError(ResponderError):
    """Responder API errors (connection refused, non-2xx status, etc.)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ToolError(AuraError):
    """Tool execution errors."""

    pass


class ToolExecutionError(ToolError):
    """Tool execution failed."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """Tool not found in registry."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name
