"""Tools package for Aura."""

from aura.config import Config, get_config
from aura.tools.registry import Tool, ToolRegistry, ToolResult
from aura.tools.system import CleanDesktopTool, DarkModeTool, LockTool, MuteTool

BUILTIN_TOOLS: dict[str, type[Tool]] = {
    "mute": MuteTool,
    "lock": LockTool,
    "clean_desktop": CleanDesktopTool,
    "dark_mode": DarkModeTool,
}


def create_tool_registry(config: Config | None = None) -> ToolRegistry:
    """Build a registry holding the built-in tools enabled in config."""
    cfg = config or get_config()
    registry = ToolRegistry()
    for name in cfg.tools.enabled:
        tool_cls = BUILTIN_TOOLS.get(name)
        if tool_cls is not None:
            registry.register(tool_cls())
    return registry


__all__ = [
    "BUILTIN_TOOLS",
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "create_tool_registry",
    "CleanDesktopTool",
    "DarkModeTool",
    "LockTool",
    "MuteTool",
]
