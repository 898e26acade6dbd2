"""NSP Patcher utils: external tool resolution and invocation."""

from .external_tools import (
    HACPACK,
    HACTOOL,
    ToolPaths,
    ToolProbeResult,
    ToolRunResult,
    check_tool,
    probe_tools,
    resolve_tool_paths,
    run_tool,
)

__all__ = [
    "HACPACK",
    "HACTOOL",
    "ToolPaths",
    "ToolProbeResult",
    "ToolRunResult",
    "check_tool",
    "probe_tools",
    "resolve_tool_paths",
    "run_tool",
]
