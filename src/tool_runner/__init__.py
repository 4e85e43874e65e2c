"""Concurrency-bounded runner for user-configured external tools."""

from tool_runner.runner import ToolErrorCallback, ToolRunner
from tool_runner.tool_configuration import ToolConfiguration, ToolConfigurationError
from tool_runner.tool_definition import PythonToolDefinition, ToolDefinition, ToolState

__version__ = "0.1.0"

__all__ = [
    "PythonToolDefinition",
    "ToolConfiguration",
    "ToolConfigurationError",
    "ToolDefinition",
    "ToolErrorCallback",
    "ToolRunner",
    "ToolState",
    "__version__",
]
