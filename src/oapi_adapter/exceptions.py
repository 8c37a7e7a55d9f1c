"""Exceptions raised by the OpenAPI adapter."""

from __future__ import annotations


class AdapterError(Exception):
    pass


class ConfigurationError(AdapterError):
    """Invalid or missing configuration. Never retried."""


class SpecLoadError(ConfigurationError):
    pass


class ScriptExecutionError(AdapterError):
    pass


class ToolInvocationError(AdapterError):
    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(f"Failed to invoke tool {tool_name}: {message}")
        self.tool_name = tool_name


class ToolNotFoundError(AdapterError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool not found: {tool_name}")
        self.tool_name = tool_name
