"""Core adapter service logic."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional

from .config import Settings
from .exceptions import AdapterError
from .invoker import Invoker
from .logging import redact_payload
from .models import InvocationResponse
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class AdapterService:
    """
    Executes tool calls for the MCP server.

    - looks the tool up in the registry by name
    - invokes it with the caller's ``pathParams``/``inputParams``
    - formats the post-processed body as MCP text content
    """

    def __init__(
        self,
        settings: Settings,
        tool_registry: ToolRegistry,
        invoker: Optional[Invoker] = None,
    ) -> None:
        self.settings = settings
        self.tool_registry = tool_registry
        self.invoker = invoker or Invoker()
        self.semaphore = asyncio.Semaphore(settings.adapter_max_concurrency)

    async def invoke(self, tool_name: str, arguments: Mapping[str, Any]) -> InvocationResponse:
        tool = self.tool_registry.get(tool_name)
        return await self.invoker.invoke(self.tool_registry.spec, tool, arguments)

    async def execute_tool(
        self, tool_name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Execute a tool and format the outcome.

        Args:
            tool_name: Name of the tool in the registry
            arguments: ``{"pathParams": {...}, "inputParams": {...}}``

        Returns:
            MCP-formatted result; adapter errors become an error result
        """
        arguments = arguments or {}
        async with self.semaphore:
            logger.info(
                "Executing tool=%s arguments=%s", tool_name, redact_payload(dict(arguments))
            )
            try:
                response = await self.invoke(tool_name, arguments)
            except AdapterError as exc:
                logger.error("Tool execution failed: %s", exc)
                return self._format_error(str(exc))

            logger.info("Tool %s returned status %s", tool_name, response.status)
            return self._format_result(response.data)

    def _format_result(self, result: Any) -> Dict[str, Any]:
        text = json.dumps(result, ensure_ascii=False, default=str)
        return {"content": [{"type": "text", "text": text}]}

    def _format_error(self, message: str) -> Dict[str, Any]:
        return {"content": [{"type": "text", "text": message}], "is_error": True}
