"""Resolution of dynamic values: ``{VAR}`` templates and shebang scripts."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .scripts import ScriptExecutor, is_script


logger = logging.getLogger(__name__)

TEMPLATE_VARIABLE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def header_env_aliases(header_key: str) -> Tuple[str, str]:
    """Environment names under which a resolved header is exposed.

    ``X-Rio-Timestamp`` is published as ``x_rio_timestamp`` and
    ``X_Rio_Timestamp``.
    """
    return header_key.lower().replace("-", "_"), header_key.replace("-", "_")


@dataclass(frozen=True)
class ResolvedValues:
    headers: Dict[str, str]
    path_params: Dict[str, Any]
    input_params: Dict[str, Any]


class ValueResolver:
    """Resolves JSON-like value trees.

    Template variables are looked up first in the process environment, then in
    the ``env`` mapping passed to the call, and default to an empty string.
    ``process_env`` replaces ``os.environ`` as the first layer when given.
    """

    def __init__(
        self,
        process_env: Optional[Mapping[str, str]] = None,
        executor: Optional[ScriptExecutor] = None,
    ) -> None:
        self._process_env = process_env
        self.executor = executor or ScriptExecutor(process_env)

    async def resolve(self, value: Any, env: Optional[Mapping[str, str]] = None) -> Any:
        env = env or {}
        if isinstance(value, str):
            return await self.resolve_string(value, env)

        if isinstance(value, list):
            return [await self.resolve(item, env) for item in value]

        if isinstance(value, dict):
            # siblings see the values resolved before them
            scope: Dict[str, str] = dict(env)
            resolved: Dict[str, Any] = {}
            for key, item in value.items():
                resolved[key] = await self.resolve(item, scope)
                if isinstance(resolved[key], str):
                    scope[str(key)] = resolved[key]
            return resolved

        return value

    async def resolve_string(self, value: str, env: Optional[Mapping[str, str]] = None) -> str:
        env = env or {}
        if is_script(value):
            logger.debug("Executing script value")
            return await self.executor.execute(value, env)
        return self.substitute(value, env)

    def substitute(self, value: str, env: Optional[Mapping[str, str]] = None) -> str:
        env = env or {}
        process_env = self._environ()

        def lookup(match: re.Match) -> str:
            name = match.group(1)
            return process_env.get(name) or env.get(name) or ""

        return TEMPLATE_VARIABLE.sub(lookup, value)

    async def resolve_headers(self, headers: Mapping[str, Any]) -> Dict[str, str]:
        resolved, _ = await self._resolve_headers(headers)
        return resolved

    async def resolve_request_values(
        self,
        headers: Mapping[str, Any],
        path_params: Mapping[str, Any],
        input_params: Mapping[str, Any],
    ) -> ResolvedValues:
        """Resolve headers in order, then path and input parameters concurrently.

        Parameters can reference any resolved header through its environment
        aliases.
        """
        resolved_headers, header_env = await self._resolve_headers(headers)
        resolved_path, resolved_input = await asyncio.gather(
            self.resolve(dict(path_params), header_env),
            self.resolve(dict(input_params), header_env),
        )
        return ResolvedValues(
            headers=resolved_headers,
            path_params=resolved_path,
            input_params=resolved_input,
        )

    async def _resolve_headers(
        self, headers: Mapping[str, Any]
    ) -> Tuple[Dict[str, str], Dict[str, str]]:
        resolved: Dict[str, str] = {}
        env: Dict[str, str] = {}
        for key, value in headers.items():
            result = await self.resolve_string(str(value), env)
            resolved[key] = result
            for alias in header_env_aliases(key):
                env[alias] = result
        return resolved, env

    def _environ(self) -> Mapping[str, str]:
        if self._process_env is None:
            return os.environ
        return self._process_env
