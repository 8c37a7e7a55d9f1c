"""Execution of shebang scripts embedded in configuration values."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from typing import Mapping, Optional

from .exceptions import ScriptExecutionError


logger = logging.getLogger(__name__)

SHEBANG = "#!"


def is_script(value: object) -> bool:
    return isinstance(value, str) and value.strip().startswith(SHEBANG)


class ScriptExecutor:
    """Runs a script through its shebang and returns its standard output.

    Each run writes the script to its own temporary file, marks it executable
    and spawns it with the process environment overlaid by ``env``. The file is
    removed afterwards, whatever the outcome.
    """

    def __init__(self, process_env: Optional[Mapping[str, str]] = None) -> None:
        self._process_env = process_env

    async def execute(self, script: str, env: Optional[Mapping[str, str]] = None) -> str:
        merged_env = {**self._base_env(), **{k: str(v) for k, v in (env or {}).items()}}
        script_path = self._write_script(script.strip())
        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    script_path,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=merged_env,
                )
            except OSError as exc:
                raise ScriptExecutionError(f"Failed to execute script: {exc}") from exc
            stdout, stderr = await process.communicate()
        finally:
            with contextlib.suppress(OSError):
                os.unlink(script_path)

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace")
            logger.warning("Script exited with status %s", process.returncode)
            raise ScriptExecutionError(f"Script execution failed: {message}")
        return stdout.decode("utf-8", errors="replace")

    def _base_env(self) -> Mapping[str, str]:
        if self._process_env is None:
            return os.environ
        return self._process_env

    def _write_script(self, script: str) -> str:
        fd, script_path = tempfile.mkstemp(prefix="script_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(script)
            os.chmod(script_path, 0o755)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(script_path)
            raise ScriptExecutionError(f"Failed to prepare script: {exc}") from exc
        return script_path
