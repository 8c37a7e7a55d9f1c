import os
import tempfile

import pytest

from oapi_adapter import scripts
from oapi_adapter.exceptions import ScriptExecutionError
from oapi_adapter.scripts import ScriptExecutor, is_script


@pytest.fixture
def script_dir(tmp_path, monkeypatch):
    real_mkstemp = tempfile.mkstemp

    def mkstemp(*args, **kwargs):
        kwargs["dir"] = str(tmp_path)
        return real_mkstemp(*args, **kwargs)

    monkeypatch.setattr(scripts.tempfile, "mkstemp", mkstemp)
    return tmp_path


@pytest.fixture
def executor():
    return ScriptExecutor(process_env={"PATH": os.environ.get("PATH", "/usr/bin:/bin")})


def test_is_script():
    assert is_script("#!/bin/sh\necho hi")
    assert is_script("  \n#!/usr/bin/env python3\nprint(1)")
    assert is_script("#!anything")
    assert not is_script("plain {VALUE}")
    assert not is_script("echo #!/bin/sh")
    assert not is_script(42)


@pytest.mark.asyncio
async def test_returns_standard_output(executor, script_dir):
    output = await executor.execute("#!/bin/sh\necho hello")

    assert output == "hello\n"


@pytest.mark.asyncio
async def test_leading_whitespace_is_stripped(executor, script_dir):
    output = await executor.execute("\n   #!/bin/sh\nprintf ok")

    assert output == "ok"


@pytest.mark.asyncio
async def test_env_overlays_process_environment(script_dir):
    executor = ScriptExecutor(
        process_env={"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "BASE": "base", "X": "old"}
    )

    output = await executor.execute('#!/bin/sh\nprintf "%s-%s" "$BASE" "$X"', {"X": "new"})

    assert output == "base-new"


@pytest.mark.asyncio
async def test_non_zero_exit_raises_with_stderr(executor, script_dir):
    with pytest.raises(ScriptExecutionError, match="boom"):
        await executor.execute("#!/bin/sh\necho boom >&2\nexit 3")


@pytest.mark.asyncio
async def test_missing_interpreter_raises(executor, script_dir):
    with pytest.raises(ScriptExecutionError, match="Failed to execute script"):
        await executor.execute("#!/nonexistent/interpreter\nwhatever")


@pytest.mark.asyncio
async def test_temporary_files_are_removed(executor, script_dir):
    await executor.execute("#!/bin/sh\nprintf ok")
    with pytest.raises(ScriptExecutionError):
        await executor.execute("#!/bin/sh\nexit 1")

    assert list(script_dir.iterdir()) == []
