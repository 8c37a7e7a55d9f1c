import os
from unittest.mock import AsyncMock

import pytest

from oapi_adapter.exceptions import ScriptExecutionError
from oapi_adapter.resolver import ValueResolver, header_env_aliases
from oapi_adapter.scripts import ScriptExecutor


PATH_ONLY = {"PATH": os.environ.get("PATH", "/usr/bin:/bin")}


@pytest.fixture
def resolver():
    return ValueResolver(process_env=dict(PATH_ONLY))


@pytest.mark.asyncio
async def test_plain_strings_are_unchanged(resolver):
    assert await resolver.resolve("nothing to see", {"A": "1"}) == "nothing to see"
    assert await resolver.resolve("{not valid} {1A} {", {}) == "{not valid} {1A} {"


@pytest.mark.asyncio
async def test_template_uses_env_and_process_environment():
    resolver = ValueResolver(process_env={"B": "2"})

    assert await resolver.resolve("{A}-{B}", {"A": "1"}) == "1-2"


@pytest.mark.asyncio
async def test_process_environment_takes_priority():
    resolver = ValueResolver(process_env={"NAME": "process"})

    assert await resolver.resolve("{NAME}", {"NAME": "local"}) == "process"


@pytest.mark.asyncio
async def test_unknown_variables_become_empty(resolver):
    assert await resolver.resolve("a{MISSING}b", {}) == "ab"


@pytest.mark.asyncio
async def test_non_string_scalars_pass_through(resolver):
    assert await resolver.resolve(5, {}) == 5
    assert await resolver.resolve(None, {}) is None
    assert await resolver.resolve(True, {}) is True


@pytest.mark.asyncio
async def test_objects_resolve_in_order_with_sibling_values(resolver):
    value = {"first": "{SEED}", "second": "{first}-tail", "nested": {"n": "{second}"}}

    result = await resolver.resolve(value, {"SEED": "s"})

    assert result == {"first": "s", "second": "s-tail", "nested": {"n": "s-tail"}}


@pytest.mark.asyncio
async def test_arrays_do_not_propagate_between_elements(resolver):
    result = await resolver.resolve(["{A}", {"A": "x"}, "{A}"], {"A": "1"})

    assert result == ["1", {"A": "x"}, "1"]


@pytest.mark.asyncio
async def test_scripts_receive_env():
    executor = ScriptExecutor(process_env=dict(PATH_ONLY))
    resolver = ValueResolver(process_env=dict(PATH_ONLY), executor=executor)

    result = await resolver.resolve('#!/bin/sh\nprintf "%s" "$TOKEN"', {"TOKEN": "abc"})

    assert result == "abc"


@pytest.mark.asyncio
async def test_script_failure_propagates():
    executor = AsyncMock(spec=ScriptExecutor)
    executor.execute.side_effect = ScriptExecutionError("Script execution failed: nope")
    resolver = ValueResolver(process_env={}, executor=executor)

    with pytest.raises(ScriptExecutionError):
        await resolver.resolve({"a": "#!/bin/sh\nexit 1"}, {})


def test_header_env_aliases():
    assert header_env_aliases("X-Rio-Timestamp") == ("x_rio_timestamp", "X_Rio_Timestamp")


@pytest.mark.asyncio
async def test_later_header_sees_earlier_script_output(resolver):
    headers = {
        "x-first": "#!/bin/sh\nprintf v1",
        "X-Second": '#!/bin/sh\nprintf "%s" "$x_first"',
        "X-Third": "{X_Second}/{x_second}",
    }

    resolved = await resolver.resolve_headers(headers)

    assert resolved == {"x-first": "v1", "X-Second": "v1", "X-Third": "v1/v1"}


@pytest.mark.asyncio
async def test_request_values_see_header_aliases(resolver):
    resolved = await resolver.resolve_request_values(
        {"X-Sig": "abc", "Accept": "application/json"},
        {"id": "{x_sig}"},
        {"q": "{X_Sig}", "limit": 10},
    )

    assert resolved.headers == {"X-Sig": "abc", "Accept": "application/json"}
    assert resolved.path_params == {"id": "abc"}
    assert resolved.input_params == {"q": "abc", "limit": 10}
