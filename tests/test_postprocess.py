import json

from oapi_adapter.models import SENSITIVE_MARK
from oapi_adapter.postprocess import post_process, shape_response, truncate
from oapi_adapter.translator import translate


def test_no_rules_returns_data_untouched():
    data = {"a": 1}

    assert shape_response(data, [], [], []) is data


def test_exclude_then_sensitize():
    data = {"a": 1, "b": 2, "c": 3}

    assert shape_response(data, [], ["b"], []) == {"a": 1, "c": 3}
    assert shape_response(data, [], ["b"], ["a"]) == {"a": SENSITIVE_MARK, "c": 3}
    assert data == {"a": 1, "b": 2, "c": 3}


def test_include_selects_nested_paths():
    data = {"id": 7, "owner": {"name": "ann", "email": "a@x"}, "extra": True}

    result = shape_response(data, ["id", "owner.name", "missing.path"], [], [])

    assert result == {"id": 7, "owner": {"name": "ann"}}


def test_missing_paths_are_ignored():
    data = {"a": {"b": 1}, "n": 5}

    result = shape_response(data, [], ["a.x.y", "n.z", "zz"], ["a.q", "n.z"])

    assert result == data


def test_sensitize_nested_and_list_index():
    data = {"user": {"password": "pw"}, "keys": ["k0", "k1"]}

    result = shape_response(data, [], [], ["user.password", "keys.1", "keys.5"])

    assert result == {"user": {"password": SENSITIVE_MARK}, "keys": ["k0", SENSITIVE_MARK]}


def test_top_level_arrays_are_transformed_per_item():
    data = [{"a": 1, "b": 2}, {"a": 3}, "raw"]

    assert shape_response(data, [], ["b"], []) == [{"a": 1}, {"a": 3}, "raw"]


def test_truncate_reports_lengths():
    data = {"payload": "x" * 500}
    serialized = json.dumps(data, indent=2, ensure_ascii=False)

    result = truncate(data, 100)

    assert result == {
        "message": f"Response was truncated (length: {len(serialized)}, max: 100)",
        "truncatedData": serialized[:100] + "...",
    }
    assert len(result["truncatedData"]) == 103


def test_truncate_keeps_short_data():
    data = {"a": 1}

    assert truncate(data, 100) is data
    assert truncate(data, None) is data


def test_operation_rules_take_priority(make_spec):
    spec = make_spec(
        {
            "paths": {
                "/users": {
                    "get": {
                        "x-exclude-response-keys": ["secret"],
                    }
                }
            }
        },
        **{"x-response-config": {"excludeResponseKeys": ["name"], "maxLength": 1000}},
    )
    tool = translate(spec).tools[0]

    result = post_process(spec, tool, {"name": "n", "secret": "s"})

    assert result == {"name": "n"}


def test_global_rules_apply_without_operation_rules(make_spec):
    spec = make_spec(
        {"paths": {"/users": {"get": {}}}},
        **{"x-response-config": {"sensitiveResponseFields": ["token"]}},
    )
    tool = translate(spec).tools[0]

    result = post_process(spec, tool, [{"token": "t", "id": 1}])

    assert result == [{"token": SENSITIVE_MARK, "id": 1}]


def test_operation_empty_list_opts_out_of_global_rules(make_spec):
    spec = make_spec(
        {"paths": {"/users": {"get": {"x-exclude-response-keys": []}}}},
        **{"x-response-config": {"excludeResponseKeys": ["name"]}},
    )
    tool = translate(spec).tools[0]

    assert post_process(spec, tool, {"name": "n", "id": 1}) == {"name": "n", "id": 1}


def test_include_keeps_list_shape_for_numeric_segments():
    data = {
        "items": [{"id": 1, "secret": "a"}, {"id": 2, "secret": "b"}, {"id": 3}],
        "codes": {"0": "zero", "1": "one"},
    }

    result = shape_response(data, ["items.0.id", "items.2.id", "codes.0"], [], [])

    assert result == {"items": [{"id": 1}, None, {"id": 3}], "codes": {"0": "zero"}}
