"""Response shaping: key selection, redaction and truncation.

Keys are addressed with dot-paths (``"a.b.c"``). Numeric segments index into
lists, and selected list elements keep their positions. Paths that do not
exist are ignored everywhere.
"""

from __future__ import annotations

import copy
import json
from typing import Any, List, Optional, Sequence

from .models import SENSITIVE_MARK, ResponseConfig, SpecDocument, ToolDescriptor


_MISSING = object()


def post_process(spec: SpecDocument, tool: Optional[ToolDescriptor], data: Any) -> Any:
    response_config = spec.response_config
    if tool is not None:
        data = shape_response(data, *_response_rules(tool, response_config))
    return truncate(data, response_config.max_length)


def shape_response(
    data: Any,
    include_keys: Sequence[str],
    exclude_keys: Sequence[str],
    sensitive_keys: Sequence[str],
) -> Any:
    if not include_keys and not exclude_keys and not sensitive_keys:
        return data
    if isinstance(data, list):
        return [transform_item(item, include_keys, exclude_keys, sensitive_keys) for item in data]
    return transform_item(data, include_keys, exclude_keys, sensitive_keys)


def transform_item(
    item: Any,
    include_keys: Sequence[str],
    exclude_keys: Sequence[str],
    sensitive_keys: Sequence[str],
) -> Any:
    if not isinstance(item, dict):
        return item

    if include_keys:
        result: Any = {}
        for path in include_keys:
            value = _get(item, _split(path))
            if value is not _MISSING:
                _set(result, item, _split(path), copy.deepcopy(value))
    else:
        result = copy.deepcopy(item)

    for path in exclude_keys:
        segments = _split(path)
        parent = _get(result, segments[:-1])
        if isinstance(parent, dict):
            parent.pop(segments[-1], None)

    for path in sensitive_keys:
        segments = _split(path)
        parent = _get(result, segments[:-1])
        key = _container_key(parent, segments[-1])
        if key is not _MISSING:
            parent[key] = SENSITIVE_MARK

    return result


def truncate(data: Any, max_length: Optional[int]) -> Any:
    if not max_length:
        return data
    serialized = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    if len(serialized) <= max_length:
        return data
    return {
        "message": (
            f"Response was truncated (length: {len(serialized)}, max: {max_length})"
        ),
        "truncatedData": serialized[:max_length] + "...",
    }


def _response_rules(
    tool: ToolDescriptor, response_config: ResponseConfig
) -> tuple[List[str], List[str], List[str]]:
    # an operation-level list, even an empty one, replaces the global list
    operation = tool.operation
    include_keys = _first_declared(
        operation.include_response_keys, response_config.include_response_keys
    )
    exclude_keys = _first_declared(
        operation.exclude_response_keys, response_config.exclude_response_keys
    )
    sensitive_keys = _first_declared(
        operation.sensitive_response_fields, response_config.sensitive_response_fields
    )
    return include_keys, exclude_keys, sensitive_keys


def _first_declared(*candidates: Optional[Sequence[str]]) -> List[str]:
    for candidate in candidates:
        if candidate is not None:
            return list(candidate)
    return []


def _split(path: str) -> List[str]:
    return path.split(".")


def _container_key(container: Any, segment: str) -> Any:
    if isinstance(container, dict):
        return segment if segment in container else _MISSING
    if isinstance(container, list) and segment.isdigit() and int(segment) < len(container):
        return int(segment)
    return _MISSING


def _get(data: Any, segments: Sequence[str]) -> Any:
    current = data
    for segment in segments:
        key = _container_key(current, segment)
        if key is _MISSING:
            return _MISSING
        current = current[key]
    return current


def _set(target: dict, source: Any, segments: Sequence[str], value: Any) -> None:
    """Write ``value`` at ``segments``, mirroring the list/dict shape of ``source``."""
    current: Any = target
    node = source
    for segment in segments[:-1]:
        node = node[_container_key(node, segment)]
        container_type = list if isinstance(node, list) else dict
        child = _child(current, segment)
        if not isinstance(child, container_type):
            child = container_type()
            _assign(current, segment, child)
        current = child
    _assign(current, segments[-1], value)


def _child(container: Any, segment: str) -> Any:
    if isinstance(container, list):
        position = int(segment)
        return container[position] if position < len(container) else None
    return container.get(segment)


def _assign(container: Any, segment: str, value: Any) -> None:
    if isinstance(container, list):
        position = int(segment)
        # gaps left by indices that were not selected are filled with None
        container.extend([None] * (position + 1 - len(container)))
        container[position] = value
    else:
        container[segment] = value
