"""Inclusion/exclusion of operations via ``x-filter-rules``."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from .exceptions import ConfigurationError
from .models import HTTP_METHODS, FilterRule, SpecDocument


logger = logging.getLogger(__name__)


def filter_spec(spec: SpecDocument) -> SpecDocument:
    """Return ``spec`` with only the operations selected by its filter rules.

    Rules are tried in declaration order and the first matching rule decides:
    the operation is kept unless that rule sets ``exclude``. Operations no rule
    matches are dropped. Without rules the document is returned as is.
    """
    rules = spec.filter_rules
    if not rules:
        return spec

    filtered_paths: Dict[str, Dict[str, Any]] = {}
    seen = 0
    for path, path_item in spec.paths.items():
        if not isinstance(path_item, dict):
            continue
        kept: Dict[str, Any] = {}
        for method, operation in path_item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            seen += 1
            if _is_included(rules, path, method.lower(), operation):
                kept[method] = operation
        if kept:
            filtered_paths[path] = kept

    included = sum(len(item) for item in filtered_paths.values())
    logger.info("Filter rules kept %s of %s operations", included, seen)
    return spec.model_copy(update={"paths": filtered_paths})


def _is_included(
    rules: List[FilterRule], path: str, method: str, operation: Dict[str, Any]
) -> bool:
    for rule in rules:
        if _matches(rule, path, method, operation):
            return not rule.exclude
    return False


def _matches(rule: FilterRule, path: str, method: str, operation: Dict[str, Any]) -> bool:
    if rule.path_pattern is not None and not _search(rule.path_pattern, path):
        return False
    if rule.method_pattern is not None and not _search(rule.method_pattern, method):
        return False
    # operationId and tag checks only apply when the operation declares them
    operation_id = operation.get("operationId")
    if (
        rule.operation_id_pattern is not None
        and operation_id
        and not _search(rule.operation_id_pattern, str(operation_id))
    ):
        return False
    operation_tags = operation.get("tags")
    if rule.tags is not None and operation_tags is not None:
        if not any(tag in operation_tags for tag in rule.tags):
            return False
    return True


def _search(pattern: str, value: str) -> bool:
    try:
        return re.search(pattern, value) is not None
    except re.error as exc:
        raise ConfigurationError(f"Invalid filter pattern {pattern!r}: {exc}") from exc
