"""Logging helpers with redaction."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping

import httpx


REDACTED = "***REDACTED***"

_SENSITIVE_KEYS = re.compile(
    r"(token|secret|api[_-]?key|password|authorization|signature)", re.IGNORECASE
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # httpx logs full request URLs at INFO, query strings included
    logging.getLogger("httpx").setLevel(logging.WARNING)


def is_sensitive_key(key: Any) -> bool:
    return bool(_SENSITIVE_KEYS.search(str(key)))


def redact_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    redacted: Dict[str, Any] = {}
    for key, value in payload.items():
        if is_sensitive_key(key):
            redacted[key] = REDACTED
        else:
            redacted[key] = _redact_value(value)
    return redacted


def redact_url(url: str) -> str:
    """Mask query parameters whose names look like credentials."""
    parsed = httpx.URL(url)
    if not parsed.query:
        return url
    params = [
        (key, REDACTED if is_sensitive_key(key) else value)
        for key, value in parsed.params.multi_items()
    ]
    return str(parsed.copy_with(params=params))


def _redact_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return redact_payload(value)
    if isinstance(value, list):
        return [_redact_value(item) for item in value]
    return value
