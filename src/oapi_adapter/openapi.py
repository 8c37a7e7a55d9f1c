"""OpenAPI spec loader: fetch, template, parse, merge and filter."""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx
import yaml
from pydantic import ValidationError

from .config import Settings
from .exceptions import SpecLoadError
from .models import SpecDocument
from .resolver import TEMPLATE_VARIABLE
from .spec_filter import filter_spec


logger = logging.getLogger(__name__)

# placeholders consumed later by x-tool-name-format
_RESERVED_PLACEHOLDERS = {"method", "path", "operationId"}


class SpecLoader:
    def __init__(
        self,
        cache_seconds: int = 3600,
        client: Optional[httpx.AsyncClient] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.cache_seconds = cache_seconds
        self.client = client
        self.environ = environ
        self._cache: Dict[str, Tuple[float, str]] = {}

    async def load(self, settings: Settings) -> SpecDocument:
        spec = await self.read_document(
            url=settings.spec_url, path=settings.spec_path, fmt=settings.spec_format
        )
        if spec is None:
            raise SpecLoadError("No OpenAPI spec configured: set SPEC_URL or SPEC_PATH")

        extension = await self.read_document(
            url=settings.spec_extension_url,
            path=settings.spec_extension_path,
            fmt=settings.spec_extension_format,
        )
        merged = deep_merge(spec, extension or {})
        return self.build(merged)

    def build(self, document: Mapping[str, Any]) -> SpecDocument:
        try:
            spec = SpecDocument.model_validate(dict(document))
            operation_count = sum(1 for _ in spec.iter_operations())
        except ValidationError as exc:
            raise SpecLoadError(f"Invalid OpenAPI spec: {exc}") from exc
        logger.debug("Validated %s operation(s)", operation_count)
        return filter_spec(spec)

    async def read_document(
        self, url: Optional[str], path: Optional[str], fmt: str = "json"
    ) -> Optional[Dict[str, Any]]:
        if url:
            text = await self._fetch(url)
        elif path:
            try:
                text = Path(path).read_text(encoding="utf-8")
            except OSError as exc:
                raise SpecLoadError(f"Failed to read OpenAPI spec from file: {exc}") from exc
        else:
            return None

        text = self.substitute_environment(text)
        return parse_document(text, fmt)

    def substitute_environment(self, text: str) -> str:
        environ = os.environ if self.environ is None else self.environ

        def lookup(match) -> str:
            name = match.group(1)
            if name in _RESERVED_PLACEHOLDERS or name not in environ:
                return match.group(0)
            return environ[name]

        return TEMPLATE_VARIABLE.sub(lookup, text)

    async def _fetch(self, url: str) -> str:
        cached = self._cache.get(url)
        if cached and time.time() - cached[0] < self.cache_seconds:
            return cached[1]

        try:
            if self.client is not None:
                response = await self.client.get(url)
            else:
                async with httpx.AsyncClient(timeout=30) as client:
                    response = await client.get(url)
        except httpx.HTTPError as exc:
            raise SpecLoadError(f"Failed to fetch OpenAPI spec from URL: {exc}") from exc

        if response.status_code != 200:
            logger.warning("Failed to fetch OpenAPI spec: %s (%s)", url, response.status_code)
            raise SpecLoadError(
                f"Failed to fetch OpenAPI spec from URL: {url} ({response.status_code})"
            )

        self._cache[url] = (time.time(), response.text)
        return response.text


def parse_document(text: str, fmt: str = "json") -> Dict[str, Any]:
    try:
        data = yaml.safe_load(text) if fmt.lower() in {"yaml", "yml"} else json.loads(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise SpecLoadError(f"Failed to parse OpenAPI spec as {fmt}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SpecLoadError(f"OpenAPI spec must be a mapping, got {type(data).__name__}")
    return data


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested mappings merge, other values replace."""
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged
